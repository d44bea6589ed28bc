"""Interface for AI Language Models (LLMs).

Defines the contract for sending a single prompt to an OpenAI-compatible
completion endpoint. Used by the summarize and suggest operations only;
the prompt engine itself never calls out.
"""

import abc
from typing import List

from ..models.ai import ChatMessage, StructuredAIResponse


class AIModel(abc.ABC):
    """Abstract Base Class for AI language model interactions."""

    @abc.abstractmethod
    async def send_messages(self, messages: List[ChatMessage]) -> StructuredAIResponse:
        """Sends a list of messages to the AI model asynchronously.

        Args:
            messages: A list of ChatMessage objects representing the conversation.

        Returns:
            A StructuredAIResponse containing the AI's reply and metadata.

        Raises:
            AIClientError: If the response cannot be used.
            openai.OpenAIError: If the API call fails.
        """
        pass

    async def complete(self, prompt: str) -> str:
        """Sends one user prompt and returns the reply text."""
        response = await self.send_messages([{"role": "user", "content": prompt}])
        return response.content
