"""Interface for interacting with the user (output only).

Defines the contract for showing prompts, tables, errors, warnings and
informational messages, allowing different UI implementations.
"""

import abc
from typing import Any, Dict, List, Mapping

from devctx.domain.models.common import PromptText


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_prompt(self, prompt: PromptText, **kwargs: Any) -> None:
        """Displays a composed prompt.

        Args:
            prompt: The prompt text.
            **kwargs: Additional arguments including:
                - title: Panel title
                - subtitle: Tier/token summary line
                - raw: Print the bare text only, for piping
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user.

        Args:
            warning_message: The warning message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user.

        Args:
            info_message: The informational message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    def display_entries(self, entries: List[Dict[str, Any]], **kwargs: Any) -> None:
        """Displays saved context history rows.

        Args:
            entries: Index rows with id, branch, timestamp, task, tokenCount.
        """
        pass

    def display_mapping(self, data: Mapping[str, Any], **kwargs: Any) -> None:
        """Displays a key/value mapping such as configuration or a result payload."""
        pass
