"""AI Model Implementations.

Contains clients for OpenAI-compatible completion endpoints, implementing
the `AIModel` interface from the domain layer.
"""
