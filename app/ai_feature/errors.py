class ChatError(Exception):
    """Base error for the chat assistant."""


class ModelProviderError(ChatError):
    """The language model call failed (network, provider, bad response)."""


class ToolTimeoutError(ChatError):
    """A data-access call behind a tool ran past its time budget."""


__all__ = ["ChatError", "ModelProviderError", "ToolTimeoutError"]
