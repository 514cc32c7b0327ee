"""
Failures raised by the AI layer.

Only errors marked ``retryable`` are retried by RetryPolicy; everything else
surfaces on the first attempt.
"""
from typing import Optional


class AIServiceError(Exception):
    """Transport or protocol failure talking to the chat-completion service."""

    retryable = True

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


class AITimeoutError(AIServiceError):
    """Request exceeded the per-mode timeout."""


class AIResponseError(AIServiceError):
    """Service answered but the reply is unusable (error body, no choices, empty or too short)."""


class AIUnavailableError(AIServiceError):
    """No API key configured. Retrying cannot help."""

    retryable = False


class CommandParseError(Exception):
    """Neither the AI reply nor the text extractor produced an action."""

    def __init__(self, message: str, raw_reply: str = "", cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.raw_reply = raw_reply
        self.cause = cause
