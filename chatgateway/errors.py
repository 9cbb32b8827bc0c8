"""
Gateway error types.

Every failure the gateway surfaces carries an ErrorKind so callers (the HTTP
layer, the UI) can pick their own status/message without parsing text.
"""
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    REMOTE_UNAVAILABLE = "remote_unavailable"
    INVALID_MEDIA = "invalid_media"
    UNKNOWN_TOOL = "unknown_tool"
    UNSUPPORTED_COMBINATION = "unsupported_combination"
    TIMEOUT = "timeout"


class GatewayError(Exception):
    """Base exception for gateway errors."""

    kind: ErrorKind = ErrorKind.REMOTE_UNAVAILABLE

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class RemoteUnavailableError(GatewayError):
    """Raised when the provider can't be reached or answers with an error."""
    kind = ErrorKind.REMOTE_UNAVAILABLE


class InvalidMediaError(GatewayError):
    """Raised when an attachment is unreadable or its MIME type is unsupported."""
    kind = ErrorKind.INVALID_MEDIA


class UnknownToolError(GatewayError):
    """Raised when the model asks for a tool the request didn't declare."""
    kind = ErrorKind.UNKNOWN_TOOL

    def __init__(self, message: str, tool_name: Optional[str] = None):
        super().__init__(message)
        self.tool_name = tool_name


class UnsupportedCombinationError(GatewayError):
    """Raised when streaming is requested together with tools."""
    kind = ErrorKind.UNSUPPORTED_COMBINATION


class GatewayTimeoutError(GatewayError):
    """Raised when a remote call exceeds the configured deadline."""
    kind = ErrorKind.TIMEOUT
