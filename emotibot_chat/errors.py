"""
Failures of a single chat exchange.

Every error renders as a tagged, user-facing line so the display surface can
show it in place of a reply.
"""


class ChatError(Exception):
    """Base class for chat exchange failures."""

    tag = "local error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def display(self) -> str:
        return f"[{self.tag}] {self.message}"


class RemoteAPIError(ChatError):
    """The provider reported its own failure."""

    tag = "remote error"


class TransportError(ChatError):
    """The request never produced a response."""

    tag = "local error: transport"


class EmptyBodyError(ChatError):
    """The response carried no data."""

    tag = "local error: empty body"


class MalformedBodyError(ChatError):
    """The response body is not valid JSON."""

    tag = "local error: malformed body"


class UnexpectedShapeError(ChatError):
    """The response body is JSON but has neither a reply nor an error."""

    tag = "local error: unexpected shape"

