from __future__ import annotations

from typing import Any, Optional


class RecognizeStreamError(Exception):
    """
    Base error for everything the recognize stream reports on its `error` event.

    Attributes:
        raw: The frame that caused the error (text, bytes or None).
    """

    def __init__(self, message: str, raw: Any = None) -> None:
        super().__init__(message)
        self.raw = raw


class ServiceError(RecognizeStreamError):
    """The service reported an error (`{"error": "..."}`), message taken verbatim."""


class ProtocolError(RecognizeStreamError):
    """The server sent something the recognize protocol does not allow."""


class UnexpectedBinaryError(ProtocolError):
    def __init__(self, raw: Optional[bytes] = None) -> None:
        super().__init__("Unexpected binary data received from server", raw)


class InvalidJsonError(ProtocolError):
    def __init__(self, raw: Optional[str], cause: Exception) -> None:
        super().__init__(f"Invalid JSON received from service: {cause}", raw)
        self.__cause__ = cause


class UnrecognisedMessageError(ProtocolError):
    def __init__(self, raw: Optional[str] = None) -> None:
        super().__init__("Unrecognised message from server", raw)
