from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from json import loads, JSONDecodeError
from typing import Any, Dict, Optional, Union

from watson_stt.errors import (
    InvalidJsonError,
    ServiceError,
    UnexpectedBinaryError,
    UnrecognisedMessageError,
)


# Watson server state values
STT_STATE_LISTENING = "listening"


class MessageKind(Enum):
    LISTENING = "listening"
    RESULTS = "results"


@dataclass(frozen=True)
class ServerMessage:
    """
    A decoded, classified message from the recognize endpoint.

    Attributes:
        kind: What the message means for the session.
        data: The full decoded JSON object.
    """
    kind: MessageKind
    data: Dict[str, Any]

    @property
    def final_transcript(self) -> Optional[str]:
        """
        Transcript of the first alternative when the first result is final, else None.

        There is currently always zero or one entry in `results`.
        """
        if self.kind is not MessageKind.RESULTS:
            return None
        results = self.data.get("results")
        if not isinstance(results, list) or not results:
            return None
        first = results[0]
        if not isinstance(first, dict) or not first.get("final"):
            return None
        alternatives = first.get("alternatives")
        if not isinstance(alternatives, list) or not alternatives or not isinstance(alternatives[0], dict):
            return None
        transcript = alternatives[0].get("transcript")
        return transcript if isinstance(transcript, str) else None


def classify_frame(frame: Union[str, bytes, bytearray]) -> ServerMessage:
    """
    Decode one server frame. Errors are raised, not returned; checks run in this order:
    binary frame, invalid JSON, service error, listening state, results.
    """
    if not isinstance(frame, str):
        raise UnexpectedBinaryError(frame)

    try:
        data = loads(frame)
    except JSONDecodeError as e:
        raise InvalidJsonError(frame, e) from e

    if not isinstance(data, dict):
        raise UnrecognisedMessageError(frame)

    if data.get("error"):
        raise ServiceError(str(data["error"]), frame)

    if data.get("state") == STT_STATE_LISTENING:
        return ServerMessage(kind=MessageKind.LISTENING, data=data)

    if data.get("results") is not None:
        return ServerMessage(kind=MessageKind.RESULTS, data=data)

    raise UnrecognisedMessageError(frame)
