"""
STT Provider Protocol: the interface a real-time recognize session implements.

``RecognizeStream`` conforms to the RealtimeSttProvider protocol defined here,
so the provider-agnostic helpers in ``watson_stt.stt`` (audio pump, transcript
ingest) work with it or with any test double that has the same methods. The
protocol uses structural typing (typing.Protocol), so implementations do not
need to inherit from it.

Lifecycle
---------
1. **Construction**: the session is created from an option mapping. For
   ``RecognizeStream`` the WebSocket connection is scheduled right away.

2. **Session** (async context manager): exiting the context closes the
   connection and waits for the receiver to wind down.

3. **Streaming**: two concurrent operations run:

   - ``send_audio(chunk)``: feed audio bytes (any format the service
     accepts, matching the configured ``content-type``).
     Call ``end_audio()`` once when all audio has been sent.
   - ``events()``: async iterator yielding ``TranscriptEvent`` objects.
     The iterator ends when the service closes the connection.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AsyncIterator, Protocol


@dataclass(frozen=True, init=True)
class TranscriptEvent:
    """
    A single transcript event from a recognize session.

    Attributes:
        text: The transcribed text for this event.
        is_final: True if this is a final transcript segment.
            False for interim results that may still change.
    """
    text: str
    is_final: bool


class RealtimeSttProvider(Protocol):
    """
    Structural protocol for real-time STT sessions.

    See the module docstring for lifecycle details.
    """
    async def __aenter__(self) -> "RealtimeSttProvider": ...
    async def __aexit__(self, exc_type, exc, tb) -> None: ...

    async def send_audio(self, pcm_chunk: bytes) -> None: ...
    async def end_audio(self) -> None: ...

    def events(self) -> AsyncIterator[TranscriptEvent]: ...
