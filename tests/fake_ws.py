"""
In-memory stand-ins for a websockets client connection.

FakeConnection records every frame sent and lets a test feed server frames.
ScriptedConnection plays the Watson side of a whole session on its own.
"""
from __future__ import annotations

import asyncio
from json import dumps, loads
from typing import Any, List, Optional, Union

from websockets import ConnectionClosedError, ConnectionClosedOK
from websockets.frames import Close


LISTENING = dumps({"state": "listening"})


def results_frame(transcript: str, final: bool = True) -> str:
    return dumps({"results": [{"final": final, "alternatives": [{"transcript": transcript}]}], "result_index": 0})


async def settle(rounds: int = 20) -> None:
    """Let pending tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeConnection:
    def __init__(self) -> None:
        self.sent: List[Union[str, bytes]] = []
        self.close_calls = 0
        self._incoming: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def text_frames(self) -> List[dict]:
        return [loads(f) for f in self.sent if isinstance(f, str)]

    @property
    def binary_frames(self) -> List[bytes]:
        return [f for f in self.sent if isinstance(f, bytes)]

    @property
    def stop_count(self) -> int:
        return sum(1 for m in self.text_frames if m.get("action") == "stop")

    def feed(self, frame: Union[str, bytes]) -> None:
        self._incoming.put_nowait(frame)

    def server_close(self, code: int = 1000, reason: str = "") -> None:
        self._closed = True
        self._incoming.put_nowait(ConnectionClosedOK(Close(code, reason), Close(code, reason), True))

    def drop(self) -> None:
        """Connection lost without a close frame."""
        self._closed = True
        self._incoming.put_nowait(ConnectionClosedError(None, None))

    async def send(self, frame: Union[str, bytes]) -> None:
        if self._closed:
            raise ConnectionClosedOK(Close(1000, ""), Close(1000, ""), True)
        self.sent.append(frame)

    async def recv(self) -> Any:
        item = await self._incoming.get()
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.close_calls += 1
        if not self._closed:
            self._closed = True
            self._incoming.put_nowait(ConnectionClosedOK(Close(code, reason), Close(code, reason), True))


class ScriptedConnection(FakeConnection):
    """Answers start with listening, and stop with the scripted results followed by listening."""

    def __init__(self, final_transcripts: List[str]) -> None:
        super().__init__()
        self.final_transcripts = final_transcripts

    async def send(self, frame: Union[str, bytes]) -> None:
        await super().send(frame)
        if not isinstance(frame, str):
            return
        action = loads(frame).get("action")
        if action == "start":
            self.feed(LISTENING)
        elif action == "stop":
            for text in self.final_transcripts:
                self.feed(results_frame(text, final=False))
                self.feed(results_frame(text))
            self.feed(LISTENING)


class FakeConnector:
    """Replaces websockets.connect; optionally holds the handshake until `gate` is set."""

    def __init__(self, conn: Optional[FakeConnection] = None, *, exc: Optional[Exception] = None,
                 gate: Optional[asyncio.Event] = None) -> None:
        self.conn = conn if conn is not None else FakeConnection()
        self.exc = exc
        self.gate = gate
        self.url: Optional[str] = None
        self.kwargs: dict = {}

    async def __call__(self, url: str, **kwargs: Any) -> FakeConnection:
        self.url = url
        self.kwargs = kwargs
        if self.gate is not None:
            await self.gate.wait()
        if self.exc is not None:
            raise self.exc
        return self.conn
