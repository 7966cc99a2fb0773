"""
Watson Speech to Text recognize stream.

Accepts binary audio through ``write()`` and yields finalized text when iterated
(``async for text in stream``). Interim results and other data are delivered
through ``results`` events.

Uses a WebSocket under the hood. For audio with no recognizable speech, no text
is yielded.

Events (register with ``stream.on(name, handler)``, handlers may be coroutines):
  - ``connect``          handshake done and start message sent; handler(stream)
  - ``listening``        the service is ready for audio
  - ``results``          every results message, interim or final; handler(payload)
  - ``data``             finalized text pushed to the readable side; handler(text)
  - ``connection-close`` the socket closed; handler(code, reason)
  - ``error``            handler(exception)
  - ``end``              the readable side has finished
"""
from __future__ import annotations

import asyncio
import inspect
from collections import defaultdict
from logging import getLogger
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Mapping, Optional

from websockets import connect, ConnectionClosed, ConnectionClosedOK

from config import WS_CLOSE_TIMEOUT_S, WS_OPEN_TIMEOUT_S, WS_PING_INTERVAL_S
from watson_stt.errors import RecognizeStreamError
from watson_stt.messages import MessageKind, classify_frame
from watson_stt.recognize_options import RecognizeParams
from watson_stt.stt_provider import TranscriptEvent

logger = getLogger(__name__)

# Close code reported when the socket went away without a close frame.
CLOSE_CODE_ABNORMAL = 1006

Handler = Callable[..., Any]
Connector = Callable[..., Awaitable[Any]]


class RecognizeStream:
    """
    One recognize session over one WebSocket connection.

    The connection task is scheduled on construction, so the stream must be
    created inside a running event loop.

    Protocol:
      - Connect to <url as ws>/v1/recognize?model=...
      - Send {"action": "start", ...} right after the handshake
      - Wait for {"state": "listening"} before sending binary audio frames
      - Send {"action": "stop"} at end of input; the service answers with a second
        {"state": "listening"}, after which we close the connection
    """

    def __init__(self, options: Mapping[str, Any], *, connector: Optional[Connector] = None) -> None:
        self._params = RecognizeParams.from_options(options)
        self._connector = connector or connect

        self.listening = False

        self._ws = None
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self._text_q: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._connected = asyncio.Event()
        self._ready = asyncio.Event()
        self._closed = asyncio.Event()
        self._write_lock = asyncio.Lock()
        self._ended = False
        self._error: Optional[Exception] = None

        self._task: asyncio.Task = asyncio.get_running_loop().create_task(self._run())

    @property
    def url(self) -> str:
        return self._params.url

    @property
    def error(self) -> Optional[Exception]:
        """Return the first error reported by the session, if any."""
        return self._error

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    # ------------------------------------------------------------------
    # events
    # ------------------------------------------------------------------

    def on(self, event: str, handler: Handler) -> None:
        self._handlers[event].append(handler)

    def off(self, event: str, handler: Handler) -> None:
        if handler in self._handlers.get(event, ()):
            self._handlers[event].remove(handler)

    async def _emit(self, event: str, *args: Any) -> None:
        """Call every handler for event. A failing handler is reported on `error`, never on the receiver."""
        for handler in list(self._handlers.get(event, ())):
            try:
                result = handler(*args)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.exception("[STT] Watson: %s handler failed: %r", event, e)
                if event != "error":
                    await self._report_error(e)

    async def _report_error(self, err: Exception) -> None:
        if self._error is None:
            self._error = err
        logger.error("[STT] Watson: %s", err)
        await self._emit("error", err)

    # ------------------------------------------------------------------
    # writable side
    # ------------------------------------------------------------------

    async def write(self, chunk: bytes) -> None:
        """
        Send one chunk of audio as a binary frame.

        Waits until the service is listening; chunks are sent in the order write()
        was called, one at a time. Returns once the frame was handed to the transport.
        """
        if self._ended:
            raise RecognizeStreamError("Cannot write audio after end()")

        async with self._write_lock:
            await self._ready.wait()
            if self._closed.is_set() or self._ws is None:
                raise RecognizeStreamError("Cannot write audio, connection closed")
            await self._ws.send(bytes(chunk))

    async def end(self) -> None:
        """
        Mark the end of input: let the service know we're done.

        Pending writes are flushed first. If the connection is not open yet the stop
        message goes out as soon as it is.
        """
        if self._ended:
            return
        self._ended = True

        async with self._write_lock:
            await self._connected.wait()
            if self._closed.is_set() or self._ws is None:
                logger.warning("[STT] Watson: connection closed, stop message not sent")
                return
            try:
                await self._ws.send(self._params.closing_frame())
            except ConnectionClosed:
                logger.warning("[STT] Watson: connection closed while sending stop message")
                return
            logger.debug("[STT] Watson: stop message sent")

    async def send_audio(self, pcm_chunk: bytes) -> None:
        await self.write(pcm_chunk)

    async def end_audio(self) -> None:
        await self.end()

    # ------------------------------------------------------------------
    # readable side
    # ------------------------------------------------------------------

    def transcripts(self) -> AsyncIterator[str]:
        """Async iterator yielding finalized text. Ends when the connection closes."""
        async def _aiter() -> AsyncIterator[str]:
            while True:
                text = await self._text_q.get()
                if text is None:
                    # leave the end marker for any other reader
                    self._text_q.put_nowait(None)
                    if self._error:
                        raise self._error
                    break
                yield text
        return _aiter()

    def __aiter__(self) -> AsyncIterator[str]:
        return self.transcripts()

    def events(self) -> AsyncIterator[TranscriptEvent]:
        async def _aiter() -> AsyncIterator[TranscriptEvent]:
            async for text in self.transcripts():
                yield TranscriptEvent(text=text, is_final=True)
        return _aiter()

    async def _push(self, text: str) -> None:
        await self._text_q.put(text)
        await self._emit("data", text)

    async def _finish(self) -> None:
        if self._closed.is_set():
            return
        self.listening = False
        self._closed.set()
        # release writers / end() waiting on a connection that will never be ready
        self._connected.set()
        self._ready.set()
        await self._text_q.put(None)
        await self._emit("end")

    # ------------------------------------------------------------------
    # session
    # ------------------------------------------------------------------

    async def __aenter__(self) -> "RecognizeStream":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._ws is None and not self._task.done():
            # still in the handshake, nothing to close yet
            self._task.cancel()
        else:
            await self.close()

        done, _ = await asyncio.wait({self._task}, timeout=WS_CLOSE_TIMEOUT_S)
        if not done:
            logger.warning("[STT] Watson: receiver did not finish within %ss", WS_CLOSE_TIMEOUT_S)
            self._task.cancel()
            await asyncio.wait({self._task})
        await self._finish()

    async def close(self) -> None:
        """Close the connection. The readable side ends once the close completes."""
        if self._ws is not None and not self._closed.is_set():
            await self._ws.close()

    async def _run(self) -> None:
        rx_task: Optional[asyncio.Task] = None
        try:
            logger.debug("[STT] Watson: connecting to %s", self._params.url)
            try:
                self._ws = await self._connector(
                    self._params.url,
                    additional_headers=self._params.headers or None,
                    open_timeout=WS_OPEN_TIMEOUT_S,
                    ping_interval=WS_PING_INTERVAL_S,
                    close_timeout=WS_CLOSE_TIMEOUT_S,
                )
                await self._ws.send(self._params.opening_frame())
            except Exception as e:
                await self._report_error(e)
                return

            logger.info("[STT] Watson: WebSocket connected, start message sent.")
            self._connected.set()
            # receiver runs on its own so connect handlers may wait for listening
            rx_task = asyncio.create_task(self._recv_loop())
            await self._emit("connect", self)
            await rx_task
        finally:
            if rx_task is not None and not rx_task.done():
                rx_task.cancel()
            if self._ws is not None and not self._closed.is_set():
                try:
                    await self._ws.close()
                except Exception as e:
                    logger.warning("[STT] Watson: close failed: %r", e)
            await self._finish()

    async def _recv_loop(self) -> None:
        code, reason = CLOSE_CODE_ABNORMAL, ""
        try:
            while True:
                frame = await self._ws.recv()
                await self._handle_frame(frame)

        except ConnectionClosed as e:
            if e.rcvd is not None:
                code, reason = e.rcvd.code, e.rcvd.reason
            if isinstance(e, ConnectionClosedOK) or e.rcvd is not None:
                logger.debug("[STT] Watson: session closed (code=%s, reason=%r).", code, reason)
            else:
                logger.warning("[STT] Watson: connection closed unexpectedly: %s", e)
                self.listening = False
                await self._report_error(e)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("[STT] Watson receiver crashed: %r", e)
            self.listening = False
            await self._report_error(e)
            await self._ws.close()

        self.listening = False
        await self._emit("connection-close", code, reason)
        await self._finish()

    async def _handle_frame(self, frame: Any) -> None:
        try:
            msg = classify_frame(frame)
        except RecognizeStreamError as e:
            await self._report_error(e)
            return

        if msg.kind is MessageKind.LISTENING:
            # sent both when the service is ready for audio, and after the stop
            # message once it's done processing
            if not self.listening:
                self.listening = True
                self._ready.set()
                logger.info("[STT] Watson: listening.")
                await self._emit("listening")
            else:
                logger.debug("[STT] Watson: stop acknowledged, closing connection.")
                await self._ws.close()
            return

        # MessageKind.RESULTS: may carry no results at all for empty audio
        await self._emit("results", msg.data)
        text = msg.final_transcript
        if text is not None:
            logger.debug("[STT] Watson: final transcript: %s", text[:50])
            await self._push(text)
