import asyncio
from logging import getLogger
from pathlib import Path
from typing import Any, List, Mapping, Optional

from config import CHUNK_BYTES
from watson_stt.recognize_options import default_options
from watson_stt.recognize_stream import Connector, RecognizeStream
from watson_stt.stt_provider import RealtimeSttProvider
from watson_stt.wav_stream import inspect_wav, iter_file_chunks, stream_chunks_to_queue


logger = getLogger(__name__)


# ---------------------------------------------------------------------------
# STT session
# ---------------------------------------------------------------------------


async def init_stt_once_provider(
        provider: RealtimeSttProvider,
        audio_queue: asyncio.Queue[Optional[bytes]],
        transcript_queue: asyncio.Queue[Optional[str]],
        conversation_running: asyncio.Event,
) -> None:
    """
    Provider-agnostic STT session:
      - reads audio chunks from audio_queue (None ends the input)
      - sends to provider, then signals end of audio
      - receives provider events until the provider closes
      - pushes final transcripts into transcript_queue
    """

    async def _sender() -> None:
        try:
            while conversation_running.is_set():
                chunk = await audio_queue.get()
                if chunk is None:
                    break
                await provider.send_audio(chunk)
        except Exception as e:
            logger.warning("[STT] _sender stopped: %r", e)
        finally:
            await provider.end_audio()
            logger.info("[STT] _sender finished.")

    async def _receiver() -> None:
        async for ev in provider.events():
            if not conversation_running.is_set():
                break
            if ev.is_final and ev.text.strip():
                await transcript_queue.put(ev.text.strip())

    async with provider:
        sender = asyncio.create_task(_sender())
        receiver = asyncio.create_task(_receiver())

        # final results keep arriving after the end of audio, so only the receiver ends the session
        done, _ = await asyncio.wait({sender, receiver}, return_when=asyncio.FIRST_COMPLETED)
        if receiver in done:
            sender.cancel()
        try:
            await receiver
        finally:
            if not sender.done():
                sender.cancel()


# ---------------------------------------------------------------------------
# File transcription
# ---------------------------------------------------------------------------


async def transcribe_file(
        path: Path,
        options: Optional[Mapping[str, Any]] = None,
        *,
        chunk_bytes: int = CHUNK_BYTES,
        connector: Optional[Connector] = None,
) -> str:
    """
    Stream an audio file through a new RecognizeStream and return the joined final text.

    The file is sent as-is, so `content-type` in options must describe it (audio/wav by default).
    Without options the session targets the service configured in the environment.
    """
    if options is None:
        options = default_options()

    if path.suffix.lower() == ".wav":
        fmt = inspect_wav(path)
        logger.debug("[STT] %s: %d Hz, %d channel(s), %.1fs",
                     path.name, fmt.sample_rate, fmt.channels, fmt.duration_s)

    audio_queue: asyncio.Queue[Optional[bytes]] = asyncio.Queue(maxsize=200)
    transcript_queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
    running = asyncio.Event()
    running.set()

    stream = RecognizeStream(options, connector=connector)
    producer = asyncio.create_task(
        stream_chunks_to_queue(iter_file_chunks(path, chunk_bytes=chunk_bytes), audio_queue, running=running)
    )
    try:
        await init_stt_once_provider(stream, audio_queue, transcript_queue, running)
    finally:
        running.clear()
        producer.cancel()

    texts: List[str] = []
    while not transcript_queue.empty():
        texts.append(transcript_queue.get_nowait())
    logger.info("[STT] %s: %d final segment(s).", path.name, len(texts))
    return " ".join(texts)
