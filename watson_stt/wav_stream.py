from __future__ import annotations

import asyncio
import wave
from dataclasses import dataclass
from pathlib import Path
from logging import getLogger
from typing import Iterator, Optional

from config import CHUNK_BYTES

logger = getLogger(__name__)


@dataclass(frozen=True)
class WavFormat:
    channels: int
    sample_width_bytes: int
    sample_rate: int
    n_frames: int
    comptype: str
    compname: str

    @property
    def duration_s(self) -> float:
        return self.n_frames / float(self.sample_rate) if self.sample_rate else 0.0


def inspect_wav(path: Path) -> WavFormat:
    path = path.resolve()
    with wave.open(str(path), "rb") as wf:
        return WavFormat(
            channels=wf.getnchannels(),
            sample_width_bytes=wf.getsampwidth(),
            sample_rate=wf.getframerate(),
            n_frames=wf.getnframes(),
            comptype=wf.getcomptype(),
            compname=wf.getcompname(),
        )


def iter_file_chunks(path: Path, *, chunk_bytes: int = CHUNK_BYTES) -> Iterator[bytes]:
    """
    Yield the raw bytes of an audio file in fixed size chunks.

    The file is not decoded: for audio/wav the header goes out with the first
    chunk, which is how the service learns the sample rate.
    """
    if chunk_bytes <= 0:
        raise ValueError("chunk_bytes must be positive")

    with open(path, "rb") as f:
        while True:
            data = f.read(chunk_bytes)
            if not data:
                break
            yield data


async def stream_chunks_to_queue(
        chunks: Iterator[bytes],
        audio_queue: asyncio.Queue,
        *,
        delay_s: float = 0.0,
        running: Optional[asyncio.Event] = None,
) -> None:
    """
    Put audio chunks into audio_queue, then None to mark end of input.

    delay_s: optional pause after each chunk (0.0 = as fast as the queue accepts).
    """
    cnt = 0
    for chunk in chunks:
        if running is not None and not running.is_set():
            break
        await audio_queue.put(chunk)
        cnt += 1
        if cnt % 20 == 0:
            logger.debug("Audio stream: queued chunk %d...", cnt)
        if delay_s > 0:
            await asyncio.sleep(delay_s)

    # cleanly close - this is important, it triggers the stop message
    await audio_queue.put(None)
