"""Stitch per-chunk speech synthesis into one WAV file.

The speech model returns a complete WAV container for every call. A long
podcast script is synthesized in chunks of lines; each chunk's 44-byte header
is dropped, the PCM samples are concatenated in order, and one new header is
written for the total length.
"""

from __future__ import annotations

import base64
import logging
import struct
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from miraverse.core.config import settings
from miraverse.core.models import DialogueLine

logger = logging.getLogger(__name__)

WAV_HEADER_SIZE = 44
PCM_FORMAT = 1
FMT_CHUNK_SIZE = 16

# < little-endian: RIFF size, WAVE, "fmt " chunk, "data" chunk length
_HEADER_STRUCT = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass(frozen=True)
class WavFormat:
    sample_rate: int = 24000
    channels: int = 1
    bits_per_sample: int = 16
    header_size: int = WAV_HEADER_SIZE

    @property
    def block_align(self) -> int:
        return self.channels * (self.bits_per_sample // 8)

    @property
    def byte_rate(self) -> int:
        return self.sample_rate * self.block_align

    @classmethod
    def from_settings(cls) -> "WavFormat":
        return cls(
            sample_rate=settings.TTS_SAMPLE_RATE,
            channels=settings.TTS_CHANNELS,
            bits_per_sample=settings.TTS_BITS_PER_SAMPLE,
        )


def build_wav_header(data_length: int, fmt: WavFormat | None = None) -> bytes:
    fmt = fmt or WavFormat.from_settings()
    if data_length < 0:
        raise ValueError("data_length must be non-negative")
    return _HEADER_STRUCT.pack(
        b"RIFF",
        36 + data_length,
        b"WAVE",
        b"fmt ",
        FMT_CHUNK_SIZE,
        PCM_FORMAT,
        fmt.channels,
        fmt.sample_rate,
        fmt.byte_rate,
        fmt.block_align,
        fmt.bits_per_sample,
        b"data",
        data_length,
    )


def wrap_pcm(pcm: bytes, fmt: WavFormat | None = None) -> bytes:
    return build_wav_header(len(pcm), fmt) + pcm


def strip_header(wav: bytes, fmt: WavFormat | None = None) -> bytes:
    size = (fmt or WavFormat.from_settings()).header_size
    return wav[size:]


def read_declared_length(wav: bytes) -> int:
    """The data-chunk length a canonical 44-byte header declares."""
    if len(wav) < WAV_HEADER_SIZE:
        raise ValueError("buffer is shorter than a WAV header")
    return struct.unpack_from("<I", wav, 40)[0]


def is_empty_wav(wav: bytes, fmt: WavFormat | None = None) -> bool:
    return len(wav) <= (fmt or WavFormat.from_settings()).header_size


def chunk_lines(lines: Sequence[DialogueLine], size: int) -> list[list[DialogueLine]]:
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    return [list(lines[i : i + size]) for i in range(0, len(lines), size)]


Synthesizer = Callable[[list[DialogueLine]], Awaitable[bytes]]


async def assemble_dialogue(
    lines: Sequence[DialogueLine],
    synthesize: Synthesizer,
    chunk_size: int | None = None,
    fmt: WavFormat | None = None,
) -> bytes:
    """Synthesize ``lines`` chunk by chunk and return one WAV buffer.

    A chunk that fails is logged and left out; the result then covers the
    remaining chunks only. When nothing succeeds the result is a bare header
    (check with :func:`is_empty_wav`).
    """
    fmt = fmt or WavFormat.from_settings()
    chunks = chunk_lines(lines, chunk_size or settings.AUDIO_CHUNK_LINES)
    samples = bytearray()
    failed = 0
    for index, chunk in enumerate(chunks):
        try:
            wav = await synthesize(chunk)
        except Exception as e:
            failed += 1
            logger.warning("speech chunk %d/%d failed: %s", index + 1, len(chunks), e)
            continue
        samples.extend(strip_header(wav, fmt))

    logger.info(
        "assembled %d/%d speech chunks, %d sample bytes",
        len(chunks) - failed, len(chunks), len(samples),
    )
    return build_wav_header(len(samples), fmt) + bytes(samples)


def to_data_uri(wav: bytes) -> str:
    return "data:audio/wav;base64," + base64.b64encode(wav).decode("ascii")
