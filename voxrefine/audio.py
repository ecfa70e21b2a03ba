"""
Audio framing and conversion helpers.

Providers that upload a file need a WAV container around the raw PCM the
recorder produces. The format is fixed: mono, 16-bit linear PCM, 24 kHz.
"""

import struct
from pathlib import Path
from typing import Iterator, Union

import numpy as np
import soundfile as sf


SAMPLE_RATE = 24000
CHANNELS = 1
BITS_PER_SAMPLE = 16
WAV_HEADER_SIZE = 44

BYTE_RATE = SAMPLE_RATE * CHANNELS * BITS_PER_SAMPLE // 8
BLOCK_ALIGN = CHANNELS * BITS_PER_SAMPLE // 8

# Default read size for file sources (~0.5s of audio)
DEFAULT_CHUNK_BYTES = BYTE_RATE // 2

_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


def frame_wav(pcm: bytes) -> bytes:
    """
    Wrap raw PCM in a canonical 44-byte RIFF/WAVE header.

    Args:
        pcm: 16-bit little-endian mono samples at 24 kHz

    Returns:
        Header followed by the untouched payload
    """
    data_size = len(pcm)
    header = _HEADER.pack(
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        1,  # PCM
        CHANNELS,
        SAMPLE_RATE,
        BYTE_RATE,
        BLOCK_ALIGN,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )
    return header + bytes(pcm)


def pcm_duration(byte_count: int) -> float:
    """Seconds of audio represented by `byte_count` bytes of PCM."""
    return byte_count / BYTE_RATE


def float_to_pcm16(audio: np.ndarray) -> bytes:
    """Convert float audio in [-1, 1] to 16-bit little-endian PCM bytes."""
    audio_clipped = np.clip(np.asarray(audio, dtype=np.float32), -1.0, 1.0)
    audio_int16 = (audio_clipped * 32767).astype("<i2")
    return audio_int16.tobytes()


def _resample(audio: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """FFT resample to `target_rate`."""
    if source_rate == target_rate or len(audio) == 0:
        return audio
    from scipy import signal
    num_samples = int(len(audio) * target_rate / source_rate)
    return signal.resample(audio, num_samples).astype(np.float32)


def read_audio_file(
    path: Union[str, Path],
    chunk_size: int = DEFAULT_CHUNK_BYTES,
) -> Iterator[bytes]:
    """
    Yield a sound file as 24 kHz mono PCM16 chunks.

    Lets a file on disk stand in for the microphone. Stereo input is
    downmixed; other sample rates are resampled.

    Args:
        path: Any format libsndfile can read (wav, flac, ogg, ...)
        chunk_size: Bytes per yielded chunk

    Yields:
        PCM byte buffers, in order
    """
    audio, sample_rate = sf.read(str(path), dtype="float32", always_2d=True)
    mono = np.mean(audio, axis=1)
    pcm = float_to_pcm16(_resample(mono, sample_rate, SAMPLE_RATE))

    for start in range(0, len(pcm), chunk_size):
        yield pcm[start:start + chunk_size]
