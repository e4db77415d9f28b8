"""
PCM16 decoding for synthesized speech.

The speech service returns headerless little-endian signed 16-bit samples,
interleaved by channel. Decoding normalizes them to float32 in [-1.0, 1.0).
"""

from dataclasses import dataclass

import numpy as np

BYTES_PER_SAMPLE = 2
PCM16_SCALE = 32768.0


@dataclass(frozen=True)
class AudioBuffer:
    """Decoded audio: `samples` has shape (frames, channels), dtype float32."""
    samples: np.ndarray
    sample_rate: int

    @property
    def frame_count(self) -> int:
        return int(self.samples.shape[0])

    @property
    def channel_count(self) -> int:
        return int(self.samples.shape[1])

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / self.sample_rate

    def channel(self, index: int) -> np.ndarray:
        return self.samples[:, index]


def decode_pcm16(payload: bytes, sample_rate: int, channel_count: int) -> AudioBuffer:
    """
    Decode interleaved PCM16 into an AudioBuffer.

    frames = (len(payload) // 2) // channel_count; a trailing odd byte or a
    trailing partial frame is dropped, never rounded up.
    """
    if channel_count < 1:
        raise ValueError(f"channel_count must be >= 1, got {channel_count}")
    if sample_rate < 1:
        raise ValueError(f"sample_rate must be >= 1, got {sample_rate}")

    frame_count = (len(payload) // BYTES_PER_SAMPLE) // channel_count
    usable = frame_count * channel_count * BYTES_PER_SAMPLE

    pcm = np.frombuffer(payload[:usable], dtype="<i2")
    samples = (pcm.astype(np.float32) / PCM16_SCALE).reshape(frame_count, channel_count)
    return AudioBuffer(samples=samples, sample_rate=sample_rate)
