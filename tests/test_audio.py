import struct

import numpy as np
import pytest

from lexicon.audio import decode_pcm16


def pcm(*samples: int) -> bytes:
    return struct.pack(f"<{len(samples)}h", *samples)


def test_boundary_values_are_normalized_exactly():
    buffer = decode_pcm16(pcm(-32768, 32767, 0), sample_rate=24000, channel_count=1)

    assert buffer.frame_count == 3
    assert buffer.channel(0)[0] == -1.0
    assert buffer.channel(0)[1] == np.float32(32767 / 32768.0)
    assert buffer.channel(0)[1] == pytest.approx(0.999969, abs=1e-6)
    assert buffer.channel(0)[2] == 0.0
    assert buffer.samples.dtype == np.float32


def test_stereo_is_deinterleaved_in_channel_order():
    payload = pcm(100, -100, 200, -200, 300, -300)
    buffer = decode_pcm16(payload, sample_rate=24000, channel_count=2)

    assert buffer.frame_count == 3
    assert buffer.channel_count == 2
    np.testing.assert_array_equal(buffer.channel(0) * 32768.0, [100, 200, 300])
    np.testing.assert_array_equal(buffer.channel(1) * 32768.0, [-100, -200, -300])


@pytest.mark.parametrize(
    "byte_length, channels, expected_frames",
    [
        (0, 1, 0),
        (2, 1, 1),
        (7, 1, 3),    # trailing odd byte dropped
        (10, 2, 2),   # 5 samples, trailing partial frame dropped
        (12, 3, 2),
        (10, 3, 1),
    ],
)
def test_frame_count_truncates(byte_length, channels, expected_frames):
    buffer = decode_pcm16(b"\x01" * byte_length, sample_rate=24000, channel_count=channels)
    assert buffer.frame_count == expected_frames
    assert buffer.frame_count == (byte_length // 2) // channels


def test_samples_are_little_endian():
    buffer = decode_pcm16(b"\x00\x40", sample_rate=24000, channel_count=1)  # 0x4000
    assert buffer.channel(0)[0] == 0.5


def test_duration_uses_supplied_sample_rate():
    buffer = decode_pcm16(pcm(*([0] * 12000)), sample_rate=24000, channel_count=1)
    assert buffer.duration_seconds == 0.5
    assert buffer.sample_rate == 24000


@pytest.mark.parametrize("channels, rate", [(0, 24000), (-1, 24000), (1, 0)])
def test_invalid_format_is_rejected(channels, rate):
    with pytest.raises(ValueError):
        decode_pcm16(pcm(1, 2), sample_rate=rate, channel_count=channels)
