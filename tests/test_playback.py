import struct
from types import SimpleNamespace

import numpy as np
import pytest

from conftest import FakeAudioContext, FakeServices
from lexicon.audio import decode_pcm16
from lexicon.playback import AudioContext, AudioUnavailableError, PlaybackScheduler, fit_channels

SPEECH = struct.pack("<4h", 0, 16384, -16384, 0)


def make_scheduler(services, settings):
    return PlaybackScheduler(services, settings, context_factory=FakeAudioContext)


def test_context_is_created_once_and_reused(settings):
    scheduler = make_scheduler(FakeServices(speech=SPEECH), settings)

    assert FakeAudioContext.instances == 0
    assert scheduler.play_speech("hello")
    assert scheduler.play_speech("world")

    assert FakeAudioContext.instances == 1
    context = scheduler._get_context()
    assert len(context.played) == 2
    assert context.sample_rate == 24000


def test_decoded_buffer_reaches_context(settings):
    scheduler = make_scheduler(FakeServices(speech=SPEECH), settings)
    scheduler.play_speech("hello")

    buffer = scheduler._get_context().played[0]
    assert buffer.frame_count == 4
    assert buffer.channel(0)[1] == 0.5


def test_voice_is_forwarded(settings):
    services = FakeServices(speech=SPEECH)
    make_scheduler(services, settings).play_speech("hola", voice="alloy")

    assert services.speech_requests == [("hola", "alloy")]


def test_empty_payload_plays_nothing(settings):
    scheduler = make_scheduler(FakeServices(speech=b""), settings)

    assert scheduler.play_speech("hello") is False
    assert scheduler._get_context().played == []


def test_payload_shorter_than_a_frame_plays_nothing(settings):
    scheduler = make_scheduler(FakeServices(speech=b"\x01"), settings)

    assert scheduler.play_speech("hello") is False
    assert scheduler._get_context().played == []


def test_service_error_is_swallowed(settings):
    services = FakeServices(speech=SPEECH)
    services.speech_error = TimeoutError("slow")

    assert make_scheduler(services, settings).play_speech("hello") is False


def test_context_failure_is_swallowed(settings):
    def broken_context(sample_rate, channels):
        raise RuntimeError("no audio device")

    scheduler = PlaybackScheduler(FakeServices(speech=SPEECH), settings, context_factory=broken_context)
    assert scheduler.play_speech("hello") is False


def test_blank_text_is_ignored(settings):
    services = FakeServices(speech=SPEECH)
    scheduler = make_scheduler(services, settings)

    assert scheduler.play_speech("   ") is False
    scheduler.speak("")
    assert services.speech_requests == []


# --- Output device ---

def test_fit_channels_shapes_for_mixer():
    mono = np.array([[0.25], [-0.5]], dtype=np.float32)
    stereo = np.array([[0.5, 0.0], [-1.0, 0.0]], dtype=np.float32)

    assert fit_channels(mono, 1).shape == (2,)
    np.testing.assert_array_equal(fit_channels(mono, 2), [[0.25, 0.25], [-0.5, -0.5]])
    np.testing.assert_array_equal(fit_channels(stereo, 1), [0.25, -0.5])
    with pytest.raises(ValueError):
        fit_channels(stereo, 4)


@pytest.fixture
def dummy_audio(monkeypatch):
    pygame = pytest.importorskip("pygame")
    monkeypatch.setenv("SDL_AUDIODRIVER", "dummy")
    pygame.mixer.quit()
    yield pygame
    pygame.mixer.quit()


def test_real_context_opens_at_speech_format(dummy_audio):
    context = AudioContext(24000, 1)

    frequency, _size, channels = dummy_audio.mixer.get_init()
    assert (frequency, channels) == (24000, 1)
    assert (context.sample_rate, context.channels) == (24000, 1)
    context.play(decode_pcm16(SPEECH, 24000, 1))


class FakeMixer:
    """Replaces pygame.mixer calls so a device can report any negotiated format."""

    def __init__(self, monkeypatch, pygame, obtained):
        self.init_kwargs = None
        self.quit_called = False
        self.sounds = []
        monkeypatch.setattr(pygame.mixer, "init", self.init)
        monkeypatch.setattr(pygame.mixer, "get_init", lambda: obtained)
        monkeypatch.setattr(pygame.mixer, "set_num_channels", lambda n: None)
        monkeypatch.setattr(pygame.mixer, "quit", self.quit)
        monkeypatch.setattr(pygame.sndarray, "make_sound", self.make_sound)

    def init(self, **kwargs):
        self.init_kwargs = kwargs

    def quit(self):
        self.quit_called = True

    def make_sound(self, array):
        self.sounds.append(array)
        return SimpleNamespace(play=lambda: None)


@pytest.fixture
def pygame_module():
    pygame = pytest.importorskip("pygame")
    pytest.importorskip("pygame.sndarray")
    return pygame


def test_mixer_is_not_allowed_to_change_format(monkeypatch, pygame_module):
    mixer = FakeMixer(monkeypatch, pygame_module, (24000, 32, 1))
    AudioContext(24000, 1)

    assert mixer.init_kwargs["allowedchanges"] == 0
    assert mixer.init_kwargs["frequency"] == 24000
    assert mixer.init_kwargs["channels"] == 1


def test_wrong_device_rate_is_refused(monkeypatch, pygame_module):
    mixer = FakeMixer(monkeypatch, pygame_module, (48000, 32, 2))

    with pytest.raises(AudioUnavailableError):
        AudioContext(24000, 1)
    assert mixer.quit_called


def test_wrong_device_rate_leaves_speech_silent(monkeypatch, pygame_module, settings):
    FakeMixer(monkeypatch, pygame_module, (48000, 32, 2))
    scheduler = PlaybackScheduler(FakeServices(speech=SPEECH), settings)

    assert scheduler.play_speech("hello") is False


def test_stereo_device_gets_duplicated_mono(monkeypatch, pygame_module):
    mixer = FakeMixer(monkeypatch, pygame_module, (24000, 32, 2))
    context = AudioContext(24000, 1)
    context.play(decode_pcm16(SPEECH, 24000, 1))

    assert context.channels == 2
    played = mixer.sounds[0]
    assert played.shape == (4, 2)
    np.testing.assert_array_equal(played[:, 0], played[:, 1])
    assert played.dtype == np.float32
