"""
Speech playback.

One shared output context (pygame mixer) is created lazily on the first
request and kept for the life of the process. Every `speak` call gets its own
Sound on its own mixer channel, so overlapping requests overlap audibly.
Playback is an enhancement: failures are logged and never raised.
"""

import threading
from typing import Callable, List, Optional, Tuple

import numpy as np

from .api import LexiconServices
from .audio import AudioBuffer, decode_pcm16
from .config import Settings
from .logger import logger, Timer

# Audio playback support
try:
    import pygame
    AUDIO_AVAILABLE = True
except ImportError:
    AUDIO_AVAILABLE = False
    logger.warning("pygame not installed. Audio playback will be disabled.")
    logger.warning("Install with: pip install pygame")

MIXER_CHANNELS = 16
FLOAT32_SAMPLE_SIZE = 32


class AudioUnavailableError(RuntimeError):
    """Raised when no audio output can be opened."""


def fit_channels(samples: np.ndarray, channels: int) -> np.ndarray:
    """
    Shape decoded (frames, n) samples for a mixer with `channels` outputs.

    Mono mixers take a 1-D array; a mono buffer is duplicated across the
    outputs of a multi-channel mixer.
    """
    if channels == 1:
        data = samples.mean(axis=1) if samples.shape[1] > 1 else samples[:, 0]
    elif samples.shape[1] == channels:
        data = samples
    elif samples.shape[1] == 1:
        data = np.repeat(samples, channels, axis=1)
    else:
        raise ValueError(f"cannot map {samples.shape[1]} channels onto a {channels}-channel mixer")
    return np.ascontiguousarray(data, dtype=np.float32)


class AudioContext:
    """The process-wide output device, opened at a fixed sample rate."""

    def __init__(self, sample_rate: int, channels: int = 1):
        if not AUDIO_AVAILABLE:
            raise AudioUnavailableError("pygame is not installed")

        # allowedchanges=0: SDL converts for the device, the mixer keeps the requested format
        pygame.mixer.init(frequency=sample_rate, size=FLOAT32_SAMPLE_SIZE,
                          channels=channels, allowedchanges=0)
        obtained = pygame.mixer.get_init()
        if obtained is None:
            raise AudioUnavailableError("mixer failed to initialize")

        frequency, _size, mixer_channels = obtained
        if frequency != sample_rate:
            pygame.mixer.quit()
            raise AudioUnavailableError(
                f"mixer opened at {frequency} Hz, speech needs {sample_rate} Hz"
            )

        pygame.mixer.set_num_channels(MIXER_CHANNELS)
        self.sample_rate = frequency
        self.channels = mixer_channels
        self._playing: List[Tuple["pygame.mixer.Sound", Optional["pygame.mixer.Channel"]]] = []
        self._lock = threading.Lock()
        logger.audio(f"Audio context opened: {obtained}")

    def play(self, buffer: AudioBuffer) -> None:
        """Start `buffer` immediately on a free channel."""
        if buffer.sample_rate != self.sample_rate:
            raise ValueError(f"buffer is {buffer.sample_rate} Hz, mixer is {self.sample_rate} Hz")
        sound = pygame.sndarray.make_sound(fit_channels(buffer.samples, self.channels))
        channel = sound.play()

        # A Sound that gets garbage collected stops playing, so hold it until done
        with self._lock:
            self._playing = [(s, c) for s, c in self._playing if c is not None and c.get_busy()]
            self._playing.append((sound, channel))


class PlaybackScheduler:
    """Turns text into audible speech: synthesize -> decode -> play."""

    def __init__(
        self,
        services: LexiconServices,
        settings: Settings,
        context_factory: Callable[[int, int], AudioContext] = AudioContext,
    ):
        self.services = services
        self.settings = settings
        self._context_factory = context_factory
        self._context: Optional[AudioContext] = None
        self._context_lock = threading.Lock()

    def _get_context(self) -> AudioContext:
        with self._context_lock:
            if self._context is None:
                self._context = self._context_factory(self.settings.sample_rate, self.settings.channels)
            return self._context

    def speak(self, text: str, voice: Optional[str] = None) -> None:
        """Fire-and-forget: synthesis and playback happen on a daemon thread."""
        if not text or not text.strip():
            return
        logger.task_start(f"speak ({len(text)} chars)")
        thread = threading.Thread(target=self.play_speech, args=(text, voice), daemon=True)
        thread.start()

    def play_speech(self, text: str, voice: Optional[str] = None) -> bool:
        """Blocking body of `speak`. Returns True if audio was scheduled."""
        if not text or not text.strip():
            return False

        try:
            context = self._get_context()
            with Timer() as timer:
                payload = self.services.synthesize_speech(text, voice)
            if not payload:
                logger.audio_error("Speech service returned no audio")
                return False

            buffer = decode_pcm16(payload, self.settings.sample_rate, self.settings.channels)
            if buffer.frame_count == 0:
                logger.audio_error("Speech payload shorter than one frame")
                return False

            context.play(buffer)
            logger.audio(
                f"Playing {buffer.duration_seconds:.2f}s of speech "
                f"({buffer.frame_count} frames, fetched in {timer.duration_ms:.0f}ms)"
            )
            return True
        except Exception as e:
            logger.audio_error(f"Speech playback failed: {e}")
            return False
