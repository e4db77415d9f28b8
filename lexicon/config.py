"""
Runtime settings for AI Lexicon.

Secrets and model choices come from a .env file at the project root (or the
process environment):

    OPENAI_API_KEY=sk-...
    LEXICON_CHAT_MODEL=gpt-4o-mini
    LEXICON_DATA_DIR=~/.ai_lexicon

python-dotenv + os.getenv keeps secrets out of git.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .logger import logger

DEFAULT_CHAT_MODEL = "gpt-4o-mini"
DEFAULT_IMAGE_MODEL = "dall-e-3"
DEFAULT_TTS_MODEL = "tts-1"
DEFAULT_TTS_VOICE = "nova"
DEFAULT_DATA_DIR = "~/.ai_lexicon"

# The speech endpoint's raw PCM output is fixed at 24kHz, 16-bit, mono
SPEECH_SAMPLE_RATE = 24000
SPEECH_CHANNELS = 1


def mask_secret(secret: str) -> str:
    """Show only the first 8 and last 4 characters of a key."""
    if len(secret) > 12:
        return f"{secret[:8]}...{secret[-4:]}"
    return "***"


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None
    chat_model: str = DEFAULT_CHAT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    tts_model: str = DEFAULT_TTS_MODEL
    tts_voice: str = DEFAULT_TTS_VOICE
    data_dir: Path = Path(DEFAULT_DATA_DIR).expanduser()
    sample_rate: int = SPEECH_SAMPLE_RATE
    channels: int = SPEECH_CHANNELS

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "Settings":
        """
        Load .env (if present) and build settings from the environment.

        A missing API key is not fatal: services report themselves
        unavailable and every feature degrades instead of crashing.
        """
        logger.env("Loading environment variables from .env file...")
        if load_dotenv(dotenv_path):
            logger.env_success("dotenv file loaded successfully")
        else:
            logger.warning("No .env file found or file is empty")

        api_key = os.getenv("OPENAI_API_KEY") or None
        if api_key:
            logger.env_success(f"OPENAI_API_KEY found: {mask_secret(api_key)}")
        else:
            logger.env_error("OPENAI_API_KEY not found in environment!")
            logger.warning("Lookups, speech, tutor and stories will be unavailable")

        settings = cls(
            api_key=api_key,
            chat_model=os.getenv("LEXICON_CHAT_MODEL", DEFAULT_CHAT_MODEL),
            image_model=os.getenv("LEXICON_IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
            tts_model=os.getenv("LEXICON_TTS_MODEL", DEFAULT_TTS_MODEL),
            tts_voice=os.getenv("LEXICON_TTS_VOICE", DEFAULT_TTS_VOICE),
            data_dir=Path(os.getenv("LEXICON_DATA_DIR", DEFAULT_DATA_DIR)).expanduser(),
        )
        logger.env(f"Chat model: {settings.chat_model}")
        logger.env(f"Image model: {settings.image_model}")
        logger.env(f"TTS model: {settings.tts_model} (voice: {settings.tts_voice})")
        logger.env(f"Data directory: {settings.data_dir}")
        return settings
