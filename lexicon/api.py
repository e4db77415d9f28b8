"""
OpenAI-backed services for AI Lexicon.

This module is the only place that talks to the network. It handles:
- Structured word lookups (JSON schema constrained chat completion)
- Illustration generation (images API, base64 payloads)
- Speech synthesis (raw 24kHz PCM16 audio)
- Tutor chat turns and free-form completions (stories)

Every method raises on failure; deciding whether a failure is fatal,
degraded or replaced by a fallback message is the caller's job.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from openai import OpenAI

from .config import Settings
from .logger import logger, Timer
from .models import ChatMessage
from .schemas import WORD_ENTRY_RESPONSE_FORMAT

MAX_IMAGE_PROMPT_CHARS = 1000


class ServiceUnavailableError(RuntimeError):
    """Raised when no API key is configured."""


@dataclass(frozen=True)
class ImagePart:
    """One output part of an image response; `data` is base64 or None."""
    data: Optional[str] = None
    mime_type: str = "image/png"


class LexiconServices:
    """Thin wrapper over the OpenAI client, one method per remote capability."""

    def __init__(self, settings: Settings, client: Optional[OpenAI] = None):
        self.settings = settings
        if client is None and settings.has_api_key:
            logger.env("Initializing OpenAI client...")
            client = OpenAI(api_key=settings.api_key)
            logger.env_success("OpenAI client initialized successfully")
        self.client = client

    def is_available(self) -> bool:
        return self.client is not None

    def _require_client(self) -> OpenAI:
        if self.client is None:
            raise ServiceUnavailableError("OPENAI_API_KEY is not configured")
        return self.client

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def generate_word_json(self, prompt: str) -> str:
        """Run a lookup prompt constrained to WORD_ENTRY_SCHEMA; returns raw text."""
        client = self._require_client()
        model = self.settings.chat_model

        logger.api_call("chat.completions.create [word_entry]", model=model)
        with Timer() as timer:
            completion = client.chat.completions.create(
                model=model,
                response_format=WORD_ENTRY_RESPONSE_FORMAT,
                messages=[
                    {
                        "role": "system",
                        "content": "You are a friendly bilingual dictionary. Return ONLY the requested JSON object.",
                    },
                    {"role": "user", "content": prompt},
                ],
                temperature=0.5,
            )
        logger.api_response("chat.completions.create [word_entry]", duration_ms=timer.duration_ms)
        return completion.choices[0].message.content or ""

    def complete(self, prompt: str, temperature: float = 0.8) -> str:
        """Plain single-prompt completion."""
        client = self._require_client()
        model = self.settings.chat_model

        logger.api_call("chat.completions.create", model=model)
        with Timer() as timer:
            completion = client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
            )
        logger.api_response("chat.completions.create", duration_ms=timer.duration_ms)
        return completion.choices[0].message.content or ""

    def chat(self, system_instruction: str, history: Sequence[ChatMessage], message: str) -> str:
        """One conversational turn in a fresh session seeded with `system_instruction`."""
        client = self._require_client()
        model = self.settings.chat_model

        messages = [{"role": "system", "content": system_instruction}]
        for turn in history:
            messages.append({
                "role": "assistant" if turn.role == "model" else "user",
                "content": turn.text,
            })
        messages.append({"role": "user", "content": message})

        logger.api_call(f"chat.completions.create [tutor, {len(history)} prior turns]", model=model)
        with Timer() as timer:
            completion = client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=0.7,
            )
        logger.api_response("chat.completions.create [tutor]", duration_ms=timer.duration_ms)
        return completion.choices[0].message.content or ""

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    def generate_image(self, prompt: str) -> List[ImagePart]:
        """Generate an illustration; returns every output part of the response."""
        client = self._require_client()
        model = self.settings.image_model

        if len(prompt) > MAX_IMAGE_PROMPT_CHARS:
            prompt = prompt[:MAX_IMAGE_PROMPT_CHARS]
            logger.debug(f"Truncated image prompt to {MAX_IMAGE_PROMPT_CHARS} chars")

        logger.img_start(prompt)
        logger.api_call("images.generate", model=model)
        with Timer() as timer:
            result = client.images.generate(
                model=model,
                prompt=prompt,
                size="1024x1024",
                quality="standard",
                response_format="b64_json",
            )
        logger.api_response("images.generate", duration_ms=timer.duration_ms)

        return [ImagePart(data=getattr(item, "b64_json", None)) for item in (result.data or [])]

    # ------------------------------------------------------------------
    # Speech
    # ------------------------------------------------------------------

    def synthesize_speech(self, text: str, voice: Optional[str] = None) -> bytes:
        """
        Synthesize `text` as headerless little-endian PCM16 mono at
        Settings.sample_rate. Returns b"" if the service sent nothing.
        """
        client = self._require_client()
        model = self.settings.tts_model
        selected_voice = voice or self.settings.tts_voice

        logger.api(f"synthesize_speech() - {len(text)} chars, voice={selected_voice}")
        logger.api_call("audio.speech.create", model=model)
        with Timer() as timer:
            response = client.audio.speech.create(
                model=model,
                voice=selected_voice,
                input=text,
                response_format="pcm",
            )
            payload = b"".join(response.iter_bytes())
        logger.api_response("audio.speech.create", duration_ms=timer.duration_ms)
        return payload
