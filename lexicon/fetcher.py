"""
Entry Fetcher: turns a query into one WordEntry.

Two sequential calls:
1. Structured text (definition, examples, usage). Failure aborts the lookup.
2. Illustration, prompted with the definition from step 1. Failure only
   leaves the entry without an image.
"""

import threading
import time
from typing import Sequence

from .api import ImagePart, LexiconServices
from .languages import language_label
from .logger import logger, Timer
from .models import LookupFailure, LookupResult, SetupProfile, WordEntry, WordPayload
from .schemas import parse_word_payload

_id_lock = threading.Lock()
_last_id = 0


def new_entry_id() -> str:
    """Millisecond timestamp, bumped when two entries land in the same millisecond."""
    global _last_id
    with _id_lock:
        candidate = int(time.time() * 1000)
        _last_id = max(candidate, _last_id + 1)
        return str(_last_id)


def build_lookup_prompt(query: str, target_label: str, native_label: str) -> str:
    return (
        f'Explain "{query}" from {target_label} into {native_label}.\n'
        "Return strictly valid JSON with keys:\n"
        '"word" (the query),\n'
        f'"definition" (concise explanation written in {native_label}),\n'
        f'"examples" (array of {{target: sentence in {target_label}, native: its {native_label} translation}}, at least one),\n'
        '"usage" (fun, friendly, concise note about culture/context/synonyms - like a friend talking).'
    )


def build_image_prompt(query: str, definition: str) -> str:
    return (
        "A vibrant, clear conceptual 3D illustration or minimalist vector art representing "
        f'the concept: "{query}" ({definition}). Clean background.'
    )


def select_image_url(parts: Sequence[ImagePart]) -> str:
    """Data URI for the first part that carries inline image data, else ""."""
    for part in parts:
        if part.data:
            return f"data:{part.mime_type};base64,{part.data}"
    return ""


class EntryFetcher:
    def __init__(self, services: LexiconServices):
        self.services = services

    def lookup(self, query: str, profile: SetupProfile) -> LookupResult:
        if not query or not query.strip():
            logger.warning("Lookup skipped: empty query")
            return LookupResult.failed(LookupFailure.INVALID_QUERY, "query is empty")

        target_label = language_label(profile.target_lang)
        native_label = language_label(profile.native_lang)
        logger.separator(f"Lookup: {query.strip()[:40]}")
        logger.api(f"lookup() - {target_label} → {native_label}")

        with Timer() as timer:
            try:
                raw = self.services.generate_word_json(
                    build_lookup_prompt(query, target_label, native_label)
                )
            except Exception as e:
                logger.api_error(f"Word lookup request failed: {e}", exc_info=True)
                return LookupResult.failed(LookupFailure.SERVICE_FAILURE, str(e))

            parsed = parse_word_payload(raw)
            if not parsed.ok:
                logger.api_error(f"Malformed lookup response: {parsed.error}")
                logger.debug(f"Raw response: {(raw or '')[:200]}")
                return LookupResult.failed(LookupFailure.MALFORMED_RESPONSE, parsed.error)

            image_url = self._illustrate(query, parsed.payload)

        entry = self._assemble(query, parsed.payload, image_url, profile)
        logger.success(
            f"Entry ready: '{entry.word}' ({len(entry.examples)} examples, "
            f"image={'yes' if entry.has_image else 'no'}, {timer.duration_ms:.0f}ms)"
        )
        return LookupResult.success(entry)

    def _illustrate(self, query: str, payload: WordPayload) -> str:
        try:
            parts = self.services.generate_image(build_image_prompt(query, payload.definition))
        except Exception as e:
            logger.img_error(f"Illustration failed, continuing without image: {e}")
            return ""

        image_url = select_image_url(parts)
        if image_url:
            logger.img_complete(len(image_url))
        else:
            logger.img(f"No inline image among {len(parts)} part(s)")
        return image_url

    @staticmethod
    def _assemble(
        query: str,
        payload: WordPayload,
        image_url: str,
        profile: SetupProfile,
    ) -> WordEntry:
        return WordEntry(
            id=new_entry_id(),
            word=query,
            definition=payload.definition,
            examples=tuple(payload.examples),
            usage=payload.usage,
            image_url=image_url,
            target_lang=profile.target_lang,
            native_lang=profile.native_lang,
        )
