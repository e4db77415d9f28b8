"""Story Composer: one short bilingual story built from every saved word."""

from typing import Sequence

from .api import LexiconServices
from .logger import logger

MIN_STORY_WORDS = 2
STORY_WORD_TARGET = 150
STORY_FALLBACK_TEXT = "Could not generate story."


def build_story_prompt(words: Sequence[str], target_label: str, native_label: str) -> str:
    return (
        f"Write a very short, funny, and engaging story in {target_label} "
        f"using these words: {', '.join(words)}. "
        f"Provide a line-by-line translation in {native_label}. "
        f"Keep it under {STORY_WORD_TARGET} words total."
    )


class StoryComposer:
    def __init__(self, services: LexiconServices):
        self.services = services

    def compose(self, words: Sequence[str], target_label: str, native_label: str) -> str:
        """
        Callers must only invoke this with at least MIN_STORY_WORDS words.
        The text is returned verbatim; the length target is only a request.
        """
        logger.api(f"compose() - {len(words)} words, {target_label} → {native_label}")
        try:
            text = self.services.complete(build_story_prompt(words, target_label, native_label))
        except Exception as e:
            logger.api_error(f"Story generation failed: {e}")
            return STORY_FALLBACK_TEXT
        return text or STORY_FALLBACK_TEXT
