"""
Tutor Session: one question/answer turn about the displayed entry.

Each call opens a fresh conversation seeded with a system instruction for the
current word. Earlier turns of the transcript are replayed so follow-up
questions keep their context; nothing is kept between calls.
"""

from typing import Optional, Sequence

from .api import LexiconServices
from .languages import language_label
from .logger import logger
from .models import ChatMessage, SetupProfile, WordEntry

NO_ANSWER_TEXT = "Sorry, I couldn't understand that."
CONNECTION_ERROR_TEXT = "Error connecting to AI."


def build_system_instruction(entry: WordEntry, profile: SetupProfile) -> str:
    target_label = language_label(entry.target_lang or profile.target_lang)
    native_label = language_label(entry.native_lang or profile.native_lang)
    return (
        "You are a helpful AI language tutor. "
        f'You are explaining the word/phrase "{entry.word}" ({entry.definition}) '
        f"in the context of {target_label} to a {native_label} speaker. "
        f"Answer in {native_label}. Keep it friendly, casual, and brief."
    )


def greeting_for(entry: WordEntry) -> str:
    """Opening line shown above the transcript; never sent to the service."""
    return f'Hi! Ask me anything about how to use "{entry.word}" or its meaning. I\'m here to help!'


class TutorSession:
    def __init__(self, services: LexiconServices):
        self.services = services

    def ask(
        self,
        question: str,
        entry: WordEntry,
        history: Sequence[ChatMessage],
        profile: SetupProfile,
    ) -> Optional[ChatMessage]:
        """
        Returns the model's reply, a fallback reply on failure, or None for a
        blank question (nothing is sent).
        """
        if not question or not question.strip():
            return None

        try:
            text = self.services.chat(build_system_instruction(entry, profile), history, question)
        except Exception as e:
            logger.api_error(f"Tutor turn failed: {e}")
            return ChatMessage(role="model", text=CONNECTION_ERROR_TEXT)

        if not text.strip():
            logger.warning("Tutor returned an empty reply")
            return ChatMessage(role="model", text=NO_ANSWER_TEXT)
        return ChatMessage(role="model", text=text.strip())
