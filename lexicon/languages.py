"""Fixed catalog of languages a learner can pick during setup."""

from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Language:
    code: str       # ISO 639-1
    name: str       # English display name, used inside prompts
    flag: str

    @property
    def display(self) -> str:
        return f"{self.flag} {self.name}"


LANGUAGES: List[Language] = [
    Language("en", "English", "🇺🇸"),
    Language("zh", "Chinese", "🇨🇳"),
    Language("es", "Spanish", "🇪🇸"),
    Language("fr", "French", "🇫🇷"),
    Language("ja", "Japanese", "🇯🇵"),
    Language("ko", "Korean", "🇰🇷"),
    Language("de", "German", "🇩🇪"),
    Language("pt", "Portuguese", "🇧🇷"),
    Language("it", "Italian", "🇮🇹"),
    Language("ru", "Russian", "🇷🇺"),
]

_BY_CODE = {lang.code: lang for lang in LANGUAGES}


def find_language(code: str) -> Optional[Language]:
    return _BY_CODE.get(code)


def is_supported(code: str) -> bool:
    return code in _BY_CODE


def language_label(code: str) -> str:
    """
    Resolve a code to the human-readable name used in prompts.

    Unknown codes fall back to the code itself so a stale persisted profile
    still produces a usable prompt.
    """
    lang = _BY_CODE.get(code)
    return lang.name if lang else code
