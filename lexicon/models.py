from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Tuple


@dataclass(frozen=True)
class Example:
    """One example sentence and its translation."""
    target: str                      # Sentence in the target language
    native: str                      # Translation in the native language

    def to_dict(self) -> Dict[str, str]:
        return {"target": self.target, "native": self.native}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Example":
        target, native = data["target"], data["native"]
        if not isinstance(target, str) or not isinstance(native, str):
            raise TypeError("example fields must be strings")
        return cls(target=target, native=native)


@dataclass(frozen=True)
class WordEntry:
    """
    A looked-up (and possibly saved) lexical item.

    Entries are never edited: a new lookup produces a new entry. The language
    pair is captured at creation so saved entries stay correct after the
    learner changes languages.
    """
    id: str
    word: str                        # Verbatim query; also the notebook dedup key
    definition: str                  # Explanation in the native language
    examples: Tuple[Example, ...]
    usage: str                       # Friendly cultural/context note
    target_lang: str                 # Language code at creation time
    native_lang: str
    image_url: str = ""              # data:image/png;base64,... or empty

    @property
    def first_example(self) -> Optional[Example]:
        """Canonical flashcard example, if the entry has any."""
        return self.examples[0] if self.examples else None

    @property
    def has_image(self) -> bool:
        return bool(self.image_url)

    def to_dict(self) -> Dict[str, Any]:
        # camelCase keys keep the persisted blob format stable
        return {
            "id": self.id,
            "word": self.word,
            "definition": self.definition,
            "examples": [ex.to_dict() for ex in self.examples],
            "usage": self.usage,
            "imageUrl": self.image_url,
            "targetLang": self.target_lang,
            "nativeLang": self.native_lang,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WordEntry":
        """Rebuild a persisted entry. Raises KeyError/TypeError on bad records."""
        if not isinstance(data, dict):
            raise TypeError(f"entry must be an object, got {type(data).__name__}")
        if not isinstance(data["word"], str):
            raise TypeError("word must be a string")
        examples = data.get("examples") or []
        if not isinstance(examples, list):
            raise TypeError("examples must be a list")
        return cls(
            id=str(data["id"]),
            word=data["word"],
            definition=data.get("definition", ""),
            examples=tuple(Example.from_dict(ex) for ex in examples),
            usage=data.get("usage", ""),
            target_lang=data.get("targetLang", ""),
            native_lang=data.get("nativeLang", ""),
            image_url=data.get("imageUrl") or "",
        )


@dataclass(frozen=True)
class ChatMessage:
    """One line of the tutor transcript."""
    role: Literal["user", "model"]
    text: str


@dataclass(frozen=True)
class SetupProfile:
    """The learner's language pair, chosen during onboarding."""
    native_lang: str
    target_lang: str

    def to_dict(self) -> Dict[str, str]:
        return {"native": self.native_lang, "target": self.target_lang}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SetupProfile":
        return cls(native_lang=data["native"], target_lang=data["target"])


class LookupFailure(str, Enum):
    """Why a lookup produced no entry."""
    INVALID_QUERY = "invalid_query"            # Blank query, nothing was requested
    MALFORMED_RESPONSE = "malformed_response"  # Text service output failed the schema
    SERVICE_FAILURE = "service_failure"        # Text service call raised


@dataclass(frozen=True)
class LookupResult:
    """Tagged outcome of a lookup: exactly one of entry / failure is set."""
    entry: Optional[WordEntry] = None
    failure: Optional[LookupFailure] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.entry is not None

    @classmethod
    def success(cls, entry: WordEntry) -> "LookupResult":
        return cls(entry=entry)

    @classmethod
    def failed(cls, failure: LookupFailure, detail: str = "") -> "LookupResult":
        return cls(failure=failure, detail=detail)


@dataclass
class WordPayload:
    """Fields parsed from the structured text response, before an id is stamped."""
    word: str
    definition: str
    usage: str
    examples: List[Example] = field(default_factory=list)
