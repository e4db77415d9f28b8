"""
Structured JSON schema for word lookups.

The schema is sent with the text request (OpenAI structured outputs) and the
same shape is re-checked on the way back: the model output is never trusted
to match just because a schema was requested.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional

from .models import Example, WordPayload

WORD_ENTRY_SCHEMA = {
    "type": "object",
    "properties": {
        "word": {"type": "string"},
        "definition": {"type": "string"},
        "examples": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "target": {"type": "string"},
                    "native": {"type": "string"},
                },
                "required": ["target", "native"],
                "additionalProperties": False,
            },
        },
        "usage": {"type": "string"},
    },
    "required": ["word", "definition", "examples", "usage"],
    "additionalProperties": False,
}

WORD_ENTRY_RESPONSE_FORMAT = {
    "type": "json_schema",
    "json_schema": {
        "name": "word_entry",
        "strict": True,
        "schema": WORD_ENTRY_SCHEMA,
    },
}

REQUIRED_KEYS = ("word", "definition", "examples", "usage")


@dataclass(frozen=True)
class ParseResult:
    """Either a payload or the reason the response was rejected."""
    payload: Optional[WordPayload] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.payload is not None


def _reject(reason: str) -> ParseResult:
    return ParseResult(error=reason)


def parse_word_payload(raw: Optional[str]) -> ParseResult:
    """
    Parse the text service response against WORD_ENTRY_SCHEMA.

    Never raises. Rejects empty text, invalid JSON, non-objects, missing or
    mistyped keys and an empty examples array (flashcards always show the
    first example).
    """
    if not raw or not raw.strip():
        return _reject("empty response")

    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        return _reject(f"invalid JSON: {e.msg}")

    if not isinstance(data, dict):
        return _reject(f"expected an object, got {type(data).__name__}")

    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        return _reject(f"missing keys: {', '.join(missing)}")

    for key in ("word", "definition", "usage"):
        if not isinstance(data[key], str):
            return _reject(f"'{key}' must be a string")

    raw_examples = data["examples"]
    if not isinstance(raw_examples, list):
        return _reject("'examples' must be an array")
    if not raw_examples:
        return _reject("'examples' is empty")

    examples = []
    for i, item in enumerate(raw_examples):
        if not isinstance(item, dict):
            return _reject(f"examples[{i}] must be an object")
        try:
            examples.append(Example.from_dict(item))
        except (KeyError, TypeError):
            return _reject(f"examples[{i}] needs string 'target' and 'native'")

    return ParseResult(payload=WordPayload(
        word=data["word"],
        definition=data["definition"].strip(),
        usage=data["usage"].strip(),
        examples=examples,
    ))
