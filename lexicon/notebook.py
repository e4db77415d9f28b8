"""
The notebook: saved entries in save order, unique by raw `word`.

`Notebook` is an immutable value; every operation returns a new notebook.
`NotebookRepository` hydrates it at startup and rewrites the whole blob after
each mutation.
"""

from typing import Any, Iterator, List, Optional, Tuple

from .logger import logger
from .models import SetupProfile, WordEntry
from .storage import NOTEBOOK_KEY, SETUP_KEY, LocalStore


class Notebook:
    def __init__(self, entries: Tuple[WordEntry, ...] = ()):
        self._entries = tuple(entries)

    @property
    def entries(self) -> Tuple[WordEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[WordEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> WordEntry:
        return self._entries[index]

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Notebook) and self._entries == other._entries

    def __repr__(self) -> str:
        return f"Notebook({[e.word for e in self._entries]!r})"

    def contains(self, word: str) -> bool:
        """Exact, case-sensitive match on the raw query string."""
        return any(e.word == word for e in self._entries)

    def find(self, word: str) -> Optional[WordEntry]:
        return next((e for e in self._entries if e.word == word), None)

    def get(self, entry_id: str) -> Optional[WordEntry]:
        return next((e for e in self._entries if e.id == entry_id), None)

    def words(self) -> List[str]:
        return [e.word for e in self._entries]

    def toggle(self, entry: WordEntry) -> "Notebook":
        """Unsave if an entry with the same word exists, otherwise append it."""
        if self.contains(entry.word):
            return Notebook(tuple(e for e in self._entries if e.word != entry.word))
        return Notebook(self._entries + (entry,))

    def remove(self, entry_id: str) -> "Notebook":
        """Drop the entry with `entry_id`; unknown ids leave the notebook as is."""
        return Notebook(tuple(e for e in self._entries if e.id != entry_id))

    def to_json(self) -> List[dict]:
        return [e.to_dict() for e in self._entries]

    @classmethod
    def from_json(cls, data: Any) -> "Notebook":
        """Raises TypeError/KeyError if any record is invalid."""
        if not isinstance(data, list):
            raise TypeError(f"notebook must be a list, got {type(data).__name__}")
        return cls(tuple(WordEntry.from_dict(item) for item in data))


class NotebookRepository:
    """Reads and writes the notebook and setup blobs."""

    def __init__(self, store: LocalStore):
        self.store = store

    def load(self) -> Notebook:
        data = self.store.get_json(NOTEBOOK_KEY)
        if data is None:
            logger.store("[DB] No saved notebook, starting empty")
            return Notebook()
        try:
            notebook = Notebook.from_json(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"[DB] Saved notebook is invalid ({e!r}), starting empty")
            return Notebook()
        logger.store(f"[DB] Loaded notebook with {len(notebook)} entries")
        return notebook

    def save(self, notebook: Notebook) -> None:
        self.store.set_json(NOTEBOOK_KEY, notebook.to_json())
        logger.store(f"[DB] Saved notebook ({len(notebook)} entries)")

    def load_profile(self) -> Optional[SetupProfile]:
        data = self.store.get_json(SETUP_KEY)
        if data is None:
            return None
        try:
            return SetupProfile.from_dict(data)
        except (KeyError, TypeError) as e:
            logger.warning(f"[DB] Saved setup is invalid ({e!r}), ignoring")
            return None

    def save_profile(self, profile: SetupProfile) -> None:
        self.store.set_json(SETUP_KEY, profile.to_dict())
        logger.store(f"[DB] Saved setup {profile.native_lang} → {profile.target_lang}")
