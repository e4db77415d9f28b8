"""
Flashcard navigation over the notebook.

A saturating index in [0, size - 1] plus a flipped flag. Moving never wraps
and always shows the front of the new card.
"""

from dataclasses import dataclass, replace


class EmptyNotebookError(RuntimeError):
    """Navigation was attempted with no cards to show."""


@dataclass(frozen=True)
class StudyNavigator:
    size: int
    index: int = 0
    flipped: bool = False

    @classmethod
    def start(cls, size: int) -> "StudyNavigator":
        return cls(size=max(size, 0))

    @property
    def has_cards(self) -> bool:
        return self.size > 0

    @property
    def can_go_previous(self) -> bool:
        return self.index > 0

    @property
    def can_go_next(self) -> bool:
        return self.index < self.size - 1

    @property
    def position_label(self) -> str:
        return f"{self.index + 1} / {self.size}"

    def _require_cards(self) -> None:
        if not self.has_cards:
            raise EmptyNotebookError("no cards to study")

    def next(self) -> "StudyNavigator":
        self._require_cards()
        return replace(self, index=min(self.index + 1, self.size - 1), flipped=False)

    def previous(self) -> "StudyNavigator":
        self._require_cards()
        return replace(self, index=max(self.index - 1, 0), flipped=False)

    def flip(self) -> "StudyNavigator":
        self._require_cards()
        return replace(self, flipped=not self.flipped)

    def resized(self, size: int) -> "StudyNavigator":
        """Keep the position while the notebook size is unchanged, else restart."""
        if size == self.size:
            return self
        return StudyNavigator.start(size)
