"""The text being copied: an immutable, ordered sequence of characters."""

from typing import Iterator, Tuple


class Corpus:
    """Fixed character sequence with index clamping helpers."""

    __slots__ = ("_chars",)

    def __init__(self, text: str):
        if not text:
            raise ValueError("Corpus must contain at least one character")
        self._chars: Tuple[str, ...] = tuple(text)

    def __len__(self) -> int:
        return len(self._chars)

    def __getitem__(self, index: int) -> str:
        return self._chars[index]

    def __iter__(self) -> Iterator[str]:
        return iter(self._chars)

    def __repr__(self) -> str:
        preview = "".join(self._chars[:8])
        suffix = "…" if len(self._chars) > 8 else ""
        return f"Corpus({preview}{suffix}, n={len(self._chars)})"

    @property
    def last_index(self) -> int:
        return len(self._chars) - 1

    def clamp(self, index: int) -> int:
        """Nearest valid index."""
        return min(max(index, 0), self.last_index)
