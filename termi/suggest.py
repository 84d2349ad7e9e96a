from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple


@dataclass(frozen=True)
class Suggestion:
    text: str
    source: str = "llm"

    def __post_init__(self) -> None:
        if not self.text or not self.text.strip():
            raise ValueError("Suggestion text must not be empty")


Candidates = Tuple[Suggestion, ...]


def add(candidates: Iterable[Suggestion], suggestion: Suggestion) -> Candidates:
    """Append ``suggestion`` unless an entry with the same text exists.

    Only ``text`` takes part in the comparison; the first source wins.
    """
    current = tuple(candidates)
    if any(c.text == suggestion.text for c in current):
        return current
    return current + (suggestion,)


def merge(candidates: Iterable[Suggestion], incoming: Iterable[Suggestion]) -> Candidates:
    out = tuple(candidates)
    for s in incoming:
        out = add(out, s)
    return out


def clamp(cursor: int, length: int) -> int:
    if length <= 0:
        return 0
    return max(0, min(cursor, length - 1))
