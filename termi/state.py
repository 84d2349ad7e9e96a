from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from typing_extensions import TypedDict

from .errors import ClassifiedError
from .suggest import Candidates


@dataclass(frozen=True)
class Init:
    pass


@dataclass(frozen=True)
class Analyzing:
    query: str
    context: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Asking:
    query: str
    prompt: str  # the backend's follow-up question
    context: Tuple[str, ...] = ()
    buffer: str = ""


@dataclass(frozen=True)
class Selecting:
    candidates: Candidates
    cursor: int = 0

    @property
    def current(self):
        if not self.candidates:
            return None
        return self.candidates[self.cursor]


@dataclass(frozen=True)
class Completed:
    command: str


@dataclass(frozen=True)
class Copied:
    command: str


@dataclass(frozen=True)
class Failed:
    error: ClassifiedError


@dataclass(frozen=True)
class Canceled:
    pass


DialogueState = Union[Init, Analyzing, Asking, Selecting, Completed, Copied, Failed, Canceled]

TERMINAL = (Completed, Copied, Failed, Canceled)


def is_terminal(state: DialogueState) -> bool:
    return isinstance(state, TERMINAL)


class GraphState(TypedDict, total=False):
    # line-mode driver (graph.py)
    query: str
    dialogue: DialogueState
    # last prompt sent to the backend
    prompt: str
    # answer to "Run this command?" ('y', 'c' or anything else)
    decision: str
