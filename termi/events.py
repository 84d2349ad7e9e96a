"""Inbound events and outbound effects of the dialogue machine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .errors import ClassifiedError


@dataclass(frozen=True)
class Start:
    query: str
    enabled: bool = True


@dataclass(frozen=True)
class Replied:
    command: str = ""
    ask: str = ""
    source: str = "llm"


@dataclass(frozen=True)
class BackendFailed:
    error: ClassifiedError


@dataclass(frozen=True)
class InputChanged:
    text: str


@dataclass(frozen=True)
class Submit:
    pass


@dataclass(frozen=True)
class MoveCursor:
    delta: int


@dataclass(frozen=True)
class Confirm:
    pass


@dataclass(frozen=True)
class Copy:
    pass


@dataclass(frozen=True)
class CopySucceeded:
    command: str


@dataclass(frozen=True)
class CopyFailed:
    reason: str


@dataclass(frozen=True)
class Cancel:
    """Esc / q."""


@dataclass(frozen=True)
class Interrupt:
    """Process-level cancel (Ctrl+C); wins in every state."""


Event = Union[
    Start, Replied, BackendFailed, InputChanged, Submit, MoveCursor,
    Confirm, Copy, CopySucceeded, CopyFailed, Cancel, Interrupt,
]


@dataclass(frozen=True)
class QueryBackend:
    prompt: str


@dataclass(frozen=True)
class WriteClipboard:
    command: str


Effect = Union[QueryBackend, WriteClipboard]
