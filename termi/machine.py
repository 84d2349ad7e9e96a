"""
Dialogue state machine.

``transition(state, event) -> (state, effects)`` is the only place the
dialogue changes. It is synchronous and pure: effects describe asynchronous
work (a backend query, a clipboard write) for the caller to run; their
results come back as events.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Tuple

from . import suggest
from .errors import auth_error, general_error
from .events import (
    BackendFailed,
    Cancel,
    Confirm,
    Copy,
    CopyFailed,
    CopySucceeded,
    Effect,
    Event,
    InputChanged,
    Interrupt,
    MoveCursor,
    QueryBackend,
    Replied,
    Start,
    Submit,
    WriteClipboard,
)
from .state import (
    Analyzing,
    Asking,
    Canceled,
    Completed,
    Copied,
    DialogueState,
    Failed,
    Init,
    Selecting,
    is_terminal,
)

logger = logging.getLogger(__name__)

NO_RESULT = "backend produced no actionable result"

Step = Tuple[DialogueState, List[Effect]]


def build_prompt(history: Sequence[str], query: str) -> str:
    if history:
        return " ".join(history) + " " + query
    return query


def _analyze(query: str, context: Tuple[str, ...]) -> Step:
    return Analyzing(query, context), [QueryBackend(build_prompt(context, query))]


def _on_init(state: Init, event: Event) -> Step:
    if isinstance(event, Start):
        if not event.enabled:
            return Failed(auth_error("LLM backend is not enabled; configure an API key")), []
        return _analyze(event.query, ())
    if isinstance(event, Cancel):
        return Canceled(), []
    return state, []


def _on_analyzing(state: Analyzing, event: Event, max_turns: Optional[int]) -> Step:
    if isinstance(event, Replied):
        if event.ask:
            # this reply ends exchange len(context) + 1; a question needs one more
            if max_turns is not None and len(state.context) + 1 >= max_turns:
                return Failed(general_error(f"clarification limit reached ({max_turns} turns)")), []
            return Asking(state.query, event.ask, state.context, ""), []
        if event.command:
            candidates = suggest.add((), suggest.Suggestion(event.command, event.source))
            return Selecting(candidates, 0), []
        return Failed(general_error(NO_RESULT)), []
    if isinstance(event, BackendFailed):
        return Failed(event.error), []
    if isinstance(event, Cancel):
        return Canceled(), []
    return state, []


def _on_asking(state: Asking, event: Event) -> Step:
    if isinstance(event, InputChanged):
        return Asking(state.query, state.prompt, state.context, event.text), []
    if isinstance(event, Submit):
        answer = state.buffer.strip()
        if not answer:
            return state, []
        return _analyze(state.query, state.context + (f"{state.prompt} {answer}",))
    if isinstance(event, Cancel):
        return Canceled(), []
    return state, []


def _on_selecting(state: Selecting, event: Event) -> Step:
    if isinstance(event, MoveCursor):
        cursor = suggest.clamp(state.cursor + event.delta, len(state.candidates))
        return Selecting(state.candidates, cursor), []
    if isinstance(event, Cancel):
        return Canceled(), []
    current = state.current
    if current is None:
        return state, []
    if isinstance(event, Confirm):
        return Completed(current.text), []
    if isinstance(event, Copy):
        return state, [WriteClipboard(current.text)]
    if isinstance(event, CopySucceeded):
        return Copied(event.command), []
    if isinstance(event, CopyFailed):
        return Failed(general_error(f"copy failed: {event.reason}")), []
    return state, []


def transition(state: DialogueState, event: Event, max_turns: Optional[int] = None) -> Step:
    """Apply ``event`` to ``state``.

    ``max_turns`` bounds how many backend exchanges a run may make; a
    question that would need one more fails the dialogue. ``None`` leaves
    the loop unbounded. Events that do not apply to the
    current state leave it unchanged, which also discards late completions
    from a backend call the user already walked away from.
    """
    if is_terminal(state):
        return state, []
    if isinstance(event, Interrupt):
        return Canceled(), []

    if isinstance(state, Init):
        new, effects = _on_init(state, event)
    elif isinstance(state, Analyzing):
        new, effects = _on_analyzing(state, event, max_turns)
    elif isinstance(state, Asking):
        new, effects = _on_asking(state, event)
    elif isinstance(state, Selecting):
        new, effects = _on_selecting(state, event)
    else:
        raise TypeError(f"Unknown dialogue state: {state!r}")

    if type(new) is not type(state):
        logger.debug("%s --%s--> %s", type(state).__name__, type(event).__name__, type(new).__name__)
    return new, effects
