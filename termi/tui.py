from __future__ import annotations

import asyncio
import time
from typing import Optional

from prompt_toolkit.application import Application
from prompt_toolkit.filters import Condition
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from prompt_toolkit.layout import Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl

from .events import Cancel, Confirm, Copy, InputChanged, Interrupt, MoveCursor, Submit
from .providers import Provider
from .session import DialogueSession
from .state import Asking, DialogueState, Selecting, is_terminal
from .view import render

SPINNER_FPS = 10


def build_key_bindings(session: DialogueSession) -> KeyBindings:
    bindings = KeyBindings()
    asking = Condition(lambda: isinstance(session.state, Asking))
    selecting = Condition(lambda: isinstance(session.state, Selecting))

    def _buffer() -> str:
        state = session.state
        return state.buffer if isinstance(state, Asking) else ""

    @bindings.add("c-c", eager=True)
    def _interrupt(event) -> None:  # type: ignore[no-untyped-def]
        session.dispatch(Interrupt())

    @bindings.add("escape", eager=True)
    def _cancel(event) -> None:  # type: ignore[no-untyped-def]
        session.dispatch(Cancel())

    @bindings.add("q", filter=~asking)
    def _quit(event) -> None:  # type: ignore[no-untyped-def]
        session.dispatch(Cancel())

    @bindings.add("enter", filter=asking)
    def _submit(event) -> None:  # type: ignore[no-untyped-def]
        session.dispatch(Submit())

    @bindings.add("enter", filter=selecting)
    def _confirm(event) -> None:  # type: ignore[no-untyped-def]
        session.dispatch(Confirm())

    @bindings.add("up", filter=selecting)
    @bindings.add("k", filter=selecting)
    def _up(event) -> None:  # type: ignore[no-untyped-def]
        session.dispatch(MoveCursor(-1))

    @bindings.add("down", filter=selecting)
    @bindings.add("j", filter=selecting)
    def _down(event) -> None:  # type: ignore[no-untyped-def]
        session.dispatch(MoveCursor(1))

    @bindings.add("c", filter=selecting)
    def _copy(event) -> None:  # type: ignore[no-untyped-def]
        session.dispatch(Copy())

    @bindings.add("backspace", filter=asking)
    def _backspace(event) -> None:  # type: ignore[no-untyped-def]
        session.dispatch(InputChanged(_buffer()[:-1]))

    @bindings.add("c-u", filter=asking)
    def _clear(event) -> None:  # type: ignore[no-untyped-def]
        session.dispatch(InputChanged(""))

    @bindings.add(Keys.BracketedPaste, filter=asking)
    def _paste(event) -> None:  # type: ignore[no-untyped-def]
        text = event.data.replace("\r", " ").replace("\n", " ")
        session.dispatch(InputChanged(_buffer() + text))

    @bindings.add(Keys.Any, filter=asking)
    def _type(event) -> None:  # type: ignore[no-untyped-def]
        if event.data.isprintable():
            session.dispatch(InputChanged(_buffer() + event.data))

    return bindings


async def run_tui(
    provider: Provider,
    query: str,
    *,
    max_turns: Optional[int] = None,
    lang: str = "zh",
    session: Optional[DialogueSession] = None,
) -> DialogueState:
    """Drive one dialogue in the terminal and return its final state."""
    app: Optional[Application] = None

    def _changed(state: DialogueState) -> None:
        if app is None:
            return
        app.invalidate()
        if is_terminal(state) and app.is_running:
            app.exit(result=state)

    if session is None:
        session = DialogueSession(provider, max_turns=max_turns, on_change=_changed)
    else:
        session.on_change = _changed

    def _fragments():
        frame = int(time.monotonic() * SPINNER_FPS)
        return ANSI(render(session.state, frame=frame, lang=lang) + "\n")

    control = FormattedTextControl(_fragments, focusable=True, show_cursor=False)
    window = Window(control, dont_extend_height=True)
    app = Application(
        layout=Layout(window, focused_element=window),
        key_bindings=build_key_bindings(session),
        mouse_support=False,
        full_screen=False,
        refresh_interval=1 / SPINNER_FPS,
    )

    def _pre_run() -> None:
        asyncio.get_running_loop().call_soon(session.start, query)

    result = await app.run_async(pre_run=_pre_run)
    return result if result is not None else session.state
