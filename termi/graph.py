from __future__ import annotations

import logging
from typing import Callable, Optional

from langgraph.errors import GraphRecursionError
from langgraph.graph import END, StateGraph
from rich.console import Console

from . import clipboard
from .errors import classify, general_error
from .events import (
    BackendFailed,
    Cancel,
    Confirm,
    Copy,
    CopyFailed,
    CopySucceeded,
    Event,
    InputChanged,
    Interrupt,
    QueryBackend,
    Replied,
    Start,
    Submit,
    WriteClipboard,
)
from .machine import transition
from .providers import Provider
from .state import Analyzing, Asking, Failed, GraphState, Init, Selecting

logger = logging.getLogger(__name__)

# Backend exchanges allowed in line mode unless configured otherwise.
DEFAULT_MAX_TURNS = 3


def _confirm_prompt(command: str) -> str:
    print(f"\n$ {command}")
    return input("Run this command? [y/N/c] (y to run, c to copy, n to cancel): ")


def build_graph(
    provider: Provider,
    *,
    ask_user: Callable[[str], str] = input,
    confirm: Callable[[str], str] = _confirm_prompt,
    copy: Callable[[str], None] = clipboard.copy,
    auto_confirm: bool = False,
    max_turns: Optional[int] = DEFAULT_MAX_TURNS,
    console: Optional[Console] = None,
):
    """Compile the line-mode dialogue graph.

    start -> analyze -> (clarify -> analyze)* -> choose -> END
    """

    def _apply(state: GraphState, *events: Event) -> GraphState:
        dialogue = state["dialogue"]
        prompt = state.get("prompt", "")
        for event in events:
            dialogue, effects = transition(dialogue, event, max_turns)
            for effect in effects:
                if isinstance(effect, QueryBackend):
                    prompt = effect.prompt
                elif isinstance(effect, WriteClipboard):
                    dialogue, _ = transition(dialogue, _copy_event(effect.command), max_turns)
        return {"dialogue": dialogue, "prompt": prompt}

    def _copy_event(command: str) -> Event:
        try:
            copy(command)
        except Exception as exc:
            logger.warning("clipboard write failed: %s", exc)
            return CopyFailed(str(exc) or type(exc).__name__)
        return CopySucceeded(command)

    def start(state: GraphState) -> GraphState:
        return _apply({"dialogue": Init()}, Start(state["query"], enabled=provider.enabled()))

    async def analyze(state: GraphState) -> GraphState:
        prompt = state["prompt"]
        try:
            if console is not None:
                with console.status(f"Asking {provider.name()}..."):
                    reply = await provider.ask_smart(prompt)
            else:
                reply = await provider.ask_smart(prompt)
        except Exception as exc:
            error = classify(exc)
            logger.warning("%s failed (%s): %s", provider.name(), error.kind.name, error)
            return _apply(state, BackendFailed(error))
        return _apply(state, Replied(reply.command, reply.ask, provider.name()))

    def clarify(state: GraphState) -> GraphState:
        question = state["dialogue"].prompt
        try:
            answer = ask_user(f"{question} ")
        except EOFError:
            return _apply(state, Cancel())
        except KeyboardInterrupt:
            return _apply(state, Interrupt())
        return _apply(state, InputChanged(answer), Submit())

    def choose(state: GraphState) -> GraphState:
        if auto_confirm:
            return {**_apply(state, Confirm()), "decision": "y"}
        command = state["dialogue"].current.text
        try:
            decision = confirm(command).strip().lower()
        except EOFError:
            decision = "n"
        except KeyboardInterrupt:
            return {**_apply(state, Interrupt()), "decision": "n"}
        if decision in ("y", "yes"):
            return {**_apply(state, Confirm()), "decision": decision}
        if decision == "c":
            return {**_apply(state, Copy()), "decision": decision}
        return {**_apply(state, Cancel()), "decision": decision}

    def route(state: GraphState):
        dialogue = state["dialogue"]
        if isinstance(dialogue, Analyzing):
            return "analyze"
        if isinstance(dialogue, Asking):
            return "clarify"
        if isinstance(dialogue, Selecting):
            return "choose"
        return "end"

    g = StateGraph(GraphState)
    g.add_node("start", start)
    g.add_node("analyze", analyze)
    g.add_node("clarify", clarify)
    g.add_node("choose", choose)
    g.set_entry_point("start")

    edges = {"analyze": "analyze", "clarify": "clarify", "choose": "choose", "end": END}
    g.add_conditional_edges("start", route, edges)
    g.add_conditional_edges("analyze", route, edges)
    g.add_conditional_edges("clarify", route, edges)
    g.add_edge("choose", END)

    return g.compile()


def recursion_limit(max_turns: Optional[int]) -> int:
    # two node visits per clarification round plus start/analyze/choose;
    # blank answers revisit "clarify" without using up a turn
    if max_turns is None:
        return 10_000
    return 2 * max_turns + 50


async def run_line_mode(provider: Provider, query: str, *, max_turns: Optional[int] = DEFAULT_MAX_TURNS, **kwargs):
    app = build_graph(provider, max_turns=max_turns, **kwargs)
    try:
        out = await app.ainvoke({"query": query}, config={"recursion_limit": recursion_limit(max_turns)})
    except GraphRecursionError as exc:
        return Failed(general_error("too many empty answers", exc))
    return out["dialogue"]
