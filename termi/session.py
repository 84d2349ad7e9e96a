from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

from . import clipboard
from .errors import classify
from .events import (
    BackendFailed,
    CopyFailed,
    CopySucceeded,
    Effect,
    Event,
    QueryBackend,
    Replied,
    Start,
    WriteClipboard,
)
from .machine import transition
from .providers import Provider
from .state import DialogueState, Init, is_terminal

logger = logging.getLogger(__name__)


class DialogueSession:
    """Runs the dialogue machine on the current asyncio loop.

    Every event is applied synchronously by ``dispatch``; effects are started
    as background tasks which report back through ``dispatch`` once they
    finish. Only the session mutates ``state``.
    """

    def __init__(
        self,
        provider: Provider,
        *,
        clipboard_writer: Callable[[str], Awaitable[None]] = clipboard.copy_async,
        max_turns: Optional[int] = None,
        on_change: Optional[Callable[[DialogueState], None]] = None,
    ):
        self.provider = provider
        self.state: DialogueState = Init()
        self.max_turns = max_turns
        self._clipboard = clipboard_writer
        self.on_change = on_change
        self._pending: Set[asyncio.Task] = set()
        self._backend_tasks: Set[asyncio.Task] = set()
        self.prompts: List[str] = []

    @property
    def pending(self) -> int:
        return len(self._pending)

    def start(self, query: str) -> DialogueState:
        return self.dispatch(Start(query, enabled=self.provider.enabled()))

    def dispatch(self, event: Event) -> DialogueState:
        before = self.state
        self.state, effects = transition(self.state, event, self.max_turns)
        for effect in effects:
            self._spawn(effect)
        if is_terminal(self.state) and not is_terminal(before):
            logger.info("dialogue finished: %s", type(self.state).__name__)
            self._abandon_backend_calls()
        if self.on_change is not None and self.state != before:
            self.on_change(self.state)
        return self.state

    def _spawn(self, effect: Effect) -> None:
        task = asyncio.get_running_loop().create_task(self._run_effect(effect))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        if isinstance(effect, QueryBackend):
            self._backend_tasks.add(task)
            task.add_done_callback(self._backend_tasks.discard)

    def _abandon_backend_calls(self) -> None:
        current = asyncio.current_task()
        for task in list(self._backend_tasks):
            if task is not current and not task.done():
                task.cancel()

    async def _run_effect(self, effect: Effect) -> None:
        if isinstance(effect, QueryBackend):
            await self._query(effect.prompt)
        elif isinstance(effect, WriteClipboard):
            await self._copy(effect.command)

    async def _query(self, prompt: str) -> None:
        self.prompts.append(prompt)
        logger.info("querying %s", self.provider.name())
        try:
            reply = await self.provider.ask_smart(prompt)
        except Exception as exc:
            error = classify(exc)
            logger.warning("%s failed (%s): %s", self.provider.name(), error.kind.name, error)
            self.dispatch(BackendFailed(error))
            return
        self.dispatch(Replied(reply.command, reply.ask, self.provider.name()))

    async def _copy(self, command: str) -> None:
        try:
            await self._clipboard(command)
        except Exception as exc:
            logger.warning("clipboard write failed: %s", exc)
            self.dispatch(CopyFailed(str(exc) or type(exc).__name__))
            return
        self.dispatch(CopySucceeded(command))

    async def settle(self) -> DialogueState:
        """Wait until no effect is outstanding."""
        while self._pending:
            await asyncio.wait(list(self._pending))
        return self.state
