import asyncio

import pytest

from termi import ux
from termi.providers import Provider, SmartReply


class FakeProvider(Provider):
    """Replays canned replies; an Exception in the list is raised instead."""

    def __init__(self, replies=(), enabled=True, delay=0.0, name="Fake"):
        self.replies = list(replies)
        self.prompts = []
        self._enabled = enabled
        self.delay = delay
        self._name = name
        self.cancelled = False

    def name(self):
        return self._name

    def enabled(self):
        return self._enabled

    async def ask_smart(self, prompt):
        self.prompts.append(prompt)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        reply = self.replies.pop(0) if self.replies else SmartReply()
        if isinstance(reply, BaseException):
            raise reply
        return reply


@pytest.fixture(autouse=True)
def _plain_output():
    ux.set_color(False)
    yield


@pytest.fixture
def fake_provider():
    return FakeProvider
