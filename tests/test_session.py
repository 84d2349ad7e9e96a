import asyncio

from langchain_core.messages import AIMessage

from termi.errors import ErrorKind
from termi.events import Cancel, Confirm, Copy, InputChanged, Submit
from termi.providers import SmartReply, StructuredChatProvider
from termi.session import DialogueSession
from termi.state import Analyzing, Asking, Canceled, Completed, Copied, Failed, Selecting


async def _noop_copy(text):
    return None


def test_direct_command(fake_provider):
    provider = fake_provider([SmartReply(command="ls -la")], name="OpenAI")

    async def scenario():
        session = DialogueSession(provider, clipboard_writer=_noop_copy)
        session.start("list files")
        assert isinstance(session.state, Analyzing)
        state = await session.settle()
        assert isinstance(state, Selecting)
        assert state.current.text == "ls -la"
        assert state.current.source == "OpenAI"
        return session.dispatch(Confirm())

    assert asyncio.run(scenario()) == Completed("ls -la")
    assert provider.prompts == ["list files"]


def test_clarify_then_copy(fake_provider):
    provider = fake_provider([SmartReply(ask="Which file?"), SmartReply(command="cmd > log.txt")])
    copied = []

    async def writer(text):
        copied.append(text)

    async def scenario():
        session = DialogueSession(provider, clipboard_writer=writer)
        session.start("write the output")
        state = await session.settle()
        assert isinstance(state, Asking)
        session.dispatch(InputChanged("log.txt"))
        session.dispatch(Submit())
        state = await session.settle()
        assert isinstance(state, Selecting)
        session.dispatch(Copy())
        return await session.settle()

    assert asyncio.run(scenario()) == Copied("cmd > log.txt")
    assert copied == ["cmd > log.txt"]
    assert provider.prompts == ["write the output", "Which file? log.txt write the output"]


class SlowLLM:
    def __init__(self, delay):
        self.delay = delay

    async def ainvoke(self, messages):
        await asyncio.sleep(self.delay)
        return AIMessage(content='{"command": "ls"}')


def test_backend_timeout_fails_with_timeout_kind():
    provider = StructuredChatProvider("OpenAI", lambda: SlowLLM(1.0), timeout=0.05)

    async def scenario():
        session = DialogueSession(provider)
        session.start("list files")
        return await session.settle()

    state = asyncio.run(scenario())
    assert isinstance(state, Failed)
    assert state.error.kind is ErrorKind.TIMEOUT


def test_cancel_while_analyzing_abandons_backend(fake_provider):
    provider = fake_provider([SmartReply(command="ls")], delay=5.0)

    async def scenario():
        session = DialogueSession(provider)
        session.start("list files")
        await asyncio.sleep(0)
        session.dispatch(Cancel())
        return await session.settle()

    assert asyncio.run(scenario()) == Canceled()
    assert provider.cancelled


def test_backend_error_is_classified(fake_provider):
    provider = fake_provider([RuntimeError("dial tcp: connection refused")])

    async def scenario():
        session = DialogueSession(provider)
        session.start("list files")
        return await session.settle()

    state = asyncio.run(scenario())
    assert isinstance(state, Failed)
    assert state.error.kind is ErrorKind.NETWORK


def test_disabled_provider_fails_without_query(fake_provider):
    provider = fake_provider(enabled=False)

    async def scenario():
        session = DialogueSession(provider)
        session.start("list files")
        return await session.settle()

    state = asyncio.run(scenario())
    assert isinstance(state, Failed)
    assert state.error.kind is ErrorKind.AUTH
    assert provider.prompts == []


def test_copy_failure(fake_provider):
    provider = fake_provider([SmartReply(command="ls")])

    async def broken(text):
        raise RuntimeError("no clipboard utility found")

    async def scenario():
        session = DialogueSession(provider, clipboard_writer=broken)
        session.start("list files")
        await session.settle()
        session.dispatch(Copy())
        return await session.settle()

    state = asyncio.run(scenario())
    assert isinstance(state, Failed)
    assert state.error.kind is ErrorKind.GENERAL
    assert "no clipboard utility" in state.error.message


def test_on_change_sees_every_state(fake_provider):
    provider = fake_provider([SmartReply(command="ls")])
    seen = []

    async def scenario():
        session = DialogueSession(provider, on_change=seen.append)
        session.start("list files")
        await session.settle()
        session.dispatch(Confirm())

    asyncio.run(scenario())
    assert [type(s).__name__ for s in seen] == ["Analyzing", "Selecting", "Completed"]


def test_empty_reply_fails(fake_provider):
    provider = fake_provider([SmartReply()])

    async def scenario():
        session = DialogueSession(provider)
        session.start("list files")
        return await session.settle()

    state = asyncio.run(scenario())
    assert isinstance(state, Failed)
    assert state.error.kind is ErrorKind.GENERAL
