import asyncio
import json

import httpx
import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from termi.config import (
    Config,
    ConfigError,
    LLMConfig,
    LlamaCppConfig,
    OpenAIConfig,
)
from termi.errors import ClassifiedError, ErrorKind
from termi.providers import (
    LlamaCppProvider,
    SmartReply,
    StructuredChatProvider,
    build_provider,
    parse_reply,
    system_prompt,
)


@pytest.mark.parametrize("content, expected", [
    ('{"command": "ls -la"}', SmartReply(command="ls -la")),
    ('{"ask": "Which file?"}', SmartReply(ask="Which file?")),
    ('```json\n{"command": "df -h"}\n```', SmartReply(command="df -h")),
    ('Sure! {"command": "pwd"} hope that helps', SmartReply(command="pwd")),
    ([{"type": "text", "text": '{"command": "whoami"}'}], SmartReply(command="whoami")),
    ('{"command": null, "ask": "  Where?  "}', SmartReply(ask="Where?")),
])
def test_parse_reply(content, expected):
    assert parse_reply(content) == expected


@pytest.mark.parametrize("content", ["", "   ", "not json at all", "[1, 2]"])
def test_parse_reply_rejects_garbage(content):
    with pytest.raises(ClassifiedError) as info:
        parse_reply(content)
    assert info.value.kind is ErrorKind.GENERAL


class RecordingLLM:
    def __init__(self, content='{"command": "ls"}', exc=None):
        self.content = content
        self.exc = exc
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.exc is not None:
            raise self.exc
        return AIMessage(content=self.content)


def test_chat_provider_sends_system_and_user_messages():
    llm = RecordingLLM()
    provider = StructuredChatProvider("OpenAI", lambda: llm, lang="en")
    reply = asyncio.run(provider.ask_smart("list files"))
    assert reply == SmartReply(command="ls")
    (messages,) = llm.calls
    assert isinstance(messages[0], SystemMessage)
    assert messages[0].content == system_prompt("en")
    assert messages[1] == HumanMessage(content="list files")


def test_chat_provider_disabled_is_auth():
    provider = StructuredChatProvider("OpenAI", lambda: RecordingLLM(), enabled=False)
    with pytest.raises(ClassifiedError) as info:
        asyncio.run(provider.ask_smart("q"))
    assert info.value.kind is ErrorKind.AUTH


def test_chat_provider_classifies_transport_errors():
    llm = RecordingLLM(exc=httpx.ConnectError("boom"))
    provider = StructuredChatProvider("OpenAI", lambda: llm)
    with pytest.raises(ClassifiedError) as info:
        asyncio.run(provider.ask_smart("q"))
    assert info.value.kind is ErrorKind.NETWORK
    assert isinstance(info.value.cause, httpx.ConnectError)


def test_chat_provider_factory_failure_is_general():
    def factory():
        raise RuntimeError("langchain-google-genai is not installed")

    provider = StructuredChatProvider("Gemini", factory)
    with pytest.raises(ClassifiedError) as info:
        asyncio.run(provider.ask_smart("q"))
    assert info.value.kind is ErrorKind.GENERAL


def test_chat_model_is_created_lazily_once():
    built = []

    def factory():
        built.append(1)
        return RecordingLLM()

    provider = StructuredChatProvider("OpenAI", factory)
    assert built == []
    asyncio.run(provider.ask_smart("a"))
    asyncio.run(provider.ask_smart("b"))
    assert built == [1]


def _llama(handler, **kwargs):
    cfg = LlamaCppConfig(base_url="http://llama.local:8080/", **kwargs)
    return LlamaCppProvider(cfg, lang="en", transport=httpx.MockTransport(handler))


def test_llama_cpp_success_and_request_body():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"content": '{"command": "ls -la"}'})

    provider = _llama(handler, model="qwen")
    assert asyncio.run(provider.ask_smart("list files")) == SmartReply(command="ls -la")
    assert seen["url"] == "http://llama.local:8080/completion"
    body = seen["body"]
    assert body["stream"] is False
    assert body["model"] == "qwen"
    assert body["n_predict"] == 1000
    assert "list files" in body["prompt"]


@pytest.mark.parametrize("status, kind", [
    (401, ErrorKind.AUTH),
    (429, ErrorKind.QUOTA),
    (504, ErrorKind.TIMEOUT),
    (500, ErrorKind.GENERAL),
])
def test_llama_cpp_status_codes(status, kind):
    provider = _llama(lambda request: httpx.Response(status, text="nope"))
    with pytest.raises(ClassifiedError) as info:
        asyncio.run(provider.ask_smart("q"))
    assert info.value.kind is kind


def test_llama_cpp_bad_body_is_general():
    provider = _llama(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(ClassifiedError) as info:
        asyncio.run(provider.ask_smart("q"))
    assert info.value.kind is ErrorKind.GENERAL


def test_llama_cpp_connect_error_is_network():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ClassifiedError) as info:
        asyncio.run(_llama(handler).ask_smart("q"))
    assert info.value.kind is ErrorKind.NETWORK


def test_llama_cpp_without_url_is_disabled():
    provider = LlamaCppProvider(LlamaCppConfig())
    assert not provider.enabled()
    with pytest.raises(ClassifiedError) as info:
        asyncio.run(provider.ask_smart("q"))
    assert info.value.kind is ErrorKind.AUTH


def test_build_provider_openai():
    cfg = Config(llm=LLMConfig(provider="openai", openai=OpenAIConfig(api_key="sk-test", timeout=12)))
    provider = build_provider(cfg)
    assert provider.name() == "OpenAI"
    assert provider.enabled()
    assert provider.timeout == 12


def test_build_provider_without_key_is_disabled():
    provider = build_provider(Config(llm=LLMConfig(provider="openai", openai=OpenAIConfig())))
    assert not provider.enabled()


def test_build_provider_llama_cpp():
    cfg = Config(llm=LLMConfig(provider="llama-cpp", llama_cpp=LlamaCppConfig(base_url="http://x")))
    provider = build_provider(cfg)
    assert provider.name() == "Llama-cpp"
    assert provider.enabled()


def test_build_provider_unknown():
    with pytest.raises(ConfigError):
        build_provider(Config(llm=LLMConfig(provider="mystery")))


def test_system_prompt_languages():
    assert "JSON" in system_prompt("zh")
    assert "follow-up question" in system_prompt("en")
    assert system_prompt("fr") == system_prompt("zh")
