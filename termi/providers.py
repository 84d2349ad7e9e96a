from __future__ import annotations

import abc
import asyncio
import json
import logging
import platform
from typing import Any, Callable, Dict, NamedTuple, Optional

import httpx
from langchain_core.messages import HumanMessage, SystemMessage

from .config import (
    DEFAULT_TIMEOUT,
    PROVIDER_AZURE_OPENAI,
    PROVIDER_CLAUDE,
    PROVIDER_GEMINI,
    PROVIDER_LLAMA_CPP,
    PROVIDER_OPENAI,
    Config,
    ConfigError,
    LLMConfig,
    LlamaCppConfig,
)
from .errors import ClassifiedError, auth_error, classify, general_error, timeout_error
from .llm import MAX_TOKENS, TEMPERATURE, get_llm

logger = logging.getLogger(__name__)


class SmartReply(NamedTuple):
    command: str = ""
    ask: str = ""


class Provider(abc.ABC):
    """A language-model backend able to resolve a request.

    ``ask_smart`` returns a reply with at most one of ``command``/``ask`` set
    and raises ``ClassifiedError`` on failure.
    """

    @abc.abstractmethod
    def name(self) -> str:
        ...

    @abc.abstractmethod
    def enabled(self) -> bool:
        ...

    @abc.abstractmethod
    async def ask_smart(self, prompt: str) -> SmartReply:
        ...


_SYSTEM_PROMPTS = {
    "zh": (
        "你是 {os} 命令行专家。根据用户需求和对话历史，生成合适的 Bash 命令。\n\n"
        "如果信息充足，返回 JSON {{\"command\":\"...\"}}，其中 command 是可直接执行的 Bash 命令。\n"
        "如果需要更多信息，返回 JSON {{\"ask\":\"...\"}}，ask 用中文向用户提出具体的补充问题。\n\n"
        "注意：\n"
        "- 仔细理解用户的完整意图和上下文\n"
        "- 如果之前的对话中已经提供了相关信息，请充分利用\n"
        "- 生成的命令应该是安全、准确且可执行的"
    ),
    "en": (
        "You are a {os} command-line expert. Using the user's request and the conversation so far, "
        "produce a suitable Bash command.\n\n"
        "If you have enough information, return JSON {{\"command\":\"...\"}} where command is a Bash "
        "command that can be run as is.\n"
        "If you need more information, return JSON {{\"ask\":\"...\"}} where ask is one concrete "
        "follow-up question for the user, in English.\n\n"
        "Notes:\n"
        "- Understand the user's full intent and context\n"
        "- Reuse anything the earlier conversation already answered\n"
        "- The command must be safe, accurate and runnable"
    ),
}


def system_prompt(lang: str = "zh") -> str:
    template = _SYSTEM_PROMPTS.get(lang, _SYSTEM_PROMPTS["zh"])
    return template.format(os=platform.system() or "Linux")


def _content_text(content: Any) -> str:
    # Some chat models return a list of content blocks instead of a string.
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type", "text") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts)
    return str(content)


def _field(data: Dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    return str(value).strip()


def parse_reply(content: Any, source: str = "backend") -> SmartReply:
    """Parse a ``{"command": ...}`` / ``{"ask": ...}`` reply.

    Code fences and prose around the JSON object are tolerated; anything
    else is a GENERAL failure.
    """
    text = _content_text(content).strip()
    if not text:
        raise general_error(f"{source} returned an empty response")
    if text.startswith("```"):
        lines = text.splitlines()
        body = "\n".join(lines[1:])
        if body.rstrip().endswith("```"):
            body = body.rstrip()[:-3]
        text = body.strip()
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        try:
            start = text.index("{")
            end = text.rindex("}") + 1
            data = json.loads(text[start:end])
        except ValueError as exc:
            raise general_error(f"cannot parse {source} response: {text[:200]}", exc) from exc
    if not isinstance(data, dict):
        raise general_error(f"{source} response is not a JSON object: {text[:200]}")
    return SmartReply(command=_field(data, "command"), ask=_field(data, "ask"))


class StructuredChatProvider(Provider):
    """JSON-replying chat backend on top of a LangChain chat model.

    The model is created on first use so an unconfigured backend can still
    be constructed and report ``enabled() == False``.
    """

    def __init__(
        self,
        name: str,
        llm_factory: Callable[[], Any],
        *,
        enabled: bool = True,
        timeout: float = DEFAULT_TIMEOUT,
        lang: str = "zh",
    ):
        self._name = name
        self._factory = llm_factory
        self._enabled = enabled
        self._timeout = timeout or DEFAULT_TIMEOUT
        self._lang = lang
        self._llm = None

    def name(self) -> str:
        return self._name

    def enabled(self) -> bool:
        return self._enabled

    @property
    def timeout(self) -> float:
        return self._timeout

    def _ensure_llm(self):
        if self._llm is None:
            try:
                self._llm = self._factory()
            except (RuntimeError, ConfigError, ValueError) as exc:
                raise classify(exc) from exc
        return self._llm

    async def ask_smart(self, prompt: str) -> SmartReply:
        if not self._enabled:
            raise auth_error(f"{self._name} is not configured")
        llm = self._ensure_llm()
        messages = [SystemMessage(content=system_prompt(self._lang)), HumanMessage(content=prompt)]
        logger.info("asking %s (timeout %ss)", self._name, self._timeout)
        try:
            msg = await asyncio.wait_for(llm.ainvoke(messages), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise timeout_error(f"{self._name} request timed out after {self._timeout}s", exc) from exc
        except ClassifiedError:
            raise
        except Exception as exc:
            raise classify(exc) from exc
        reply = parse_reply(getattr(msg, "content", msg), source=self._name)
        logger.debug("%s replied command=%r ask=%r", self._name, reply.command, reply.ask)
        return reply


class LlamaCppProvider(Provider):
    """llama.cpp server backend speaking the raw ``/completion`` endpoint."""

    def __init__(self, cfg: LlamaCppConfig, *, lang: str = "zh", transport: Optional[httpx.AsyncBaseTransport] = None):
        self._cfg = cfg
        self._lang = lang
        self._timeout = cfg.timeout or DEFAULT_TIMEOUT
        self._transport = transport

    def name(self) -> str:
        return "Llama-cpp"

    def enabled(self) -> bool:
        return bool(self._cfg.base_url)

    def completion_prompt(self, prompt: str) -> str:
        label = "用户需求" if self._lang == "zh" else "User request"
        tail = "请直接返回JSON格式的响应：" if self._lang == "zh" else "Reply with the JSON object only:"
        return f"{system_prompt(self._lang)}\n\n{label}: {prompt}\n\n{tail}"

    async def ask_smart(self, prompt: str) -> SmartReply:
        if not self.enabled():
            raise auth_error("llama.cpp base URL is not configured")
        url = f"{self._cfg.base_url.rstrip('/')}/completion"
        body: Dict[str, Any] = {
            "prompt": self.completion_prompt(prompt),
            "n_predict": MAX_TOKENS,
            "temperature": TEMPERATURE,
            "top_p": 0.8,
            "stop": ["<|im_end|>", "\n\n"],
            "stream": False,
        }
        if self._cfg.model:
            body["model"] = self._cfg.model
        logger.info("asking %s at %s (timeout %ss)", self.name(), url, self._timeout)
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                resp = await asyncio.wait_for(client.post(url, json=body), timeout=self._timeout)
                resp.raise_for_status()
            except asyncio.TimeoutError as exc:
                raise timeout_error(f"{self.name()} request timed out after {self._timeout}s", exc) from exc
            except httpx.HTTPError as exc:
                raise classify(exc) from exc
        try:
            data = resp.json()
        except ValueError as exc:
            raise general_error(f"cannot decode {self.name()} response", exc) from exc
        content = data.get("content") if isinstance(data, dict) else None
        return parse_reply(content or "", source=self.name())


_NAMES = {
    PROVIDER_OPENAI: "OpenAI",
    PROVIDER_AZURE_OPENAI: "Azure OpenAI",
    PROVIDER_GEMINI: "Gemini",
    PROVIDER_CLAUDE: "Claude",
}


def _is_enabled(cfg: LLMConfig) -> bool:
    section = cfg.section()
    if section is None:
        return False
    try:
        section.validate()
    except ConfigError:
        return False
    return True


def build_provider(cfg: Config) -> Provider:
    """Pick the backend named by the configuration. Decided once at startup."""
    llm_cfg = cfg.llm
    if llm_cfg.provider == PROVIDER_LLAMA_CPP:
        return LlamaCppProvider(llm_cfg.llama_cpp or LlamaCppConfig(), lang=cfg.language)
    if llm_cfg.provider not in _NAMES:
        raise ConfigError(f"Unsupported LLM provider: {llm_cfg.provider}")
    section = llm_cfg.section()
    timeout = getattr(section, "timeout", DEFAULT_TIMEOUT) if section is not None else DEFAULT_TIMEOUT
    return StructuredChatProvider(
        _NAMES[llm_cfg.provider],
        lambda: get_llm(llm_cfg),
        enabled=_is_enabled(llm_cfg),
        timeout=timeout,
        lang=cfg.language,
    )
