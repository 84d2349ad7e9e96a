"""
Configuration for termi.

Settings come from ``~/.config/termi/config.json`` when that file exists,
otherwise from environment variables (a ``.env`` in the working directory is
loaded by the CLI before this runs).

Env:
  - LLM_PROVIDER: openai | azure-openai | gemini | claude | llama-cpp
  - OPENAI_API_KEY / OPENAI_MODEL / OPENAI_BASE_URL / OPENAI_ORG_ID
  - AZURE_OPENAI_API_KEY / AZURE_OPENAI_BASE_URL / AZURE_OPENAI_DEPLOYMENT_ID / AZURE_OPENAI_API_VERSION
  - GEMINI_API_KEY / GEMINI_MODEL / GEMINI_BASE_URL
  - ANTHROPIC_API_KEY / CLAUDE_MODEL / ANTHROPIC_BASE_URL
  - LLAMA_CPP_BASE_URL / LLAMA_CPP_MODEL
  - TERMI_TIMEOUT, TERMI_MAX_TURNS, TERMI_LANG, TERMI_LOG_FILE, TERMI_CONFIG
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

PROVIDER_OPENAI = "openai"
PROVIDER_AZURE_OPENAI = "azure-openai"
PROVIDER_GEMINI = "gemini"
PROVIDER_CLAUDE = "claude"
PROVIDER_LLAMA_CPP = "llama-cpp"

PROVIDERS = (
    PROVIDER_OPENAI,
    PROVIDER_AZURE_OPENAI,
    PROVIDER_GEMINI,
    PROVIDER_CLAUDE,
    PROVIDER_LLAMA_CPP,
)

DEFAULT_TIMEOUT = 30
DEFAULT_LANGUAGE = "zh"
LANGUAGES = ("zh", "en")


class ConfigError(Exception):
    pass


@dataclass
class OpenAIConfig:
    api_key: str = ""
    model: str = "gpt-4o-mini"
    base_url: str = ""
    org_id: str = ""
    timeout: int = DEFAULT_TIMEOUT

    def validate(self) -> None:
        if not self.api_key:
            raise ConfigError("OpenAI API key must not be empty")
        if not self.model:
            raise ConfigError("OpenAI model must not be empty")


@dataclass
class AzureOpenAIConfig:
    api_key: str = ""
    base_url: str = ""
    deployment_id: str = ""
    api_version: str = "2023-12-01-preview"
    timeout: int = DEFAULT_TIMEOUT

    def validate(self) -> None:
        if not self.api_key:
            raise ConfigError("Azure OpenAI API key must not be empty")
        if not self.base_url:
            raise ConfigError("Azure OpenAI base URL must not be empty")
        if not self.deployment_id:
            raise ConfigError("Azure OpenAI deployment ID must not be empty")


@dataclass
class GeminiConfig:
    api_key: str = ""
    model: str = "gemini-2.0-flash"
    base_url: str = ""
    timeout: int = DEFAULT_TIMEOUT

    def validate(self) -> None:
        if not self.api_key:
            raise ConfigError("Gemini API key must not be empty")
        if not self.model:
            raise ConfigError("Gemini model must not be empty")


@dataclass
class ClaudeConfig:
    api_key: str = ""
    model: str = "claude-3-haiku-20240307"
    base_url: str = ""
    timeout: int = DEFAULT_TIMEOUT

    def validate(self) -> None:
        if not self.api_key:
            raise ConfigError("Claude API key must not be empty")
        if not self.model:
            raise ConfigError("Claude model must not be empty")


@dataclass
class LlamaCppConfig:
    base_url: str = ""
    model: str = ""
    timeout: int = DEFAULT_TIMEOUT

    def validate(self) -> None:
        if not self.base_url:
            raise ConfigError("llama.cpp base URL must not be empty")


_SECTIONS = {
    PROVIDER_OPENAI: ("openai", OpenAIConfig),
    PROVIDER_AZURE_OPENAI: ("azure_openai", AzureOpenAIConfig),
    PROVIDER_GEMINI: ("gemini", GeminiConfig),
    PROVIDER_CLAUDE: ("claude", ClaudeConfig),
    PROVIDER_LLAMA_CPP: ("llama_cpp", LlamaCppConfig),
}


@dataclass
class LLMConfig:
    provider: str = PROVIDER_OPENAI
    openai: Optional[OpenAIConfig] = None
    azure_openai: Optional[AzureOpenAIConfig] = None
    gemini: Optional[GeminiConfig] = None
    claude: Optional[ClaudeConfig] = None
    llama_cpp: Optional[LlamaCppConfig] = None

    def section(self):
        """Settings block of the selected provider, or None."""
        if self.provider not in _SECTIONS:
            return None
        attr, _cls = _SECTIONS[self.provider]
        return getattr(self, attr)

    def validate(self) -> None:
        if self.provider not in _SECTIONS:
            raise ConfigError(f"Unsupported LLM provider: {self.provider}")
        section = self.section()
        if section is None:
            raise ConfigError(f"Missing settings for provider {self.provider}")
        section.validate()


@dataclass
class Config:
    llm: LLMConfig = field(default_factory=LLMConfig)
    # None: unbounded clarification loop
    max_turns: Optional[int] = None
    language: str = DEFAULT_LANGUAGE
    log_file: str = ""

    def validate(self) -> None:
        self.llm.validate()
        self.validate_settings()

    def validate_settings(self) -> None:
        """Check everything except the provider section."""
        if self.max_turns is not None and self.max_turns < 0:
            raise ConfigError("max_turns must not be negative")
        if self.language not in LANGUAGES:
            raise ConfigError(f"Unsupported language: {self.language}")

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["llm"] = {k: v for k, v in data["llm"].items() if v is not None}
        return data


def default_config() -> Config:
    return Config(llm=LLMConfig(provider=PROVIDER_OPENAI, openai=OpenAIConfig()))


def config_path() -> Path:
    env = os.getenv("TERMI_CONFIG")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".config" / "termi" / "config.json"


def _int_or_none(value: Any, name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        n = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from exc
    return n


def _normalize_turns(value: Optional[int], name: str = "max_turns") -> Optional[int]:
    # 0 is accepted as "unbounded" in files and env
    if value is None or value == 0:
        return None
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {value}")
    return value


def from_dict(data: Mapping[str, Any]) -> Config:
    if not isinstance(data, Mapping):
        raise ConfigError("Config root must be a JSON object")
    llm_data = data.get("llm") or {}
    if not isinstance(llm_data, Mapping):
        raise ConfigError("'llm' must be a JSON object")
    llm = LLMConfig(provider=str(llm_data.get("provider") or PROVIDER_OPENAI))
    for attr, cls in _SECTIONS.values():
        raw = llm_data.get(attr)
        if raw is None:
            continue
        if not isinstance(raw, Mapping):
            raise ConfigError(f"'llm.{attr}' must be a JSON object")
        known = {k: v for k, v in raw.items() if k in cls.__dataclass_fields__}
        try:
            setattr(llm, attr, cls(**known))
        except TypeError as exc:
            raise ConfigError(f"Invalid 'llm.{attr}' section: {exc}") from exc
    return Config(
        llm=llm,
        max_turns=_normalize_turns(_int_or_none(data.get("max_turns"), "max_turns")),
        language=str(data.get("language") or DEFAULT_LANGUAGE),
        log_file=str(data.get("log_file") or ""),
    )


def load_from_file(path: Path) -> Config:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Cannot parse config file {path}: {exc}") from exc
    return from_dict(data)


def _timeout(env: Mapping[str, str]) -> int:
    n = _int_or_none(env.get("TERMI_TIMEOUT"), "TERMI_TIMEOUT")
    return n if n else DEFAULT_TIMEOUT


def _configure_openai(cfg: Config, env: Mapping[str, str]) -> None:
    cfg.llm.openai = OpenAIConfig(
        api_key=env.get("OPENAI_API_KEY", ""),
        model=env.get("OPENAI_MODEL") or OpenAIConfig.model,
        base_url=env.get("OPENAI_BASE_URL", ""),
        org_id=env.get("OPENAI_ORG_ID", ""),
        timeout=_timeout(env),
    )


def _configure_azure(cfg: Config, env: Mapping[str, str]) -> None:
    cfg.llm.azure_openai = AzureOpenAIConfig(
        api_key=env.get("AZURE_OPENAI_API_KEY", ""),
        base_url=env.get("AZURE_OPENAI_BASE_URL", ""),
        deployment_id=env.get("AZURE_OPENAI_DEPLOYMENT_ID", ""),
        api_version=env.get("AZURE_OPENAI_API_VERSION") or AzureOpenAIConfig.api_version,
        timeout=_timeout(env),
    )


def _configure_gemini(cfg: Config, env: Mapping[str, str]) -> None:
    cfg.llm.gemini = GeminiConfig(
        api_key=env.get("GEMINI_API_KEY", ""),
        model=env.get("GEMINI_MODEL") or GeminiConfig.model,
        base_url=env.get("GEMINI_BASE_URL", ""),
        timeout=_timeout(env),
    )


def _configure_claude(cfg: Config, env: Mapping[str, str]) -> None:
    cfg.llm.claude = ClaudeConfig(
        api_key=env.get("ANTHROPIC_API_KEY", ""),
        model=env.get("CLAUDE_MODEL") or ClaudeConfig.model,
        base_url=env.get("ANTHROPIC_BASE_URL", ""),
        timeout=_timeout(env),
    )


def _configure_llama_cpp(cfg: Config, env: Mapping[str, str]) -> None:
    cfg.llm.llama_cpp = LlamaCppConfig(
        base_url=env.get("LLAMA_CPP_BASE_URL", ""),
        model=env.get("LLAMA_CPP_MODEL", ""),
        timeout=_timeout(env),
    )


# Detection order when LLM_PROVIDER is not set.
_ENV_PROVIDERS: tuple[tuple[str, str, Callable[[Config, Mapping[str, str]], None]], ...] = (
    (PROVIDER_OPENAI, "OPENAI_API_KEY", _configure_openai),
    (PROVIDER_AZURE_OPENAI, "AZURE_OPENAI_API_KEY", _configure_azure),
    (PROVIDER_GEMINI, "GEMINI_API_KEY", _configure_gemini),
    (PROVIDER_CLAUDE, "ANTHROPIC_API_KEY", _configure_claude),
    (PROVIDER_LLAMA_CPP, "LLAMA_CPP_BASE_URL", _configure_llama_cpp),
)


def load_from_env(env: Optional[Mapping[str, str]] = None) -> Config:
    env = os.environ if env is None else env
    cfg = default_config()
    cfg.max_turns = _normalize_turns(_int_or_none(env.get("TERMI_MAX_TURNS"), "TERMI_MAX_TURNS"), "TERMI_MAX_TURNS")
    cfg.language = env.get("TERMI_LANG") or DEFAULT_LANGUAGE
    cfg.log_file = env.get("TERMI_LOG_FILE", "")

    forced = (env.get("LLM_PROVIDER") or "").strip().lower()
    if forced:
        for name, _key, configure in _ENV_PROVIDERS:
            if name == forced:
                cfg.llm.provider = name
                configure(cfg, env)
                return cfg
        raise ConfigError(f"Unsupported LLM provider: {forced}")

    for name, key, configure in _ENV_PROVIDERS:
        if env.get(key):
            cfg.llm.provider = name
            configure(cfg, env)
            return cfg

    # Nothing configured: keep the keyless default so the dialogue reports
    # an authentication problem instead of crashing at startup.
    logger.info("no LLM provider configured in environment")
    _configure_openai(cfg, env)
    return cfg


def load_config(path: Optional[Path] = None) -> Config:
    path = path or config_path()
    if path.exists():
        logger.debug("loading config from %s", path)
        cfg = load_from_file(path)
    else:
        cfg = load_from_env()
    cfg.validate_settings()
    return cfg


def save_config(cfg: Config, path: Optional[Path] = None) -> Path:
    path = path or config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        # created owner-only; fchmod also covers a file that already existed
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json.dumps(cfg.to_dict(), indent=2, ensure_ascii=False))
    except OSError as exc:
        raise ConfigError(f"Cannot write config file {path}: {exc}") from exc
    return path
