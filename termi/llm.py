from __future__ import annotations

import importlib

from .config import (
    PROVIDER_AZURE_OPENAI,
    PROVIDER_CLAUDE,
    PROVIDER_GEMINI,
    PROVIDER_OPENAI,
    ConfigError,
    LLMConfig,
)

TEMPERATURE = 0.2
MAX_TOKENS = 1000


def _import(module: str, package: str, provider: str):
    try:
        return importlib.import_module(module)
    except ModuleNotFoundError as exc:
        raise RuntimeError(
            f"{package} is not installed. Install it to use LLM_PROVIDER={provider}:\n"
            f"  pip install {package}"
        ) from exc


def get_llm(cfg: LLMConfig):
    """Return a LangChain chat model for the configured provider.

    OpenAI-compatible models are bound to the JSON response format; the other
    providers are steered to JSON by the system prompt alone.
    """
    provider = cfg.provider
    section = cfg.section()
    if section is None:
        raise ConfigError(f"Missing settings for provider {provider}")

    if provider == PROVIDER_OPENAI:
        mod = _import("langchain_openai", "langchain-openai", provider)
        kwargs = {"model": section.model, "temperature": TEMPERATURE, "api_key": section.api_key}
        if section.base_url:
            kwargs["base_url"] = section.base_url
        if section.org_id:
            kwargs["organization"] = section.org_id
        llm = getattr(mod, "ChatOpenAI")(**kwargs)
        return llm.bind(response_format={"type": "json_object"})

    if provider == PROVIDER_AZURE_OPENAI:
        mod = _import("langchain_openai", "langchain-openai", provider)
        llm = getattr(mod, "AzureChatOpenAI")(
            azure_endpoint=section.base_url,
            azure_deployment=section.deployment_id,
            api_version=section.api_version,
            api_key=section.api_key,
            temperature=TEMPERATURE,
        )
        return llm.bind(response_format={"type": "json_object"})

    if provider == PROVIDER_GEMINI:
        mod = _import("langchain_google_genai", "langchain-google-genai", provider)
        kwargs = {
            "model": section.model,
            "google_api_key": section.api_key,
            "temperature": TEMPERATURE,
            "max_output_tokens": MAX_TOKENS,
        }
        if section.base_url:
            kwargs["client_options"] = {"api_endpoint": section.base_url}
        return getattr(mod, "ChatGoogleGenerativeAI")(**kwargs)

    if provider == PROVIDER_CLAUDE:
        mod = _import("langchain_anthropic", "langchain-anthropic", provider)
        kwargs = {
            "model": section.model,
            "api_key": section.api_key,
            "temperature": TEMPERATURE,
            "max_tokens": MAX_TOKENS,
        }
        if section.base_url:
            kwargs["base_url"] = section.base_url
        return getattr(mod, "ChatAnthropic")(**kwargs)

    raise ConfigError(f"Provider {provider} has no chat model")
