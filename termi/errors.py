"""
Backend failure taxonomy.

Every failure coming out of a provider is turned into a ``ClassifiedError``
exactly once. Typed failures (httpx, SDK errors carrying an HTTP status,
builtin timeouts) are inspected first; anything else falls back to matching
the message text.
"""

from __future__ import annotations

import asyncio
import enum
from typing import Dict, Optional, Tuple

import httpx


class ErrorKind(enum.Enum):
    AUTH = "auth"
    TIMEOUT = "timeout"
    QUOTA = "quota"
    NETWORK = "network"
    GENERAL = "general"


class ClassifiedError(Exception):
    """A backend failure with a stable kind. Not mutated after construction."""

    def __init__(self, kind: ErrorKind, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self._kind = kind
        self._message = message
        self._cause = cause
        if cause is not None:
            self.__cause__ = cause

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def message(self) -> str:
        return self._message

    @property
    def cause(self) -> Optional[BaseException]:
        return self._cause

    def unwrap(self) -> Optional[BaseException]:
        return self._cause

    def __str__(self) -> str:
        if self._cause is not None:
            return f"{self._message}: {self._cause}"
        return self._message

    def __repr__(self) -> str:
        return f"ClassifiedError({self._kind.name}, {self._message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClassifiedError):
            return NotImplemented
        return (self._kind, self._message, self._cause) == (other._kind, other._message, other._cause)

    def __hash__(self) -> int:
        return hash((self._kind, self._message))


def auth_error(msg: str, cause: Optional[BaseException] = None) -> ClassifiedError:
    return ClassifiedError(ErrorKind.AUTH, msg, cause)


def timeout_error(msg: str, cause: Optional[BaseException] = None) -> ClassifiedError:
    return ClassifiedError(ErrorKind.TIMEOUT, msg, cause)


def quota_error(msg: str, cause: Optional[BaseException] = None) -> ClassifiedError:
    return ClassifiedError(ErrorKind.QUOTA, msg, cause)


def network_error(msg: str, cause: Optional[BaseException] = None) -> ClassifiedError:
    return ClassifiedError(ErrorKind.NETWORK, msg, cause)


def general_error(msg: str, cause: Optional[BaseException] = None) -> ClassifiedError:
    return ClassifiedError(ErrorKind.GENERAL, msg, cause)


# Checked in this order; the first kind with a matching fragment wins.
HEURISTICS: Tuple[Tuple[ErrorKind, Tuple[str, ...]], ...] = (
    (ErrorKind.AUTH, (
        "api key", "api_key", "apikey", "unauthorized", "authentication",
        "permission denied", "forbidden", "invalid x-api-key", "401",
    )),
    (ErrorKind.TIMEOUT, ("timeout", "timed out", "deadline exceeded")),
    (ErrorKind.QUOTA, (
        "quota", "rate limit", "ratelimit", "rate_limit", "too many requests",
        "resource exhausted", "resourceexhausted", "429",
    )),
    (ErrorKind.NETWORK, (
        "connection", "connect", "network", "unreachable", "name resolution",
        "name or service not known", "dns", "refused", "reset by peer",
    )),
)

_STATUS_KINDS: Dict[int, ErrorKind] = {
    401: ErrorKind.AUTH,
    403: ErrorKind.AUTH,
    408: ErrorKind.TIMEOUT,
    504: ErrorKind.TIMEOUT,
    429: ErrorKind.QUOTA,
}


def _status_of(exc: BaseException) -> Optional[int]:
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def _kind_by_type(exc: BaseException) -> Optional[ErrorKind]:
    if isinstance(exc, ClassifiedError):
        return exc.kind
    if isinstance(exc, (TimeoutError, asyncio.TimeoutError, httpx.TimeoutException)):
        return ErrorKind.TIMEOUT
    status = _status_of(exc)
    if status is not None and status in _STATUS_KINDS:
        return _STATUS_KINDS[status]
    if isinstance(exc, (httpx.TransportError, ConnectionError)):
        return ErrorKind.NETWORK
    return None


def _kind_by_text(exc: BaseException) -> ErrorKind:
    text = f"{type(exc).__name__} {exc}".lower()
    for kind, fragments in HEURISTICS:
        if any(f in text for f in fragments):
            return kind
    return ErrorKind.GENERAL


def _describe_cause(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def classify(exc: BaseException) -> ClassifiedError:
    """Map an arbitrary failure onto the taxonomy. Never raises."""
    if isinstance(exc, ClassifiedError):
        return exc
    try:
        kind = _kind_by_type(exc)
        if kind is None and exc.__cause__ is not None:
            kind = _kind_by_type(exc.__cause__)
        if kind is None:
            kind = _kind_by_text(exc)
        return ClassifiedError(kind, _describe_cause(exc), exc)
    except Exception:  # pragma: no cover - str() of a hostile exception
        return ClassifiedError(ErrorKind.GENERAL, type(exc).__name__, exc)


MESSAGES: Dict[str, Dict[ErrorKind, str]] = {
    "zh": {
        ErrorKind.AUTH: "请设置对应的 API KEY 环境变量",
        ErrorKind.TIMEOUT: "网络请求超时，请检查网络连接",
        ErrorKind.QUOTA: "API 配额已用完，请检查账户",
        ErrorKind.NETWORK: "网络连接失败，请检查连接",
        ErrorKind.GENERAL: "LLM 服务出错: {detail}",
    },
    "en": {
        ErrorKind.AUTH: "Missing or invalid API key; set the provider's API key environment variable",
        ErrorKind.TIMEOUT: "The request timed out; check your network connection",
        ErrorKind.QUOTA: "API quota exhausted or rate limited; check your account",
        ErrorKind.NETWORK: "Network connection failed; check your connection",
        ErrorKind.GENERAL: "LLM service error: {detail}",
    },
}


def describe(error: ClassifiedError, lang: str = "zh") -> str:
    """Short localized sentence for ``error``, distinct per kind."""
    table = MESSAGES.get(lang, MESSAGES["zh"])
    return table[error.kind].format(detail=error.message)
