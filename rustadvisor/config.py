"""Service configuration loaded from environment variables."""

from __future__ import annotations

import os
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, fields

from dotenv import find_dotenv, load_dotenv

from rustadvisor.errors import ConfigError

_UNSIGNED = re.compile(r"\+?[0-9]+")


def _parse_unsigned(raw: str, maximum: int) -> int:
    if not _UNSIGNED.fullmatch(raw):
        raise ValueError(f"invalid digit in {raw!r}")
    value = int(raw)
    if value > maximum:
        raise ValueError(f"number too large: {raw!r}")
    return value


def _parse_u16(raw: str) -> int:
    return _parse_unsigned(raw, 0xFFFF)


def _parse_u64(raw: str) -> int:
    return _parse_unsigned(raw, 0xFFFF_FFFF_FFFF_FFFF)


def _parse_bool(raw: str) -> bool:
    if raw == "true":
        return True
    if raw == "false":
        return False
    raise ValueError(f"provided string was not `true` or `false`: {raw!r}")


_CONVERTERS: dict[str, Callable[[str], object]] = {
    "port": _parse_u16,
    "session_ttl": _parse_u64,
    "crates_api_rate_limit_ms": _parse_u64,
    "ollama_planner_thinking": _parse_bool,
    "ollama_synthesizer_thinking": _parse_bool,
}

_ALIASES = {
    "session_ttl_secs": "session_ttl",
    "ollama_base_url": "ollama_url",
}


@dataclass(frozen=True)
class Config:
    """Runtime settings of the backend service."""

    host: str = "0.0.0.0"
    port: int = 8080
    redis_url: str = "redis://redis:6379/"
    session_ttl: int = 60 * 60 * 24
    ollama_url: str = "http://ollama:11434"
    ollama_planner_model: str = "qwen3:8b"
    ollama_synthesizer_model: str = "qwen3:8b"
    ollama_keep_alive: str = "10m"
    ollama_planner_thinking: bool = False
    ollama_synthesizer_thinking: bool = True
    crates_api_base_url: str = "https://crates.io/api/v1"
    crates_api_user_agent: str = (
        "ai-rust-agent (local development; set CRATES_API_USER_AGENT for production contact)"
    )
    crates_api_rate_limit_ms: int = 1000
    github_token: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Config:
        """Build a config from ``environ``, or from the process environment and a .env file."""
        if environ is None:
            load_dotenv(find_dotenv(usecwd=True))
            environ = os.environ

        known = {f.name for f in fields(cls)}
        values: dict[str, object] = {}
        for key, raw in environ.items():
            name = key.lower()
            field_name = _ALIASES.get(name, name)
            if field_name not in known:
                continue
            if field_name in values:
                raise ConfigError(f"duplicate field `{field_name}`")
            convert = _CONVERTERS.get(field_name, str)
            try:
                values[field_name] = convert(raw)
            except ValueError as exc:
                raise ConfigError(f"{field_name}: {exc}") from exc
        return cls(**values)