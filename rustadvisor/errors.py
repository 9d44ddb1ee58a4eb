"""Exception hierarchy for the backend."""

from __future__ import annotations

from typing import Any


class BackendError(Exception):
    """Base class of every error raised by the backend."""


class _DetailedError(BackendError):
    """An error whose message embeds the underlying cause."""

    template = "{}"

    def __init__(self, detail: Any = "") -> None:
        self.detail = detail
        super().__init__(self.template.format(detail))


class ConfigError(BackendError):
    """The configuration could not be loaded from the environment."""

    def __init__(self, detail: Any = "") -> None:
        self.detail = detail
        super().__init__("error loading config from .env")


class StorageError(_DetailedError):
    """The session storage backend failed."""

    template = "redis error: {}"


class SerializationError(_DetailedError):
    """A value could not be encoded to or decoded from JSON."""

    template = "json serialization error: {}"


class SessionNotFoundError(BackendError):
    """The requested session does not exist or has expired."""

    def __init__(self) -> None:
        super().__init__("session not found")


class HttpClientError(_DetailedError):
    """An outgoing HTTP request failed."""

    template = "http client error: {}"