"""HTTP client for the Ollama chat endpoint."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from typing import Any

import httpx

from rustadvisor.errors import HttpClientError, SerializationError
from rustadvisor.models import OllamaMessage

logger = logging.getLogger(__name__)


def _message_content(data: Any) -> str:
    if not isinstance(data, dict):
        raise HttpClientError("error decoding response body: expected an object")
    for key in ("model", "message", "done"):
        if key not in data:
            raise HttpClientError(f"error decoding response body: missing field `{key}`")
    message = data["message"]
    if (
        not isinstance(message, dict)
        or not isinstance(message.get("role"), str)
        or not isinstance(message.get("content"), str)
    ):
        raise HttpClientError("error decoding response body: invalid message")
    return message["content"]


class LlmService:
    """Sends chat requests to one model served by Ollama."""

    def __init__(
        self,
        base_url: str,
        model: str,
        keep_alive: str,
        think: bool | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url
        self.model = model
        self.keep_alive = keep_alive
        self.think = think
        self._owns_client = http_client is None
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=None)

    async def __aenter__(self) -> LlmService:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this service created it."""
        if self._owns_client:
            await self._http.aclose()

    def _request_body(
        self, messages: Iterable[OllamaMessage], schema: Any = None
    ) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in messages],
            "stream": False,
            "keep_alive": self.keep_alive,
        }
        if self.think is not None:
            body["think"] = self.think
        if schema is not None:
            body["format"] = schema
        return body

    async def _send(self, body: dict[str, Any]) -> str:
        try:
            response = await self._http.post(f"{self.base_url}/api/chat", json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise HttpClientError(exc) from exc
        except ValueError as exc:
            raise HttpClientError(f"error decoding response body: {exc}") from exc
        return _message_content(data)

    async def chat(self, messages: Iterable[OllamaMessage]) -> str:
        """Send the conversation and return the reply text."""
        logger.info("sending request to ollama: model=%s", self.model)
        return await self._send(self._request_body(messages))

    async def chat_json(self, messages: Iterable[OllamaMessage], schema: Any) -> Any:
        """Ask for a reply constrained to ``schema`` and return it decoded from JSON."""
        content = await self._send(self._request_body(messages, schema))
        try:
            return json.loads(content)
        except ValueError as exc:
            raise SerializationError(exc) from exc

    async def simple_user_prompt(self, prompt: str) -> str:
        """Send a single user message and return the reply."""
        logger.info("sending request to ollama: model=%s", self.model)
        return await self.chat([OllamaMessage(role="user", content=prompt)])