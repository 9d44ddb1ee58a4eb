"""Repository search against the GitHub REST API."""

from __future__ import annotations

from typing import Any

import httpx

from rustadvisor.errors import HttpClientError, SerializationError
from rustadvisor.models import GitHubSearchResult

SEARCH_URL = "https://api.github.com/search/repositories"
USER_AGENT = "ai-rust-agent"


def _parse_response(data: Any) -> list[GitHubSearchResult]:
    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        raise HttpClientError("error decoding response body: missing field `items`")
    try:
        return [GitHubSearchResult.from_dict(item) for item in data["items"]]
    except SerializationError as exc:
        raise HttpClientError(f"error decoding response body: {exc}") from exc


class GitHubTool:
    """Finds repositories sorted by stars."""

    def __init__(
        self,
        token: str | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.token = token
        self._owns_client = http_client is None
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=None)

    async def __aenter__(self) -> GitHubTool:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this tool created it."""
        if self._owns_client:
            await self._http.aclose()

    async def search(self, query: str, limit: int = 5) -> list[GitHubSearchResult]:
        """Return up to ``limit`` repositories matching ``query``, most starred first."""
        headers = {"User-Agent": USER_AGENT}
        if self.token is not None:
            headers["Authorization"] = f"Bearer {self.token}"
        params = {"q": query, "sort": "stars", "order": "desc", "per_page": str(limit)}
        try:
            response = await self._http.get(SEARCH_URL, params=params, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise HttpClientError(exc) from exc
        except ValueError as exc:
            raise HttpClientError(f"error decoding response body: {exc}") from exc
        return _parse_response(data)