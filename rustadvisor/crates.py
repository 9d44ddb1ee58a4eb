"""Crate discovery against the crates registry API, with local re-ranking."""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

import httpx

from rustadvisor.errors import HttpClientError, SerializationError
from rustadvisor.models import CrateSearchItem, CratesSearchResult

_ASCII_LOWER = str.maketrans(
    "ABCDEFGHIJKLMNOPQRSTUVWXYZ", "abcdefghijklmnopqrstuvwxyz"
)


@dataclass(frozen=True)
class RoleHint:
    """A use-case family detected in a query, used to widen and rank the search."""

    weight: int
    tokens: tuple[str, ...]
    queries: tuple[str, ...]
    preferred_names: tuple[str, ...]


_ROLE_RULES: tuple[tuple[frozenset[str], RoleHint], ...] = (
    (
        frozenset({"config", "configuration", "env", "environment", "secret"}),
        RoleHint(
            weight=7,
            tokens=(
                "config", "configuration", "figment", "confique", "dotenvy",
                "secrecy", "settings",
            ),
            queries=(
                "config", "figment", "confique", "dotenvy", "secrecy",
                "config secret", "configuration",
            ),
            preferred_names=("config", "figment", "confique", "dotenvy", "secrecy"),
        ),
    ),
    (
        frozenset(
            {
                "metrics", "metric", "tracing", "trace", "logging", "correlation",
                "observability", "telemetry",
            }
        ),
        RoleHint(
            weight=8,
            tokens=(
                "metrics", "metric", "tracing", "subscriber", "opentelemetry",
                "logging", "log", "telemetry",
            ),
            queries=(
                "tracing", "tracing subscriber", "tracing opentelemetry", "metrics",
                "metrics exporter prometheus", "opentelemetry", "opentelemetry otlp",
                "log",
            ),
            preferred_names=(
                "tracing", "tracing-subscriber", "metrics",
                "metrics-exporter-prometheus", "opentelemetry", "opentelemetry-otlp",
                "tracing-opentelemetry",
            ),
        ),
    ),
    (
        frozenset({"database", "databases", "sql", "orm", "postgres", "mysql", "sqlite"}),
        RoleHint(
            weight=8,
            tokens=(
                "sql", "orm", "sqlx", "diesel", "seaorm", "postgres", "mysql",
                "sqlite", "database",
            ),
            queries=("sqlx", "diesel", "sea orm", "orm", "database"),
            preferred_names=("sqlx", "diesel", "sea-orm", "sea-query"),
        ),
    ),
    (
        frozenset({"cli", "command", "parsing", "terminal", "console"}),
        RoleHint(
            weight=7,
            tokens=("clap", "bpaf", "argh", "terminal", "tui", "ratatui"),
            queries=("clap", "bpaf", "argh", "ratatui", "terminal"),
            preferred_names=("clap", "bpaf", "argh", "ratatui"),
        ),
    ),
    (
        frozenset({"auth", "authentication", "oauth", "jwt", "session", "password"}),
        RoleHint(
            weight=7,
            tokens=(
                "auth", "authentication", "oauth2", "jsonwebtoken", "argon2",
                "paseto", "session",
            ),
            queries=("oauth2", "jsonwebtoken", "argon2", "authentication", "session"),
            preferred_names=("oauth2", "jsonwebtoken", "argon2", "pasetors"),
        ),
    ),
)


def normalized_tokens(text: str) -> list[str]:
    """Lower-case ``text`` and split it into alphanumeric tokens."""
    return "".join(c if c.isalnum() else " " for c in text.lower()).split()


def detect_role_hints(query_tokens: Iterable[str]) -> list[RoleHint]:
    """Return the role hints whose trigger words appear among ``query_tokens``."""
    present = set(query_tokens)
    return [hint for triggers, hint in _ROLE_RULES if present & triggers]


def build_candidate_queries(text: str) -> list[str]:
    """Derive the ordered, de-duplicated registry queries to run for ``text``."""
    tokens = normalized_tokens(text)
    hints = detect_role_hints(tokens)
    queries: dict[str, None] = {}

    def push(query: str) -> None:
        query = query.strip()
        if query:
            queries.setdefault(query, None)

    push(" ".join(tokens[:5]))
    push(" ".join([token for token in tokens if token != "rust"][:4]))

    for hint in hints:
        push(" ".join(hint.tokens[:4]))
        push(" ".join(["rust", *hint.tokens[:3]]))
        for candidate in hint.queries:
            push(candidate)
            push(f"rust {candidate}")

    if not hints:
        push(" ".join(["rust", *tokens[:3]]))

    if not queries:
        push("rust library")

    return list(queries)


def crate_score(
    item: CrateSearchItem, query_tokens: Sequence[str], role_hints: Iterable[RoleHint]
) -> int:
    """Score how well ``item`` matches the query tokens and detected roles."""
    name_tokens = set(normalized_tokens(item.name))
    description_tokens = set(normalized_tokens(item.description or ""))
    category_tokens = {t for value in item.categories or [] for t in normalized_tokens(value)}
    keyword_tokens = {t for value in item.keywords or [] for t in normalized_tokens(value)}

    score = 0
    for token in query_tokens:
        if token in name_tokens:
            score += 8
        if token in description_tokens:
            score += 4
        if token in keyword_tokens:
            score += 6
        if token in category_tokens:
            score += 5

    searchable = name_tokens | description_tokens | category_tokens | keyword_tokens
    lowered_name = item.name.translate(_ASCII_LOWER)
    for role in role_hints:
        overlap = sum(1 for token in role.tokens if token in searchable)
        score += overlap * role.weight

        if any(lowered_name == name.translate(_ASCII_LOWER) for name in role.preferred_names):
            score += role.weight * 6
        elif any(
            all(token in name_tokens for token in normalized_tokens(name))
            for name in role.preferred_names
        ):
            score += role.weight * 3

    query_set = set(query_tokens)
    if name_tokens & query_set:
        score += 6

    return score + int(math.log1p(item.downloads) * 2.0)


def rerank_crates(query: str, items: Iterable[CrateSearchItem]) -> list[CrateSearchItem]:
    """Return ``items`` ordered by score, then downloads, then name."""
    query_tokens = normalized_tokens(query)
    hints = detect_role_hints(query_tokens)
    return sorted(
        items,
        key=lambda item: (-crate_score(item, query_tokens, hints), -item.downloads, item.name),
    )


def _decode_error(exc: Exception) -> HttpClientError:
    return HttpClientError(f"error decoding response body: {exc}")


def _parse_search_response(data: Any) -> list[CrateSearchItem]:
    if not isinstance(data, dict) or not isinstance(data.get("crates"), list):
        raise _decode_error("missing field `crates`")
    try:
        return [CrateSearchItem.from_dict(entry) for entry in data["crates"]]
    except SerializationError as exc:
        raise _decode_error(exc) from exc


def _parse_detail_response(data: Any) -> tuple[list[str], list[str]]:
    if not isinstance(data, dict):
        raise _decode_error("expected an object")
    categories = data.get("categories")
    keywords = data.get("keywords")
    if not isinstance(categories, list) or not isinstance(keywords, list):
        raise _decode_error("missing field `categories` or `keywords`")

    category_ids: list[str] = []
    for entry in categories:
        if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
            raise _decode_error("invalid category")
        category_ids.append(entry["id"])

    keyword_names: list[str] = []
    for entry in keywords:
        if (
            not isinstance(entry, dict)
            or not isinstance(entry.get("id"), str)
            or not isinstance(entry.get("keyword"), str)
        ):
            raise _decode_error("invalid keyword")
        keyword_names.append(entry["keyword"] or entry["id"])

    return category_ids, keyword_names


class CratesTool:
    """Searches the crates registry, politely rate limited."""

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        rate_limit: float,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """``rate_limit`` is the minimum gap between requests, in seconds."""
        self.base_url = base_url
        self.user_agent = user_agent
        self.rate_limit = rate_limit
        self._owns_client = http_client is None
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=None)
        self._lock = asyncio.Lock()
        self._last_request_at: float | None = None

    async def __aenter__(self) -> CratesTool:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this tool created it."""
        if self._owns_client:
            await self._http.aclose()

    async def search(self, query: str, limit: int = 5) -> list[CratesSearchResult]:
        """Return up to ``limit`` crates relevant to ``query``, best first."""
        candidates = await self._collect_candidates(query, limit)
        ranked = rerank_crates(query, candidates)
        return [await self._enrich(item) for item in ranked[:limit]]

    async def _collect_candidates(self, query: str, limit: int) -> list[CrateSearchItem]:
        per_query_limit = min(max(limit * 2, 5), 10)
        merged: dict[str, CrateSearchItem] = {}

        for candidate in build_candidate_queries(query):
            data = await self._get_json(
                "/crates", {"q": candidate, "per_page": str(per_query_limit)}
            )
            for item in _parse_search_response(data):
                merged.setdefault(item.id, item)
            if len(merged) >= limit * 4:
                break

        return list(merged.values())

    async def _enrich(self, item: CrateSearchItem) -> CratesSearchResult:
        if item.categories or item.keywords:
            categories = list(item.categories or [])
            keywords = list(item.keywords or [])
        else:
            categories, keywords = _parse_detail_response(
                await self._get_json(f"/crates/{item.id}")
            )
        return CratesSearchResult(
            name=item.name,
            description=item.description,
            downloads=item.downloads,
            latest_version=item.max_version,
            categories=categories,
            keywords=keywords,
        )

    async def _get_json(self, path: str, params: dict[str, str] | None = None) -> Any:
        await self._wait_for_rate_limit()
        url = f"{self.base_url.rstrip('/')}{path}"
        try:
            response = await self._http.get(
                url, params=params, headers={"User-Agent": self.user_agent}
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as exc:
            raise HttpClientError(exc) from exc
        except ValueError as exc:
            raise _decode_error(exc) from exc

    async def _wait_for_rate_limit(self) -> None:
        async with self._lock:
            if self._last_request_at is not None:
                elapsed = time.monotonic() - self._last_request_at
                if elapsed < self.rate_limit:
                    await asyncio.sleep(self.rate_limit - elapsed)
            self._last_request_at = time.monotonic()