"""Keyword search over the curated local knowledge base."""

from __future__ import annotations

import json
import os
from collections.abc import Iterable, Sequence
from pathlib import Path

from rustadvisor.errors import SerializationError
from rustadvisor.models import KnowledgeItem, KnowledgeSearchResult


def normalize_query(query: str) -> list[str]:
    """Lower-case ``query`` and split it into alphanumeric tokens."""
    return "".join(c if c.isalnum() else " " for c in query.lower()).split()


def _any_contains(values: Iterable[str], token: str) -> bool:
    return any(token in value.lower() for value in values)


def score_item(item: KnowledgeItem, tokens: Sequence[str]) -> int:
    """Score ``item`` by weighted substring matches of each token."""
    title = item.title.lower()
    category = item.category.lower()
    summary = item.summary.lower()

    score = 0
    for token in tokens:
        if token in title:
            score += 5
        if token in category:
            score += 3
        if token in summary:
            score += 2
        if _any_contains(item.tags, token):
            score += 4
        if _any_contains(item.use_cases, token):
            score += 3
        if _any_contains(item.pros, token):
            score += 1
        if _any_contains(item.cons, token):
            score += 1
        if _any_contains(item.related, token):
            score += 1
    return score


class LocalKnowledgeTool:
    """Ranks knowledge base entries against a free-text query."""

    def __init__(self, items: Iterable[KnowledgeItem]) -> None:
        self.items = list(items)

    @classmethod
    def load_from_file(cls, path: str | os.PathLike[str]) -> LocalKnowledgeTool:
        """Load the knowledge base from a JSON array of entries."""
        raw = Path(path).read_text(encoding="utf-8")
        try:
            data = json.loads(raw)
        except ValueError as exc:
            raise SerializationError(exc) from exc
        if not isinstance(data, list):
            raise SerializationError("invalid type: expected a list of knowledge items")
        return cls(KnowledgeItem.from_dict(entry) for entry in data)

    def search(self, query: str, limit: int = 5) -> list[KnowledgeSearchResult]:
        """Return up to ``limit`` matching entries, highest score first."""
        tokens = normalize_query(query)
        scored = [(score_item(item, tokens), item) for item in self.items]
        ranked = sorted(
            ((score, item) for score, item in scored if score > 0),
            key=lambda pair: pair[0],
            reverse=True,
        )
        return [
            KnowledgeSearchResult(
                id=item.id,
                title=item.title,
                summary=item.summary,
                pros=list(item.pros),
                cons=list(item.cons),
            )
            for _, item in ranked[:limit]
        ]