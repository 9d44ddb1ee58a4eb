import time

import httpx
import pytest
import respx

from rustadvisor.crates import (
    CratesTool,
    build_candidate_queries,
    crate_score,
    detect_role_hints,
    normalized_tokens,
    rerank_crates,
)
from rustadvisor.errors import HttpClientError
from rustadvisor.models import CrateSearchItem

BASE_URL = "https://crates.example.com/api/v1"
USER_AGENT = "test-agent (tests@example.com)"


def _item(name, downloads=10, categories=None, keywords=None, description=None):
    return CrateSearchItem(
        id=name,
        name=name,
        description=description,
        downloads=downloads,
        max_version="1.0.0",
        categories=categories,
        keywords=keywords,
    )


def _crate_json(name, downloads=10, categories=None, keywords=None, description=None):
    return {
        "id": name,
        "name": name,
        "description": description,
        "downloads": downloads,
        "max_version": "1.0.0",
        "categories": categories,
        "keywords": keywords,
    }


def test_normalized_tokens_splits_and_lowers():
    assert normalized_tokens("Tracing-Subscriber v0.3") == ["tracing", "subscriber", "v0", "3"]


def test_normalized_tokens_empty():
    assert normalized_tokens("  --  ") == []


def test_detect_role_hints_metrics():
    hints = detect_role_hints(["rust", "metrics"])
    assert len(hints) == 1
    assert hints[0].weight == 8
    assert "tracing-subscriber" in hints[0].preferred_names


def test_detect_role_hints_multiple_in_rule_order():
    hints = detect_role_hints(["sql", "config"])
    assert [h.weight for h in hints] == [7, 8]
    assert "figment" in hints[0].preferred_names
    assert "sqlx" in hints[1].preferred_names


def test_detect_role_hints_none():
    assert detect_role_hints(["hello", "world"]) == []


def test_candidate_queries_without_hints():
    assert build_candidate_queries("rust web server") == [
        "rust web server",
        "web server",
        "rust rust web server",
    ]


def test_candidate_queries_empty_input():
    assert build_candidate_queries("") == ["rust"]


def test_candidate_queries_with_hint_are_unique_and_trimmed():
    queries = build_candidate_queries("rust tracing")
    assert queries[0] == "rust tracing"
    assert queries[1] == "tracing"
    assert "tracing subscriber" in queries
    assert "rust tracing subscriber" in queries
    assert len(queries) == len(set(queries))
    assert all(q == q.strip() and q for q in queries)


def test_crate_score_zero_for_empty_inputs():
    assert crate_score(_item("anything", downloads=0), [], []) == 0


def test_crate_score_prefers_exact_preferred_name():
    tokens = normalized_tokens("rust tracing")
    hints = detect_role_hints(tokens)
    exact = crate_score(_item("tracing"), tokens, hints)
    other = crate_score(_item("widget"), tokens, hints)
    assert exact > other


def test_crate_score_grows_with_downloads():
    low = crate_score(_item("foo", downloads=1), ["foo"], [])
    high = crate_score(_item("foo", downloads=1_000_000), ["foo"], [])
    assert high > low


def test_rerank_orders_by_score_then_downloads_then_name():
    items = [_item("zeta"), _item("alpha"), _item("beta", downloads=1000)]
    ranked = rerank_crates("nothing", items)
    assert [i.name for i in ranked] == ["beta", "alpha", "zeta"]


def test_rerank_puts_relevant_crate_first_and_keeps_all():
    items = [_item("unrelated", downloads=500), _item("tracing", downloads=5)]
    ranked = rerank_crates("rust tracing", items)
    assert ranked[0].name == "tracing"
    assert sorted(i.name for i in ranked) == ["tracing", "unrelated"]


@pytest.mark.asyncio
async def test_search_returns_ranked_results_with_user_agent():
    crates = [
        _crate_json("unrelated", downloads=100, keywords=["misc"]),
        _crate_json("tracing", downloads=50, keywords=["logging"], categories=["debugging"]),
        _crate_json("tracing-subscriber", downloads=40, keywords=["subscriber"]),
    ]
    with respx.mock as router:
        route = router.route(host="crates.example.com").mock(
            return_value=httpx.Response(200, json={"crates": crates})
        )
        async with CratesTool(BASE_URL, USER_AGENT, 0) as tool:
            results = await tool.search("rust tracing", 2)

    assert len(results) == 2
    assert results[0].name == "tracing"
    assert results[0].latest_version == "1.0.0"
    assert results[0].keywords == ["logging"]
    assert results[0].categories == ["debugging"]
    assert route.call_count == len(build_candidate_queries("rust tracing"))
    first = route.calls[0].request
    assert first.headers["User-Agent"] == USER_AGENT
    assert first.url.params["q"] == "rust tracing"
    assert first.url.params["per_page"] == "5"


@pytest.mark.asyncio
async def test_search_fetches_details_when_metadata_missing():
    def handler(request):
        if request.url.path == "/api/v1/crates":
            return httpx.Response(200, json={"crates": [_crate_json("foo", keywords=[])]})
        if request.url.path == "/api/v1/crates/foo":
            return httpx.Response(
                200,
                json={
                    "categories": [{"id": "development-tools"}],
                    "keywords": [
                        {"id": "kw-a", "keyword": ""},
                        {"id": "kw-b", "keyword": "logging"},
                    ],
                },
            )
        return httpx.Response(404)

    with respx.mock as router:
        router.route(host="crates.example.com").mock(side_effect=handler)
        async with CratesTool(BASE_URL + "/", USER_AGENT, 0) as tool:
            results = await tool.search("xyz", 5)

    assert len(results) == 1
    assert results[0].name == "foo"
    assert results[0].categories == ["development-tools"]
    assert results[0].keywords == ["kw-a", "logging"]


@pytest.mark.asyncio
async def test_search_http_error_raises():
    with respx.mock as router:
        router.route(host="crates.example.com").mock(return_value=httpx.Response(500))
        async with CratesTool(BASE_URL, USER_AGENT, 0) as tool:
            with pytest.raises(HttpClientError):
                await tool.search("rust config", 5)


@pytest.mark.asyncio
async def test_search_malformed_body_raises():
    with respx.mock as router:
        router.route(host="crates.example.com").mock(
            return_value=httpx.Response(200, json={"crates": [{"id": "foo"}]})
        )
        async with CratesTool(BASE_URL, USER_AGENT, 0) as tool:
            with pytest.raises(HttpClientError):
                await tool.search("foo", 5)


@pytest.mark.asyncio
async def test_requests_are_rate_limited():
    with respx.mock as router:
        route = router.route(host="crates.example.com").mock(
            return_value=httpx.Response(200, json={"crates": []})
        )
        async with CratesTool(BASE_URL, USER_AGENT, 0.05) as tool:
            started = time.monotonic()
            results = await tool.search("alpha beta", 5)
            elapsed = time.monotonic() - started

    assert results == []
    assert route.call_count == 2
    assert elapsed >= 0.045