"""Rule-based shortcuts and clean-up applied around the planner."""

from __future__ import annotations

from rustadvisor.models import ToolArguments, ToolCall, ToolPlan

_SUPPORTED_TOOLS = frozenset({"github_search", "local_knowledge_search", "crates_search"})

_GREETINGS = frozenset({"hello", "hi", "hey"})

_SMALLTALK_TOKENS = frozenset(
    {"hello", "hi", "hey", "how", "are", "you", "tell", "me", "a", "joke", "say"}
)

_SMALLTALK_PHRASES = ("say hello", "how are you", "tell me a joke")

_TECHNICAL_TOKENS = frozenset(
    {
        "rust", "backend", "framework", "frameworks", "database", "databases",
        "routing", "router", "api", "web", "server", "service", "services",
        "tool", "tools", "repo", "repos", "repository", "repositories", "github",
        "sql", "orm", "postgres", "mysql", "sqlite", "actix", "axum", "warp",
        "rocket", "tokio", "observability", "tracing", "auth", "authentication",
        "recommend", "advice", "find", "learn", "code", "concurrent", "fast",
    }
)

_TECHNICAL_PHRASES = (
    "high load",
    "high-load",
    "write backend code",
    "find me",
    "recommend me",
)

_GITHUB_TERMS = (
    "rust", "sql", "backend", "framework", "frameworks", "web", "api", "server",
    "service", "microservice", "tokio", "axum", "actix", "warp", "rocket",
    "observability", "tracing", "telemetry", "metrics", "logging",
    "authentication", "auth", "database", "orm", "sqlx", "diesel", "seaorm",
    "sea-orm", "postgres", "redis", "mysql", "sqlite", "postgresql", "graphql",
    "grpc", "tooling", "library", "libraries",
)

_CRATES_TERMS = (
    "rust", "config", "configuration", "env", "environment", "secret", "secrets",
    "cli", "command", "parsing", "terminal", "tracing", "metrics", "logging",
    "observability", "correlation", "database", "databases", "sql", "orm",
    "postgres", "mysql", "sqlite", "auth", "authentication", "cache", "queue",
    "serialization", "json", "toml", "yaml", "framework", "frameworks",
    "library", "libraries",
)

_CRATES_EXPANSIONS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (
        ("config", "configuration", "env", "environment", "secret", "secrets", "settings"),
        ("config", "configuration", "figment", "confique", "dotenvy", "secrecy"),
    ),
    (
        (
            "metrics", "metric", "tracing", "trace", "log correlation", "correlation",
            "logging", "observability", "telemetry",
        ),
        (
            "metrics", "tracing", "tracing-subscriber", "opentelemetry", "tower-http",
            "axum-tracing-opentelemetry",
        ),
    ),
    (
        ("database", "databases", "sql", "orm", "postgres", "mysql", "sqlite"),
        ("sqlx", "diesel", "sea-orm", "seaorm", "postgres", "sqlite", "mysql"),
    ),
    (
        ("cli", "command line", "argument parsing", "terminal", "console"),
        ("clap", "argh", "bpaf", "dialoguer", "ratatui"),
    ),
    (
        ("auth", "authentication", "jwt", "session"),
        ("jsonwebtoken", "axum-login", "oauth2", "argon2", "pasetors"),
    ),
)

_GITHUB_STOP_WORDS = frozenset(
    {
        "a", "an", "and", "are", "be", "best", "build", "building", "care",
        "compare", "current", "find", "for", "from", "help", "i", "im", "in",
        "include", "looking", "maybe", "me", "my", "new", "of", "project",
        "recommend", "repositories", "repository", "search", "show", "some",
        "that", "the", "their", "them", "to", "use", "what", "with", "would", "you",
    }
)

_CRATES_STOP_WORDS = frozenset(
    {
        "a", "about", "advice", "also", "an", "and", "are", "best", "building",
        "can", "choose", "concrete", "evaluate", "for", "from", "give", "help",
        "i", "in", "libraries", "library", "me", "modern", "need", "pick",
        "please", "practical", "production", "recommend", "related", "service",
        "should", "some", "stack", "the", "things", "use", "useful", "what",
        "which", "with",
    }
)


def fast_path_plan(user_message: str) -> ToolPlan | None:
    """Return an empty plan for smalltalk, or None when the planner is needed."""
    if _is_smalltalk(_normalize(user_message)):
        return ToolPlan(need_tools=False, tools=[])
    return None


def fast_path_response(user_message: str) -> str | None:
    """Return a canned reply for greetings and smalltalk, or None."""
    normalized = _normalize(user_message)
    tokens = _tokenize(normalized)

    if _is_pure_greeting(tokens) or "say hello" in normalized:
        return "Hello! Ask me about Rust backend tools, repos, or trade-offs."

    if "how are you" in normalized and not _has_technical_intent(tokens, normalized):
        return (
            "I'm ready to help. Ask me to compare Rust backend tools or find active repositories."
        )

    if "tell me a joke" in normalized and not _has_technical_intent(tokens, normalized):
        return "Rust joke: fearless concurrency is great until your TODO list starts racing too."

    return None


def apply_tool_policy(user_message: str, plan: ToolPlan) -> ToolPlan:
    """Filter, rewrite and deduplicate the tools of a plan; the input is left unchanged."""
    if _is_smalltalk(_normalize(user_message)):
        return ToolPlan(need_tools=False, tools=[])

    tools = [
        _rewrite_query(user_message, tool)
        for tool in plan.tools
        if tool.name in _SUPPORTED_TOOLS
    ]
    tools = _select_best_tools(tools)
    return ToolPlan(need_tools=bool(tools), tools=tools)


def _normalize(text: str) -> str:
    return text.lower()


def _tokenize(text: str) -> list[str]:
    return "".join(c if c.isalnum() else " " for c in text).split()


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


def _is_smalltalk(message: str) -> bool:
    normalized = _normalize(message)
    tokens = _tokenize(normalized)

    if _has_technical_intent(tokens, normalized):
        return False

    count = len(tokens)
    has_phrase = any(phrase in normalized for phrase in _SMALLTALK_PHRASES)
    all_smalltalk = count > 0 and all(token in _SMALLTALK_TOKENS for token in tokens)

    return (
        (has_phrase and count <= 8)
        or (all_smalltalk and count <= 4)
        or (count == 1 and tokens[0] in _GREETINGS)
    )


def _has_technical_intent(tokens: list[str], normalized: str) -> bool:
    return any(token in _TECHNICAL_TOKENS for token in tokens) or any(
        phrase in normalized for phrase in _TECHNICAL_PHRASES
    )


def _is_pure_greeting(tokens: list[str]) -> bool:
    return 0 < len(tokens) <= 3 and all(token in _GREETINGS for token in tokens)


def _rewrite_query(user_message: str, tool: ToolCall) -> ToolCall:
    query = tool.arguments.query
    source = query if query.strip() else user_message
    if tool.name == "github_search":
        query = _build_github_query(source)
    elif tool.name == "crates_search":
        query = _build_crates_query(source)
    return ToolCall(name=tool.name, arguments=ToolArguments(query=query))


def _build_github_query(text: str) -> str:
    preferred = _ordered_terms(text, _GITHUB_TERMS, 5)
    if preferred:
        return " ".join(preferred)
    fallback = _generic_github_terms(text)
    if fallback:
        return " ".join(fallback)
    return "rust backend"


def _build_crates_query(text: str) -> str:
    terms = _dedup(_ordered_terms(text, _CRATES_TERMS, 6) + _expand_crates_terms(text))
    if terms:
        return " ".join(terms[:8])
    fallback = _dedup(_generic_crates_terms(text) + _expand_crates_terms(text))
    if fallback:
        return " ".join(fallback[:8])
    return "rust library"


def _ordered_terms(text: str, ordered: tuple[str, ...], limit: int) -> list[str]:
    normalized = _normalize(text)
    selected: list[str] = []
    for term in ordered:
        if term in normalized and term not in selected:
            selected.append(term)
        if len(selected) >= limit:
            break
    return selected


def _expand_crates_terms(text: str) -> list[str]:
    normalized = _normalize(text)
    extra: list[str] = []
    for triggers, additions in _CRATES_EXPANSIONS:
        if any(trigger in normalized for trigger in triggers):
            extra.extend(additions)
    return extra


def _generic_terms(text: str, stop_words: frozenset[str], limit: int) -> list[str]:
    selected: list[str] = []
    for token in _tokenize(_normalize(text)):
        if _byte_len(token) < 3 or token in stop_words:
            continue
        if token not in selected:
            selected.append(token)
        if len(selected) >= limit:
            break
    return selected


def _generic_github_terms(text: str) -> list[str]:
    return _generic_terms(text, _GITHUB_STOP_WORDS, 5)


def _generic_crates_terms(text: str) -> list[str]:
    selected = _generic_terms(text, _CRATES_STOP_WORDS, 6)
    if "rust" not in selected:
        selected.insert(0, "rust")
    return selected


def _dedup(terms: list[str]) -> list[str]:
    return list(dict.fromkeys(terms))


def _select_best_tools(tools: list[ToolCall]) -> list[ToolCall]:
    seen: set[str] = set()
    unique: list[ToolCall] = []
    for tool in tools:
        key = f"{tool.name}::{tool.arguments.query}"
        if key not in seen:
            seen.add(key)
            unique.append(tool)

    best: dict[str, int] = {}
    for index, tool in enumerate(unique):
        current = best.get(tool.name)
        if current is None or _is_better_query(
            tool.arguments.query, unique[current].arguments.query
        ):
            best[tool.name] = index

    return [tool for index, tool in enumerate(unique) if best[tool.name] == index]


def _is_better_query(candidate: str, current: str) -> bool:
    candidate_count = len(_tokenize(_normalize(candidate)))
    current_count = len(_tokenize(_normalize(current)))
    if candidate_count != current_count:
        return candidate_count > current_count
    return _byte_len(candidate) > _byte_len(current)