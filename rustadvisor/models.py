"""Data records exchanged between the planner, tools, storage and API."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from rustadvisor.errors import SerializationError


def _mapping(data: Any, owner: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise SerializationError(f"invalid type: expected {owner} object")
    return data


def _get(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise SerializationError(f"missing field `{key}`") from None


def _str(data: Mapping[str, Any], key: str) -> str:
    value = _get(data, key)
    if not isinstance(value, str):
        raise SerializationError(f"invalid type for `{key}`: expected a string")
    return value


def _opt_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise SerializationError(f"invalid type for `{key}`: expected a string")
    return value


def _uint(data: Mapping[str, Any], key: str) -> int:
    value = _get(data, key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise SerializationError(f"invalid type for `{key}`: expected an unsigned integer")
    return value


def _bool(data: Mapping[str, Any], key: str) -> bool:
    value = _get(data, key)
    if not isinstance(value, bool):
        raise SerializationError(f"invalid type for `{key}`: expected a boolean")
    return value


def _check_str_list(value: Any, key: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise SerializationError(f"invalid type for `{key}`: expected a list of strings")
    return list(value)


def _str_list(data: Mapping[str, Any], key: str) -> list[str]:
    return _check_str_list(_get(data, key), key)


def _opt_str_list(data: Mapping[str, Any], key: str) -> list[str] | None:
    value = data.get(key)
    return None if value is None else _check_str_list(value, key)


@dataclass
class ToolArguments:
    """Arguments handed to a tool."""

    query: str


@dataclass
class ToolCall:
    """A single tool invocation requested by the planner."""

    name: str
    arguments: ToolArguments

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "arguments": {"query": self.arguments.query}}


def _tool_call_from_dict(data: Any) -> ToolCall:
    data = _mapping(data, "tool call")
    arguments = _mapping(_get(data, "arguments"), "arguments")
    return ToolCall(name=_str(data, "name"), arguments=ToolArguments(_str(arguments, "query")))


@dataclass
class ToolPlan:
    """The planner's decision about which tools to run."""

    need_tools: bool
    tools: list[ToolCall] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> ToolPlan:
        data = _mapping(data, "tool plan")
        tools = _get(data, "tools")
        if not isinstance(tools, list):
            raise SerializationError("invalid type for `tools`: expected a list")
        return cls(
            need_tools=_bool(data, "need_tools"),
            tools=[_tool_call_from_dict(item) for item in tools],
        )

    def to_dict(self) -> dict[str, Any]:
        return {"need_tools": self.need_tools, "tools": [t.to_dict() for t in self.tools]}


@dataclass
class ToolExecutionResult:
    """The outcome of running one tool."""

    tool_name: str
    success: bool
    payload: Any = None
    error: str | None = None

    @classmethod
    def succeeded(cls, tool_name: str, payload: Any) -> ToolExecutionResult:
        return cls(tool_name=tool_name, success=True, payload=payload)

    @classmethod
    def failed(cls, tool_name: str, error: str) -> ToolExecutionResult:
        return cls(tool_name=tool_name, success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"tool_name": self.tool_name, "success": self.success}
        if self.payload is not None:
            result["payload"] = self.payload
        if self.error is not None:
            result["error"] = self.error
        return result


@dataclass
class ExecutionResponse:
    """A plan together with the results of running it."""

    plan: ToolPlan
    results: list[ToolExecutionResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "plan": self.plan.to_dict(),
            "results": [r.to_dict() for r in self.results],
        }


@dataclass
class ConversationMessage:
    """One message in a session's history."""

    role: str
    content: str

    @classmethod
    def from_dict(cls, data: Any) -> ConversationMessage:
        data = _mapping(data, "conversation message")
        return cls(role=_str(data, "role"), content=_str(data, "content"))

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass
class SessionState:
    """A session and its full message history."""

    session_id: UUID
    messages: list[ConversationMessage] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": str(self.session_id),
            "messages": [m.to_dict() for m in self.messages],
        }


@dataclass
class KnowledgeItem:
    """A curated entry of the local knowledge base."""

    id: str
    title: str
    category: str
    tags: list[str]
    summary: str
    use_cases: list[str]
    pros: list[str]
    cons: list[str]
    related: list[str]
    source: str
    collected_at: str

    @classmethod
    def from_dict(cls, data: Any) -> KnowledgeItem:
        data = _mapping(data, "knowledge item")
        return cls(
            id=_str(data, "id"),
            title=_str(data, "title"),
            category=_str(data, "category"),
            tags=_str_list(data, "tags"),
            summary=_str(data, "summary"),
            use_cases=_str_list(data, "use_cases"),
            pros=_str_list(data, "pros"),
            cons=_str_list(data, "cons"),
            related=_str_list(data, "related"),
            source=_str(data, "source"),
            collected_at=_str(data, "collected_at"),
        )


@dataclass
class KnowledgeSearchResult:
    """A knowledge base entry returned by a search."""

    id: str
    title: str
    summary: str
    pros: list[str]
    cons: list[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "summary": self.summary,
            "pros": list(self.pros),
            "cons": list(self.cons),
        }


@dataclass
class CrateSearchItem:
    """A crate as listed by the registry search endpoint."""

    id: str
    name: str
    description: str | None
    downloads: int
    max_version: str
    categories: list[str] | None = None
    keywords: list[str] | None = None

    @classmethod
    def from_dict(cls, data: Any) -> CrateSearchItem:
        data = _mapping(data, "crate")
        return cls(
            id=_str(data, "id"),
            name=_str(data, "name"),
            description=_opt_str(data, "description"),
            downloads=_uint(data, "downloads"),
            max_version=_str(data, "max_version"),
            categories=_opt_str_list(data, "categories"),
            keywords=_opt_str_list(data, "keywords"),
        )


@dataclass
class CratesSearchResult:
    """A crate returned to callers of the crates search tool."""

    name: str
    description: str | None
    downloads: int
    latest_version: str
    categories: list[str] = field(default_factory=list)
    keywords: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "downloads": self.downloads,
            "latest_version": self.latest_version,
            "categories": list(self.categories),
            "keywords": list(self.keywords),
        }


@dataclass
class GitHubSearchResult:
    """A repository returned by the GitHub search tool."""

    full_name: str
    description: str | None
    html_url: str
    language: str | None
    stargazers_count: int
    updated_at: str

    @classmethod
    def from_dict(cls, data: Any) -> GitHubSearchResult:
        data = _mapping(data, "repository")
        return cls(
            full_name=_str(data, "full_name"),
            description=_opt_str(data, "description"),
            html_url=_str(data, "html_url"),
            language=_opt_str(data, "language"),
            stargazers_count=_uint(data, "stargazers_count"),
            updated_at=_str(data, "updated_at"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "full_name": self.full_name,
            "description": self.description,
            "html_url": self.html_url,
            "language": self.language,
            "stargazers_count": self.stargazers_count,
            "updated_at": self.updated_at,
        }


@dataclass
class OllamaMessage:
    """A role and content pair sent to the Ollama chat endpoint."""

    role: str
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "content": self.content}