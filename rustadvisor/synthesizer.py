"""Answer synthesis from collected tool results and recent conversation."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any

from rustadvisor.errors import SerializationError
from rustadvisor.llm import LlmService
from rustadvisor.models import (
    ConversationMessage,
    ExecutionResponse,
    OllamaMessage,
    ToolExecutionResult,
)
from rustadvisor.prompts import synthesizer_system_prompt

SYNTHESIZER_HISTORY_LIMIT = 6
HISTORY_MESSAGE_LIMIT = 300

TOOLS_FAILED_ANSWER = (
    "I couldn't complete the full lookup because the requested tools failed. "
    "Please try again in a moment."
)

_INSTRUCTIONS = (
    "- Use only the information present in the tool results.",
    "- Some tools may have failed. If so, explicitly present a partial answer based on "
    "the successful tools.",
    "- Never claim a failed tool returned no data; say the tool failed or was unavailable.",
    "- If evidence is limited, say that clearly.",
    "- Do not invent scores or rankings.",
    "- Do not mention repositories unless they are present in the tool results.",
    "- Do not mention crates unless they are present in the tool results.",
    "- If crates_search results are present, recommend crates by role or use case.",
    "- If the user asked for crates or libraries, the answer should primarily recommend "
    "crates from crates_search results.",
    "- If the user asked for libraries/crates, do not switch to frameworks, runtimes, or "
    "databases unless the tool results explicitly support that and the user asked for them.",
    "- Keep stable conceptual guidance separate from concrete crate suggestions.",
    "- When recommending crates, prefer grouping them by role such as config, secrets, "
    "tracing, metrics, logging, orm, or database access.",
    "- Keep the answer compact and practical.",
    "- Prefer 4 short paragraphs or fewer.",
    "- Avoid repeating the user question or restating the tool names.",
)

_INDENT = " " * 8


def _to_json(value: Any) -> str:
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, sort_keys=True)
    except (TypeError, ValueError) as exc:
        raise SerializationError(exc) from exc


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _field(item: Any, key: str) -> Any:
    return item.get(key) if isinstance(item, dict) else None


def _trim(value: Any, limit: int) -> list[Any]:
    return list(_as_list(value)[:limit])


def _local_items(payload: Any) -> list[dict[str, Any]]:
    return [
        {
            "id": _field(item, "id"),
            "title": _field(item, "title"),
            "summary": _field(item, "summary"),
            "pros": _trim(_field(item, "pros"), 2),
            "cons": _trim(_field(item, "cons"), 2),
        }
        for item in _as_list(payload)[:4]
    ]


def _github_items(payload: Any) -> list[dict[str, Any]]:
    keys = ("full_name", "description", "language", "stargazers_count", "updated_at")
    return [{key: _field(item, key) for key in keys} for item in _as_list(payload)[:4]]


def _crates_items(payload: Any) -> list[dict[str, Any]]:
    return [
        {
            "name": _field(item, "name"),
            "description": _field(item, "description"),
            "downloads": _field(item, "downloads"),
            "latest_version": _field(item, "latest_version"),
            "categories": _trim(_field(item, "categories"), 3),
            "keywords": _trim(_field(item, "keywords"), 4),
        }
        for item in _as_list(payload)[:5]
    ]


def _compact_result(result: ToolExecutionResult) -> dict[str, Any]:
    if not result.success:
        return {"tool": result.tool_name, "status": "failed", "error": result.error}
    compact: dict[str, Any] = {"tool": result.tool_name, "status": "ok"}
    if result.tool_name == "local_knowledge_search":
        compact["items"] = _local_items(result.payload)
    elif result.tool_name == "github_search":
        compact["repos"] = _github_items(result.payload)
    elif result.tool_name == "crates_search":
        compact["crates"] = _crates_items(result.payload)
    else:
        compact["payload"] = result.payload
    return compact


def compact_tool_results(execution: ExecutionResponse) -> dict[str, Any]:
    """Reduce tool results to the fields the synthesizer needs."""
    return {"results": [_compact_result(result) for result in execution.results]}


def compact_history(history: Sequence[ConversationMessage]) -> list[dict[str, str]]:
    """Keep the latest user and assistant messages, each truncated."""
    relevant = [m for m in history if m.role in ("user", "assistant")]
    recent = relevant[-SYNTHESIZER_HISTORY_LIMIT:] if relevant else []
    return [
        {"role": m.role, "content": truncate_message(m.content, HISTORY_MESSAGE_LIMIT)}
        for m in recent
    ]


def truncate_message(value: str, limit: int) -> str:
    """Cut ``value`` to ``limit`` characters, marking the cut with an ellipsis."""
    if len(value) > limit:
        return f"{value[:limit]}..."
    return value


def _user_content(user_message: str, history_json: str, used_tools: str, results_json: str) -> str:
    lines = [
        "User question:",
        f"{_INDENT}{user_message}",
        "",
        f"{_INDENT}Recent conversation:",
        f"{_INDENT}{history_json}",
        "",
        f"{_INDENT}Used tools:",
        f"{_INDENT}{used_tools}",
        "",
        f"{_INDENT}Tool results:",
        f"{_INDENT}{results_json}",
        "",
        f"{_INDENT}Instructions:",
        *(f"{_INDENT}{line}" for line in _INSTRUCTIONS),
        "",
        _INDENT,
    ]
    return "\n".join(lines)


class SynthesizerService:
    """Writes the answer to a question from the collected tool results."""

    def __init__(self, llm: LlmService) -> None:
        self.llm = llm

    async def synthesize(
        self,
        user_message: str,
        history: Sequence[ConversationMessage],
        execution: ExecutionResponse,
    ) -> str:
        """Return the answer, or a fixed apology when no tool succeeded."""
        tools = execution.plan.tools
        used_tools = (
            ", ".join(f"{t.name}({t.arguments.query})" for t in tools) if tools else "none"
        )
        results_json = _to_json(compact_tool_results(execution))
        history_json = _to_json(compact_history(history))

        content = _user_content(user_message, history_json, used_tools, results_json)

        if not any(result.success for result in execution.results):
            return TOOLS_FAILED_ANSWER

        messages = [
            OllamaMessage(role="system", content=synthesizer_system_prompt()),
            OllamaMessage(role="user", content=content),
        ]
        return await self.llm.chat(messages)