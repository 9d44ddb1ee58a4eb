"""Tool planning for incoming questions."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from rustadvisor.llm import LlmService
from rustadvisor.models import OllamaMessage, ToolPlan
from rustadvisor.prompts import planner_system_prompt


def _typed(kind: str) -> dict[str, Any]:
    return {"type": kind}


def _object(properties: dict[str, Any], required: Iterable[str]) -> dict[str, Any]:
    return {"type": "object", "properties": properties, "required": list(required)}


_ARGUMENTS_SCHEMA = _object({"query": _typed("string")}, ["query"])
_TOOL_CALL_SCHEMA = _object(
    {"name": _typed("string"), "arguments": _ARGUMENTS_SCHEMA},
    ["name", "arguments"],
)

PLAN_SCHEMA: dict[str, Any] = _object(
    {
        "need_tools": _typed("boolean"),
        "tools": {**_typed("array"), "items": _TOOL_CALL_SCHEMA},
    },
    ["need_tools", "tools"],
)


class PlannerService:
    """Produces a tool plan for a user message."""

    def __init__(self, llm: LlmService) -> None:
        self.llm = llm

    async def plan(self, user_message: str) -> ToolPlan:
        """Return the planner model's tool plan for ``user_message``."""
        messages = [
            OllamaMessage(role="system", content=planner_system_prompt()),
            OllamaMessage(role="user", content=f"User question: {user_message}"),
        ]
        data = await self.llm.chat_json(messages, PLAN_SCHEMA)
        return ToolPlan.from_dict(data)