"""Runs a request end to end: plan, filter, call tools, answer, record."""

from __future__ import annotations

import asyncio
import logging
import time
from uuid import UUID

from rustadvisor import policy
from rustadvisor.crates import CratesTool
from rustadvisor.errors import BackendError
from rustadvisor.github import GitHubTool
from rustadvisor.local_data import LocalKnowledgeTool
from rustadvisor.models import (
    ConversationMessage,
    ExecutionResponse,
    ToolCall,
    ToolExecutionResult,
    ToolPlan,
)
from rustadvisor.planner import PlannerService
from rustadvisor.session_store import SessionStore
from rustadvisor.synthesizer import SynthesizerService

logger = logging.getLogger(__name__)

TOOL_RESULT_LIMIT = 5


def describe_tool_activity(execution: ExecutionResponse) -> str:
    """Summarise which tools ran and whether each succeeded."""
    parts = []
    for tool in execution.plan.tools:
        result = next((r for r in execution.results if r.tool_name == tool.name), None)
        if result is None:
            status = "unknown"
        else:
            status = "ok" if result.success else "failed"
        parts.append(f"{tool.name}({tool.arguments.query}) [{status}]")
    return f"Used tools: {', '.join(parts)}"


class OrchestratorService:
    """Coordinates the planner, the tools, the synthesizer and session history."""

    def __init__(
        self,
        planner: PlannerService,
        synthesizer: SynthesizerService,
        local_tool: LocalKnowledgeTool,
        github_tool: GitHubTool,
        crates_tool: CratesTool,
        sessions: SessionStore,
    ) -> None:
        self.planner = planner
        self.synthesizer = synthesizer
        self.local_tool = local_tool
        self.github_tool = github_tool
        self.crates_tool = crates_tool
        self.sessions = sessions

    async def execute(self, user_message: str) -> ExecutionResponse:
        """Plan the tools for ``user_message``, apply the policy and run them."""
        raw_plan = policy.fast_path_plan(user_message)
        if raw_plan is not None:
            logger.info("using fast-path planner for request")
        else:
            started = time.perf_counter()
            raw_plan = await self.planner.plan(user_message)
            logger.info("raw planner output: %r", raw_plan)
            logger.info("planner took %.3fs", time.perf_counter() - started)

        started = time.perf_counter()
        plan = policy.apply_tool_policy(user_message, raw_plan)
        logger.info("filtered planner output: %r", plan)
        logger.info("policy filtering took %.3fs", time.perf_counter() - started)

        results = await self._execute_tools(plan)
        return ExecutionResponse(plan=plan, results=results)

    async def handle_chat(self, session_id: UUID, user_message: str) -> tuple[str, list[str]]:
        """Answer ``user_message`` in a session; return the answer and the tools used."""
        started = time.perf_counter()
        await self.sessions.append_message(
            session_id, ConversationMessage(role="user", content=user_message)
        )

        canned = policy.fast_path_response(user_message)
        if canned is not None:
            await self.sessions.append_message(
                session_id, ConversationMessage(role="assistant", content=canned)
            )
            logger.info("handle_chat took %.3fs", time.perf_counter() - started)
            return canned, []

        execution = await self.execute(user_message)
        session = await self.sessions.get_session(session_id)

        if execution.plan.tools:
            await self.sessions.append_message(
                session_id,
                ConversationMessage(role="tool", content=describe_tool_activity(execution)),
            )

        synth_started = time.perf_counter()
        answer = await self.synthesizer.synthesize(user_message, session.messages, execution)
        logger.info("synthesizer took %.3fs", time.perf_counter() - synth_started)

        await self.sessions.append_message(
            session_id, ConversationMessage(role="assistant", content=answer)
        )
        logger.info("handle_chat took %.3fs", time.perf_counter() - started)
        return answer, [tool.name for tool in execution.plan.tools]

    async def _execute_tools(self, plan: ToolPlan) -> list[ToolExecutionResult]:
        tools = plan.tools
        if len(tools) == 2:
            started = time.perf_counter()
            results = list(await asyncio.gather(*(self.execute_tool(t) for t in tools)))
            logger.info(
                "tools %s and %s took %.3fs (successes: %s, %s)",
                tools[0].name,
                tools[1].name,
                time.perf_counter() - started,
                results[0].success,
                results[1].success,
            )
            return results

        results = []
        for tool in tools:
            started = time.perf_counter()
            result = await self.execute_tool(tool)
            logger.info(
                "tool %s took %.3fs (success=%s)",
                tool.name,
                time.perf_counter() - started,
                result.success,
            )
            results.append(result)
        return results

    async def execute_tool(self, tool_call: ToolCall) -> ToolExecutionResult:
        """Run one tool; failures are reported in the result, not raised."""
        name = tool_call.name
        query = tool_call.arguments.query
        try:
            if name == "local_knowledge_search":
                found = self.local_tool.search(query, TOOL_RESULT_LIMIT)
            elif name == "github_search":
                found = await self.github_tool.search(query, TOOL_RESULT_LIMIT)
            elif name == "crates_search":
                found = await self.crates_tool.search(query, TOOL_RESULT_LIMIT)
            else:
                logger.warning("unknown tool requested by planner: %s", name)
                return ToolExecutionResult.failed(name, "unknown tool")
        except BackendError as exc:
            logger.warning("tool %s failed: %r", name, exc)
            return ToolExecutionResult.failed(name, str(exc))
        return ToolExecutionResult.succeeded(name, [item.to_dict() for item in found])