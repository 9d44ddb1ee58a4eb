import asyncio
import uuid

import pytest

from rustadvisor.errors import HttpClientError, SessionNotFoundError
from rustadvisor.local_data import LocalKnowledgeTool
from rustadvisor.models import (
    ConversationMessage,
    CratesSearchResult,
    ExecutionResponse,
    GitHubSearchResult,
    KnowledgeItem,
    SessionState,
    ToolArguments,
    ToolCall,
    ToolExecutionResult,
    ToolPlan,
)
from rustadvisor.orchestrator import OrchestratorService, describe_tool_activity
from rustadvisor.policy import fast_path_response


def _call(name, query):
    return ToolCall(name=name, arguments=ToolArguments(query=query))


class FakePlanner:
    def __init__(self, plan):
        self.result = plan
        self.calls = []

    async def plan(self, user_message):
        self.calls.append(user_message)
        return self.result


class FakeSynthesizer:
    def __init__(self):
        self.calls = []

    async def synthesize(self, user_message, history, execution):
        self.calls.append((user_message, list(history), execution))
        return "synthesized"


class FakeGitHub:
    def __init__(self, error=None, wait_for=None):
        self.error = error
        self.wait_for = wait_for
        self.queries = []

    async def search(self, query, limit=5):
        self.queries.append(query)
        if self.wait_for is not None:
            await asyncio.wait_for(self.wait_for.wait(), timeout=1)
        if self.error is not None:
            raise self.error
        return [
            GitHubSearchResult(
                full_name="owner/repo",
                description=None,
                html_url="https://example.com/owner/repo",
                language="Rust",
                stargazers_count=1,
                updated_at="2024-01-01T00:00:00Z",
            )
        ]


class FakeCrates:
    def __init__(self, signal=None):
        self.signal = signal
        self.queries = []

    async def search(self, query, limit=5):
        self.queries.append(query)
        if self.signal is not None:
            self.signal.set()
        return [CratesSearchResult(name="axum", description=None, downloads=1, latest_version="0.8.0")]


class FakeSessions:
    def __init__(self):
        self.sessions = {}

    def create(self):
        session_id = uuid.uuid4()
        self.sessions[session_id] = []
        return session_id

    async def append_message(self, session_id, message):
        if session_id not in self.sessions:
            raise SessionNotFoundError()
        self.sessions[session_id].append(message)

    async def get_session(self, session_id):
        if session_id not in self.sessions:
            raise SessionNotFoundError()
        return SessionState(session_id=session_id, messages=list(self.sessions[session_id]))


def _local_tool():
    item = KnowledgeItem(
        id="axum",
        title="Axum",
        category="web framework",
        tags=["rust", "web"],
        summary="Ergonomic web framework",
        use_cases=["apis"],
        pros=["tower"],
        cons=["young"],
        related=["tokio"],
        source="notes",
        collected_at="2024-01-01",
    )
    return LocalKnowledgeTool([item])


def _service(plan=None, github=None, crates=None, sessions=None, synthesizer=None):
    return OrchestratorService(
        planner=FakePlanner(plan or ToolPlan(need_tools=False, tools=[])),
        synthesizer=synthesizer or FakeSynthesizer(),
        local_tool=_local_tool(),
        github_tool=github or FakeGitHub(),
        crates_tool=crates or FakeCrates(),
        sessions=sessions or FakeSessions(),
    )


def test_describe_tool_activity_reports_statuses():
    execution = ExecutionResponse(
        plan=ToolPlan(
            need_tools=True,
            tools=[_call("github_search", "q1"), _call("crates_search", "q2"), _call("other", "q3")],
        ),
        results=[
            ToolExecutionResult.succeeded("github_search", []),
            ToolExecutionResult.failed("crates_search", "boom"),
        ],
    )
    assert describe_tool_activity(execution) == (
        "Used tools: github_search(q1) [ok], crates_search(q2) [failed], other(q3) [unknown]"
    )


@pytest.mark.asyncio
async def test_smalltalk_skips_planner():
    service = _service()
    execution = await service.execute("hello")
    assert execution.plan.need_tools is False
    assert execution.results == []
    assert service.planner.calls == []


@pytest.mark.asyncio
async def test_execute_filters_unknown_tools_and_runs_github():
    plan = ToolPlan(need_tools=True, tools=[_call("github_search", "rust web"), _call("shell", "ls")])
    github = FakeGitHub()
    service = _service(plan=plan, github=github)
    execution = await service.execute("find rust web repos")
    assert [t.name for t in execution.plan.tools] == ["github_search"]
    assert github.queries == [execution.plan.tools[0].arguments.query]
    assert execution.results[0].success is True
    assert execution.results[0].payload[0]["full_name"] == "owner/repo"


@pytest.mark.asyncio
async def test_two_tools_run_concurrently():
    signal = asyncio.Event()
    plan = ToolPlan(
        need_tools=True,
        tools=[_call("github_search", "rust axum"), _call("crates_search", "rust axum")],
    )
    service = _service(plan=plan, github=FakeGitHub(wait_for=signal), crates=FakeCrates(signal))
    execution = await service.execute("find rust axum repos and crates")
    assert [r.tool_name for r in execution.results] == ["github_search", "crates_search"]
    assert all(r.success for r in execution.results)


@pytest.mark.asyncio
async def test_local_tool_result_payload():
    service = _service()
    result = await service.execute_tool(_call("local_knowledge_search", "axum"))
    assert result.success is True
    assert result.payload == [r.to_dict() for r in _local_tool().search("axum", 5)]


@pytest.mark.asyncio
async def test_failing_tool_is_reported():
    error = HttpClientError("boom")
    service = _service(github=FakeGitHub(error=error))
    result = await service.execute_tool(_call("github_search", "rust"))
    assert result.success is False
    assert result.error == str(error)


@pytest.mark.asyncio
async def test_unknown_tool_fails():
    result = await _service().execute_tool(_call("shell", "ls"))
    assert result.success is False
    assert result.error == "unknown tool"


@pytest.mark.asyncio
async def test_handle_chat_greeting_uses_canned_answer():
    sessions = FakeSessions()
    session_id = sessions.create()
    service = _service(sessions=sessions)
    answer, used = await service.handle_chat(session_id, "hello")
    assert answer == fast_path_response("hello")
    assert used == []
    assert [m.role for m in sessions.sessions[session_id]] == ["user", "assistant"]
    assert service.synthesizer.calls == []


@pytest.mark.asyncio
async def test_handle_chat_records_tool_activity():
    sessions = FakeSessions()
    session_id = sessions.create()
    plan = ToolPlan(need_tools=True, tools=[_call("github_search", "rust web")])
    service = _service(plan=plan, sessions=sessions)
    answer, used = await service.handle_chat(session_id, "find rust web repos")
    assert answer == "synthesized"
    assert used == ["github_search"]
    stored = sessions.sessions[session_id]
    assert [m.role for m in stored] == ["user", "tool", "assistant"]
    assert stored[1].content.startswith("Used tools: github_search(")
    assert stored[2] == ConversationMessage(role="assistant", content="synthesized")
    _, history, _ = service.synthesizer.calls[0]
    assert [m.role for m in history] == ["user"]


@pytest.mark.asyncio
async def test_handle_chat_without_tools_has_no_tool_message():
    sessions = FakeSessions()
    session_id = sessions.create()
    service = _service(sessions=sessions)
    _, used = await service.handle_chat(session_id, "explain rust lifetimes")
    assert used == []
    assert [m.role for m in sessions.sessions[session_id]] == ["user", "assistant"]


@pytest.mark.asyncio
async def test_handle_chat_unknown_session_raises():
    with pytest.raises(SessionNotFoundError):
        await _service().handle_chat(uuid.uuid4(), "hello")