"""HTTP application: shared state, routes and the service entry point."""

import argparse
import logging
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

import uvicorn
from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
from redis.asyncio import Redis

from rustadvisor.config import Config
from rustadvisor.crates import CratesTool
from rustadvisor.errors import BackendError, SessionNotFoundError
from rustadvisor.github import GitHubTool
from rustadvisor.llm import LlmService
from rustadvisor.local_data import LocalKnowledgeTool
from rustadvisor.orchestrator import OrchestratorService
from rustadvisor.planner import PlannerService
from rustadvisor.session_store import SessionStore
from rustadvisor.synthesizer import SynthesizerService

logger = logging.getLogger(__name__)

APP_NAME = "ai-rust-agent"
DEFAULT_KNOWLEDGE_PATH = "/app/data/rust_tools.json"
SEARCH_LIMIT = 5


@dataclass
class AppState:
    """Services shared by every request handler."""

    app_name: str
    sessions: SessionStore
    llm: LlmService
    planner: PlannerService
    synthesizer: SynthesizerService
    local_tool: LocalKnowledgeTool
    github_tool: GitHubTool
    crates_tool: CratesTool
    orchestrator: OrchestratorService

    async def aclose(self) -> None:
        """Release the HTTP clients and the storage connection."""
        for close in (
            self.llm.aclose,
            self.planner.llm.aclose,
            self.synthesizer.llm.aclose,
            self.github_tool.aclose,
            self.crates_tool.aclose,
        ):
            await close()
        await self.sessions.client.aclose()


class _ChatRequest(BaseModel):
    session_id: UUID
    message: str


class _MessageRequest(BaseModel):
    message: str


class _QueryRequest(BaseModel):
    query: str


class _PromptRequest(BaseModel):
    prompt: str


def build_state(config: Config, knowledge_path: str = DEFAULT_KNOWLEDGE_PATH) -> AppState:
    """Wire every service from ``config`` and the knowledge file at ``knowledge_path``."""
    local_tool = LocalKnowledgeTool.load_from_file(knowledge_path)
    sessions = SessionStore(Redis.from_url(config.redis_url), config.session_ttl)

    def llm_for(model: str, think: bool) -> LlmService:
        return LlmService(config.ollama_url, model, config.ollama_keep_alive, think)

    llm = llm_for(config.ollama_synthesizer_model, config.ollama_synthesizer_thinking)
    planner = PlannerService(
        llm_for(config.ollama_planner_model, config.ollama_planner_thinking)
    )
    synthesizer = SynthesizerService(
        llm_for(config.ollama_synthesizer_model, config.ollama_synthesizer_thinking)
    )
    github_tool = GitHubTool(config.github_token)
    crates_tool = CratesTool(
        config.crates_api_base_url,
        config.crates_api_user_agent,
        config.crates_api_rate_limit_ms / 1000,
    )
    orchestrator = OrchestratorService(
        planner, synthesizer, local_tool, github_tool, crates_tool, sessions
    )
    return AppState(
        app_name=APP_NAME,
        sessions=sessions,
        llm=llm,
        planner=planner,
        synthesizer=synthesizer,
        local_tool=local_tool,
        github_tool=github_tool,
        crates_tool=crates_tool,
        orchestrator=orchestrator,
    )


def _internal_error(handler: str, exc: Exception) -> HTTPException:
    logger.error("%s failed: %r", handler, exc)
    return HTTPException(status_code=500)


def _session_error(exc: BackendError) -> HTTPException:
    if isinstance(exc, SessionNotFoundError):
        return HTTPException(status_code=404)
    return HTTPException(status_code=500)


def _parse_session_id(raw: str) -> UUID:
    try:
        return UUID(raw)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=f"invalid session id: {raw}") from exc


def _dicts(items: Sequence[Any]) -> list[dict[str, Any]]:
    return [item.to_dict() for item in items]


def create_app(state: AppState) -> FastAPI:
    """Build the web application serving ``state``."""

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        try:
            yield
        finally:
            await state.aclose()

    app = FastAPI(title=state.app_name, lifespan=lifespan)
    app.state.backend = state

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "OK"}

    @app.post("/sessions")
    async def create_session() -> dict[str, str]:
        try:
            session_id = await state.sessions.create_session()
        except BackendError as exc:
            raise HTTPException(status_code=500) from exc
        return {"session_id": str(session_id)}

    @app.get("/history/{session_id}")
    async def get_history(session_id: str) -> dict[str, Any]:
        parsed = _parse_session_id(session_id)
        try:
            session = await state.sessions.get_session(parsed)
        except BackendError as exc:
            raise _session_error(exc) from exc
        return {
            "session_id": str(session.session_id),
            "messages": _dicts(session.messages),
        }

    @app.post("/reset/{session_id}")
    async def reset_session(session_id: str) -> dict[str, str]:
        parsed = _parse_session_id(session_id)
        try:
            await state.sessions.reset_session(parsed)
        except BackendError as exc:
            raise _session_error(exc) from exc
        return {"status": "ok"}

    @app.post("/debug/llm")
    async def debug_llm(req: _PromptRequest) -> dict[str, str]:
        try:
            answer = await state.llm.simple_user_prompt(req.prompt)
        except BackendError as exc:
            raise _internal_error("debug_llm_handler", exc) from exc
        return {"answer": answer}

    @app.post("/debug/plan")
    async def debug_plan(req: _MessageRequest) -> dict[str, Any]:
        try:
            plan = await state.planner.plan(req.message)
        except BackendError as exc:
            raise _internal_error("debug_plan_handler", exc) from exc
        return {"plan": plan.to_dict()}

    @app.post("/debug/local-search")
    async def debug_local_search(req: _QueryRequest) -> dict[str, Any]:
        return {"results": _dicts(state.local_tool.search(req.query, SEARCH_LIMIT))}

    @app.post("/debug/github-search")
    async def debug_github_search(req: _QueryRequest) -> dict[str, Any]:
        try:
            results = await state.github_tool.search(req.query, SEARCH_LIMIT)
        except BackendError as exc:
            raise _internal_error("debug_github_search_handler", exc) from exc
        return {"results": _dicts(results)}

    @app.post("/debug/crates-search")
    async def debug_crates_search(req: _QueryRequest) -> dict[str, Any]:
        try:
            results = await state.crates_tool.search(req.query, SEARCH_LIMIT)
        except BackendError as exc:
            raise _internal_error("debug_crates_search_handler", exc) from exc
        return {"results": _dicts(results)}

    @app.post("/debug/execute")
    async def debug_execute(req: _MessageRequest) -> dict[str, Any]:
        try:
            execution = await state.orchestrator.execute(req.message)
        except BackendError as exc:
            raise _internal_error("debug_execute_handler", exc) from exc
        return {"execution": execution.to_dict()}

    @app.post("/chat")
    async def chat(req: _ChatRequest) -> dict[str, Any]:
        try:
            answer, used_tools = await state.orchestrator.handle_chat(
                req.session_id, req.message
            )
        except BackendError as exc:
            raise _internal_error("chat_handler", exc) from exc
        return {"answer": answer, "used_tools": used_tools}

    return app


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Load the configuration and serve the application until interrupted."""
    parser = argparse.ArgumentParser(
        prog="rustadvisor",
        description="Serve the research assistant for Rust backend tooling.",
    )
    parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    config = Config.from_env()
    state = build_state(config)
    app = create_app(state)

    logger.info("listening on %s:%s", config.host, config.port)
    uvicorn.run(app, host=config.host, port=config.port)