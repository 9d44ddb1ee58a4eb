"""Conversation sessions kept in Redis with a sliding expiry."""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID, uuid4

from redis.asyncio import Redis
from redis.exceptions import RedisError

from rustadvisor.errors import SerializationError, SessionNotFoundError, StorageError
from rustadvisor.models import ConversationMessage, SessionState


@contextmanager
def _storage_errors() -> Iterator[None]:
    try:
        yield
    except RedisError as exc:
        raise StorageError(exc) from exc


def _meta_key(session_id: UUID) -> str:
    return f"session:{session_id}:meta"


def _messages_key(session_id: UUID) -> str:
    return f"session:{session_id}:messages"


class SessionStore:
    """Creates, reads, resets and extends sessions; ``ttl`` is in seconds."""

    def __init__(self, client: Redis, ttl: int) -> None:
        self.client = client
        self.ttl = ttl

    async def create_session(self) -> UUID:
        """Start a new, empty session and return its id."""
        session_id = uuid4()
        with _storage_errors():
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.set(_meta_key(session_id), "1", ex=self.ttl)
                pipe.delete(_messages_key(session_id))
                await pipe.execute()
        return session_id

    async def get_session(self, session_id: UUID) -> SessionState:
        """Return the session with its full history."""
        with _storage_errors():
            if not await self.client.exists(_meta_key(session_id)):
                raise SessionNotFoundError()
            values = await self.client.lrange(_messages_key(session_id), 0, -1)
        try:
            messages = [ConversationMessage.from_dict(json.loads(raw)) for raw in values]
        except ValueError as exc:
            raise SerializationError(exc) from exc
        return SessionState(session_id=session_id, messages=messages)

    async def reset_session(self, session_id: UUID) -> None:
        """Drop the history of an existing session and refresh its expiry."""
        await self._ensure_exists(session_id)
        with _storage_errors():
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.delete(_messages_key(session_id))
                pipe.expire(_meta_key(session_id), self.ttl)
                await pipe.execute()

    async def append_message(self, session_id: UUID, message: ConversationMessage) -> None:
        """Add ``message`` to an existing session and refresh its expiry."""
        await self._ensure_exists(session_id)
        value = json.dumps(message.to_dict(), separators=(",", ":"), ensure_ascii=False)
        messages_key = _messages_key(session_id)
        with _storage_errors():
            async with self.client.pipeline(transaction=True) as pipe:
                pipe.rpush(messages_key, value)
                pipe.expire(messages_key, self.ttl)
                pipe.expire(_meta_key(session_id), self.ttl)
                await pipe.execute()

    async def _ensure_exists(self, session_id: UUID) -> None:
        with _storage_errors():
            exists = await self.client.exists(_meta_key(session_id))
        if not exists:
            raise SessionNotFoundError()