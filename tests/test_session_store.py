import uuid

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from rustadvisor.errors import SerializationError, SessionNotFoundError, StorageError
from rustadvisor.models import ConversationMessage
from rustadvisor.session_store import SessionStore

TTL = 120


class FakePipeline:
    def __init__(self, server):
        self.server = server
        self.ops = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        self.ops.clear()

    def set(self, key, value, ex=None):
        self.ops.append(lambda: self.server.do_set(key, value, ex))
        return self

    def delete(self, *keys):
        self.ops.append(lambda: self.server.do_delete(*keys))
        return self

    def expire(self, key, seconds):
        self.ops.append(lambda: self.server.do_expire(key, seconds))
        return self

    def rpush(self, key, *values):
        self.ops.append(lambda: self.server.do_rpush(key, *values))
        return self

    async def execute(self):
        results = [op() for op in self.ops]
        self.ops.clear()
        return results


class FakeRedis:
    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.transactions = []

    def pipeline(self, transaction=True):
        self.transactions.append(transaction)
        return FakePipeline(self)

    def do_set(self, key, value, ex):
        self.data[key] = value.encode()
        self.ttls[key] = ex
        return True

    def do_delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    def do_expire(self, key, seconds):
        if key in self.data:
            self.ttls[key] = seconds
            return True
        return False

    def do_rpush(self, key, *values):
        self.data.setdefault(key, []).extend(v.encode() for v in values)
        return len(self.data[key])

    async def exists(self, *keys):
        return sum(1 for key in keys if key in self.data)

    async def lrange(self, key, start, end):
        values = self.data.get(key, [])
        return list(values[start:] if end == -1 else values[start : end + 1])


class BrokenRedis:
    async def exists(self, *keys):
        raise RedisConnectionError("down")


@pytest.fixture
def server():
    return FakeRedis()


@pytest.fixture
def store(server):
    return SessionStore(server, TTL)


@pytest.mark.asyncio
async def test_create_session_starts_empty(store, server):
    session_id = await store.create_session()
    session = await store.get_session(session_id)
    assert session.session_id == session_id
    assert session.messages == []
    assert server.ttls[f"session:{session_id}:meta"] == TTL
    assert all(server.transactions)


@pytest.mark.asyncio
async def test_get_unknown_session_raises(store):
    with pytest.raises(SessionNotFoundError):
        await store.get_session(uuid.uuid4())


@pytest.mark.asyncio
async def test_append_preserves_order(store):
    session_id = await store.create_session()
    first = ConversationMessage(role="user", content="hi")
    second = ConversationMessage(role="assistant", content="héllo")
    await store.append_message(session_id, first)
    await store.append_message(session_id, second)
    session = await store.get_session(session_id)
    assert session.messages == [first, second]


@pytest.mark.asyncio
async def test_append_stores_compact_json_and_refreshes_ttl(store, server):
    session_id = await store.create_session()
    await store.append_message(session_id, ConversationMessage(role="user", content="hi"))
    messages_key = f"session:{session_id}:messages"
    assert server.data[messages_key] == [b'{"role":"user","content":"hi"}']
    assert server.ttls[messages_key] == TTL


@pytest.mark.asyncio
async def test_append_to_unknown_session_raises(store):
    with pytest.raises(SessionNotFoundError):
        await store.append_message(uuid.uuid4(), ConversationMessage(role="user", content="x"))


@pytest.mark.asyncio
async def test_reset_clears_history(store):
    session_id = await store.create_session()
    await store.append_message(session_id, ConversationMessage(role="user", content="hi"))
    await store.reset_session(session_id)
    session = await store.get_session(session_id)
    assert session.messages == []


@pytest.mark.asyncio
async def test_reset_unknown_session_raises(store):
    with pytest.raises(SessionNotFoundError):
        await store.reset_session(uuid.uuid4())


@pytest.mark.asyncio
async def test_corrupt_history_raises_serialization_error(store, server):
    session_id = await store.create_session()
    server.data[f"session:{session_id}:messages"] = [b"not json"]
    with pytest.raises(SerializationError):
        await store.get_session(session_id)


@pytest.mark.asyncio
async def test_redis_failure_raises_storage_error():
    store = SessionStore(BrokenRedis(), TTL)
    with pytest.raises(StorageError):
        await store.get_session(uuid.uuid4())
    with pytest.raises(StorageError):
        await store.append_message(uuid.uuid4(), ConversationMessage(role="user", content="x"))