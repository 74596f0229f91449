import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.presence import (
    InMemoryPresenceRegistry,
    PresenceLocation,
    RedisPresenceRegistry,
    build_presence_registry,
)
from app.core.redis import RedisClient

def test_location_encoding():
    location = PresenceLocation("node-1", "abc123")
    assert location.encode() == "node-1:abc123"
    assert PresenceLocation.decode("node-1:abc123") == location

@pytest.mark.asyncio
async def test_memory_registry_only_removes_matching_connection():
    registry = InMemoryPresenceRegistry()
    old = PresenceLocation("node-1", "old")
    new = PresenceLocation("node-1", "new")

    await registry.register("user-1", old)
    await registry.register("user-1", new)
    assert await registry.unregister("user-1", old) is False
    assert await registry.lookup("user-1") == new

    assert await registry.unregister("user-1", new) is True
    assert await registry.is_online("user-1") is False
    assert await registry.publish("node-2", {"payload": {}}) is False

@pytest.mark.asyncio
async def test_redis_registry_uses_presence_keys_and_relay_channel():
    client = MagicMock()
    client.set_presence = AsyncMock()
    client.get_presence = AsyncMock(return_value="node-2:conn-9")
    client.delete_presence_if = AsyncMock(return_value=True)
    client.publish = AsyncMock(return_value=1)
    registry = RedisPresenceRegistry(client=client)
    location = PresenceLocation("node-1", "conn-1")

    await registry.register("user-1", location)
    client.set_presence.assert_awaited_once_with("user-1", "node-1:conn-1")

    assert await registry.lookup("user-2") == PresenceLocation("node-2", "conn-9")
    assert await registry.unregister("user-1", location) is True
    client.delete_presence_if.assert_awaited_once_with("user-1", "node-1:conn-1")

    envelope = {"connection_id": "conn-9", "payload": {"event": "chat-typing", "data": {}}}
    assert await registry.publish("node-2", envelope) is True
    channel, message = client.publish.await_args.args
    assert channel == "relay:node-2"
    assert json.loads(message) == envelope

@pytest.mark.asyncio
async def test_redis_registry_publish_without_listener():
    client = MagicMock()
    client.publish = AsyncMock(return_value=0)
    assert await RedisPresenceRegistry(client=client).publish("gone", {}) is False

@pytest.mark.asyncio
async def test_redis_registry_listen_skips_bad_payloads():
    envelope = {"connection_id": "conn-1", "payload": {"event": "call-ended", "data": {}}}

    async def messages():
        yield {"type": "subscribe", "data": 1}
        yield {"type": "message", "data": "{not json"}
        yield {"type": "message", "data": json.dumps(envelope)}

    pubsub = MagicMock()
    pubsub.subscribe = AsyncMock()
    pubsub.listen = messages
    client = MagicMock()
    client.pubsub.return_value = pubsub

    received = []

    async def handler(message):
        received.append(message)

    await RedisPresenceRegistry(client=client).listen("node-1", handler)
    pubsub.subscribe.assert_awaited_once_with("relay:node-1")
    assert received == [envelope]

@pytest.mark.asyncio
async def test_redis_client_compare_and_delete():
    client = RedisClient(url="redis://localhost:6379/0")
    client.redis = MagicMock()
    client.redis.eval = AsyncMock(return_value=0)
    client.redis.get = AsyncMock(return_value="node-1:conn-1")

    assert await client.delete_presence_if("user-1", "node-1:other") is False
    args = client.redis.eval.await_args.args
    assert args[1:] == (1, "presence:user-1", "node-1:other")
    assert await client.get_presence("user-1") == "node-1:conn-1"
    client.redis.get.assert_awaited_once_with("presence:user-1")

def test_build_presence_registry():
    assert isinstance(build_presence_registry("memory"), InMemoryPresenceRegistry)
    with pytest.raises(ValueError):
        build_presence_registry("carrier-pigeon")
