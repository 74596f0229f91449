"""
Presence registry.

Maps a user id to the connection currently serving that user. The hub owns
the sockets; the registry only answers "where is this user" so that any
process instance can route a targeted event.
"""
import asyncio
import json
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Optional

from app.core.config import settings
from app.core.logger import get_logger

logger = get_logger("presence")

RelayHandler = Callable[[dict], Awaitable[None]]

@dataclass(frozen=True)
class PresenceLocation:
    instance_id: str
    connection_id: str

    def encode(self) -> str:
        return f"{self.instance_id}:{self.connection_id}"

    @classmethod
    def decode(cls, raw: str) -> "PresenceLocation":
        instance_id, _, connection_id = raw.rpartition(":")
        return cls(instance_id=instance_id, connection_id=connection_id)

class PresenceRegistry:
    async def register(self, user_id: str, location: PresenceLocation) -> None:
        raise NotImplementedError

    async def unregister(self, user_id: str, location: PresenceLocation) -> bool:
        raise NotImplementedError

    async def lookup(self, user_id: str) -> Optional[PresenceLocation]:
        raise NotImplementedError

    async def is_online(self, user_id: str) -> bool:
        return await self.lookup(user_id) is not None

    async def publish(self, instance_id: str, envelope: dict) -> bool:
        raise NotImplementedError

    async def listen(self, instance_id: str, handler: RelayHandler) -> None:
        """Feed envelopes published to ``instance_id`` into ``handler``."""
        raise NotImplementedError

class InMemoryPresenceRegistry(PresenceRegistry):
    """Single-process registry. Lost on restart, invisible to other instances."""

    def __init__(self):
        self._locations: Dict[str, PresenceLocation] = {}

    async def register(self, user_id: str, location: PresenceLocation) -> None:
        self._locations[user_id] = location

    async def unregister(self, user_id: str, location: PresenceLocation) -> bool:
        if self._locations.get(user_id) != location:
            return False
        del self._locations[user_id]
        return True

    async def lookup(self, user_id: str) -> Optional[PresenceLocation]:
        return self._locations.get(user_id)

    async def publish(self, instance_id: str, envelope: dict) -> bool:
        logger.warning(f"No relay available for instance {instance_id}; dropping {envelope.get('event')}")
        return False

    async def listen(self, instance_id: str, handler: RelayHandler) -> None:
        return None

class RedisPresenceRegistry(PresenceRegistry):
    def __init__(self, client=None):
        if client is None:
            from app.core.redis import redis_client
            client = redis_client
        self.client = client

    async def register(self, user_id: str, location: PresenceLocation) -> None:
        await self.client.set_presence(user_id, location.encode())

    async def unregister(self, user_id: str, location: PresenceLocation) -> bool:
        return await self.client.delete_presence_if(user_id, location.encode())

    async def lookup(self, user_id: str) -> Optional[PresenceLocation]:
        raw = await self.client.get_presence(user_id)
        return PresenceLocation.decode(raw) if raw else None

    async def publish(self, instance_id: str, envelope: dict) -> bool:
        receivers = await self.client.publish(f"relay:{instance_id}", json.dumps(envelope))
        return receivers > 0

    async def listen(self, instance_id: str, handler: RelayHandler) -> None:
        pubsub = self.client.pubsub()
        await pubsub.subscribe(f"relay:{instance_id}")
        logger.info(f"Listening for relayed events on relay:{instance_id}")
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    envelope = json.loads(message["data"])
                except (TypeError, ValueError):
                    logger.warning(f"Ignoring malformed relay payload: {message.get('data')!r}")
                    continue
                await handler(envelope)
        except asyncio.CancelledError:
            await pubsub.unsubscribe(f"relay:{instance_id}")
            raise

def build_presence_registry(backend: str = settings.PRESENCE_BACKEND) -> PresenceRegistry:
    if backend == "redis":
        return RedisPresenceRegistry()
    if backend == "memory":
        return InMemoryPresenceRegistry()
    raise ValueError(f"Unknown presence backend: {backend}")
