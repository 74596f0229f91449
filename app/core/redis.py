import redis.asyncio as redis
from app.core.config import settings

class RedisClient:
    """Thin wrapper over the shared Redis used for presence and relay."""

    def __init__(self, url: str = settings.REDIS_URL):
        self.redis = redis.from_url(url, encoding="utf-8", decode_responses=True)

    async def set_presence(self, user_id: str, location: str):
        await self.redis.set(f"presence:{user_id}", location)

    async def get_presence(self, user_id: str) -> str | None:
        return await self.redis.get(f"presence:{user_id}")

    async def delete_presence_if(self, user_id: str, location: str) -> bool:
        # Compare-and-delete so a stale socket cannot evict a newer one
        script = (
            "if redis.call('get', KEYS[1]) == ARGV[1] then "
            "return redis.call('del', KEYS[1]) else return 0 end"
        )
        removed = await self.redis.eval(script, 1, f"presence:{user_id}", location)
        return bool(removed)

    async def publish(self, channel: str, message: str) -> int:
        return await self.redis.publish(channel, message)

    def pubsub(self):
        return self.redis.pubsub()

    async def close(self):
        await self.redis.close()

redis_client = RedisClient()
