"""Redis implementation of the key-value and counter store."""

from dataclasses import dataclass

from redis.asyncio import Redis

from item_detection.services.cache import KeyValueStore


@dataclass
class RedisStore(KeyValueStore):
    """Redis-backed store; counters rely on server-side INCRBY atomicity."""

    client: Redis

    @classmethod
    def create(cls, url: str) -> "RedisStore":
        """Create a store from a redis:// URL."""
        return cls(client=Redis.from_url(url, decode_responses=True))

    async def get(self, key: str) -> str | None:
        """Return the value stored at key."""
        value = await self.client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store a value with a TTL."""
        await self.client.set(key, value, ex=ttl_seconds)

    async def delete(self, key: str) -> None:
        """Remove a key."""
        await self.client.delete(key)

    async def exists(self, key: str) -> bool:
        """Return True if the key exists."""
        return bool(await self.client.exists(key))

    async def increment(self, key: str, amount: int) -> int:
        """Atomically add to a counter."""
        return int(await self.client.incrby(key, amount))

    async def expire(self, key: str, ttl_seconds: int) -> None:
        """Set a TTL on a key."""
        await self.client.expire(key, ttl_seconds)

    async def close(self) -> None:
        """Close the connection pool."""
        await self.client.aclose()
