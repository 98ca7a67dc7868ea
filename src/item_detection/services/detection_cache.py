"""Cache for AI detection results."""

import hashlib
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from pydantic import ValidationError

from item_detection.domain.detection import DetectionResult
from item_detection.services.cache import KeyValueStore

CACHE_KEY_PREFIX = "ai:detection:"

_logger = logging.getLogger(__name__)


def build_cache_key(image_urls: Iterable[str]) -> str:
    """Return an order-independent fingerprint for a set of image references."""
    combined = "|".join(sorted(image_urls))
    digest = hashlib.sha256(combined.encode("utf-8")).hexdigest()
    return f"{CACHE_KEY_PREFIX}{digest}"


@dataclass
class DetectionCacheService:
    """Stores detection results keyed by image fingerprint.

    The cache is an optimization: read failures count as misses and write
    failures are logged, never raised.
    """

    store: KeyValueStore

    async def get(self, cache_key: str) -> DetectionResult | None:
        """Return a cached result, or None on miss or corrupt payload."""
        try:
            cached = await self.store.get(cache_key)
        except Exception:
            _logger.exception("Failed to read cache for key %s", cache_key)
            return None
        if cached is None:
            _logger.debug("Cache miss for key %s", cache_key)
            return None

        try:
            result = DetectionResult.model_validate_json(cached)
        except ValidationError as exc:
            _logger.error(
                "Dropping corrupt cached result for key %s: %s",
                cache_key,
                exc.error_count(),
            )
            await self.delete(cache_key)
            return None

        _logger.info("Cache hit for key %s", cache_key)
        return result

    async def put(
        self, cache_key: str, result: DetectionResult, ttl_seconds: int
    ) -> None:
        """Cache a result with a TTL; failures are logged and ignored."""
        try:
            payload = result.model_dump_json()
        except (TypeError, ValueError) as exc:
            _logger.error("Failed to serialize detection result: %s", exc)
            return
        try:
            await self.store.set(cache_key, payload, ttl_seconds)
        except Exception:
            _logger.exception("Failed to cache detection result for key %s", cache_key)
            return
        _logger.info(
            "Cached detection result for key %s (ttl=%ss)", cache_key, ttl_seconds
        )

    async def exists(self, cache_key: str) -> bool:
        """Return True if a result is cached for the key."""
        try:
            return await self.store.exists(cache_key)
        except Exception:
            _logger.exception("Failed to check cache for key %s", cache_key)
            return False

    async def delete(self, cache_key: str) -> None:
        """Remove a cached result."""
        try:
            await self.store.delete(cache_key)
        except Exception:
            _logger.exception("Failed to delete cache for key %s", cache_key)
            return
        _logger.info("Deleted cache for key %s", cache_key)
