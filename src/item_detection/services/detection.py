"""Detection orchestration: cache, vision call, confidence checks, budget."""

import logging
import time
from dataclasses import dataclass
from typing import Protocol

from item_detection.domain.detection import (
    DetectionResult,
    FailureReason,
    ServiceUsed,
)
from item_detection.services.budget import BudgetService
from item_detection.services.detection_cache import (
    DetectionCacheService,
    build_cache_key,
)


class ItemDetector(Protocol):
    """Anything that can turn image references into a detection result."""

    async def detect_items(self, image_urls: list[str]) -> DetectionResult:
        """Detect items in the given images."""


_logger = logging.getLogger(__name__)


@dataclass
class DetectionOrchestrator:
    """Runs AI detection with caching, manual fallback and usage tracking.

    Every call resolves to a ``DetectionResult``: remote failures and empty
    detections become manual-input results, low confidence only flags the
    result for review.
    """

    detector: ItemDetector
    cache: DetectionCacheService
    budget: BudgetService
    confidence_threshold: float = 0.85
    cache_ttl_seconds: int = 3600

    async def detect_items(self, image_urls: list[str]) -> DetectionResult:
        """Detect items in the images, using the cache when possible."""
        image_urls = list(image_urls)
        cache_key = build_cache_key(image_urls)

        cached = await self.cache.get(cache_key)
        if cached is not None:
            _logger.info("Returning cached detection for %s images", len(image_urls))
            return cached.model_copy(update={"from_cache": True})

        started = time.perf_counter()
        try:
            result = await self.detector.detect_items(image_urls)
        except Exception:
            _logger.exception("Vision detection failed for %s images", len(image_urls))
            return _manual_input_result(
                image_urls, FailureReason.VISION_FAILED, _elapsed_ms(started)
            )

        latency_ms = _elapsed_ms(started)
        if not result.items:
            _logger.warning("Vision returned no items - manual input required")
            await self.budget.record_usage(len(image_urls))
            return _manual_input_result(
                image_urls, FailureReason.NO_ITEMS_DETECTED, latency_ms
            )

        confidence = result.confidence if result.confidence is not None else 0.0
        updates: dict[str, object] = {
            "processing_time_ms": latency_ms,
            "image_count": len(image_urls),
            "image_urls": image_urls,
            "from_cache": False,
        }
        _logger.info(
            "Vision completed: confidence=%.2f%% items=%s latency=%sms",
            confidence * 100,
            len(result.items),
            latency_ms,
        )
        if confidence < self.confidence_threshold:
            _logger.warning(
                "Low vision confidence (%.2f%%) - flagging manual review",
                confidence * 100,
            )
            updates["manual_review_required"] = True
            updates["failure_reason"] = FailureReason.LOW_CONFIDENCE.value
        else:
            updates["manual_review_required"] = False
        result = result.model_copy(update=updates)

        await self.cache.put(cache_key, result, self.cache_ttl_seconds)
        await self.budget.record_usage(len(image_urls))
        return result


def _manual_input_result(
    image_urls: list[str], reason: FailureReason, latency_ms: int
) -> DetectionResult:
    return DetectionResult(
        items=[],
        enhanced_items=[],
        confidence=0.0,
        service_used=ServiceUsed.MANUAL_INPUT_REQUIRED.value,
        fallback_used=True,
        manual_input_required=True,
        failure_reason=reason.value,
        processing_time_ms=latency_ms,
        image_count=len(image_urls),
        image_urls=image_urls,
    )


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
