"""Tests for the detection orchestrator."""

import asyncio
import json

from item_detection.domain.detection import DetectionResult, EnhancedDetectedItem
from item_detection.services.budget import BudgetService
from item_detection.services.cache import InMemoryStore
from item_detection.services.detection import DetectionOrchestrator, ItemDetector
from item_detection.services.detection_cache import (
    DetectionCacheService,
    build_cache_key,
)
from item_detection.services.vision import VisionService
from tests.conftest import (
    BrokenStore,
    ExplodingDetector,
    FakeImageFetcher,
    FakeVisionClient,
    StaticDetector,
)

URLS = ["https://img.example/living-room.jpg", "https://img.example/kitchen.jpg"]


def _detected(*confidences: float) -> DetectionResult:
    items = [
        EnhancedDetectedItem(
            id=f"item-1-{index}",
            name=f"Item {index}",
            category="furniture",
            confidence=confidence,
        )
        for index, confidence in enumerate(confidences, start=1)
    ]
    return DetectionResult.from_enhanced(
        items,
        confidence=sum(confidences) / len(confidences) if confidences else 0.92,
        service_used="OPENAI_VISION",
        fallback_used=False,
    )


def _orchestrator(
    detector: ItemDetector, store: InMemoryStore, budget: BudgetService
) -> DetectionOrchestrator:
    return DetectionOrchestrator(
        detector=detector,
        cache=DetectionCacheService(store),
        budget=budget,
        confidence_threshold=0.85,
        cache_ttl_seconds=3600,
    )


def test_confident_result_is_cached_and_charged(
    store: InMemoryStore, budget_service: BudgetService
) -> None:
    detector = StaticDetector(_detected(0.9, 0.95))
    orchestrator = _orchestrator(detector, store, budget_service)

    result = asyncio.run(orchestrator.detect_items(URLS))

    assert len(result.items) == 2
    assert not result.manual_review_required
    assert not result.manual_input_required
    assert result.failure_reason is None
    assert result.image_count == 2
    assert result.image_urls == URLS
    assert result.processing_time_ms is not None
    assert asyncio.run(store.exists(build_cache_key(URLS)))
    assert asyncio.run(budget_service.get_stats()).daily_requests == 2


def test_threshold_boundary_is_not_low_confidence(
    store: InMemoryStore, budget_service: BudgetService
) -> None:
    orchestrator = _orchestrator(StaticDetector(_detected(0.85)), store, budget_service)

    result = asyncio.run(orchestrator.detect_items(URLS))

    assert not result.manual_review_required


def test_low_confidence_flags_review_but_returns_items(
    store: InMemoryStore, budget_service: BudgetService
) -> None:
    orchestrator = _orchestrator(StaticDetector(_detected(0.5)), store, budget_service)

    result = asyncio.run(orchestrator.detect_items(URLS))

    assert result.manual_review_required
    assert not result.manual_input_required
    assert result.failure_reason == "OPENAI_VISION_LOW_CONFIDENCE"
    assert len(result.enhanced_items) == 1
    assert asyncio.run(store.exists(build_cache_key(URLS)))


def test_no_items_requires_manual_input_and_is_not_cached(
    store: InMemoryStore, budget_service: BudgetService
) -> None:
    detector = StaticDetector(_detected())
    orchestrator = _orchestrator(detector, store, budget_service)

    result = asyncio.run(orchestrator.detect_items(URLS))
    again = asyncio.run(orchestrator.detect_items(URLS))

    assert result.manual_input_required
    assert result.fallback_used
    assert result.failure_reason == "NO_ITEMS_DETECTED"
    assert result.service_used == "MANUAL_INPUT_REQUIRED"
    assert result.items == []
    assert result.enhanced_items == []
    assert not again.from_cache
    assert detector.calls == 2
    assert not asyncio.run(store.exists(build_cache_key(URLS)))
    assert asyncio.run(budget_service.get_stats()).daily_requests == 4


def test_vision_failure_is_manual_input_without_side_effects(
    store: InMemoryStore, budget_service: BudgetService
) -> None:
    orchestrator = _orchestrator(ExplodingDetector(), store, budget_service)

    result = asyncio.run(orchestrator.detect_items(URLS))

    assert result.manual_input_required
    assert result.fallback_used
    assert result.failure_reason == "OPENAI_VISION_FAILED"
    assert result.image_count == 2
    assert result.image_urls == URLS
    assert result.confidence == 0.0
    assert not asyncio.run(store.exists(build_cache_key(URLS)))
    assert asyncio.run(budget_service.get_stats()).daily_requests == 0


def test_cache_write_failure_still_returns_result(budget_service) -> None:
    orchestrator = _orchestrator(
        StaticDetector(_detected(0.9)), BrokenStore(), budget_service
    )

    result = asyncio.run(orchestrator.detect_items(URLS))

    assert len(result.items) == 1
    assert not result.manual_input_required


def test_low_confidence_flow_with_cache_hit_on_reordered_urls(
    store: InMemoryStore, budget_service: BudgetService
) -> None:
    client = FakeVisionClient(
        replies=[
            json.dumps({"items": [{"name": "Wardrobe", "confidence": 0.4}]}),
            json.dumps({"items": []}),
        ]
    )
    vision = VisionService(
        client=client, image_fetcher=FakeImageFetcher(), model="gpt-4o-mini"
    )
    orchestrator = _orchestrator(vision, store, budget_service)

    first = asyncio.run(orchestrator.detect_items(URLS))
    second = asyncio.run(orchestrator.detect_items(list(reversed(URLS))))

    assert len(first.items) == 1
    assert first.manual_review_required
    assert not first.manual_input_required
    assert not first.from_cache
    assert len(client.calls) == 2

    assert second.from_cache
    assert second.items == first.items
    assert second.manual_review_required
    assert len(client.calls) == 2
    assert asyncio.run(budget_service.get_stats()).daily_requests == 2
