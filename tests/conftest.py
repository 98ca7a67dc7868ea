"""Shared test fixtures."""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime

import pytest

from item_detection.config import Settings
from item_detection.containers import AppContainer
from item_detection.domain.detection import DetectionResult
from item_detection.domain.taxonomy import Category, Size
from item_detection.services.budget import BudgetService
from item_detection.services.cache import InMemoryStore
from item_detection.services.category_mapping import (
    CategoryMappingService,
    TaxonomyRepository,
)
from item_detection.services.detection import DetectionOrchestrator
from item_detection.services.detection_cache import DetectionCacheService
from item_detection.services.item_assembler import ItemAssembler
from item_detection.services.vision import (
    ImageFetcher,
    ImageFetchError,
    VisionClient,
    VisionRequestError,
    VisionService,
)

FIXED_NOW = datetime(2026, 10, 19, 14, 30, tzinfo=UTC)


@dataclass
class FakeClock:
    """Settable clock for time-bucketed logic."""

    now: datetime = FIXED_NOW

    def __call__(self) -> datetime:
        return self.now


@dataclass
class FakeVisionClient(VisionClient):
    """Fake vision client returning queued replies, one per call."""

    replies: list[str | Exception | None] = field(
        default_factory=lambda: [
            json.dumps(
                {
                    "items": [
                        {
                            "name": "Three-Seat Sofa",
                            "category": "furniture",
                            "subcategory": "sofa",
                            "confidence": 0.9,
                            "dims_cm": {"length": 200, "width": 90, "height": 85},
                        }
                    ]
                }
            )
        ]
    )
    calls: list[dict[str, object]] = field(default_factory=list)

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        prompt: str,
        image_data_url: str,
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        self.calls.append(
            {
                "model": model,
                "prompt": prompt,
                "image_data_url": image_data_url,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        reply = self.replies[min(len(self.calls), len(self.replies)) - 1]
        if isinstance(reply, Exception):
            raise reply
        return reply


@dataclass
class FailingVisionClient(VisionClient):
    """Vision client whose every call fails."""

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        prompt: str,
        image_data_url: str,
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        raise VisionRequestError("HTTP 500")


@dataclass
class FakeImageFetcher(ImageFetcher):
    """Fake image fetcher returning static bytes per URL."""

    images: dict[str, bytes] = field(default_factory=dict)
    default: bytes = b"\x89PNG\r\n\x1a\nfake-png"
    fetched: list[str] = field(default_factory=list)

    async def fetch_bytes(self, url: str) -> bytes:
        self.fetched.append(url)
        if url.endswith("/missing.jpg"):
            raise ImageFetchError(f"Cannot fetch image {url}: 404")
        return self.images.get(url, self.default)


@dataclass
class StaticDetector:
    """Detector returning a fixed result and counting invocations."""

    result: DetectionResult
    calls: int = 0

    async def detect_items(self, image_urls: list[str]) -> DetectionResult:
        self.calls += 1
        return self.result


@dataclass
class ExplodingDetector:
    """Detector that always raises."""

    calls: int = 0

    async def detect_items(self, image_urls: list[str]) -> DetectionResult:
        self.calls += 1
        raise VisionRequestError("connection reset")


class BrokenStore(InMemoryStore):
    """Store whose writes and counters fail."""

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise ConnectionError("store unavailable")

    async def increment(self, key: str, amount: int) -> int:
        raise ConnectionError("store unavailable")


class ExpiryFailingStore(InMemoryStore):
    """Store whose counters work but whose TTL updates fail."""

    async def expire(self, key: str, ttl_seconds: int) -> None:
        raise ConnectionError("store unavailable")


def expiry_of(store: InMemoryStore, key: str) -> datetime | None:
    """Return the stored expiry of a key, if any."""
    entry = store._entries.get(key)  # noqa: SLF001
    return entry.expires_at if entry else None


@dataclass
class InMemoryTaxonomyRepository(TaxonomyRepository):
    """In-memory taxonomy for tests."""

    categories: list[Category] = field(
        default_factory=lambda: [
            Category(category_id=1, name="Tủ lạnh", name_en="Refrigerator"),
            Category(category_id=2, name="Sofa", name_en="Sofa"),
            Category(category_id=3, name="Giường", name_en="Bed"),
            Category(category_id=4, name="Thùng carton", name_en="Cardboard Box"),
            Category(category_id=5, name="Dining Table", name_en=None),
        ]
    )
    sizes: list[Size] = field(
        default_factory=lambda: [
            Size(size_id=31, category_id=3, name="Queen"),
            Size(size_id=32, category_id=3, name="King"),
            Size(size_id=21, category_id=2, name="2-Seater"),
        ]
    )

    def find_category_by_name_en(self, name: str) -> Category | None:
        for category in self.categories:
            if category.name_en and category.name_en.lower() == name.lower():
                return category
        return None

    def find_category_by_name(self, name: str) -> Category | None:
        for category in self.categories:
            if category.name.lower() == name.lower():
                return category
        return None

    def find_size(self, category_id: int, name: str) -> Size | None:
        for size in self.sizes:
            if size.category_id == category_id and size.name.lower() == name.lower():
                return size
        return None


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
        openai_api_key="openai-key",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryStore:
    return InMemoryStore(clock=clock)


@pytest.fixture
def budget_service(store: InMemoryStore, clock: FakeClock) -> BudgetService:
    return BudgetService(store=store, clock=clock)


@pytest.fixture
def container(
    settings: Settings,
    store: InMemoryStore,
    budget_service: BudgetService,
) -> AppContainer:
    vision_service = VisionService(
        client=FakeVisionClient(),
        image_fetcher=FakeImageFetcher(),
        model=settings.openai_model,
    )
    detection_cache = DetectionCacheService(store)
    orchestrator = DetectionOrchestrator(
        detector=vision_service,
        cache=detection_cache,
        budget=budget_service,
        confidence_threshold=settings.detection_confidence_threshold,
        cache_ttl_seconds=settings.detection_cache_ttl_seconds,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        store=store,
        detection_cache=detection_cache,
        budget_service=budget_service,
        vision_service=vision_service,
        detection_orchestrator=orchestrator,
        category_mapping_service=CategoryMappingService(InMemoryTaxonomyRepository()),
        item_assembler=ItemAssembler(),
        close_resources=close_resources,
    )
