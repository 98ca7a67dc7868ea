"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from item_detection.adapters.image_fetcher import HttpxImageFetcher
from item_detection.adapters.openai_vision_client import OpenAIVisionClient
from item_detection.adapters.redis_store import RedisStore
from item_detection.adapters.supabase_taxonomy_repository import (
    SupabaseTaxonomyRepository,
)
from item_detection.config import Settings
from item_detection.services.budget import BudgetService
from item_detection.services.cache import InMemoryStore, KeyValueStore
from item_detection.services.category_mapping import CategoryMappingService
from item_detection.services.detection import DetectionOrchestrator
from item_detection.services.detection_cache import DetectionCacheService
from item_detection.services.item_assembler import ItemAssembler
from item_detection.services.vision import VisionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    store: KeyValueStore
    detection_cache: DetectionCacheService
    budget_service: BudgetService
    vision_service: VisionService
    detection_orchestrator: DetectionOrchestrator
    category_mapping_service: CategoryMappingService
    item_assembler: ItemAssembler
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    taxonomy_repository = SupabaseTaxonomyRepository(supabase_client)

    redis_store = (
        RedisStore.create(resolved_settings.redis_url)
        if resolved_settings.redis_url
        else None
    )
    store: KeyValueStore = redis_store or InMemoryStore()

    openai_client = (
        OpenAIVisionClient.create(
            api_key=resolved_settings.openai_api_key or "",
            base_url=resolved_settings.openai_api_url,
            timeout_seconds=resolved_settings.openai_timeout_seconds,
            connect_timeout_seconds=resolved_settings.openai_connect_timeout_seconds,
        )
        if resolved_settings.openai_configured
        else None
    )
    image_fetcher = HttpxImageFetcher.create(
        timeout_seconds=resolved_settings.openai_timeout_seconds,
        connect_timeout_seconds=resolved_settings.openai_connect_timeout_seconds,
    )
    vision_service = VisionService(
        client=openai_client,
        image_fetcher=image_fetcher,
        model=resolved_settings.openai_model,
        use_enhanced_prompt=resolved_settings.use_enhanced_prompt,
    )
    detection_cache = DetectionCacheService(store)
    budget_service = BudgetService(
        store=store,
        max_requests_per_hour=resolved_settings.budget_max_requests_per_hour,
        max_requests_per_day=resolved_settings.budget_max_requests_per_day,
        max_cost_per_day=resolved_settings.budget_max_cost_per_day,
        cost_per_image=resolved_settings.budget_cost_per_image,
    )
    detection_orchestrator = DetectionOrchestrator(
        detector=vision_service,
        cache=detection_cache,
        budget=budget_service,
        confidence_threshold=resolved_settings.detection_confidence_threshold,
        cache_ttl_seconds=resolved_settings.detection_cache_ttl_seconds,
    )

    async def close_resources() -> None:
        await image_fetcher.close()
        if openai_client is not None:
            await openai_client.close()
        if redis_store is not None:
            await redis_store.close()

    return AppContainer(
        settings=resolved_settings,
        store=store,
        detection_cache=detection_cache,
        budget_service=budget_service,
        vision_service=vision_service,
        detection_orchestrator=detection_orchestrator,
        category_mapping_service=CategoryMappingService(taxonomy_repository),
        item_assembler=ItemAssembler(),
        close_resources=close_resources,
    )
