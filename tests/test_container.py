"""Tests for container wiring."""

import asyncio

from item_detection.containers import build_container
from item_detection.services.cache import InMemoryStore


def test_build_container_creates_services(settings) -> None:
    container = build_container(settings)

    assert isinstance(container.store, InMemoryStore)
    assert container.vision_service.is_configured is True
    assert container.detection_orchestrator.detector is container.vision_service
    asyncio.run(container.close_resources())


def test_build_container_without_openai_key(settings) -> None:
    unconfigured = settings.model_copy(update={"openai_api_key": None})

    container = build_container(unconfigured)

    assert container.vision_service.is_configured is False
    asyncio.run(container.close_resources())
