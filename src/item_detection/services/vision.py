"""Vision detection service using LLMs."""

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Protocol

from item_detection.domain.detection import (
    DEFAULT_WEIGHT_MODEL,
    BoundingBox,
    DetectionResult,
    Dimensions,
    EnhancedDetectedItem,
    ServiceUsed,
)
from item_detection.services.prompts import detection_prompt, max_output_tokens

DEFAULT_ITEM_CONFIDENCE = 0.85
EMPTY_RESULT_CONFIDENCE = 0.92

_logger = logging.getLogger(__name__)


class VisionRequestError(RuntimeError):
    """Raised when the remote vision model call fails."""


class ImageFetchError(RuntimeError):
    """Raised when a remote image cannot be downloaded."""


class VisionClient(Protocol):
    """Interface for a single-turn vision model call."""

    async def complete(  # noqa: PLR0913
        self,
        *,
        model: str,
        prompt: str,
        image_data_url: str,
        max_tokens: int,
        temperature: float,
    ) -> str | None:
        """Return the model's raw text reply for one image."""


class ImageFetcher(Protocol):
    """Interface for downloading remote images."""

    async def fetch_bytes(self, url: str) -> bytes:
        """Download an image and return its bytes."""


@dataclass
class VisionService:
    """Detects household items in images via the configured vision client.

    Without a client (no API key configured) the service returns a
    deterministic stub result so downstream flows stay testable.
    """

    client: VisionClient | None
    image_fetcher: ImageFetcher | None
    model: str
    use_enhanced_prompt: bool = True
    temperature: float = 0.4

    @property
    def is_configured(self) -> bool:
        """Return True when a live vision client is available."""
        return self.client is not None

    async def detect_items(self, image_urls: list[str]) -> DetectionResult:
        """Analyse each image in order and merge the detected items."""
        _logger.info("Vision (%s): processing %s images", self.model, len(image_urls))
        if self.client is None:
            _logger.warning("Vision API key not configured - using stub detection")
            return detect_items_stub(image_urls)

        enhanced_items: list[EnhancedDetectedItem] = []
        failures = 0
        for image_index, image_url in enumerate(image_urls):
            try:
                items = await self._analyze_image(self.client, image_url, image_index)
            except (VisionRequestError, ImageFetchError, ValueError) as exc:
                failures += 1
                _logger.warning(
                    "Vision analysis failed for image %s: %s", image_index, exc
                )
                continue
            enhanced_items.extend(items)

        if image_urls and failures == len(image_urls):
            raise VisionRequestError(
                f"Vision analysis failed for all {failures} images"
            )

        confidence = aggregate_confidence(enhanced_items)
        _logger.info(
            "Vision detected %s items, average confidence %.2f%%",
            len(enhanced_items),
            confidence * 100,
        )
        return DetectionResult.from_enhanced(
            enhanced_items,
            confidence=confidence,
            service_used=ServiceUsed.OPENAI_VISION.value,
            fallback_used=False,
        )

    async def _analyze_image(
        self, client: VisionClient, image_url: str, image_index: int
    ) -> list[EnhancedDetectedItem]:
        data_url = await self._resolve_data_url(image_url)
        content = await client.complete(
            model=self.model,
            prompt=detection_prompt(self.use_enhanced_prompt),
            image_data_url=data_url,
            max_tokens=max_output_tokens(self.use_enhanced_prompt),
            temperature=self.temperature,
        )
        if not content or not content.strip():
            _logger.warning("Vision returned an empty reply for image %s", image_index)
            return []
        _logger.debug("Vision raw reply for image %s: %s", image_index, content)
        return parse_items(content, image_index)

    async def _resolve_data_url(self, image_url: str) -> str:
        if image_url.startswith("data:"):
            mime_type, payload = parse_data_url(image_url)
            return f"data:{mime_type};base64,{payload}"
        if self.image_fetcher is None:
            raise ImageFetchError(f"No image fetcher configured for {image_url}")
        image_bytes = await self.image_fetcher.fetch_bytes(image_url)
        if not image_bytes:
            raise ImageFetchError(f"Empty image body from {image_url}")
        return _to_data_url(image_bytes)


def parse_data_url(data_url: str) -> tuple[str, str]:
    """Split a base64 data URI into its MIME type and validated payload."""
    header, sep, payload = data_url.partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        raise ValueError("Invalid data URI format")
    mime_type = header[len("data:") :].split(";", 1)[0] or "image/jpeg"
    payload = "".join(payload.split())
    try:
        base64.b64decode(payload, validate=True)
    except binascii.Error as exc:
        raise ValueError(f"Invalid base64 image payload: {exc}") from exc
    return mime_type, payload


def clean_response_text(text: str) -> str:
    """Strip optional markdown code fences around a JSON reply."""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json") :]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def parse_items(text: str, image_index: int) -> list[EnhancedDetectedItem]:
    """Parse a model reply into enriched items for one image."""
    cleaned = clean_response_text(text)
    if not cleaned:
        return []
    try:
        payload = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        _logger.warning(
            "Failed to decode vision JSON for image %s: %s", image_index, exc
        )
        return []

    items: list[EnhancedDetectedItem] = []
    for raw in _raw_items(payload):
        if not isinstance(raw, dict):
            continue
        try:
            items.append(_parse_item(raw, image_index))
        except (TypeError, ValueError) as exc:
            _logger.warning(
                "Skipping unparseable item on image %s: %s", image_index, exc
            )
    return enrich_items(items, image_index)


def _raw_items(payload: object) -> list[object]:
    if isinstance(payload, dict):
        items = payload.get("items")
        if isinstance(items, list):
            return items
        if "items" not in payload and "name" in payload:
            return [payload]
        return []
    if isinstance(payload, list):
        return payload
    return []


def _parse_item(raw: dict[str, object], image_index: int) -> EnhancedDetectedItem:
    bbox_raw = raw.get("bbox_norm")
    bbox = None
    if isinstance(bbox_raw, dict):
        bbox = BoundingBox(
            x_min=_to_float(bbox_raw.get("x_min")),
            y_min=_to_float(bbox_raw.get("y_min")),
            x_max=_to_float(bbox_raw.get("x_max")),
            y_max=_to_float(bbox_raw.get("y_max")),
        )

    dims_raw = raw.get("dims_cm")
    dims = None
    if isinstance(dims_raw, dict):
        dims = Dimensions(
            length=_to_int(dims_raw.get("length")),
            width=_to_int(dims_raw.get("width")),
            height=_to_int(dims_raw.get("height")),
        )

    return EnhancedDetectedItem(
        id=_to_str(raw.get("id")),
        name=_to_str(raw.get("name")) or "Unknown Item",
        category=_to_str(raw.get("category")) or "other",
        subcategory=_to_str(raw.get("subcategory")),
        quantity=_to_int(raw.get("quantity"), 1),
        confidence=_to_float(raw.get("confidence"), DEFAULT_ITEM_CONFIDENCE),
        image_index=image_index,
        bbox_norm=bbox,
        dims_cm=dims,
        dims_confidence=_to_float(raw.get("dims_confidence")),
        dimensions_basis=_to_str(raw.get("dimensions_basis")),
        volume_m3=_to_float(raw.get("volume_m3")),
        weight_kg=_to_float(raw.get("weight_kg")),
        weight_confidence=_to_float(raw.get("weight_confidence")),
        weight_basis=_to_str(raw.get("weight_basis")),
        weight_model=_to_str(raw.get("weight_model")) or DEFAULT_WEIGHT_MODEL,
        fragile=_to_bool(raw.get("fragile")),
        two_person_lift=_to_bool(raw.get("two_person_lift")),
        stackable=_to_bool(raw.get("stackable")),
        disassembly_required=_to_bool(raw.get("disassembly_required")),
        orientation=_to_str(raw.get("orientation")),
        color=_to_str(raw.get("color")),
        material=_to_str_list(raw.get("material")),
        occluded_fraction=_to_float(raw.get("occluded_fraction")),
        room_hint=_to_str(raw.get("room_hint")),
        brand=_to_str(raw.get("brand")),
        model=_to_str(raw.get("model")),
        notes=_to_str(raw.get("notes")),
    )


def enrich_items(
    items: list[EnhancedDetectedItem], image_index: int
) -> list[EnhancedDetectedItem]:
    """Backfill ids, image index, confidence, quantity and volume."""
    enriched: list[EnhancedDetectedItem] = []
    for ordinal, item in enumerate(items, start=1):
        updates: dict[str, object] = {}
        if not item.id or not item.id.strip():
            updates["id"] = f"item-{image_index + 1}-{ordinal}"
        if item.image_index is None:
            updates["image_index"] = image_index
        if item.confidence is None:
            updates["confidence"] = DEFAULT_ITEM_CONFIDENCE
        if item.quantity is None or item.quantity < 1:
            updates["quantity"] = 1
        if item.volume_m3 is None and item.dims_cm is not None:
            volume = item.dims_cm.volume_m3()
            if volume is not None:
                updates["volume_m3"] = volume
        enriched.append(item.model_copy(update=updates) if updates else item)
    return enriched


def aggregate_confidence(items: list[EnhancedDetectedItem]) -> float:
    """Return the mean item confidence, ignoring missing or negative values."""
    values = [
        item.confidence
        for item in items
        if item.confidence is not None and item.confidence >= 0
    ]
    if not values:
        return EMPTY_RESULT_CONFIDENCE
    return sum(values) / len(values)


_STUB_TEMPLATES: tuple[tuple[tuple[str, str, str, float], ...], ...] = (
    (
        ("stub-sofa", "Three-Seat Sofa", "furniture", 0.94),
        ("stub-table", "Coffee Table", "furniture", 0.91),
    ),
    (("stub-fridge", "Samsung Refrigerator", "appliance", 0.96),),
    (
        ("stub-laptop", "Dell Laptop", "electronics", 0.93),
        ("stub-mouse", "Wireless Mouse", "electronics", 0.89),
    ),
    (("stub-box", "Cardboard Box", "box", 0.87),),
)


def detect_items_stub(image_urls: list[str]) -> DetectionResult:
    """Return canned items cycling through four templates by image index."""
    enhanced_items = [
        EnhancedDetectedItem(
            id=f"{id_prefix}-{image_index + 1}",
            name=name,
            category=category,
            confidence=confidence,
            quantity=1,
            image_index=image_index,
        )
        for image_index in range(len(image_urls))
        for id_prefix, name, category, confidence in _STUB_TEMPLATES[image_index % 4]
    ]
    return DetectionResult.from_enhanced(
        enhanced_items,
        confidence=aggregate_confidence(enhanced_items),
        service_used=ServiceUsed.OPENAI_VISION_STUB.value,
        fallback_used=True,
    )


def _to_float(value: object, default: float | None = None) -> float | None:
    if isinstance(value, bool):
        return default
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return default
    return default


def _to_int(value: object, default: int | None = None) -> int | None:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        try:
            return int(value)
        except (ValueError, OverflowError):
            return default
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return int(float(text))
        except (ValueError, OverflowError):
            return default
    return default


def _to_bool(value: object) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return None


def _to_str(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def _to_str_list(value: object) -> list[str]:
    if isinstance(value, list):
        return [entry for entry in value if isinstance(entry, str) and entry.strip()]
    if isinstance(value, str) and value.strip():
        return [value]
    return []


def _to_data_url(image_bytes: bytes) -> str:
    """Convert bytes to a base64 data URL for image input."""
    mime_type = _detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def _detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    if image_bytes[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    return "image/jpeg"
