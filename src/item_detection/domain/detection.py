"""Models for AI item detection results."""

from enum import StrEnum

from pydantic import BaseModel, Field, field_validator

DEFAULT_WEIGHT_MODEL = "house-move-v1"


class FailureReason(StrEnum):
    """Machine-readable reasons attached to fallback results."""

    VISION_FAILED = "OPENAI_VISION_FAILED"
    NO_ITEMS_DETECTED = "NO_ITEMS_DETECTED"
    LOW_CONFIDENCE = "OPENAI_VISION_LOW_CONFIDENCE"


class ServiceUsed(StrEnum):
    """Tag identifying which path produced a detection result."""

    OPENAI_VISION = "OPENAI_VISION"
    OPENAI_VISION_STUB = "OPENAI_VISION_STUB"
    MANUAL_INPUT_REQUIRED = "MANUAL_INPUT_REQUIRED"


class BoundingBox(BaseModel):
    """Normalized bounding box (0-1 coordinates)."""

    x_min: float | None = None
    y_min: float | None = None
    x_max: float | None = None
    y_max: float | None = None

    def is_empty(self) -> bool:
        """Return True when no coordinate is set."""
        return all(
            value is None for value in (self.x_min, self.y_min, self.x_max, self.y_max)
        )


class Dimensions(BaseModel):
    """Item dimensions in centimetres."""

    length: int | None = None
    width: int | None = None
    height: int | None = None

    def volume_m3(self) -> float | None:
        """Return the volume in cubic metres when all sides are known."""
        if self.length is None or self.width is None or self.height is None:
            return None
        return self.length * self.width * self.height / 1_000_000


class DetectedItem(BaseModel):
    """Lightweight view of a detected item."""

    name: str
    category: str
    confidence: float | None = None


class EnhancedDetectedItem(BaseModel):
    """Full item record produced by the vision pipeline."""

    id: str | None = None
    name: str = "Unknown Item"
    category: str = "other"
    subcategory: str | None = None
    quantity: int | None = 1
    confidence: float | None = None
    image_index: int | None = None

    bbox_norm: BoundingBox | None = None

    dims_cm: Dimensions | None = None
    dims_confidence: float | None = None
    dimensions_basis: str | None = None
    volume_m3: float | None = None

    weight_kg: float | None = None
    weight_confidence: float | None = None
    weight_basis: str | None = None
    weight_model: str | None = DEFAULT_WEIGHT_MODEL

    fragile: bool | None = None
    two_person_lift: bool | None = None
    stackable: bool | None = None
    disassembly_required: bool | None = None

    orientation: str | None = None
    color: str | None = None
    material: list[str] = Field(default_factory=list)
    occluded_fraction: float | None = None
    room_hint: str | None = None

    brand: str | None = None
    model: str | None = None
    notes: str | None = None

    def to_detected_item(self) -> DetectedItem:
        """Project to the simplified item view."""
        return DetectedItem(
            name=self.name, category=self.category, confidence=self.confidence
        )


class DetectionResult(BaseModel):
    """Outcome of one detection attempt over a set of images."""

    items: list[DetectedItem] = Field(default_factory=list)
    enhanced_items: list[EnhancedDetectedItem] = Field(default_factory=list)
    confidence: float | None = None
    service_used: str | None = None
    fallback_used: bool = False
    manual_input_required: bool = False
    manual_review_required: bool = False
    failure_reason: str | None = None
    processing_time_ms: int | None = None
    image_count: int | None = None
    image_urls: list[str] = Field(default_factory=list)
    from_cache: bool = False

    @field_validator("items", "enhanced_items", "image_urls", mode="before")
    @classmethod
    def _none_as_empty(cls, value: object) -> object:
        return [] if value is None else value

    @classmethod
    def from_enhanced(
        cls,
        enhanced_items: list[EnhancedDetectedItem],
        *,
        confidence: float,
        service_used: str,
        fallback_used: bool,
    ) -> "DetectionResult":
        """Build a result whose simple items mirror the enhanced items."""
        return cls(
            items=[item.to_detected_item() for item in enhanced_items],
            enhanced_items=list(enhanced_items),
            confidence=confidence,
            service_used=service_used,
            fallback_used=fallback_used,
        )
