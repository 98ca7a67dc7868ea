"""Conversion of detected items into booking line items."""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from item_detection.domain.booking import LineItem
from item_detection.domain.detection import EnhancedDetectedItem

_logger = logging.getLogger(__name__)


@dataclass
class ItemAssembler:
    """Maps enhanced detection payloads into line items and metadata JSON."""

    def to_line_item(
        self,
        item: EnhancedDetectedItem,
        booking_id: int,
        category_id: int | None,
        size_id: int | None,
    ) -> LineItem:
        """Build a line item; each detected entry counts as one unit."""
        dims = item.dims_cm
        return LineItem(
            booking_id=booking_id,
            category_id=category_id,
            size_id=size_id,
            name=item.name,
            description=item.notes,
            quantity=1,
            height_cm=_to_decimal(dims.height) if dims else None,
            width_cm=_to_decimal(dims.width) if dims else None,
            depth_cm=_to_decimal(dims.length) if dims else None,
            weight_kg=_to_decimal(item.weight_kg),
            is_fragile=item.fragile,
            requires_disassembly=item.disassembly_required,
            ai_metadata=self.to_metadata_json(item),
        )

    def to_metadata_json(self, item: EnhancedDetectedItem) -> str | None:
        """Serialize auxiliary AI attributes, or None when there are none."""
        metadata: dict[str, object] = {}
        _put_if_present(metadata, "confidence", item.confidence)
        _put_if_present(metadata, "subcategory", item.subcategory)
        _put_if_present(metadata, "bbox_norm", _bounding_box(item))
        _put_if_present(metadata, "dims_confidence", item.dims_confidence)
        _put_if_present(metadata, "dimensions_basis", item.dimensions_basis)
        _put_if_present(metadata, "volume_m3", item.volume_m3)
        _put_if_present(metadata, "weight_confidence", item.weight_confidence)
        _put_if_present(metadata, "weight_basis", item.weight_basis)
        _put_if_present(metadata, "weight_model", item.weight_model)
        _put_if_present(metadata, "occluded_fraction", item.occluded_fraction)
        _put_if_present(metadata, "orientation", item.orientation)
        _put_if_present(metadata, "material", item.material)
        _put_if_present(metadata, "color", item.color)
        _put_if_present(metadata, "room_hint", item.room_hint)
        _put_if_present(metadata, "brand", item.brand)
        _put_if_present(metadata, "model", item.model)
        _put_if_present(metadata, "two_person_lift", item.two_person_lift)
        _put_if_present(metadata, "stackable", item.stackable)
        _put_if_present(metadata, "notes", item.notes)
        _put_if_present(metadata, "image_index", item.image_index)

        if not metadata:
            return None
        try:
            return json.dumps(metadata, ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as exc:
            _logger.warning(
                "Failed to serialize AI metadata for item '%s': %s", item.name, exc
            )
            return None


def _bounding_box(item: EnhancedDetectedItem) -> dict[str, object] | None:
    box = item.bbox_norm
    if box is None or box.is_empty():
        return None
    bbox: dict[str, object] = {}
    _put_if_present(bbox, "x_min", box.x_min)
    _put_if_present(bbox, "y_min", box.y_min)
    _put_if_present(bbox, "x_max", box.x_max)
    _put_if_present(bbox, "y_max", box.y_max)
    return bbox


def _put_if_present(target: dict[str, object], key: str, value: object) -> None:
    if value is None:
        return
    if isinstance(value, list | tuple | set | Mapping) and not value:
        return
    target[key] = value


def _to_decimal(value: float | None) -> Decimal | None:
    return None if value is None else Decimal(str(value))
