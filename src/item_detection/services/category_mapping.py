"""Deterministic mapping of AI labels to the category/size taxonomy."""

import logging
import re
import unicodedata
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import NamedTuple, Protocol

from item_detection.domain.detection import EnhancedDetectedItem
from item_detection.domain.taxonomy import Category, CategorySizeMapping, Size

MIN_TOKEN_LENGTH = 3

_logger = logging.getLogger(__name__)


class MappingRule(NamedTuple):
    """Canonical taxonomy names a label maps to."""

    category_name: str
    size_name: str | None = None


CATEGORY_RULES: Mapping[str, MappingRule] = MappingProxyType(
    {
        "refrigerator": MappingRule("Refrigerator"),
        "fridge": MappingRule("Refrigerator"),
        "freezer": MappingRule("Refrigerator"),
        "mini fridge": MappingRule("Refrigerator", "Small"),
        "tu lanh": MappingRule("Refrigerator"),
        "tu dong": MappingRule("Refrigerator"),
        "tv": MappingRule("TV/Monitor"),
        "television": MappingRule("TV/Monitor"),
        "monitor": MappingRule("TV/Monitor"),
        "tivi": MappingRule("TV/Monitor"),
        "man hinh": MappingRule("TV/Monitor"),
        "washing machine": MappingRule("Washing Machine"),
        "washer": MappingRule("Washing Machine"),
        "laundry machine": MappingRule("Washing Machine"),
        "may giat": MappingRule("Washing Machine"),
        "bed": MappingRule("Bed"),
        "queen bed": MappingRule("Bed", "Queen"),
        "king bed": MappingRule("Bed", "King"),
        "double bed": MappingRule("Bed", "Double"),
        "single bed": MappingRule("Bed", "Single"),
        "giuong": MappingRule("Bed"),
        "wardrobe": MappingRule("Wardrobe"),
        "closet": MappingRule("Wardrobe"),
        "armoire": MappingRule("Wardrobe"),
        "tu quan ao": MappingRule("Wardrobe"),
        "desk": MappingRule("Desk"),
        "work desk": MappingRule("Desk"),
        "office desk": MappingRule("Desk"),
        "ban lam viec": MappingRule("Desk"),
        "dining table": MappingRule("Dining Table"),
        "table": MappingRule("Dining Table"),
        "ban an": MappingRule("Dining Table"),
        "sofa": MappingRule("Sofa"),
        "couch": MappingRule("Sofa"),
        "loveseat": MappingRule("Sofa", "2-Seater"),
        "sectional": MappingRule("Sofa", "Sectional"),
        "ghe sofa": MappingRule("Sofa"),
        "cardboard box": MappingRule("Cardboard Box"),
        "moving box": MappingRule("Cardboard Box"),
        "box": MappingRule("Cardboard Box"),
        "carton": MappingRule("Cardboard Box"),
        "thung carton": MappingRule("Cardboard Box"),
        "appliance": MappingRule("Other"),
        "furniture": MappingRule("Other"),
    }
)


class TaxonomyRepository(Protocol):
    """Read access to the live category and size tables."""

    def find_category_by_name_en(self, name: str) -> Category | None:
        """Return a category whose English name matches, ignoring case."""

    def find_category_by_name(self, name: str) -> Category | None:
        """Return a category whose localized name matches, ignoring case."""

    def find_size(self, category_id: int, name: str) -> Size | None:
        """Return a size of the category whose name matches, ignoring case."""


@dataclass
class CategoryMappingService:
    """Resolves detected items to taxonomy ids using a fixed rule table."""

    repository: TaxonomyRepository
    rules: Mapping[str, MappingRule] = field(default_factory=lambda: CATEGORY_RULES)

    def map(self, item: EnhancedDetectedItem | None) -> CategorySizeMapping:
        """Return the first rule match whose category exists in the taxonomy."""
        if item is None:
            return CategorySizeMapping.empty()

        for candidate in collect_candidates(item):
            rule = self.rules.get(candidate)
            if rule is None:
                continue
            mapping = self._apply_rule(rule)
            if mapping.is_present:
                return mapping
        return CategorySizeMapping.empty()

    def _apply_rule(self, rule: MappingRule) -> CategorySizeMapping:
        category = self.repository.find_category_by_name_en(
            rule.category_name
        ) or self.repository.find_category_by_name(rule.category_name)
        if category is None:
            _logger.debug(
                "Mapped category %s not found in taxonomy", rule.category_name
            )
            return CategorySizeMapping.empty()

        size_id = None
        if rule.size_name is not None:
            size = self.repository.find_size(category.category_id, rule.size_name)
            size_id = size.size_id if size else None
        return CategorySizeMapping(category_id=category.category_id, size_id=size_id)


def collect_candidates(item: EnhancedDetectedItem) -> list[str]:
    """Return normalized phrases and their words, first-seen order."""
    tokens: dict[str, None] = {}
    for raw in (item.category, item.subcategory, item.name, item.notes):
        phrase = normalize_label(raw)
        if phrase is None:
            continue
        tokens.setdefault(phrase)
        for word in phrase.split(" "):
            if len(word) >= MIN_TOKEN_LENGTH:
                tokens.setdefault(word)
    return list(tokens)


def normalize_label(value: str | None) -> str | None:
    """Lowercase, strip diacritics and punctuation, collapse whitespace."""
    if value is None:
        return None
    lowered = value.lower().replace("đ", "d")
    decomposed = unicodedata.normalize("NFD", lowered)
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    cleaned = re.sub(r"[^a-z0-9 ]", " ", stripped)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return cleaned or None
