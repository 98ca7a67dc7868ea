"""Domain models for the item category/size taxonomy."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Category:
    """Item category stored in the taxonomy tables."""

    category_id: int
    name: str
    name_en: str | None


@dataclass(frozen=True)
class Size:
    """Size option scoped to a category."""

    size_id: int
    category_id: int
    name: str


@dataclass(frozen=True)
class CategorySizeMapping:
    """Resolved taxonomy ids for a detected item."""

    category_id: int | None = None
    size_id: int | None = None

    @classmethod
    def empty(cls) -> "CategorySizeMapping":
        return cls()

    @property
    def is_present(self) -> bool:
        return self.category_id is not None
