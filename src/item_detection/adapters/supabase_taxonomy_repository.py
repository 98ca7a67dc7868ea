"""Supabase repository for the category/size taxonomy."""

from dataclasses import dataclass

from supabase import Client

from item_detection.domain.taxonomy import Category, Size
from item_detection.services.category_mapping import TaxonomyRepository


@dataclass
class SupabaseTaxonomyRepository(TaxonomyRepository):
    """Supabase-backed lookups against the categories and sizes tables."""

    client: Client

    def find_category_by_name_en(self, name: str) -> Category | None:
        """Return a category by English name, ignoring case."""
        return self._find_category("name_en", name)

    def find_category_by_name(self, name: str) -> Category | None:
        """Return a category by localized name, ignoring case."""
        return self._find_category("name", name)

    def find_size(self, category_id: int, name: str) -> Size | None:
        """Return a size within a category by name, ignoring case."""
        response = (
            self.client.table("sizes")
            .select("size_id, category_id, name")
            .eq("category_id", category_id)
            .ilike("name", _escape_like(name))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return Size(
            size_id=int(row["size_id"]),
            category_id=int(row["category_id"]),
            name=str(row.get("name", "")),
        )

    def _find_category(self, column: str, name: str) -> Category | None:
        response = (
            self.client.table("categories")
            .select("category_id, name, name_en")
            .ilike(column, _escape_like(name))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return Category(
            category_id=int(row["category_id"]),
            name=str(row.get("name", "")),
            name_en=row.get("name_en"),
        )


def _escape_like(value: str) -> str:
    """Escape ILIKE wildcards so the match is an exact, case-insensitive one."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
