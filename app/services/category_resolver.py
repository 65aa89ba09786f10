"""Map free-text order line names to menu categories.

Order line items only store the dish name as typed at ordering time, so the
category is looked up against the current menu catalog. Strategies are tried
in order and the first one that finds a catalog entry wins.
"""

from __future__ import annotations

from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

from app.config.stats_settings import OTHER_CATEGORY_LABEL
from app.schemas import Category, MenuCatalogEntry, OrderItem

MatchStrategy = Callable[[str, MenuCatalogEntry], bool]


def _exact(item_name: str, entry: MenuCatalogEntry) -> bool:
    return entry.name == item_name


def _case_insensitive(item_name: str, entry: MenuCatalogEntry) -> bool:
    return entry.name.lower() == item_name.lower()


def _substring(item_name: str, entry: MenuCatalogEntry) -> bool:
    catalog_name = entry.name.lower()
    needle = item_name.lower()
    return needle in catalog_name or catalog_name in needle


MATCH_STRATEGIES: Tuple[Tuple[str, MatchStrategy], ...] = (
    ("exact", _exact),
    ("case_insensitive", _case_insensitive),
    ("substring", _substring),
)


def find_catalog_entry(item_name: str, catalog: Sequence[MenuCatalogEntry]) -> Optional[MenuCatalogEntry]:
    if not item_name:
        return None
    for _label, strategy in MATCH_STRATEGIES:
        for entry in catalog:
            if entry.name and strategy(item_name, entry):
                return entry
    return None


def resolve_category(item_name: str, catalog: Sequence[MenuCatalogEntry]) -> str:
    """Return the catalog category id for ``item_name`` or the "Other" sentinel."""

    entry = find_catalog_entry(item_name, catalog)
    if entry is None or not entry.category_id:
        return OTHER_CATEGORY_LABEL
    return entry.category_id


class CategoryLookup:
    """Per-computation name resolution with memoised results."""

    def __init__(self, catalog: Iterable[MenuCatalogEntry], categories: Iterable[Category]) -> None:
        self.catalog = list(catalog)
        self.names_by_id: Dict[str, str] = {category.id: category.name for category in categories}
        self._resolved: Dict[str, str] = {}

    def category_name(self, item: OrderItem) -> str:
        if item.category_id and item.category_id in self.names_by_id:
            return self.names_by_id[item.category_id]
        cached = self._resolved.get(item.name)
        if cached is None:
            category_id = resolve_category(item.name, self.catalog)
            cached = self.names_by_id.get(category_id, OTHER_CATEGORY_LABEL)
            self._resolved[item.name] = cached
        return cached


__all__ = [
    "CategoryLookup",
    "MATCH_STRATEGIES",
    "find_catalog_entry",
    "resolve_category",
]
