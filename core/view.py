# core/view.py
import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .models import ALL_CATEGORIES, ASC, DESC, SORT_KEYS, Product

PAGE_SIZE = int(os.getenv("CATALOG_PAGE_SIZE", "20"))

# Ungraded products sort after every real grade
MISSING_GRADE = "z"


@dataclass
class CatalogView:
    visible: List[Product]
    matched_count: int
    page: int

    @property
    def has_more(self) -> bool:
        return len(self.visible) < self.matched_count

    @property
    def is_empty(self) -> bool:
        return not self.visible


def filter_by_category(products: List[Product], category_id: Optional[str]) -> List[Product]:
    """
    Keep products whose free-text categories contain category_id, ignoring case.
    "all" (or no category) returns the input unchanged.
    """
    if not category_id or category_id == ALL_CATEGORIES:
        return list(products)
    needle = category_id.casefold()
    return [p for p in products if needle in (p.categories or "").casefold()]


def _sort_value(product: Product, key: str) -> str:
    if key == "name":
        return product.name.casefold()
    return product.nutrition_grade or MISSING_GRADE


def sort_products(products: List[Product], key: Optional[str], direction: str = ASC) -> List[Product]:
    """
    Stable sort by name or grade; descending is the mirror of ascending.
    key=None keeps the order the directory returned.
    """
    if key is None:
        return list(products)
    if key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {key!r}")
    if direction not in (ASC, DESC):
        raise ValueError(f"Unknown sort direction: {direction!r}")
    # sorted(reverse=True) keeps equal elements in input order, like the ascending pass
    return sorted(products, key=lambda p: _sort_value(p, key), reverse=direction == DESC)


def next_sort(current_key: Optional[str], current_direction: str, requested_key: str) -> Tuple[str, str]:
    if requested_key not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {requested_key!r}")
    if requested_key == current_key and current_direction == ASC:
        return requested_key, DESC
    return requested_key, ASC


def paginate(products: List[Product], page: int, page_size: int = PAGE_SIZE) -> List[Product]:
    page = max(1, page)
    return products[: page * page_size]


def derive_view(
    raw: List[Product],
    category_id: Optional[str],
    sort_key: Optional[str],
    direction: str,
    page: int,
    page_size: int = PAGE_SIZE,
) -> CatalogView:
    """Recompute the visible catalog from the raw list: filter, then sort, then cut."""
    ordered = sort_products(filter_by_category(raw, category_id), sort_key, direction)
    return CatalogView(
        visible=paginate(ordered, page, page_size),
        matched_count=len(ordered),
        page=max(1, page),
    )
