# fetchers/__init__.py
from typing import List

from core.logger import get_logger
from core.models import Product

from . import openfoodfacts

logger = get_logger(__name__)

FETCHERS = {
    "search": openfoodfacts.search_products,
    "barcode": openfoodfacts.lookup_barcode,
}

fetch_categories = openfoodfacts.fetch_categories


def dispatch_query(query_text: str | None, is_barcode: bool = False) -> List[Product]:
    """
    Route a query to the barcode lookup or the free-text search and return
    named products only. Never raises; failures come back as an empty list.
    """
    query = (query_text or "").strip()
    mode = "barcode" if is_barcode and query else "search"
    fetcher = FETCHERS[mode]

    try:
        products = fetcher(query)
    except Exception as e:
        logger.exception("Unhandled error in %s fetcher for '%s': %s", mode, query, e)
        return []

    return [p for p in products or [] if p.name.strip()]
