# fetchers/openfoodfacts.py
import math
import os
import uuid
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from tenacity import retry, wait_exponential_jitter, stop_after_attempt, RetryError

from core.models import Category, Product
from core.logger import get_logger

logger = get_logger(__name__)

BASE_URL = os.getenv("OFF_BASE_URL", "https://world.openfoodfacts.org").rstrip("/")
USER_AGENT = os.getenv("OFF_USER_AGENT", "FoodProductExplorer/0.1 (+https://world.openfoodfacts.org)")
TIMEOUT = float(os.getenv("OFF_TIMEOUT", "30"))
# One attempt unless configured; a failed query is re-triggered by the user.
MAX_ATTEMPTS = max(1, int(os.getenv("OFF_MAX_ATTEMPTS", "1")))
SEARCH_PAGE_SIZE = int(os.getenv("OFF_SEARCH_PAGE_SIZE", "100"))
CATEGORY_LIMIT = int(os.getenv("OFF_CATEGORY_LIMIT", "20"))

GRADES = ("a", "b", "c", "d", "e")

SESSION = requests.Session()
SESSION.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})


@retry(wait=wait_exponential_jitter(initial=1, max=30), stop=stop_after_attempt(MAX_ATTEMPTS))
def _fetch_json(url: str, params: Optional[Dict[str, Any]] = None) -> Any:
    r = SESSION.get(url, params=params, timeout=TIMEOUT)
    r.raise_for_status()
    return r.json()


def _get(url: str, params: Optional[Dict[str, Any]] = None) -> Any:
    """
    GET a JSON document, returning None (after logging) on transport or parse failure.
    """
    try:
        return _fetch_json(url, params)
    except RetryError as e:
        logger.error(
            "Open Food Facts request to %s failed after %d attempt(s): %s",
            url, MAX_ATTEMPTS, e.last_attempt.exception(),
        )
    except Exception as e:
        logger.error("Open Food Facts request to %s threw unexpected exception: %s", url, e)
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _product_id(raw: Dict[str, Any]) -> Optional[str]:
    for key in ("id", "code", "_id"):
        val = _text(raw.get(key))
        if val:
            return val
    return None


def _nutrients(raw: Any) -> Dict[str, float]:
    if not isinstance(raw, dict):
        return {}
    out: Dict[str, float] = {}
    for key, val in raw.items():
        if isinstance(val, bool):
            continue
        try:
            num = float(val)
        except (TypeError, ValueError):
            continue
        if math.isfinite(num):
            out[str(key)] = num
    return out


def normalize_product(raw: Any) -> Optional[Product]:
    """
    Reshape one API record into a Product; records without a usable name yield None.

    Records lacking id/code get a process-local id so they can never merge
    with another product in the cart.
    """
    if not isinstance(raw, dict):
        return None

    name = _text(raw.get("product_name"))
    if not name:
        return None

    product_id = _product_id(raw)
    has_stable_id = product_id is not None
    if not has_stable_id:
        product_id = f"local-{uuid.uuid4().hex}"

    grade = _text(raw.get("nutrition_grades")).lower()

    return Product(
        product_id=product_id,
        name=name,
        brand=_text(raw.get("brands")),
        categories=_text(raw.get("categories")),
        nutrition_grade=grade if grade in GRADES else None,
        image_url=_text(raw.get("image_url")),
        ingredients_text=_text(raw.get("ingredients_text")),
        labels=_text(raw.get("labels")),
        nutrients=_nutrients(raw.get("nutriments")),
        has_stable_id=has_stable_id,
    )


def _normalize_all(records: List[Any]) -> List[Product]:
    products: List[Product] = []
    skipped = 0
    for rec in records:
        product = normalize_product(rec)
        if product is None:
            skipped += 1
            continue
        products.append(product)
    if skipped:
        logger.debug("Dropped %d record(s) without a product name.", skipped)
    return products


def search_products(terms: str = "") -> List[Product]:
    """
    Free-text search returning a single batch of up to SEARCH_PAGE_SIZE products.
    Blank terms return the default listing.
    """
    terms = (terms or "").strip()
    params: Dict[str, Any] = {"json": "true", "page_size": SEARCH_PAGE_SIZE}
    if terms:
        params["search_terms"] = terms

    url = f"{BASE_URL}/cgi/search.pl"
    logger.info("Searching Open Food Facts for '%s'", terms or "<default listing>")

    data = _get(url, params)
    if data is None:
        return []
    if not isinstance(data, dict):
        logger.error("Unexpected search payload from %s: %s", url, type(data).__name__)
        return []

    records = data.get("products")
    if not isinstance(records, list):
        logger.info("Search for '%s' returned no products field.", terms)
        return []

    products = _normalize_all(records)
    logger.info("Open Food Facts: found %d products for '%s'", len(products), terms)
    return products


def lookup_barcode(barcode: str) -> List[Product]:
    """
    Exact product lookup. An unknown barcode is an empty list, not an error.
    """
    code = (barcode or "").strip()
    if not code:
        return []

    url = f"{BASE_URL}/api/v0/product/{quote(code, safe='')}.json"
    logger.info("Looking up barcode %s at %s", code, url)

    data = _get(url)
    if not isinstance(data, dict):
        if data is not None:
            logger.error("Unexpected product payload from %s: %s", url, type(data).__name__)
        return []

    record = data.get("product")
    if not isinstance(record, dict):
        logger.info("No product found for barcode %s (%s)", code, data.get("status_verbose", "no product field"))
        return []

    product = normalize_product(record)
    if product is None:
        logger.info("Product for barcode %s has no name; ignoring.", code)
        return []
    return [product]


def fetch_categories(limit: int = CATEGORY_LIMIT) -> List[Category]:
    """Fetch the first `limit` category tags for the filter selector."""
    url = f"{BASE_URL}/categories.json"
    data = _get(url)
    if not isinstance(data, dict):
        if data is not None:
            logger.error("Unexpected categories payload from %s: %s", url, type(data).__name__)
        return []

    tags = data.get("tags")
    if not isinstance(tags, list):
        logger.error("Categories payload from %s has no tags list.", url)
        return []

    categories: List[Category] = []
    for tag in tags:
        if len(categories) >= limit:
            break
        if not isinstance(tag, dict):
            continue
        category_id = _text(tag.get("id"))
        if not category_id:
            continue
        categories.append(Category(category_id=category_id, name=_text(tag.get("name")) or category_id))

    logger.info("Loaded %d categories.", len(categories))
    return categories
