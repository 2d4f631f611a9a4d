# core/session.py
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor, wait
from typing import Callable, List, Optional, Set, Tuple

from fetchers import dispatch_query, fetch_categories

from .cart import Cart
from .detail import ProductDetail, project_detail
from .logger import get_logger
from .models import ALL_CATEGORIES, ASC, CartLine, Category, Product
from .view import PAGE_SIZE, CatalogView, derive_view, next_sort

logger = get_logger(__name__)

QUERY_WORKERS = 4


class CatalogSession:
    """
    Single state container for one browsing session.

    Product queries run on an executor. Every query takes the next sequence
    token and its result is applied only while that token is still the latest
    issued, so a slow earlier search can never overwrite a newer one. The
    loading flag is an in-flight counter rather than a boolean. Any change to
    the catalog (query, filter, sort, load more) closes the detail view.
    """

    def __init__(
        self,
        executor: Executor | None = None,
        page_size: int = PAGE_SIZE,
        fetch_products: Callable[[str, bool], List[Product]] = dispatch_query,
        fetch_categories: Callable[[], List[Category]] = fetch_categories,
    ):
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=QUERY_WORKERS, thread_name_prefix="catalog-query"
        )
        self._fetch_products = fetch_products
        self._fetch_categories = fetch_categories
        self.page_size = page_size

        self._lock = threading.RLock()
        self._latest_token = 0
        self._categories_token = 0
        self._in_flight = 0
        self._pending: Set[Future] = set()

        self._raw: List[Product] = []
        self._categories: List[Category] = []
        self._category_id = ALL_CATEGORIES
        self._sort_key: Optional[str] = None
        self._sort_direction = ASC
        self._page = 1
        self._selected: Optional[Product] = None
        self.cart = Cart()

    # -- queries -----------------------------------------------------------

    def start(self) -> List[Future]:
        """Issue the default listing and the category fetch."""
        products = self._issue_products("", False)
        with self._lock:
            self._categories_token += 1
            token = self._categories_token
        categories = self._executor.submit(self._run_categories, token)
        self._track(categories)
        return [products, categories]

    def search(self, text: str) -> Optional[Future]:
        if not text or not text.strip():
            return None
        return self._issue_products(text.strip(), False)

    def lookup_barcode(self, code: str) -> Optional[Future]:
        if not code or not code.strip():
            return None
        return self._issue_products(code.strip(), True)

    def _track(self, future: Future) -> None:
        with self._lock:
            self._pending.add(future)

        def _untrack(f: Future) -> None:
            with self._lock:
                self._pending.discard(f)

        future.add_done_callback(_untrack)

    def _issue_products(self, query: str, is_barcode: bool) -> Future:
        with self._lock:
            self._latest_token += 1
            token = self._latest_token
            self._in_flight += 1
            self._page = 1
            self._selected = None

        logger.debug("Issuing product query #%d: %r (barcode=%s)", token, query, is_barcode)
        try:
            future = self._executor.submit(self._run_products, token, query, is_barcode)
        except Exception:
            with self._lock:
                self._in_flight -= 1
            raise
        self._track(future)
        return future

    def _run_products(self, token: int, query: str, is_barcode: bool) -> List[Product]:
        # Runs on the executor; the future settles only after the result is applied.
        try:
            products = list(self._fetch_products(query, is_barcode) or [])
        except Exception as e:
            logger.exception("Product query #%d failed: %s", token, e)
            products = []
        self._apply_products(token, products)
        return products

    def _apply_products(self, token: int, products: List[Product]) -> None:
        with self._lock:
            self._in_flight -= 1
            if token != self._latest_token:
                logger.debug(
                    "Discarding stale response for query #%d (latest is #%d).",
                    token, self._latest_token,
                )
                return
            self._raw = products
            self._page = 1
            logger.debug("Applied query #%d: %d products.", token, len(products))

    def _run_categories(self, token: int) -> List[Category]:
        try:
            categories = list(self._fetch_categories() or [])
        except Exception as e:
            logger.exception("Category fetch failed: %s", e)
            categories = []
        with self._lock:
            if token != self._categories_token:
                logger.debug(
                    "Discarding stale categories #%d (latest is #%d).",
                    token, self._categories_token,
                )
                return categories
            self._categories = categories
        return categories

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every outstanding query settles; False on timeout."""
        with self._lock:
            pending = set(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # -- view state --------------------------------------------------------

    @property
    def loading(self) -> bool:
        with self._lock:
            return self._in_flight > 0

    @property
    def raw(self) -> List[Product]:
        with self._lock:
            return list(self._raw)

    @property
    def categories(self) -> List[Category]:
        with self._lock:
            return list(self._categories)

    @property
    def category_id(self) -> str:
        return self._category_id

    @property
    def sort(self) -> Tuple[Optional[str], str]:
        return self._sort_key, self._sort_direction

    @property
    def page(self) -> int:
        return self._page

    def select_category(self, category_id: str | None) -> None:
        with self._lock:
            self._category_id = (category_id or "").strip() or ALL_CATEGORIES
            self._page = 1
            self._selected = None

    def toggle_sort(self, key: str) -> Tuple[str, str]:
        with self._lock:
            self._sort_key, self._sort_direction = next_sort(
                self._sort_key, self._sort_direction, key
            )
            self._page = 1
            self._selected = None
            return self._sort_key, self._sort_direction

    def load_more(self) -> int:
        with self._lock:
            self._page += 1
            self._selected = None
            return self._page

    def view(self) -> CatalogView:
        with self._lock:
            return derive_view(
                self._raw,
                self._category_id,
                self._sort_key,
                self._sort_direction,
                self._page,
                self.page_size,
            )

    @property
    def visible(self) -> List[Product]:
        return self.view().visible

    # -- detail & cart -----------------------------------------------------

    def select(self, product: Product) -> ProductDetail:
        self._selected = product
        return project_detail(product)

    def dismiss(self) -> None:
        self._selected = None

    @property
    def selected(self) -> Optional[Product]:
        return self._selected

    def detail(self) -> Optional[ProductDetail]:
        if self._selected is None:
            return None
        return project_detail(self._selected)

    def add_to_cart(self, product: Product) -> CartLine:
        with self._lock:
            return self.cart.add(product)
