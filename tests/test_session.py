import pytest

from conftest import DummyResponse
from core.models import Category
from core.session import CatalogSession


def _fetcher(results):
    """Fake product fetcher returning canned lists keyed by query."""
    calls = []

    def fetch(query, is_barcode):
        calls.append((query, is_barcode))
        return results.get(query, [])

    fetch.calls = calls
    return fetch


def test_chocolate_search_hides_blank_names(fake_http, immediate_executor):
    fake_http.add(
        "/cgi/search.pl",
        DummyResponse(
            {
                "products": [
                    {"id": "1", "product_name": "A"},
                    {"id": "2", "product_name": "B"},
                    {"id": "3", "product_name": ""},
                ]
            }
        ),
    )
    session = CatalogSession(executor=immediate_executor, fetch_categories=lambda: [])

    session.search("chocolate")

    assert [p.name for p in session.visible] == ["A", "B"]
    assert session.loading is False


def test_unknown_barcode_empties_catalog(fake_http, immediate_executor):
    fake_http.add("/cgi/search.pl", DummyResponse({"products": [{"id": "1", "product_name": "Bread"}]}))
    fake_http.add("/api/v0/product/0000000000.json", DummyResponse({}))
    session = CatalogSession(executor=immediate_executor, fetch_categories=lambda: [])
    session.start()
    assert len(session.visible) == 1

    session.lookup_barcode("0000000000")

    view = session.view()
    assert view.visible == []
    assert view.is_empty is True
    assert session.loading is False


def test_start_loads_listing_and_categories(immediate_executor, make_product):
    fetch = _fetcher({"": [make_product("Bread"), make_product("Butter")]})
    session = CatalogSession(
        executor=immediate_executor,
        fetch_products=fetch,
        fetch_categories=lambda: [Category("en:dairies", "Dairies")],
    )

    futures = session.start()

    assert all(f.done() for f in futures)
    assert fetch.calls == [("", False)]
    assert [p.name for p in session.visible] == ["Bread", "Butter"]
    assert [c.category_id for c in session.categories] == ["en:dairies"]
    assert session.wait(0) is True


def test_category_failure_leaves_products_intact(immediate_executor, make_product):
    def broken_categories():
        raise RuntimeError("categories endpoint down")

    session = CatalogSession(
        executor=immediate_executor,
        fetch_products=_fetcher({"": [make_product("Bread")]}),
        fetch_categories=broken_categories,
    )

    session.start()

    assert session.categories == []
    assert [p.name for p in session.visible] == ["Bread"]


def test_blank_queries_are_ignored(immediate_executor):
    fetch = _fetcher({})
    session = CatalogSession(executor=immediate_executor, fetch_products=fetch, fetch_categories=lambda: [])

    assert session.search("   ") is None
    assert session.lookup_barcode("") is None
    assert fetch.calls == []


def test_stale_response_is_discarded(deferred_executor, make_product):
    fetch = _fetcher({"tea": [make_product("Green tea")], "coffee": [make_product("Espresso")]})
    session = CatalogSession(executor=deferred_executor, fetch_products=fetch, fetch_categories=lambda: [])

    session.search("tea")
    session.search("coffee")
    assert session.loading is True

    # newer query resolves first, the older one afterwards
    deferred_executor.run(1)
    assert [p.name for p in session.visible] == ["Espresso"]
    assert session.loading is True

    deferred_executor.run(0)
    assert [p.name for p in session.visible] == ["Espresso"]
    assert session.loading is False


def test_loading_stays_true_until_every_query_settles(deferred_executor, make_product):
    fetch = _fetcher({"tea": [make_product("Green tea")], "coffee": [make_product("Espresso")]})
    session = CatalogSession(executor=deferred_executor, fetch_products=fetch, fetch_categories=lambda: [])

    session.search("tea")
    session.search("coffee")

    deferred_executor.run(0)
    assert session.loading is True
    assert session.visible == []

    deferred_executor.run(1)
    assert session.loading is False
    assert [p.name for p in session.visible] == ["Espresso"]


def test_failed_query_resolves_to_empty_list(immediate_executor, make_product):
    results = {"": [make_product("Bread")]}

    def fetch(query, is_barcode):
        if query == "boom":
            raise RuntimeError("unexpected")
        return results[query]

    session = CatalogSession(executor=immediate_executor, fetch_products=fetch, fetch_categories=lambda: [])
    session.start()

    future = session.search("boom")

    assert future.result() == []
    assert session.visible == []
    assert session.loading is False


def test_page_resets_on_search_filter_and_sort(immediate_executor, make_product):
    products = [make_product(f"item {i:02d}", categories="Snacks") for i in range(50)]
    session = CatalogSession(
        executor=immediate_executor,
        fetch_products=_fetcher({"": products, "item": products}),
        fetch_categories=lambda: [],
    )
    session.start()

    assert len(session.visible) == 20
    assert session.load_more() == 2
    assert len(session.visible) == 40

    session.select_category("snacks")
    assert session.page == 1

    session.load_more()
    session.toggle_sort("name")
    assert session.page == 1

    session.load_more()
    session.search("item")
    assert session.page == 1
    assert len(session.visible) == 20


def test_load_more_is_prefix_stable(immediate_executor, make_product):
    products = [make_product(f"item {i:02d}") for i in range(30)]
    session = CatalogSession(executor=immediate_executor, fetch_products=_fetcher({"": products}), fetch_categories=lambda: [])
    session.start()

    first_page = session.visible
    session.load_more()

    assert len(session.visible) == 30
    assert session.visible[:20] == first_page
    assert session.view().has_more is False


def test_category_filter_persists_across_searches(immediate_executor, make_product):
    fetch = _fetcher(
        {
            "": [make_product("Chips", categories="Snacks"), make_product("Cola", categories="Sodas")],
            "crisps": [make_product("Crisps", categories="Salty snacks"), make_product("Dip", categories="Sauces")],
        }
    )
    session = CatalogSession(executor=immediate_executor, fetch_products=fetch, fetch_categories=lambda: [])
    session.start()
    session.select_category("snacks")
    assert [p.name for p in session.visible] == ["Chips"]

    session.search("crisps")

    assert [p.name for p in session.visible] == ["Crisps"]
    session.select_category("all")
    assert [p.name for p in session.visible] == ["Crisps", "Dip"]


def test_sort_toggle_flips_direction(immediate_executor, make_product):
    fetch = _fetcher({"": [make_product("b"), make_product("c"), make_product("a")]})
    session = CatalogSession(executor=immediate_executor, fetch_products=fetch, fetch_categories=lambda: [])
    session.start()

    assert session.toggle_sort("name") == ("name", "asc")
    assert [p.name for p in session.visible] == ["a", "b", "c"]
    assert session.toggle_sort("name") == ("name", "desc")
    assert [p.name for p in session.visible] == ["c", "b", "a"]
    assert session.toggle_sort("grade") == ("grade", "asc")

    with pytest.raises(ValueError):
        session.toggle_sort("price")


def test_select_and_dismiss_detail(immediate_executor, make_product):
    session = CatalogSession(executor=immediate_executor, fetch_products=_fetcher({}), fetch_categories=lambda: [])
    product = make_product("Yogurt", nutrition_grade="a")

    detail = session.select(product)

    assert detail.grade_color == "green"
    assert session.selected is product
    assert session.detail().name == "Yogurt"
    session.dismiss()
    assert session.selected is None
    assert session.detail() is None


def test_cart_is_independent_of_view(immediate_executor, make_product):
    bread = make_product("Bread")
    session = CatalogSession(executor=immediate_executor, fetch_products=_fetcher({"": [bread]}), fetch_categories=lambda: [])
    session.start()

    session.add_to_cart(bread)
    session.add_to_cart(bread)
    session.search("nothing")

    assert session.visible == []
    assert session.cart.total_quantity == 2
    assert len(session.cart) == 1


def test_catalog_changes_dismiss_selection(immediate_executor, make_product):
    products = [make_product(f"item {i:02d}", categories="Snacks") for i in range(30)]
    session = CatalogSession(
        executor=immediate_executor,
        fetch_products=_fetcher({"": products, "item": products}),
        fetch_categories=lambda: [],
    )
    session.start()

    changes = [
        lambda: session.search("item"),
        lambda: session.lookup_barcode("123"),
        lambda: session.select_category("snacks"),
        lambda: session.toggle_sort("name"),
        lambda: session.load_more(),
    ]
    for change in changes:
        session.select(products[0])
        change()
        assert session.selected is None
        assert session.detail() is None


def test_restart_keeps_latest_categories(deferred_executor):
    # batches are handed out in the order the fetches actually run
    batches = iter([[Category("en:fresh", "Fresh")], [Category("en:stale", "Stale")]])
    session = CatalogSession(
        executor=deferred_executor,
        fetch_products=_fetcher({}),
        fetch_categories=lambda: next(batches),
    )

    session.start()
    session.start()
    # tasks: products #1, categories #1, products #2, categories #2
    deferred_executor.run(3)
    deferred_executor.run(1)

    assert [c.category_id for c in session.categories] == ["en:fresh"]
