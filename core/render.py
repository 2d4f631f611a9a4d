import os
from pathlib import Path
from typing import Any, Dict, List

from jinja2 import Environment, FileSystemLoader, select_autoescape

from core.cart import Cart
from core.detail import ProductDetail, project_card
from core.models import Category
from core.view import CatalogView

# Resolve template directory relative to this file
TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
env = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)

EXPLORER_THEME = os.getenv("EXPLORER_THEME", "light").strip().lower()
if EXPLORER_THEME not in ("light", "dark"):
    EXPLORER_THEME = "light"

THEMES = {
    "light": {
        "page_bg": "#f9fafb",
        "card_bg": "#ffffff",
        "card_border": "#e5e7eb",
        "text_primary": "#111827",
        "text_secondary": "#4b5563",
        "text_muted": "#6b7280",
        "accent": "#2563eb",
        "badge": "#ef4444",
    },
    "dark": {
        "page_bg": "#121212",
        "card_bg": "#1E1E1E",
        "card_border": "#333333",
        "text_primary": "#F1F1F1",
        "text_secondary": "#BBBBBB",
        "text_muted": "#777777",
        "accent": "#8AB4F8",
        "badge": "#FF6B6B",
    },
}

GRADE_HEX = {
    "green": "#22c55e",
    "lime": "#84cc16",
    "yellow": "#eab308",
    "orange": "#f97316",
    "red": "#ef4444",
    "gray": "#9ca3af",
}


def _theme(theme: str | None) -> str:
    theme = (theme or EXPLORER_THEME).strip().lower()
    return theme if theme in THEMES else "light"


def _catalog_context(
    view: CatalogView,
    cart_count: int,
    categories: List[Category] | None,
    category_id: str,
    sort: tuple,
    loading: bool,
) -> Dict[str, Any]:
    sort_key, sort_direction = sort
    cards = [vars(project_card(p)) for p in view.visible]
    for card in cards:
        card["grade_hex"] = GRADE_HEX.get(card["grade_color"], GRADE_HEX["gray"])
    return {
        "cards": cards,
        "matched_count": view.matched_count,
        "shown_count": len(view.visible),
        "has_more": view.has_more,
        "page": view.page,
        "cart_count": cart_count,
        "categories": categories or [],
        "category_id": category_id,
        "sort_key": sort_key,
        "sort_direction": sort_direction,
        "loading": loading,
    }


def render_catalog_text(
    view: CatalogView,
    cart_count: int = 0,
    categories: List[Category] | None = None,
    category_id: str = "all",
    sort: tuple = (None, "asc"),
    loading: bool = False,
) -> str:
    template = env.get_template("catalog.txt")
    return template.render(**_catalog_context(view, cart_count, categories, category_id, sort, loading))


def render_catalog_html(
    view: CatalogView,
    cart_count: int = 0,
    categories: List[Category] | None = None,
    category_id: str = "all",
    sort: tuple = (None, "asc"),
    loading: bool = False,
    theme: str | None = None,
) -> str:
    template = env.get_template("catalog.html")
    ctx = _catalog_context(view, cart_count, categories, category_id, sort, loading)
    ctx["colors"] = THEMES[_theme(theme)]
    ctx["title"] = "Food Product Explorer"
    return template.render(**ctx)


def render_detail_text(detail: ProductDetail, cart_quantity: int = 0) -> str:
    template = env.get_template("detail.txt")
    return template.render(detail=detail, cart_quantity=cart_quantity)


def render_detail_html(detail: ProductDetail, cart_quantity: int = 0, theme: str | None = None) -> str:
    template = env.get_template("detail.html")
    return template.render(
        title=detail.name,
        detail=detail,
        cart_quantity=cart_quantity,
        grade_hex=GRADE_HEX.get(detail.grade_color, GRADE_HEX["gray"]),
        colors=THEMES[_theme(theme)],
    )


def render_cart_text(cart: Cart) -> str:
    template = env.get_template("cart.txt")
    return template.render(lines=cart.lines, total=cart.total_quantity)
