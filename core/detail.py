# core/detail.py
from dataclasses import dataclass, field
from typing import List, Optional

from .models import Product

GRADE_COLORS = {
    "a": "green",
    "b": "lime",
    "c": "yellow",
    "d": "orange",
    "e": "red",
}
NEUTRAL_COLOR = "gray"

# (nutriments key, label, unit)
NUTRIENT_SUMMARY = (
    ("energy_100g", "Energy", "kJ"),
    ("fat_100g", "Fat", "g"),
    ("carbohydrates_100g", "Carbs", "g"),
    ("proteins_100g", "Protein", "g"),
)

MAX_LABELS = 5
CARD_CATEGORIES = 2


@dataclass
class NutrientFact:
    key: str
    label: str
    value: float
    unit: str

    @property
    def display(self) -> str:
        value = f"{self.value:g}"
        return f"{value} {self.unit}" if self.unit == "kJ" else f"{value}{self.unit}"


@dataclass
class ProductDetail:
    product_id: str
    name: str
    image_url: str
    has_image: bool
    grade: Optional[str]
    grade_color: str
    brand: str
    categories: str
    ingredients_text: str
    nutrients: List[NutrientFact] = field(default_factory=list)
    labels: List[str] = field(default_factory=list)


@dataclass
class ProductCard:
    product_id: str
    name: str
    brand: str
    grade: Optional[str]
    grade_color: str
    image_url: str
    categories: List[str]


def grade_color(grade: Optional[str]) -> str:
    if not grade:
        return NEUTRAL_COLOR
    return GRADE_COLORS.get(grade.strip().lower(), NEUTRAL_COLOR)


def _grade_badge(grade: Optional[str]) -> Optional[str]:
    return grade.upper() if grade else None


def _split_csv(text: str) -> List[str]:
    return [part.strip() for part in (text or "").split(",")]


def nutrient_summary(product: Product) -> List[NutrientFact]:
    facts = []
    for key, label, unit in NUTRIENT_SUMMARY:
        value = product.nutrients.get(key)
        if value is None:
            continue
        facts.append(NutrientFact(key=key, label=label, value=value, unit=unit))
    return facts


def first_labels(labels: str, limit: int = MAX_LABELS) -> List[str]:
    if not labels:
        return []
    return [label for label in _split_csv(labels)[:limit] if label]


def project_detail(product: Product) -> ProductDetail:
    """Project a product into the display groups of the detail view."""
    return ProductDetail(
        product_id=product.product_id,
        name=product.name or "Unknown Product",
        image_url=product.image_url,
        has_image=bool(product.image_url),
        grade=_grade_badge(product.nutrition_grade),
        grade_color=grade_color(product.nutrition_grade),
        brand=product.brand,
        categories=product.categories,
        ingredients_text=product.ingredients_text,
        nutrients=nutrient_summary(product),
        labels=first_labels(product.labels),
    )


def project_card(product: Product) -> ProductCard:
    categories = [c for c in _split_csv(product.categories)[:CARD_CATEGORIES] if c]
    return ProductCard(
        product_id=product.product_id,
        name=product.name or "Unknown Product",
        brand=product.brand,
        grade=_grade_badge(product.nutrition_grade),
        grade_color=grade_color(product.nutrition_grade),
        image_url=product.image_url,
        categories=categories,
    )
