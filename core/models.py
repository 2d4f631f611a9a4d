# core/models.py
from dataclasses import dataclass, field
from typing import Dict, Optional

ALL_CATEGORIES = "all"

SORT_KEYS = ("name", "grade")
ASC = "asc"
DESC = "desc"


@dataclass
class Product:
    """
    Normalized representation of an Open Food Facts product record.
    Nutrient values are per 100g.
    """
    product_id: str
    name: str
    brand: str = ""
    categories: str = ""
    nutrition_grade: Optional[str] = None
    image_url: str = ""
    ingredients_text: str = ""
    labels: str = ""
    nutrients: Dict[str, float] = field(default_factory=dict)
    has_stable_id: bool = True


@dataclass
class Category:
    category_id: str
    name: str


@dataclass
class CartLine:
    product: Product
    quantity: int = 1
