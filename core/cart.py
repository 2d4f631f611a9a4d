# core/cart.py
from typing import Dict, List

from .models import CartLine, Product
from .logger import get_logger

logger = get_logger(__name__)


class Cart:
    """
    Volatile session cart keyed by product id. Lines keep first-add order.
    """

    def __init__(self):
        self._lines: Dict[str, CartLine] = {}

    def add(self, product: Product) -> CartLine:
        if not product.name.strip():
            raise ValueError("Cannot add a product without a name to the cart")

        line = self._lines.get(product.product_id)
        if line is None:
            line = CartLine(product=product, quantity=1)
            self._lines[product.product_id] = line
        else:
            line.quantity += 1

        logger.debug(
            "Cart: %s (%s) quantity=%d, total items=%d",
            product.name, product.product_id, line.quantity, self.total_quantity,
        )
        return line

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines.values())

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def quantity_of(self, product_id: str) -> int:
        line = self._lines.get(product_id)
        return line.quantity if line else 0

    def __len__(self) -> int:
        return len(self._lines)
