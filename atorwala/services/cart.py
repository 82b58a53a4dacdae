import logging
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Union

from atorwala.schemas.cart import CartItem
from atorwala.schemas.product import Product

logger = logging.getLogger(__name__)

CartObserver = Callable[["CartStore"], None]


class CartStore:
    """
    In-memory cart for one browsing session.

    Holds at most one CartItem per product id. The store never reads or writes
    storage itself; callers persist it through snapshot()/restore().
    """

    def __init__(self, items: Optional[List[CartItem]] = None):
        self._items: Dict[str, CartItem] = {}
        self._observers: List[CartObserver] = []
        for item in items or []:
            self._items[item.id] = item

    @property
    def items(self) -> List[CartItem]:
        return list(self._items.values())

    @property
    def is_empty(self) -> bool:
        return not self._items

    def get_item(self, product_id: str) -> Optional[CartItem]:
        return self._items.get(product_id)

    def subscribe(self, observer: CartObserver) -> Callable[[], None]:
        """Register a callback run after every mutation. Returns an unsubscribe function."""
        self._observers.append(observer)

        def unsubscribe():
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _notify(self):
        for observer in list(self._observers):
            observer(self)

    def add_to_cart(self, product: Union[Product, CartItem], quantity: int = 1):
        existing = self._items.get(product.id)
        if existing:
            existing.quantity += quantity
        else:
            image = product.image if isinstance(product, CartItem) else (product.image_url or "")
            self._items[product.id] = CartItem(
                id=product.id,
                name=product.name,
                image=image,
                price=product.price,
                quantity=quantity
            )
        logger.info(f"Added to cart: product_id={product.id}, quantity={quantity}")
        self._notify()

    def update_quantity(self, product_id: str, quantity: int):
        if quantity <= 0:
            self.remove_from_cart(product_id)
            return

        item = self._items.get(product_id)
        if not item:
            return

        item.quantity = quantity
        logger.info(f"Updated cart item: product_id={product_id}, quantity={quantity}")
        self._notify()

    def remove_from_cart(self, product_id: str):
        if self._items.pop(product_id, None) is None:
            return
        logger.info(f"Removed from cart: product_id={product_id}")
        self._notify()

    def clear_cart(self):
        self._items.clear()
        logger.info("Cart cleared")
        self._notify()

    def get_total_items(self) -> int:
        return sum(item.quantity for item in self._items.values())

    def get_total_price(self) -> Decimal:
        return sum((item.line_total for item in self._items.values()), Decimal("0"))

    def snapshot(self) -> List[dict]:
        return [item.model_dump(mode="json") for item in self._items.values()]

    @classmethod
    def restore(cls, data: Optional[List[dict]]) -> "CartStore":
        items = []
        for raw in data or []:
            item = CartItem.model_validate(raw)
            if item.quantity > 0:
                items.append(item)
        return cls(items)
