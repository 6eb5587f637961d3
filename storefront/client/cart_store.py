# storefront/client/cart_store.py
"""Per-session shopping cart.

Mutations are synchronous and return ``True`` when applied. A rejected change
(out of stock, above stock, unknown item) returns ``False`` and leaves the cart
untouched. ``total`` is recomputed from the item list on every change.
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..logger import logger

CartListener = Callable[[Dict[str, Any]], None]


def _price(product: Mapping) -> float:
    try:
        price = float(product.get("price") or 0)
    except (TypeError, ValueError):
        return 0.0
    return max(price, 0.0)

def _stock(product: Mapping) -> Optional[int]:
    stock = product.get("stock")
    if stock is None or isinstance(stock, bool):
        return None
    try:
        return max(int(stock), 0)
    except (TypeError, ValueError):
        return None

def is_out_of_stock(product: Mapping) -> bool:
    stock = _stock(product)
    if stock is not None:
        return stock == 0
    return product.get("in_stock") is False


@dataclass
class CartItem:
    product: Dict[str, Any]
    quantity: int = 1

    @property
    def id(self) -> str:
        return str(self.product["id"])

    @property
    def price(self) -> float:
        return _price(self.product)

    @property
    def stock(self) -> Optional[int]:
        return _stock(self.product)

    @property
    def subtotal(self) -> float:
        return self.quantity * self.price

    def as_dict(self) -> Dict[str, Any]:
        return {**self.product, "quantity": self.quantity}


class CartStore:
    def __init__(self):
        self._items: List[CartItem] = []
        self._total = 0.0
        self._listeners: List[CartListener] = []

    @property
    def items(self) -> List[CartItem]:
        return list(self._items)

    @property
    def total(self) -> float:
        return self._total

    @property
    def count(self) -> int:
        return sum(i.quantity for i in self._items)

    def snapshot(self) -> Dict[str, Any]:
        return {"items": [i.as_dict() for i in self._items], "total": self._total}

    def subscribe(self, listener: CartListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _find(self, product_id: str) -> Optional[CartItem]:
        return next((i for i in self._items if i.id == product_id), None)

    def _commit(self, items: List[CartItem]) -> bool:
        self._items = items
        self._total = max(sum(i.subtotal for i in items), 0.0)
        snap = self.snapshot()
        for listener in list(self._listeners):
            listener(snap)
        return True

    # ---------- mutations ----------

    def add_to_cart(self, product: Optional[Mapping]) -> bool:
        pid = _product_id(product)
        if pid is None:
            return False
        if is_out_of_stock(product):
            logger.debug(f"[CART] {pid} is out of stock")
            return False
        existing = self._find(pid)
        quantity = (existing.quantity if existing else 0) + 1
        stock = _stock(product)
        if stock is not None and quantity > stock:
            logger.debug(f"[CART] {pid} capped at stock {stock}")
            return False
        if existing:
            items = [CartItem(i.product, quantity) if i.id == pid else i for i in self._items]
        else:
            items = self._items + [CartItem(dict(product, id=pid), 1)]
        return self._commit(items)

    def remove_from_cart(self, product: Any) -> bool:
        pid = _product_id(product)
        if pid is None or not self._find(pid):
            return False
        return self._commit([i for i in self._items if i.id != pid])

    def update_quantity(self, product: Any, quantity: Any) -> bool:
        pid = _product_id(product)
        existing = self._find(pid) if pid is not None else None
        if not existing:
            return False
        try:
            n = max(int(quantity), 1)
        except (TypeError, ValueError):
            n = 1
        stock = existing.stock
        if stock is not None and n > stock:
            return False
        return self._commit([CartItem(i.product, n) if i.id == pid else i for i in self._items])

    def clear_cart(self) -> bool:
        return self._commit([])

    def handle_identity_change(self, previous: Optional[str], current: Optional[str]) -> None:
        # a cart belongs to the user who filled it
        if previous and previous != current:
            logger.info("[CART] identity changed, clearing cart")
            self.clear_cart()


def _product_id(product: Any) -> Optional[str]:
    if isinstance(product, CartItem):
        return product.id
    if not isinstance(product, Mapping):
        return None
    pid = product.get("id")
    if pid is None or pid == "":
        return None
    return str(pid)
