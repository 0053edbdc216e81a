"""In-memory state behind the mock retailer API.

Module level and guarded by one lock, since FastAPI runs sync endpoints in a
thread pool. ``reset()`` restores the seed data.
"""
import copy
import secrets
import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional

from storefront.orders.lifecycle import check_transition
from storefront.schemas import OrderItemStatus


class UnknownProduct(LookupError):
    pass


class UnknownOrderItem(LookupError):
    pass


class InsufficientStock(ValueError):
    def __init__(self, name: str, available: int):
        self.name = name
        self.available = available
        super().__init__(f"Only {available} {name} available")


SEED_PRODUCTS = [
    {"id": 1, "name": "Rice", "price": Decimal("2.50"), "image": "/img/rice.jpg", "stock_qty": 3},
    {"id": 2, "name": "Flour", "price": Decimal("1.80"), "image": "/img/flour.jpg", "stock_qty": 10},
    {"id": 3, "name": "Sugar", "price": Decimal("1.20"), "image": None, "stock_qty": 0},
    {"id": 4, "name": "Lentils", "price": Decimal("3.10"), "image": "/img/lentils.jpg", "stock_qty": 2},
]

SEED_ORDERS = [
    {
        "id": 100,
        "customer": "Corner Shop",
        "created_at": datetime(2026, 10, 1, 9, 30, tzinfo=timezone.utc),
        "items": [
            {"id": 1001, "product_id": 1, "product_name": "Rice", "qty": 2, "unit_price": Decimal("2.50"), "status": "pending"},
            {"id": 1002, "product_id": 2, "product_name": "Flour", "qty": 1, "unit_price": Decimal("1.80"), "status": "accepted"},
        ],
    },
    {
        "id": 101,
        "customer": "Deli Express",
        "created_at": datetime(2026, 10, 2, 14, 0, tzinfo=timezone.utc),
        "items": [
            {"id": 1003, "product_id": 3, "product_name": "Sugar", "qty": 5, "unit_price": Decimal("1.20"), "status": "shipped"},
            {"id": 1004, "product_id": 4, "product_name": "Lentils", "qty": 1, "unit_price": Decimal("3.10"), "status": "delivered"},
            {"id": 1005, "product_id": 1, "product_name": "Rice", "qty": 1, "unit_price": Decimal("2.50"), "status": "rejected"},
        ],
    },
]

_lock = threading.RLock()
_state: Dict[str, Any] = {}


def reset() -> None:
    with _lock:
        _state.clear()
        _state["products"] = {p["id"]: dict(p) for p in SEED_PRODUCTS}
        _state["carts"] = {}  # email -> {product_id: quantity}
        _state["orders"] = copy.deepcopy(SEED_ORDERS)
        _state["purchases"] = []
        _state["next_order_id"] = 500
        _state["next_item_id"] = 5000


reset()


# ---------- catalog ----------
def list_products(q: Optional[str] = None) -> List[Dict[str, Any]]:
    with _lock:
        rows = [dict(p) for p in _state["products"].values()]
    if q:
        rows = [p for p in rows if q.lower() in p["name"].lower()]
    return rows


def set_stock(product_id: int, stock_qty: int) -> None:
    with _lock:
        p = _state["products"].get(product_id)
        if not p:
            raise UnknownProduct(product_id)
        p["stock_qty"] = max(0, stock_qty)


# ---------- cart ----------
def _cart(email: str) -> Dict[int, int]:
    return _state["carts"].setdefault(email, {})


def _product_info(p: Dict[str, Any]) -> Dict[str, Any]:
    return {"name": p["name"], "price": p["price"], "image": p["image"], "stock_qty": p["stock_qty"]}


def get_cart(email: str) -> List[Dict[str, Any]]:
    with _lock:
        products = _state["products"]
        return [
            {"product_id": pid, "quantity": qty, "product": _product_info(products[pid])}
            for pid, qty in _cart(email).items()
        ]


def get_quantity(email: str, product_id: int) -> int:
    with _lock:
        return _cart(email).get(product_id, 0)


def change_quantity(email: str, product_id: int, delta: int) -> int:
    """Apply a signed delta and return the resulting quantity (0 means the line is gone)."""
    with _lock:
        p = _state["products"].get(product_id)
        if not p:
            raise UnknownProduct(product_id)
        cart = _cart(email)
        new_qty = cart.get(product_id, 0) + delta
        if delta > 0 and new_qty > p["stock_qty"]:
            raise InsufficientStock(p["name"], p["stock_qty"])
        if new_qty <= 0:
            cart.pop(product_id, None)
            return 0
        cart[product_id] = new_qty
        return new_qty


def put_quantity(email: str, product_id: int, quantity: int) -> None:
    """Set an absolute quantity without stock checks (test and demo setup)."""
    with _lock:
        if product_id not in _state["products"]:
            raise UnknownProduct(product_id)
        if quantity <= 0:
            _cart(email).pop(product_id, None)
        else:
            _cart(email)[product_id] = quantity


def delete_item(email: str, product_id: int) -> bool:
    with _lock:
        return _cart(email).pop(product_id, None) is not None


def clear_cart(email: str) -> None:
    with _lock:
        _state["carts"].pop(email, None)


def shortfalls(email: str) -> List[Dict[str, Any]]:
    with _lock:
        products = _state["products"]
        out = []
        for pid, qty in _cart(email).items():
            p = products[pid]
            if qty > p["stock_qty"]:
                out.append({"product_name": p["name"], "available": p["stock_qty"], "requested": qty})
        return out


# ---------- orders ----------
def list_orders() -> List[Dict[str, Any]]:
    with _lock:
        return copy.deepcopy(_state["orders"])


def get_order(order_id: int) -> Optional[Dict[str, Any]]:
    with _lock:
        for o in _state["orders"]:
            if o["id"] == order_id:
                return copy.deepcopy(o)
    return None


def _find_item(item_id: int) -> Dict[str, Any]:
    for o in _state["orders"]:
        for it in o["items"]:
            if it["id"] == item_id:
                return it
    raise UnknownOrderItem(item_id)


def get_item_status(item_id: int) -> str:
    with _lock:
        return _find_item(item_id)["status"]


def set_item_status(item_id: int, status: str) -> None:
    """Overwrite a status without lifecycle checks (test and demo setup)."""
    with _lock:
        _find_item(item_id)["status"] = status


def transition_item(item_id: int, status: str) -> str:
    """Move an item to ``status`` if the lifecycle allows it; check and write hold one lock."""
    with _lock:
        item = _find_item(item_id)
        check_transition(item["status"], status)
        item["status"] = OrderItemStatus(status).value
        return item["status"]


def create_purchase(email: str) -> Dict[str, Any]:
    """Turn the cart into a wholesale purchase order of pending items and empty the cart."""
    with _lock:
        cart = _cart(email)
        products = _state["products"]
        order_id = _state["next_order_id"]
        _state["next_order_id"] += 1
        items = []
        for pid, qty in cart.items():
            item_id = _state["next_item_id"]
            _state["next_item_id"] += 1
            items.append({
                "id": item_id,
                "product_id": pid,
                "product_name": products[pid]["name"],
                "qty": qty,
                "unit_price": products[pid]["price"],
                "status": "pending",
            })
        purchase = {
            "id": order_id,
            "customer": email,
            "created_at": datetime.now(timezone.utc),
            "items": items,
            "session_id": f"cs_mock_{secrets.token_hex(8)}",
        }
        _state["purchases"].append(purchase)
        cart.clear()
        return copy.deepcopy(purchase)


def list_purchases() -> List[Dict[str, Any]]:
    with _lock:
        return copy.deepcopy(_state["purchases"])
