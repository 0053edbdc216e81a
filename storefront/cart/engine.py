"""Cart reconciliation engine.

Local cart state is a single mapping of product id to CartLine. Mutations are
optimistic: the line changes immediately, a signed delta goes to the server,
and the absolute quantity the server answers with replaces the local guess.
On failure the line goes back to exactly what it was before the action.

Each line allows one request in flight; while ``loading`` is set further
actions on that product are refused without touching the network.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional

from storefront.api.client import RetailerApiClient
from storefront.cart.checkout import summarize_validation
from storefront.errors import (
    ApiError,
    AuthenticationRequired,
    EmptyCart,
    OutOfStock,
    ValidationFailed,
)
from storefront.notifications import Notifier
from storefront.schemas import CatalogProduct, ProductInfo

logger = logging.getLogger(__name__)


@dataclass
class CartLine:
    product_id: int
    product: ProductInfo
    quantity: Optional[int] = None  # None: not in cart
    loading: bool = False

    @property
    def in_cart(self) -> bool:
        return self.quantity is not None and self.quantity > 0

    @property
    def at_stock_limit(self) -> bool:
        return (self.quantity or 0) >= self.product.stock_qty

    @property
    def subtotal(self) -> Decimal:
        return self.product.price * (self.quantity or 0)


SORT_KEYS: Dict[str, Callable[[CartLine], object]] = {
    "name": lambda line: line.product.name.lower(),
    "price": lambda line: line.product.price,
    "stock": lambda line: line.product.stock_qty,
    "quantity": lambda line: line.quantity or 0,
}


class CartEngine:
    def __init__(self, client: RetailerApiClient, notifier: Notifier):
        self._client = client
        self._notifier = notifier
        self.lines: Dict[int, CartLine] = {}

    # ---------- loading ----------
    async def load(self) -> bool:
        """Re-fetch the cart. Server quantities replace whatever is held locally.

        Lines with a mutation in flight keep their quantity and busy flag; the
        outstanding request settles them.
        """
        try:
            entries = await self._client.get_cart()
        except AuthenticationRequired as exc:
            self._notifier.require_sign_in(exc.sign_in_url)
            return False
        except ApiError as exc:
            self._notifier.error(exc.message)
            return False

        seen = set()
        for e in entries:
            seen.add(e.product_id)
            line = self.lines.get(e.product_id)
            if line is None:
                self.lines[e.product_id] = CartLine(e.product_id, e.product, e.quantity if e.quantity > 0 else None)
                continue
            line.product = e.product
            if not line.loading:
                line.quantity = e.quantity if e.quantity > 0 else None
        for pid, line in self.lines.items():
            if pid not in seen and not line.loading:
                line.quantity = None
        logger.debug("cart loaded: %d lines", len(seen))
        return True

    def seed_catalog(self, products: Iterable[CatalogProduct]) -> None:
        for p in products:
            info = ProductInfo(name=p.name, price=p.price, image=p.image, stock_qty=p.stock_qty)
            line = self.lines.get(p.id)
            if line is None:
                self.lines[p.id] = CartLine(p.id, info)
            else:
                line.product = info

    async def load_catalog(self, q: Optional[str] = None) -> bool:
        try:
            products = await self._client.list_products(q)
        except AuthenticationRequired as exc:
            self._notifier.require_sign_in(exc.sign_in_url)
            return False
        except ApiError as exc:
            self._notifier.error(exc.message)
            return False
        self.seed_catalog(products)
        return True

    # ---------- projections ----------
    def line(self, product_id: int) -> CartLine:
        return self.lines[product_id]

    def quantity(self, product_id: int) -> Optional[int]:
        line = self.lines.get(product_id)
        return line.quantity if line is not None and line.in_cart else None

    def cart_lines(self) -> List[CartLine]:
        return [line for line in self.lines.values() if line.in_cart]

    def view(
        self,
        query: Optional[str] = None,
        sort: str = "name",
        descending: bool = False,
        in_cart_only: bool = True,
    ) -> List[CartLine]:
        """Filtered, sorted read-only projection over the lines."""
        lines = self.cart_lines() if in_cart_only else list(self.lines.values())
        if query:
            needle = query.lower()
            lines = [line for line in lines if needle in line.product.name.lower()]
        return sorted(lines, key=SORT_KEYS[sort], reverse=descending)

    @property
    def total(self) -> Decimal:
        return sum((line.subtotal for line in self.cart_lines()), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.cart_lines())

    # ---------- mutations ----------
    async def add(self, product_id: int) -> bool:
        line = self.line(product_id)
        if line.loading:
            return False
        if line.in_cart:
            return await self.increment(product_id)
        try:
            self._check_stock(line)
        except ValidationFailed as exc:
            self._notifier.error(str(exc))
            return False
        return await self._apply(line, 1, optimistic=1)

    async def increment(self, product_id: int) -> bool:
        line = self.line(product_id)
        if line.loading:
            return False
        if not line.in_cart:
            return await self.add(product_id)
        try:
            self._check_stock(line)
        except ValidationFailed as exc:
            self._notifier.error(str(exc))
            return False
        return await self._apply(line, 1, optimistic=line.quantity + 1)

    async def decrement(self, product_id: int) -> bool:
        line = self.line(product_id)
        if line.loading or not line.in_cart:
            return False
        # no lower bound check here, the server decides
        return await self._apply(line, -1, optimistic=max(line.quantity - 1, 0))

    async def remove(self, product_id: int) -> bool:
        line = self.line(product_id)
        if line.loading or not line.in_cart:
            return False
        line.loading = True
        try:
            await self._client.remove_from_cart(product_id)
        except AuthenticationRequired as exc:
            self._notifier.require_sign_in(exc.sign_in_url)
            return False
        except ApiError as exc:
            self._notifier.error(exc.message)
            return False
        finally:
            line.loading = False
        line.quantity = None
        logger.info("removed product %s from cart", product_id)
        self._notifier.success(f"{line.product.name} removed from cart")
        return True

    def _check_stock(self, line: CartLine) -> None:
        if line.at_stock_limit:
            raise OutOfStock(line.product.name, line.product.stock_qty)

    def _check_not_empty(self) -> None:
        if not self.cart_lines():
            raise EmptyCart()

    async def _apply(self, line: CartLine, delta: int, optimistic: int) -> bool:
        previous = line.quantity
        line.quantity = optimistic
        line.loading = True
        try:
            quantity = await self._client.change_cart_quantity(line.product_id, delta)
        except AuthenticationRequired as exc:
            line.quantity = previous
            self._notifier.require_sign_in(exc.sign_in_url)
            return False
        except ApiError as exc:
            line.quantity = previous
            logger.info("rolled back product %s to %s", line.product_id, previous)
            self._notifier.error(exc.message)
            return False
        finally:
            line.loading = False
        line.quantity = quantity if quantity > 0 else None
        logger.debug("product %s quantity %s (delta %+d)", line.product_id, line.quantity, delta)
        return True

    # ---------- checkout ----------
    async def validate_for_checkout(self) -> bool:
        """True when the server confirms every line can be fulfilled; otherwise checkout stays blocked."""
        try:
            self._check_not_empty()
        except ValidationFailed as exc:
            self._notifier.error(str(exc))
            return False
        try:
            result = await self._client.validate_cart()
        except AuthenticationRequired as exc:
            self._notifier.require_sign_in(exc.sign_in_url)
            return False
        except ApiError as exc:
            self._notifier.error(exc.message)
            return False
        message = summarize_validation(result)
        if message is not None:
            self._notifier.error(message)
            return False
        return True

    async def checkout(self, success_url: str, cancel_url: str) -> Optional[str]:
        """Validate, then open a checkout session. Returns the payment redirect URL."""
        if not await self.validate_for_checkout():
            return None
        try:
            url = await self._client.create_checkout_session(success_url, cancel_url)
        except AuthenticationRequired as exc:
            self._notifier.require_sign_in(exc.sign_in_url)
            return None
        except ApiError as exc:
            self._notifier.error(exc.message)
            return None
        logger.info("checkout session created")
        return url
