"""Async client for the remote retailer API.

All endpoints authenticate with a session cookie. A 401 from any endpoint is
raised as AuthenticationRequired; every other failure, including transport
errors and timeouts, is raised as ApiError.
"""
import logging
from typing import Any, Callable, List, Optional, TypeVar

import httpx
from pydantic import ValidationError

from storefront.core.config import settings
from storefront.errors import ApiError, AuthenticationRequired
from storefront.schemas import (
    CartEntry,
    CartMutation,
    CartMutationResult,
    CartValidation,
    CatalogProduct,
    CheckoutRequest,
    CheckoutSession,
    Order,
    OrderItemStatus,
    SignIn,
    StatusUpdate,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

LOGIN_PATH = "/api/auth/login"
LOGOUT_PATH = "/api/auth/logout"
PRODUCTS_PATH = "/api/retailer/products"
CART_PATH = "/api/retailer/cart"
CART_VALIDATE_PATH = "/api/retailer/cart/validate"
ORDERS_PATH = "/api/retailer/orders"
ORDER_ITEMS_PATH = "/api/retailer/orders/items"
CHECKOUT_PATH = "/api/retailer/checkout"


def _error_message(resp: httpx.Response, default: str) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text or default
    if isinstance(data, dict):
        msg = data.get("error") or data.get("detail")
        if isinstance(msg, str) and msg:
            return msg
    return default


class RetailerApiClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        session_token: Optional[str] = None,
        session_cookie: str = "session",
        sign_in_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.sign_in_url = sign_in_url or settings.SIGN_IN_URL
        self.session_cookie = session_cookie
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE,
            timeout=timeout if timeout is not None else settings.HTTP_TIMEOUT,
            transport=transport,
        )
        if session_token:
            self._http.cookies.set(session_cookie, session_token)

    async def __aenter__(self) -> "RetailerApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, path: str, default_error: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._http.request(method, path, **kwargs)
        except httpx.RequestError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ApiError(None, default_error) from exc
        if resp.status_code == 401:
            logger.info("%s %s -> 401, sign-in required", method, path)
            raise AuthenticationRequired(self.sign_in_url)
        if resp.status_code >= 400:
            message = _error_message(resp, default_error)
            logger.warning("%s %s -> %s: %s", method, path, resp.status_code, message)
            raise ApiError(resp.status_code, message)
        return resp

    @staticmethod
    def _decode(resp: httpx.Response, parse: Callable[[Any], T], default_error: str) -> T:
        """Parse a 2xx body; an unreadable or mis-shaped one is an ApiError like any other failure."""
        try:
            return parse(resp.json())
        except (ValueError, TypeError, ValidationError) as exc:
            logger.warning("%s %s -> %s with unexpected body: %s",
                           resp.request.method, resp.request.url.path, resp.status_code, exc)
            raise ApiError(resp.status_code, default_error) from exc

    # ---------- session ----------
    async def sign_in(self, email: str, password: str) -> None:
        payload = SignIn(email=email, password=password)
        await self._request("POST", LOGIN_PATH, "Sign-in failed", json=payload.model_dump())

    async def sign_out(self) -> None:
        try:
            await self._request("POST", LOGOUT_PATH, "Sign-out failed")
        finally:
            self._http.cookies.clear()

    # ---------- catalog ----------
    async def list_products(self, q: Optional[str] = None) -> List[CatalogProduct]:
        params = {"q": q} if q else None
        error = "Failed to load products"
        resp = await self._request("GET", PRODUCTS_PATH, error, params=params)
        return self._decode(resp, lambda data: [CatalogProduct.model_validate(p) for p in data], error)

    # ---------- cart ----------
    async def get_cart(self) -> List[CartEntry]:
        error = "Failed to load cart"
        resp = await self._request("GET", CART_PATH, error)
        return self._decode(resp, lambda data: [CartEntry.model_validate(e) for e in data], error)

    async def change_cart_quantity(self, product_id: int, delta: int) -> int:
        """Apply a signed quantity delta; returns the server's absolute quantity."""
        error = "Failed to update cart"
        body = CartMutation(product_id=product_id, quantity=delta)
        resp = await self._request("POST", CART_PATH, error, json=body.model_dump())
        return self._decode(resp, CartMutationResult.model_validate, error).quantity

    async def remove_from_cart(self, product_id: int) -> None:
        await self._request("DELETE", f"{CART_PATH}/{product_id}", "Failed to remove item")

    async def validate_cart(self) -> CartValidation:
        error = "Failed to validate cart"
        resp = await self._request("GET", CART_VALIDATE_PATH, error)
        return self._decode(resp, CartValidation.model_validate, error)

    async def create_checkout_session(self, success_url: str, cancel_url: str) -> str:
        error = "Failed to create checkout session"
        body = CheckoutRequest(success_url=success_url, cancel_url=cancel_url)
        resp = await self._request("POST", CHECKOUT_PATH, error, json=body.model_dump())
        return self._decode(resp, CheckoutSession.model_validate, error).url

    # ---------- orders ----------
    async def list_orders(self) -> List[Order]:
        error = "Failed to load orders"
        resp = await self._request("GET", ORDERS_PATH, error)
        return self._decode(resp, lambda data: [Order.model_validate(o) for o in data], error)

    async def get_order(self, order_id: int) -> Order:
        error = "Failed to load order"
        resp = await self._request("GET", f"{ORDERS_PATH}/{order_id}", error)
        return self._decode(resp, Order.model_validate, error)

    async def update_order_item_status(self, item_id: int, status: OrderItemStatus) -> None:
        body = StatusUpdate(status=status)
        await self._request(
            "PATCH",
            f"{ORDER_ITEMS_PATH}/{item_id}",
            "Failed to update order status",
            json=body.model_dump(mode="json"),
        )
