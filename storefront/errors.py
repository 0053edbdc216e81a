"""Exceptions raised by the storefront client and its state engines."""

from typing import Optional


class StorefrontError(Exception):
    """Base exception for all storefront errors."""

    pass


class AuthenticationRequired(StorefrontError):
    """Raised when the retailer API answers 401; the caller must send the user to sign in."""

    def __init__(self, sign_in_url: str):
        self.sign_in_url = sign_in_url
        super().__init__(f"Authentication required, sign in at {sign_in_url}")


class ApiError(StorefrontError):
    """Raised for a failed request: non-2xx response or transport error.

    ``status_code`` is None when no response was received at all.
    """

    def __init__(self, status_code: Optional[int], message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(message if status_code is None else f"{status_code}: {message}")


class ValidationFailed(StorefrontError):
    """Raised when an action is refused locally, before any request is made."""

    pass


class OutOfStock(ValidationFailed):
    def __init__(self, product_name: str, available: int):
        self.product_name = product_name
        self.available = available
        if available <= 0:
            msg = f"{product_name} is out of stock"
        else:
            msg = f"{product_name}: Only {available} available"
        super().__init__(msg)


class EmptyCart(ValidationFailed):
    def __init__(self):
        super().__init__("Your cart is empty")


class TransitionNotAllowed(ValidationFailed):
    """Raised when an order item status change is not an edge of the lifecycle graph."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot change order item status from {current} to {target}")


class Superseded(StorefrontError):
    """Raised when a detail load was cancelled because a newer one started."""

    pass
