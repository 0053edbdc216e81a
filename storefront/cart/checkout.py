from typing import Optional

from storefront.schemas import CartValidation, Shortfall


def describe_shortfall(s: Shortfall) -> str:
    return f"{s.product_name}: Only {s.available} available (requested: {s.requested})"


def summarize_validation(result: CartValidation) -> Optional[str]:
    """Message for the first shortfall plus a count of the rest, or None when the cart is valid."""
    if result.valid:
        return None
    if not result.errors:
        return "Some items in your cart are no longer available"
    msg = describe_shortfall(result.errors[0])
    more = len(result.errors) - 1
    if more:
        msg = f"{msg} (+{more} more)"
    return msg
