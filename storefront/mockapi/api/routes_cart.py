from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from storefront.cart.checkout import summarize_validation
from storefront.mockapi.core.auth import get_current_identity
from storefront.mockapi.store import memory_store as store
from storefront.schemas import (
    CartEntry,
    CartMutation,
    CartMutationResult,
    CartValidation,
    CatalogProduct,
    CheckoutRequest,
    CheckoutSession,
)

router = APIRouter()  # main.py mounts at /api/retailer


@router.get("/products", response_model=List[CatalogProduct])
def list_products(q: Optional[str] = None, identity: dict = Depends(get_current_identity)):
    return store.list_products(q)


@router.get("/cart", response_model=List[CartEntry])
def get_my_cart(identity: dict = Depends(get_current_identity)):
    return store.get_cart(identity["sub"])


@router.post("/cart", response_model=CartMutationResult)
def change_quantity(payload: CartMutation, identity: dict = Depends(get_current_identity)):
    try:
        qty = store.change_quantity(identity["sub"], payload.product_id, payload.quantity)
    except store.UnknownProduct:
        raise HTTPException(status_code=404, detail="Product not found")
    except store.InsufficientStock as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return CartMutationResult(quantity=qty)


@router.get("/cart/validate", response_model=CartValidation)
def validate(identity: dict = Depends(get_current_identity)):
    errors = store.shortfalls(identity["sub"])
    return {"valid": not errors, "errors": errors}


@router.delete("/cart/{product_id}")
def remove_item(product_id: int, identity: dict = Depends(get_current_identity)):
    if not store.delete_item(identity["sub"], product_id):
        raise HTTPException(status_code=404, detail="Item not in cart")
    return {"status": "ok"}


@router.post("/checkout", response_model=CheckoutSession)
def checkout(payload: CheckoutRequest, identity: dict = Depends(get_current_identity)):
    email = identity["sub"]
    if not store.get_cart(email):
        raise HTTPException(status_code=400, detail="Cart is empty")
    result = CartValidation(valid=False, errors=store.shortfalls(email))
    if result.errors:
        raise HTTPException(status_code=409, detail=summarize_validation(result))
    purchase = store.create_purchase(email)
    # Mock: a real backend would hand back the payment provider's hosted page
    sep = "&" if "?" in payload.success_url else "?"
    return CheckoutSession(url=f"{payload.success_url}{sep}session_id={purchase['session_id']}")
