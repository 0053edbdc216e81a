from typing import List

from fastapi import APIRouter, Depends, HTTPException

from storefront.errors import TransitionNotAllowed
from storefront.mockapi.core.auth import get_current_identity
from storefront.mockapi.store import memory_store as store
from storefront.schemas import Order, StatusUpdate

router = APIRouter()  # main.py mounts at /api/retailer


@router.get("/orders", response_model=List[Order])
def list_orders(identity: dict = Depends(get_current_identity)):
    return store.list_orders()


@router.get("/orders/{order_id}", response_model=Order)
def get_order(order_id: int, identity: dict = Depends(get_current_identity)):
    obj = store.get_order(order_id)
    if not obj:
        raise HTTPException(status_code=404, detail="Order not found")
    return obj


@router.patch("/orders/items/{item_id}")
def update_item_status(item_id: int, payload: StatusUpdate, identity: dict = Depends(get_current_identity)):
    try:
        status = store.transition_item(item_id, payload.status.value)
    except store.UnknownOrderItem:
        raise HTTPException(status_code=404, detail="Order item not found")
    except TransitionNotAllowed as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return {"id": item_id, "status": status}
