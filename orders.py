# orders.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func

from auth import get_store
from database import DocumentStore, utcnow
from medicines import get_upload_store
from schemas import CANCELLED, NON_CANCELLABLE, PENDING, OrderCreate, OrderOut, OrderUpdate
from storage import UploadStore, read_payload

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/orders", status_code=status.HTTP_201_CREATED)
async def create_order(
    request: Request,
    store: DocumentStore = Depends(get_store),
    uploads: UploadStore = Depends(get_upload_store),
):
    """
    Place an order. Accepts a JSON body or a multipart form where `items` is a
    JSON string and `prescription` an optional image. Orders always start Pending.
    """
    data, prescription = await read_payload(request, "prescription")
    order = OrderCreate.model_validate(data)

    values = order.model_dump()
    values.update(
        status=PENDING,
        notes="",
        date=utcnow(),
        prescription_image=await uploads.store(prescription) if prescription else None,
    )
    created = await store.orders.create(values)

    logger.info(f"Order placed: id={created['id']} customer={created['customer']} total={created['total']}")
    return {"message": "Order placed successfully", "order": OrderOut(**created).to_json()}


@router.get("/api/orders")
async def list_orders(store: DocumentStore = Depends(get_store)):
    c = store.orders.c
    orders = await store.orders.find(order_by=[c.created_at.desc(), c.id.desc()])
    return [OrderOut(**o).to_json() for o in orders]


@router.put("/api/orders/{order_id}")
async def update_order(order_id: int, payload: OrderUpdate, store: DocumentStore = Depends(get_store)):
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if changes:
        order = await store.orders.update(order_id, changes)
    else:
        order = await store.orders.get(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")

    logger.info(f"Order updated: id={order_id} {changes}")
    return {"message": "Order updated successfully", "order": OrderOut(**order).to_json()}


@router.put("/api/orders/{order_id}/cancel")
async def cancel_order(order_id: int, store: DocumentStore = Depends(get_store)):
    order = await store.orders.get(order_id)
    if order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    if order["status"] in NON_CANCELLABLE:
        logger.warning(f"Refused to cancel order {order_id} in status {order['status']}")
        raise HTTPException(status_code=400, detail="Cannot cancel order at this stage")

    order = await store.orders.update(order_id, {"status": CANCELLED})
    logger.info(f"Order cancelled: id={order_id}")
    return {"message": "Order cancelled successfully", "order": OrderOut(**order).to_json()}


@router.get("/api/my-orders")
async def my_orders(email: Optional[str] = None, store: DocumentStore = Depends(get_store)):
    if not email or not email.strip():
        raise HTTPException(status_code=400, detail="Email is required")

    c = store.orders.c
    orders = await store.orders.find(
        func.lower(c.customer) == email.strip().lower(),
        order_by=[c.date.desc(), c.id.desc()],
    )
    return [OrderOut(**o).to_json() for o in orders]
