"""
Order lifecycle

Orders are created once at checkout with status "pending" and afterwards
only change status. Any status may follow any other; the last write wins.
"""

from typing import List, Optional, get_args

import structlog
from pymongo import DESCENDING

from database import (
    create_document,
    get_document,
    get_documents,
    now,
    serialize_document,
    serialize_documents,
    to_object_id,
    update_document,
)
from errors import NotFound, ValidationError
from schemas import CreateOrderPayload, Order, OrderStatus

logger = structlog.get_logger(__name__)

ORDER_STATUSES = get_args(OrderStatus)


def create_order(payload: CreateOrderPayload) -> str:
    if not payload.email or not payload.items:
        raise ValidationError("Missing required fields")

    order = Order(**payload.model_dump(), status="pending")
    order_id = create_document("order", order)
    logger.info("Order created", order_id=order_id, items=len(order.items), total=order.total)
    return order_id


def get_order(order_id: str) -> dict:
    order = get_document("order", {"_id": to_object_id(order_id, "order ID")})
    if order is None:
        raise NotFound("Order not found")
    return serialize_document(order)


def list_orders() -> List[dict]:
    return serialize_documents(get_documents("order", sort=[("created_at", DESCENDING)]))


def update_status(order_id: str, status: Optional[str]) -> dict:
    if not status:
        raise ValidationError("Status is required")
    if status not in ORDER_STATUSES:
        raise ValidationError("Invalid status")

    order = update_document(
        "order",
        {"_id": to_object_id(order_id, "order ID")},
        {"status": status, "status_updated_at": now()},
    )
    if order is None:
        raise NotFound("Order not found")
    logger.info("Order status updated", order_id=order_id, status=status)
    return serialize_document(order)
