"""
Buyer order history and cancellation.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from cropmarket.api.dependencies import get_current_user, get_order_service
from cropmarket.api.models import OrderHistoryResponse, OrderResponse
from cropmarket.security.validators import validate_id

router = APIRouter(prefix="/v1/orders", tags=["orders"])


@router.get("", response_model=OrderHistoryResponse)
def order_history(request: Request, response: Response) -> dict:
    user = get_current_user(request)
    groups = get_order_service(request).buyer_history(user["id"])
    request.state.result_count = sum(len(orders) for orders in groups.values())
    response.headers["Cache-Control"] = "no-store"
    return groups


@router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(order_id: str, request: Request, response: Response) -> dict:
    user = get_current_user(request)
    order = get_order_service(request).cancel_order(user["id"], validate_id(order_id, field="order_id"))
    response.headers["Cache-Control"] = "no-store"
    return order
