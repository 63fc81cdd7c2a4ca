"""
Farmer dashboard: incoming orders, own listings and status updates.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response

from cropmarket.api.dependencies import get_order_service, get_store, require_role
from cropmarket.api.models import (
    FarmerOrdersResponse,
    ListingResponse,
    OrderResponse,
    OrderStatusUpdateRequest,
)
from cropmarket.domain.enums import UserRole
from cropmarket.security.validators import validate_id

router = APIRouter(prefix="/v1/farmer", tags=["farmer"])


@router.get("/orders", response_model=FarmerOrdersResponse)
def farmer_orders(
    request: Request,
    response: Response,
    status: str = Query(default="all", max_length=20),
) -> dict:
    farmer = require_role(request, UserRole.FARMER)
    service = get_order_service(request)
    items = service.farmer_orders(farmer["id"], status)
    request.state.result_count = len(items)
    response.headers["Cache-Control"] = "no-store"
    return {"status": status, "tabs": service.dashboard_tabs(farmer["id"]), "items": items}


@router.get("/listings", response_model=list[ListingResponse])
def farmer_listings(request: Request, response: Response) -> list[dict]:
    farmer = require_role(request, UserRole.FARMER)
    response.headers["Cache-Control"] = "no-store"
    return get_store(request).list_farmer_listings(farmer["id"])


@router.patch("/orders/{order_id}", response_model=OrderResponse)
def update_order_status(
    order_id: str,
    payload: OrderStatusUpdateRequest,
    request: Request,
    response: Response,
) -> dict:
    farmer = require_role(request, UserRole.FARMER)
    order = get_order_service(request).update_order_status(
        farmer["id"],
        validate_id(order_id, field="order_id"),
        payload.status,
    )
    response.headers["Cache-Control"] = "no-store"
    return order
