"""
Shopping cart routes. Every mutation returns the whole cart with totals.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request, Response

from cropmarket.api.dependencies import get_current_user, get_store
from cropmarket.api.models import CartAddRequest, CartAdjustRequest, CartQuantityRequest, CartResponse
from cropmarket.domain.pricing import cart_subtotal, line_total
from cropmarket.repository import MarketStore
from cropmarket.security.validators import validate_id

router = APIRouter(prefix="/v1/cart", tags=["cart"])


def _cart_payload(store: MarketStore, user_id: str) -> dict[str, Any]:
    items = store.get_cart(user_id)
    for item in items:
        price = (item.get("listing") or {}).get("price", 0)
        item["line_total"] = line_total(price, item["quantity"])
    return {
        "items": items,
        "total_price": cart_subtotal(items),
        "item_count": len(items),
        "unit_count": sum(item["quantity"] for item in items),
    }


@router.get("", response_model=CartResponse)
def get_cart(request: Request, response: Response) -> dict:
    user = get_current_user(request)
    response.headers["Cache-Control"] = "no-store"
    return _cart_payload(get_store(request), user["id"])


@router.post("", response_model=CartResponse, status_code=201)
def add_to_cart(payload: CartAddRequest, request: Request, response: Response) -> dict:
    user = get_current_user(request)
    store = get_store(request)
    store.add_to_cart(user["id"], validate_id(payload.listing_id, field="listing_id"), payload.quantity)
    response.headers["Cache-Control"] = "no-store"
    return _cart_payload(store, user["id"])


@router.patch("/{item_id}", response_model=CartResponse)
def set_quantity(item_id: str, payload: CartQuantityRequest, request: Request, response: Response) -> dict:
    user = get_current_user(request)
    store = get_store(request)
    store.set_cart_quantity(user["id"], validate_id(item_id, field="item_id"), payload.quantity)
    response.headers["Cache-Control"] = "no-store"
    return _cart_payload(store, user["id"])


@router.post("/{item_id}/adjust", response_model=CartResponse)
def adjust_quantity(item_id: str, payload: CartAdjustRequest, request: Request, response: Response) -> dict:
    user = get_current_user(request)
    store = get_store(request)
    store.adjust_cart_item(user["id"], validate_id(item_id, field="item_id"), payload.delta)
    response.headers["Cache-Control"] = "no-store"
    return _cart_payload(store, user["id"])


@router.delete("/{item_id}", response_model=CartResponse)
def remove_item(item_id: str, request: Request, response: Response) -> dict:
    user = get_current_user(request)
    store = get_store(request)
    store.remove_cart_item(user["id"], validate_id(item_id, field="item_id"))
    response.headers["Cache-Control"] = "no-store"
    return _cart_payload(store, user["id"])


@router.delete("", response_model=CartResponse)
def clear_cart(request: Request, response: Response) -> dict:
    user = get_current_user(request)
    store = get_store(request)
    store.clear_cart(user["id"])
    response.headers["Cache-Control"] = "no-store"
    return _cart_payload(store, user["id"])
