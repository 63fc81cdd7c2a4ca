"""
Checkout routes: totals preview and order placement.
"""

from __future__ import annotations

from fastapi import APIRouter, Query, Request, Response

from cropmarket.api.dependencies import get_checkout_service, get_current_user
from cropmarket.api.models import CheckoutRequest, CheckoutResponse, CheckoutSummaryResponse
from cropmarket.domain.enums import DeliveryMethod
from cropmarket.services.checkout import CheckoutForm

router = APIRouter(prefix="/v1/checkout", tags=["checkout"])


@router.get("/summary", response_model=CheckoutSummaryResponse)
def checkout_summary(
    request: Request,
    response: Response,
    delivery_method: DeliveryMethod = Query(default=DeliveryMethod.STANDARD),
) -> dict:
    user = get_current_user(request)
    summary = get_checkout_service(request).preview(user["id"], delivery_method)
    response.headers["Cache-Control"] = "no-store"
    return summary.to_dict()


@router.post("", response_model=CheckoutResponse, status_code=201)
def place_order(payload: CheckoutRequest, request: Request, response: Response) -> dict:
    user = get_current_user(request)
    result = get_checkout_service(request).place_order(user["id"], CheckoutForm(**payload.model_dump()))
    request.state.result_count = len(result["orders"])
    response.headers["Cache-Control"] = "no-store"
    return result
