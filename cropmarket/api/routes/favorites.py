"""
Favourite sellers for buyers.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from cropmarket.api.dependencies import get_current_user, get_favorite_repo, get_store
from cropmarket.api.models import FavoriteAddRequest, FavoriteListResponse, FavoriteResponse
from cropmarket.domain.enums import UserRole
from cropmarket.exceptions import NotFoundError
from cropmarket.security.validators import validate_id

router = APIRouter(prefix="/v1/favorites/sellers", tags=["favorites"])


def _require_farmer(request: Request, farmer_id: str) -> str:
    farmer_id = validate_id(farmer_id, field="farmer_id")
    profile = get_store(request).get_profile(farmer_id)
    if profile is None or profile["role"] != UserRole.FARMER.value:
        raise NotFoundError("Farmer not found", resource_type="Farmer", resource_id=farmer_id)
    return farmer_id


@router.get("", response_model=FavoriteListResponse)
def list_favorites(request: Request, response: Response) -> dict:
    user = get_current_user(request)
    response.headers["Cache-Control"] = "no-store"
    return {"buyer_id": user["id"], "farmer_ids": get_favorite_repo(request).get_favorites(user["id"])}


@router.post("", response_model=FavoriteResponse, status_code=201)
def add_favorite(payload: FavoriteAddRequest, request: Request, response: Response) -> dict:
    user = get_current_user(request)
    farmer_id = _require_farmer(request, payload.farmer_id)
    get_favorite_repo(request).add_favorite(user["id"], farmer_id)
    response.headers["Cache-Control"] = "no-store"
    return {"buyer_id": user["id"], "farmer_id": farmer_id, "is_favorite": True}


@router.delete("/{farmer_id}", response_model=FavoriteResponse)
def remove_favorite(farmer_id: str, request: Request, response: Response) -> dict:
    user = get_current_user(request)
    farmer_id = validate_id(farmer_id, field="farmer_id")
    get_favorite_repo(request).remove_favorite(user["id"], farmer_id)
    response.headers["Cache-Control"] = "no-store"
    return {"buyer_id": user["id"], "farmer_id": farmer_id, "is_favorite": False}


@router.post("/{farmer_id}/toggle", response_model=FavoriteResponse)
def toggle_favorite(farmer_id: str, request: Request, response: Response) -> dict:
    user = get_current_user(request)
    farmer_id = _require_farmer(request, farmer_id)
    is_favorite = get_favorite_repo(request).toggle_favorite(user["id"], farmer_id)
    response.headers["Cache-Control"] = "no-store"
    return {"buyer_id": user["id"], "farmer_id": farmer_id, "is_favorite": is_favorite}
