"""
Marketplace browsing and farmer listing management.
"""

from __future__ import annotations

from fastapi import APIRouter, File, Query, Request, Response, UploadFile

from cropmarket.api.dependencies import get_state, get_store, optional_user, require_role
from cropmarket.api.models import (
    CategoryCount,
    ListingCreateRequest,
    ListingListResponse,
    ListingResponse,
    ListingUpdateRequest,
)
from cropmarket.domain.enums import CropCategory, QualityGrade, UserRole
from cropmarket.exceptions import ListingNotFoundError, PermissionDeniedError
from cropmarket.repository import ListingFilters
from cropmarket.security.validators import validate_id

router = APIRouter(prefix="/v1", tags=["listings"])


@router.get("/listings", response_model=ListingListResponse)
def list_listings(
    request: Request,
    response: Response,
    category: CropCategory | None = Query(default=None),
    quality: QualityGrade | None = Query(default=None),
    min_price: float | None = Query(default=None, ge=0),
    max_price: float | None = Query(default=None, ge=0),
    search: str = Query(default="", max_length=200),
    farmer_id: str | None = Query(default=None, max_length=64),
    nearby: bool = Query(default=False),
    lat: float | None = Query(default=None, ge=-90, le=90),
    lng: float | None = Query(default=None, ge=-180, le=180),
    max_distance: float | None = Query(default=None, gt=0, le=20_000),
    limit: int | None = Query(default=None, ge=1),
) -> dict:
    """
    Browse active listings, newest first.

    ``nearby=true`` narrows results to ``max_distance`` km around ``lat``/``lng``,
    or around the signed-in user's saved location when no coordinates are sent.
    """
    settings = get_state(request).settings
    if nearby and (lat is None or lng is None):
        profile = optional_user(request)
        if profile and profile.get("geo_lat") is not None and profile.get("geo_lng") is not None:
            lat, lng = profile["geo_lat"], profile["geo_lng"]

    filters = ListingFilters(
        category=category.value if category else None,
        quality=quality.value if quality else None,
        min_price=min_price,
        max_price=max_price,
        search=search,
        farmer_id=farmer_id,
        nearby=nearby,
        lat=lat,
        lng=lng,
        max_distance_km=max_distance or settings.default_nearby_radius_km,
        limit=min(limit or settings.max_listings_per_page, settings.max_listings_per_page),
    )
    items = get_store(request).search_listings(filters)
    request.state.result_count = len(items)
    response.headers["Cache-Control"] = "no-store" if nearby else "public, max-age=30"
    return {"total": len(items), "items": items}


@router.get("/listings/{listing_id}", response_model=ListingResponse)
def get_listing(listing_id: str, request: Request, response: Response) -> dict:
    listing_id = validate_id(listing_id, field="listing_id")
    listing = get_store(request).get_listing(listing_id)
    if listing is None:
        raise ListingNotFoundError(listing_id)
    response.headers["Cache-Control"] = "public, max-age=30"
    return listing


@router.get("/categories", response_model=list[CategoryCount])
def list_categories(request: Request, response: Response) -> list[dict]:
    response.headers["Cache-Control"] = "public, max-age=60"
    return get_store(request).categories()


@router.post("/listings", response_model=ListingResponse, status_code=201)
def create_listing(payload: ListingCreateRequest, request: Request, response: Response) -> dict:
    farmer = require_role(request, UserRole.FARMER)
    listing = get_store(request).create_listing(farmer["id"], payload.model_dump(mode="json"))
    response.headers["Cache-Control"] = "no-store"
    return listing


@router.patch("/listings/{listing_id}", response_model=ListingResponse)
def update_listing(listing_id: str, payload: ListingUpdateRequest, request: Request, response: Response) -> dict:
    farmer = require_role(request, UserRole.FARMER)
    listing_id = validate_id(listing_id, field="listing_id")
    updates = payload.model_dump(mode="json", exclude_unset=True)
    listing = get_store(request).update_listing(farmer["id"], listing_id, updates)
    response.headers["Cache-Control"] = "no-store"
    return listing


@router.post("/listings/{listing_id}/image", response_model=ListingResponse)
def upload_listing_image(
    listing_id: str,
    request: Request,
    response: Response,
    file: UploadFile = File(...),
) -> dict:
    """Store a product photo; the first one becomes the listing's main image."""
    farmer = require_role(request, UserRole.FARMER)
    listing_id = validate_id(listing_id, field="listing_id")
    state = get_state(request)

    listing = state.store.get_listing(listing_id, active_only=False)
    if listing is None:
        raise ListingNotFoundError(listing_id)
    if listing["farmer_id"] != farmer["id"]:
        raise PermissionDeniedError("Only the listing owner can change it")

    url = state.storage.upload(
        "listings",
        farmer["id"],
        file.filename or "photo",
        file.file.read(),
        file.content_type or "",
    )
    updates = {"images": [*listing["images"], url]}
    if not listing.get("image_url"):
        updates["image_url"] = url
    updated = state.store.update_listing(farmer["id"], listing_id, updates)
    response.headers["Cache-Control"] = "no-store"
    return updated
