"""
The signed-in user's own profile.
"""

from __future__ import annotations

from fastapi import APIRouter, File, Request, Response, UploadFile

from cropmarket.api.dependencies import get_current_user, get_state, get_store
from cropmarket.api.models import ProfileResponse, ProfileUpdateRequest
from cropmarket.security.validators import validate_phone

router = APIRouter(prefix="/v1/profile", tags=["profile"])

_COMPLETION_FIELDS = ("full_name", "phone", "address")


@router.get("", response_model=ProfileResponse)
def get_profile(request: Request, response: Response) -> dict:
    profile = get_current_user(request)
    response.headers["Cache-Control"] = "no-store"
    return profile


@router.patch("", response_model=ProfileResponse)
def update_profile(payload: ProfileUpdateRequest, request: Request, response: Response) -> dict:
    """
    Update contact details.

    The profile is marked complete once name, phone and address are all set.
    """
    profile = get_current_user(request)
    updates = payload.model_dump(exclude_unset=True)
    for key in ("full_name", "address"):
        if isinstance(updates.get(key), str):
            updates[key] = updates[key].strip() or None
    if updates.get("phone"):
        updates["phone"] = validate_phone(updates["phone"])

    merged = {**profile, **updates}
    updates["profile_complete"] = all(merged.get(key) for key in _COMPLETION_FIELDS)

    updated = get_store(request).update_profile(profile["id"], updates)
    response.headers["Cache-Control"] = "no-store"
    return updated


@router.post("/avatar", response_model=ProfileResponse)
def upload_avatar(request: Request, response: Response, file: UploadFile = File(...)) -> dict:
    profile = get_current_user(request)
    state = get_state(request)
    url = state.storage.upload(
        "avatars",
        profile["id"],
        file.filename or "avatar",
        file.file.read(),
        file.content_type or "",
    )
    updated = state.store.update_profile(profile["id"], {"avatar_url": url})
    response.headers["Cache-Control"] = "no-store"
    return updated
