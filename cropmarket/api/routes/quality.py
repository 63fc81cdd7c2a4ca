"""
Simulated crop quality grading.
"""

from __future__ import annotations

from fastapi import APIRouter, Request, Response

from cropmarket.api.dependencies import get_grading_service, require_role
from cropmarket.api.models import QualityGradeRequest, QualityGradeResponse
from cropmarket.domain.enums import UserRole
from cropmarket.security.validators import validate_id

router = APIRouter(prefix="/v1/quality", tags=["quality"])


@router.post("/grade", response_model=QualityGradeResponse)
def grade(payload: QualityGradeRequest, request: Request, response: Response) -> dict:
    farmer = require_role(request, UserRole.FARMER)
    listing_id = validate_id(payload.listing_id, field="listing_id") if payload.listing_id else None
    result = get_grading_service(request).grade(farmer["id"], payload.confidence, listing_id=listing_id)
    response.headers["Cache-Control"] = "no-store"
    return result
