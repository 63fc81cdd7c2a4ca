"""Crop quality grading: simulated score, optionally saved on a listing."""

from __future__ import annotations

import random
from typing import Any

from cropmarket.domain import grading
from cropmarket.exceptions import ListingNotFoundError, PermissionDeniedError
from cropmarket.logging_config import log_event
from cropmarket.repository.store import MarketStore


def grade_crop(confidence: float, rng: random.Random | None = None) -> dict[str, Any]:
    result = grading.grade(confidence, rng)
    return {
        "score": result.score,
        "grade": result.grade,
        "quality_grade": result.quality_grade.value,
    }


class QualityGradingService:
    def __init__(self, store: MarketStore, rng: random.Random | None = None) -> None:
        self.store = store
        self.rng = rng

    def grade(
        self,
        farmer_id: str,
        confidence: float,
        *,
        listing_id: str | None = None,
    ) -> dict[str, Any]:
        """
        Grade a crop image classification and, when ``listing_id`` is given,
        store ``ai_score`` and ``quality_grade`` on that listing.
        """
        result = grade_crop(confidence, self.rng)
        if listing_id:
            listing = self.store.get_listing(listing_id, active_only=False)
            if listing is None:
                raise ListingNotFoundError(listing_id)
            if listing["farmer_id"] != farmer_id:
                raise PermissionDeniedError("Only the listing owner can grade it")
            self.store.update_listing(
                farmer_id,
                listing_id,
                {"ai_score": result["score"], "quality_grade": result["quality_grade"]},
            )
            result["listing_id"] = listing_id
        log_event("crop_graded", farmer_id=farmer_id, score=result["score"], listing_id=listing_id)
        return result
