"""Listing rows: browse filters, farmer embedding and owner-only updates."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass
from typing import Any

from cropmarket.config import CATEGORY_LABELS
from cropmarket.domain.geo import DEFAULT_MAX_DISTANCE_KM, filter_nearby
from cropmarket.exceptions import ConflictError, ListingNotFoundError, PermissionDeniedError, ValidationError
from cropmarket.repository.base import new_id, utcnow_iso
from cropmarket.security.sql import build_like_clause, validate_search_input

UPDATABLE_LISTING_FIELDS = frozenset(
    {
        "title",
        "description",
        "price",
        "quantity",
        "unit",
        "image_url",
        "images",
        "status",
        "category",
        "quality_grade",
        "location_lat",
        "location_lng",
        "location_address",
        "ai_score",
    }
)

_LISTING_SELECT = """
    SELECT l.*,
           p.full_name AS farmer_full_name,
           p.phone AS farmer_phone,
           p.avatar_url AS farmer_avatar_url,
           p.address AS farmer_address
    FROM listings l
    LEFT JOIN profiles p ON p.id = l.farmer_id
"""

_FARMER_COLUMNS = ("full_name", "phone", "avatar_url", "address")


@dataclass
class ListingFilters:
    """Browse filters for the marketplace; unset fields do not filter."""

    category: str | None = None
    quality: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    search: str | None = None
    farmer_id: str | None = None
    nearby: bool = False
    lat: float | None = None
    lng: float | None = None
    max_distance_km: float = DEFAULT_MAX_DISTANCE_KM
    limit: int | None = None


def _listing_from_row(row: sqlite3.Row) -> dict[str, Any]:
    data = dict(row)
    images = data.get("images")
    data["images"] = json.loads(images) if images else []

    if "farmer_full_name" in data:
        farmer = {"id": data["farmer_id"]}
        for column in _FARMER_COLUMNS:
            farmer[column] = data.pop(f"farmer_{column}")
        data["farmer"] = farmer
    return data


def _encode_listing_value(column: str, value: Any) -> Any:
    if column == "images":
        return json.dumps(list(value or []))
    if hasattr(value, "value"):
        return value.value
    return value


class ListingMixin:
    def create_listing(self, farmer_id: str, data: dict[str, Any]) -> dict[str, Any]:
        """Insert a listing owned by ``farmer_id`` and bump the farmer's product counter."""
        if not (data.get("title") or "").strip():
            raise ValidationError("is required", field="title")

        listing_id = new_id()
        now = utcnow_iso()
        row = {
            "id": listing_id,
            "farmer_id": farmer_id,
            "title": data["title"].strip(),
            "description": data.get("description"),
            "price": float(data.get("price", 0)),
            "quantity": int(data.get("quantity", 0)),
            "unit": data.get("unit") or "kg",
            "image_url": data.get("image_url"),
            "images": data.get("images") or [],
            "status": data.get("status") or "active",
            "category": data.get("category"),
            "quality_grade": data.get("quality_grade"),
            "location_lat": data.get("location_lat"),
            "location_lng": data.get("location_lng"),
            "location_address": data.get("location_address"),
            "ai_score": data.get("ai_score"),
            "created_at": now,
            "updated_at": now,
        }
        columns = list(row)
        placeholders = ", ".join("?" for _ in columns)
        try:
            with self._transaction("create_listing") as conn:
                conn.execute(
                    f"INSERT INTO listings ({', '.join(columns)}) VALUES ({placeholders})",
                    [_encode_listing_value(column, row[column]) for column in columns],
                )
                self._bump_counter(conn, farmer_id, "created_products", 1)
        except ConflictError as e:
            raise ValidationError("Invalid listing", detail=e.detail) from e
        return self.get_listing(listing_id, active_only=False)

    def update_listing(self, farmer_id: str, listing_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        """
        Update whitelisted columns of a listing owned by ``farmer_id``.

        Raises:
            ListingNotFoundError: If the listing does not exist.
            PermissionDeniedError: If it belongs to another farmer.
        """
        unknown = set(updates) - UPDATABLE_LISTING_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update fields: {', '.join(sorted(unknown))}")

        existing = self.get_listing(listing_id, active_only=False)
        if existing is None:
            raise ListingNotFoundError(listing_id)
        if existing["farmer_id"] != farmer_id:
            raise PermissionDeniedError("Only the listing owner can change it")
        if not updates:
            return existing

        columns = sorted(updates)
        assignments = ", ".join(f"{column} = ?" for column in columns)
        params = [_encode_listing_value(column, updates[column]) for column in columns]
        try:
            with self._transaction("update_listing") as conn:
                conn.execute(
                    f"UPDATE listings SET {assignments}, updated_at = ? WHERE id = ?",
                    [*params, utcnow_iso(), listing_id],
                )
        except ConflictError as e:
            raise ValidationError("Invalid listing", detail=e.detail) from e
        return self.get_listing(listing_id, active_only=False)

    def get_listing(self, listing_id: str, *, active_only: bool = True) -> dict[str, Any] | None:
        sql = _LISTING_SELECT + " WHERE l.id = ?"
        params: list[Any] = [listing_id]
        if active_only:
            sql += " AND l.status = 'active'"
        with self._transaction("get_listing") as conn:
            row = conn.execute(sql, params).fetchone()
            return _listing_from_row(row) if row else None

    def search_listings(self, filters: ListingFilters | None = None) -> list[dict[str, Any]]:
        """
        Active listings matching ``filters``, newest first.

        With ``nearby`` and both user coordinates set, results are narrowed
        to those within ``max_distance_km`` and carry ``distance_km``.
        """
        filters = filters or ListingFilters()
        where: list[str] = ["l.status = 'active'"]
        params: list[Any] = []

        if filters.category:
            where.append("l.category = ?")
            params.append(filters.category)
        if filters.quality:
            where.append("l.quality_grade = ?")
            params.append(filters.quality)
        if filters.min_price is not None:
            where.append("l.price >= ?")
            params.append(float(filters.min_price))
        if filters.max_price is not None:
            where.append("l.price <= ?")
            params.append(float(filters.max_price))
        if filters.farmer_id:
            where.append("l.farmer_id = ?")
            params.append(filters.farmer_id)

        try:
            search = validate_search_input(filters.search or "")
        except ValueError as e:
            raise ValidationError(str(e), field="search") from e
        if search:
            title_sql, title_params = build_like_clause("l.title", search)
            desc_sql, desc_params = build_like_clause("l.description", search)
            where.append(f"({title_sql} OR {desc_sql})")
            params.extend([*title_params, *desc_params])

        sql = _LISTING_SELECT + " WHERE " + " AND ".join(where) + " ORDER BY l.created_at DESC, l.rowid DESC"
        # Distance filtering happens after the query, so only page in SQL when it is off.
        use_nearby = filters.nearby and filters.lat is not None and filters.lng is not None
        if filters.limit is not None and not use_nearby:
            sql += " LIMIT ?"
            params.append(int(filters.limit))

        with self._transaction("search_listings") as conn:
            listings = [_listing_from_row(row) for row in conn.execute(sql, params).fetchall()]

        if use_nearby:
            listings = filter_nearby(listings, filters.lat, filters.lng, filters.max_distance_km)
            if filters.limit is not None:
                listings = listings[: int(filters.limit)]
        return listings

    def list_farmer_listings(self, farmer_id: str) -> list[dict[str, Any]]:
        """All of a farmer's listings regardless of status, newest first."""
        with self._transaction("list_farmer_listings") as conn:
            rows = conn.execute(
                _LISTING_SELECT + " WHERE l.farmer_id = ? ORDER BY l.created_at DESC, l.rowid DESC",
                (farmer_id,),
            ).fetchall()
            return [_listing_from_row(row) for row in rows]

    def categories(self) -> list[dict[str, Any]]:
        """Every crop category with its label and number of active listings."""
        with self._transaction("categories") as conn:
            rows = conn.execute(
                "SELECT category, COUNT(*) AS c FROM listings "
                "WHERE status = 'active' AND category IS NOT NULL GROUP BY category"
            ).fetchall()
        counts = {row["category"]: int(row["c"]) for row in rows}
        return [
            {"category": category, "label": label, "count": counts.get(category, 0)}
            for category, label in CATEGORY_LABELS.items()
        ]
