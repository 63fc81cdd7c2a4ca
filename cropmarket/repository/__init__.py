"""
Repository module for data persistence.
"""

from __future__ import annotations

from cropmarket.repository.favorites import FavoriteSellerRepo
from cropmarket.repository.listings import ListingFilters
from cropmarket.repository.store import MarketStore

__all__ = ["FavoriteSellerRepo", "ListingFilters", "MarketStore"]
