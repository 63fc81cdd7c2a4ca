"""
The marketplace store: one SQLite file holding auth, profiles, listings,
carts and orders.
"""

from __future__ import annotations

from cropmarket.repository.auth import AuthMixin
from cropmarket.repository.base import StoreBase
from cropmarket.repository.cart import CartMixin
from cropmarket.repository.listings import ListingMixin
from cropmarket.repository.orders import OrderMixin
from cropmarket.repository.profiles import ProfileMixin


class MarketStore(AuthMixin, ProfileMixin, ListingMixin, CartMixin, OrderMixin, StoreBase):
    """
    Usage:
        store = MarketStore("data/cropmarket.db")
        store.search_listings(ListingFilters(category="fruits"))
    """
