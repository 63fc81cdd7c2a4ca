from __future__ import annotations

from dataclasses import dataclass

from cropmarket.config import Settings
from cropmarket.rate_limit import SQLiteRateLimiter
from cropmarket.repository import FavoriteSellerRepo, MarketStore
from cropmarket.services.assistant import FarmerAssistant
from cropmarket.services.storage import FileStorage


@dataclass
class AppState:
    store: MarketStore
    settings: Settings
    storage: FileStorage
    assistant: FarmerAssistant
    rate_limiter: SQLiteRateLimiter
    favorites: FavoriteSellerRepo | None = None
