"""
CLI entrypoints.

Usage:
  cropmarket-api --host 0.0.0.0 --port 8000
  cropmarket-seed --db data/cropmarket.db
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any

from cropmarket.exceptions import ConflictError

DEMO_PASSWORD = "cropmarket"

DEMO_USERS = (
    {"email": "farmer@cropmarket.test", "full_name": "Ravi Kumar", "role": "farmer"},
    {"email": "buyer@cropmarket.test", "full_name": "Asha Verma", "role": "buyer"},
)

DEMO_LISTINGS = (
    {
        "title": "Organic Tomatoes",
        "description": "Vine-ripened tomatoes, harvested this week.",
        "price": 40.0,
        "quantity": 150,
        "category": "vegetables",
        "quality_grade": "A",
        "location_lat": 28.9931,
        "location_lng": 77.0151,
        "location_address": "Sonipat, Haryana",
    },
    {
        "title": "Alphonso Mangoes",
        "description": "Sweet Ratnagiri Alphonso, sold by the dozen.",
        "price": 600.0,
        "quantity": 40,
        "unit": "dozen",
        "category": "fruits",
        "quality_grade": "A",
        "location_lat": 16.9902,
        "location_lng": 73.3120,
        "location_address": "Ratnagiri, Maharashtra",
    },
    {
        "title": "Basmati Rice",
        "description": "Aged long-grain basmati.",
        "price": 95.0,
        "quantity": 500,
        "category": "grains",
        "quality_grade": "B",
        "location_lat": 29.3909,
        "location_lng": 76.9635,
        "location_address": "Panipat, Haryana",
    },
    {
        "title": "Toor Dal",
        "description": "Unpolished pigeon pea lentils.",
        "price": 120.0,
        "quantity": 200,
        "category": "pulses",
        "quality_grade": "B",
    },
    {
        "title": "Turmeric Powder",
        "description": "Stone-ground Lakadong turmeric.",
        "price": 320.0,
        "quantity": 60,
        "category": "spices",
        "quality_grade": "A",
        "location_lat": 25.5788,
        "location_lng": 91.8933,
        "location_address": "Jaintia Hills, Meghalaya",
    },
    {
        "title": "Fresh Cow Milk",
        "description": "Morning milk from grass-fed cows.",
        "price": 55.0,
        "quantity": 80,
        "unit": "litre",
        "category": "dairy",
        "quality_grade": "C",
        "location_lat": 28.6139,
        "location_lng": 77.2090,
        "location_address": "New Delhi",
    },
)


def seed_demo_data(db_path: str | Path) -> dict[str, Any]:
    """
    Create demo accounts and listings. Re-running is a no-op for accounts
    that already exist; listings are only added for a newly created farmer.
    """
    from cropmarket.repository import MarketStore
    from cropmarket.services import AuthService

    store = MarketStore(db_path)
    auth = AuthService(store)
    created_users: list[str] = []
    listing_count = 0

    for user in DEMO_USERS:
        try:
            profile = auth.sign_up(user["email"], DEMO_PASSWORD, role=user["role"], full_name=user["full_name"])
        except ConflictError:
            continue
        created_users.append(user["email"])
        if profile["role"] == "farmer":
            for listing in DEMO_LISTINGS:
                store.create_listing(profile["id"], listing)
                listing_count += 1

    return {"users": created_users, "listings": listing_count}


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the CropMarket API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING, ...")
    args = parser.parse_args()

    from cropmarket.logging_config import configure_logging

    configure_logging(level=args.log_level)

    import uvicorn

    uvicorn.run(
        "cropmarket.api:create_app",
        factory=True,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_config=None,
    )


def seed_main() -> None:
    from cropmarket.config import settings

    parser = argparse.ArgumentParser(description="Seed the CropMarket database with demo data")
    parser.add_argument("--db", type=Path, default=settings.db_path, help="SQLite database path")
    args = parser.parse_args()

    result = seed_demo_data(args.db)
    if result["users"]:
        print(f"Created users: {', '.join(result['users'])} (password: {DEMO_PASSWORD})")
        print(f"Created {result['listings']} listings in {args.db}")
    else:
        print(f"Demo users already exist in {args.db}; nothing to do.")


if __name__ == "__main__":
    main()
