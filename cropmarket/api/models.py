"""
Pydantic models for API requests and responses.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from cropmarket.domain.enums import (
    CropCategory,
    DeliveryMethod,
    ListingStatus,
    OrderStatus,
    PaymentMethod,
    QualityGrade,
    UserRole,
)


# =============================================================================
# Request Models
# =============================================================================


class SignUpRequest(BaseModel):
    """Request model for account registration."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "email": "ravi@example.com",
                    "password": "harvest2024",
                    "role": "farmer",
                    "full_name": "Ravi Kumar",
                }
            ]
        }
    )

    email: str = Field(min_length=3, max_length=254)
    password: str = Field(min_length=1, max_length=256)
    role: UserRole = Field(default=UserRole.BUYER)
    full_name: str | None = Field(default=None, max_length=120)


class SignInRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    password: str = Field(min_length=1, max_length=256)


class ProfileUpdateRequest(BaseModel):
    """Partial profile update; only fields that are sent are changed."""

    model_config = ConfigDict(extra="forbid")

    full_name: str | None = Field(default=None, max_length=120)
    phone: str | None = Field(default=None, max_length=20)
    address: str | None = Field(default=None, max_length=500)
    geo_lat: float | None = Field(default=None, ge=-90, le=90)
    geo_lng: float | None = Field(default=None, ge=-180, le=180)


class ListingCreateRequest(BaseModel):
    """Request model for a farmer publishing produce."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "title": "Organic Tomatoes",
                    "description": "Vine-ripened, harvested this week",
                    "price": 40.0,
                    "quantity": 120,
                    "unit": "kg",
                    "category": "vegetables",
                    "quality_grade": "A",
                    "location_lat": 28.61,
                    "location_lng": 77.21,
                    "location_address": "Sonipat, Haryana",
                }
            ]
        }
    )

    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    price: float = Field(ge=0)
    quantity: int = Field(ge=0)
    unit: str = Field(default="kg", min_length=1, max_length=20)
    category: CropCategory | None = None
    quality_grade: QualityGrade | None = None
    image_url: str | None = Field(default=None, max_length=1000)
    images: list[str] = Field(default_factory=list, max_length=10)
    location_lat: float | None = Field(default=None, ge=-90, le=90)
    location_lng: float | None = Field(default=None, ge=-180, le=180)
    location_address: str | None = Field(default=None, max_length=500)


class ListingUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    price: float | None = Field(default=None, ge=0)
    quantity: int | None = Field(default=None, ge=0)
    unit: str | None = Field(default=None, min_length=1, max_length=20)
    status: ListingStatus | None = None
    category: CropCategory | None = None
    quality_grade: QualityGrade | None = None
    image_url: str | None = Field(default=None, max_length=1000)
    images: list[str] | None = Field(default=None, max_length=10)
    location_lat: float | None = Field(default=None, ge=-90, le=90)
    location_lng: float | None = Field(default=None, ge=-180, le=180)
    location_address: str | None = Field(default=None, max_length=500)


class CartAddRequest(BaseModel):
    model_config = ConfigDict(json_schema_extra={"examples": [{"listing_id": "5c1d...", "quantity": 2}]})

    listing_id: str = Field(min_length=1, max_length=64)
    quantity: int = Field(default=1, ge=1, le=10_000)


class CartQuantityRequest(BaseModel):
    """Set a cart line's quantity; zero or less removes the line."""

    quantity: int = Field(le=10_000)


class CartAdjustRequest(BaseModel):
    """Step a cart line up or down; the result never drops below one."""

    delta: int = Field(ge=-10_000, le=10_000)


class CheckoutRequest(BaseModel):
    """Request model for placing an order from the cart."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "full_name": "Asha Verma",
                    "phone": "9876543210",
                    "address": "12 MG Road",
                    "city": "Pune",
                    "state": "Maharashtra",
                    "pincode": "411001",
                    "delivery_method": "standard",
                    "payment_method": "cash_on_delivery",
                }
            ]
        }
    )

    full_name: str = Field(max_length=120)
    phone: str = Field(max_length=20)
    address: str = Field(max_length=500)
    city: str = Field(max_length=100)
    state: str = Field(max_length=100)
    pincode: str = Field(max_length=10)
    delivery_method: DeliveryMethod = DeliveryMethod.STANDARD
    payment_method: PaymentMethod = PaymentMethod.CASH_ON_DELIVERY
    delivery_notes: str | None = Field(default=None, max_length=1000)
    upi_id: str | None = Field(default=None, max_length=100)
    card_number: str | None = Field(default=None, max_length=19)
    card_expiry: str | None = Field(default=None, max_length=5)
    card_cvv: str | None = Field(default=None, max_length=4)
    card_name: str | None = Field(default=None, max_length=120)


class OrderStatusUpdateRequest(BaseModel):
    status: OrderStatus


class ChatTurn(BaseModel):
    role: str = Field(pattern="^(user|assistant)$")
    content: str = Field(max_length=4000)


class ChatRequest(BaseModel):
    """Request model for the farming assistant."""

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "message": "My tomato leaves have yellow spots. What should I do?",
                    "history": [],
                }
            ]
        }
    )

    message: str = Field(min_length=1, max_length=2000)
    history: list[ChatTurn] = Field(default_factory=list, max_length=50)


class QualityGradeRequest(BaseModel):
    """Top classifier confidence for a crop photo, optionally saved on a listing."""

    confidence: float = Field(ge=0.0, le=1.0)
    listing_id: str | None = Field(default=None, max_length=64)


class FavoriteAddRequest(BaseModel):
    model_config = ConfigDict(json_schema_extra={"examples": [{"farmer_id": "9b2e..."}]})

    farmer_id: str = Field(min_length=1, max_length=64)


# =============================================================================
# Response Models
# =============================================================================


class ProfileResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    email: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None
    role: UserRole
    phone: str | None = None
    address: str | None = None
    geo_lat: float | None = None
    geo_lng: float | None = None
    profile_complete: bool = False
    created_products: int = 0
    purchased_products: int = 0


class SessionResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: str
    profile: ProfileResponse


class ListingResponse(BaseModel):
    """Response model for a single listing."""

    model_config = ConfigDict(extra="allow")

    id: str
    farmer_id: str
    title: str
    description: str | None = None
    price: float
    quantity: int
    unit: str = "kg"
    status: ListingStatus
    category: CropCategory | None = None
    quality_grade: QualityGrade | None = None
    image_url: str | None = None
    images: list[str] = Field(default_factory=list)
    location_lat: float | None = None
    location_lng: float | None = None
    location_address: str | None = None
    ai_score: int | None = None
    created_at: str
    farmer: dict[str, Any] | None = None
    distance_km: float | None = None


class ListingListResponse(BaseModel):
    total: int
    items: list[ListingResponse]


class CategoryCount(BaseModel):
    category: CropCategory
    label: str
    count: int


class CartItemResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    listing_id: str
    quantity: int
    listing: dict[str, Any] | None = None
    line_total: float


class CartResponse(BaseModel):
    items: list[CartItemResponse]
    total_price: float
    item_count: int
    unit_count: int


class CheckoutSummaryResponse(BaseModel):
    subtotal: float
    delivery_fee: float
    tax: float
    total: float
    item_count: int
    unit_count: int


class OrderResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    buyer_id: str
    listing_id: str
    quantity: int
    total_price: float
    order_status: OrderStatus
    payment_method: PaymentMethod
    payment_status: str
    delivery_address: str | None = None
    expected_delivery_date: str | None = None
    actual_delivery_date: str | None = None
    created_at: str
    listing: dict[str, Any] | None = None


class CheckoutResponse(BaseModel):
    orders: list[OrderResponse]
    summary: CheckoutSummaryResponse


class OrderHistoryResponse(BaseModel):
    active: list[OrderResponse]
    completed: list[OrderResponse]
    cancelled: list[OrderResponse]


class FarmerOrderResponse(OrderResponse):
    buyer: dict[str, Any]


class DashboardTab(BaseModel):
    status: str
    label: str
    count: int


class FarmerOrdersResponse(BaseModel):
    status: str
    tabs: list[DashboardTab]
    items: list[FarmerOrderResponse]


class ChatResponse(BaseModel):
    reply: str
    fallback: bool = False
    model: str | None = None
    usage: dict[str, int] = Field(default_factory=dict)


class QualityGradeResponse(BaseModel):
    score: int
    grade: str
    quality_grade: QualityGrade
    listing_id: str | None = None


class FavoriteListResponse(BaseModel):
    buyer_id: str
    farmer_ids: list[str]


class FavoriteResponse(BaseModel):
    buyer_id: str
    farmer_id: str
    is_favorite: bool


class UploadResponse(BaseModel):
    url: str
