"""Enumerations shared by the store, services and API models."""

from __future__ import annotations

from enum import Enum


class UserRole(str, Enum):
    BUYER = "buyer"
    FARMER = "farmer"
    ADMIN = "admin"
    DELIVERY = "delivery"


class CropCategory(str, Enum):
    VEGETABLES = "vegetables"
    FRUITS = "fruits"
    GRAINS = "grains"
    PULSES = "pulses"
    SPICES = "spices"
    DAIRY = "dairy"


class QualityGrade(str, Enum):
    A = "A"
    B = "B"
    C = "C"


class ListingStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SOLD_OUT = "sold_out"


class OrderStatus(str, Enum):
    PLACED = "placed"
    CONFIRMED = "confirmed"
    PACKED = "packed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    RAZORPAY = "razorpay"
    STRIPE = "stripe"
    UPI = "upi"
    CRYPTO = "crypto"
    CASH_ON_DELIVERY = "cash_on_delivery"
    CARD = "card"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class DeliveryMethod(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"
