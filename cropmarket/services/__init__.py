"""Application services sitting between the HTTP routes and the store."""

from cropmarket.services.assistant import AssistantReply, FarmerAssistant
from cropmarket.services.auth import AuthService
from cropmarket.services.checkout import CheckoutForm, CheckoutService
from cropmarket.services.grading import QualityGradingService, grade_crop
from cropmarket.services.orders import OrderService
from cropmarket.services.storage import FileStorage

__all__ = [
    "AssistantReply",
    "AuthService",
    "CheckoutForm",
    "CheckoutService",
    "FarmerAssistant",
    "FileStorage",
    "OrderService",
    "QualityGradingService",
    "grade_crop",
]
