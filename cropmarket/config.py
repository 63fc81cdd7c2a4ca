"""
CropMarket - Configuration Management
=====================================
Centralized configuration with environment variable support and validation.

Usage:
    from cropmarket.config import settings

    api_key = settings.anthropic_api_key
    fee = settings.express_delivery_fee
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


def _default_favorites_db_url() -> str:
    """Build the hosted Postgres URL from DB_* components."""
    password = os.environ.get("DB_PASSWORD", "postgres")
    host = os.environ.get("DB_HOST", "supabase-db")
    port = os.environ.get("DB_PORT", "5432")
    database = os.environ.get("DB_NAME", "postgres")
    return f"postgresql://postgres:{password}@{host}:{port}/{database}?connect_timeout=3"


@dataclass
class Settings:
    """Application settings with environment variable overrides."""

    # Paths
    db_path: Path = field(default_factory=lambda: Path("data/cropmarket.db"))
    storage_path: Path = field(default_factory=lambda: Path("data/storage"))
    rate_limit_path: Path = field(default_factory=lambda: Path("data/.rate_limits.db"))
    public_storage_url: str = "/storage"

    # Hosted Postgres (favourite sellers)
    favorites_db_url: str = field(default_factory=_default_favorites_db_url)

    # Assistant
    anthropic_model: str = "claude-3-5-haiku-20241022"
    assistant_max_tokens: int = 500
    assistant_temperature: float = 0.7
    assistant_max_message_chars: int = 2000
    llm_timeout_seconds: int = 30

    # Circuit breaker for the assistant provider
    circuit_breaker_failure_threshold: int = 5
    circuit_breaker_timeout_seconds: int = 60

    # Rate limiting
    rate_limit_requests: int = 10
    rate_limit_window_seconds: int = 60

    # Reverse proxy / client IP extraction
    # When running behind a reverse proxy, set TRUST_PROXY_HEADERS=true and TRUSTED_PROXY_IPS
    # to correctly derive client IPs from X-Forwarded-For.
    trust_proxy_headers: bool = False
    trusted_proxy_ips: set[str] = field(default_factory=set)

    # Checkout (amounts in INR)
    standard_delivery_fee: float = 40.0
    express_delivery_fee: float = 80.0
    standard_delivery_days: int = 5
    express_delivery_days: int = 2
    tax_rate: float = 0.05

    # Browsing
    default_nearby_radius_km: float = 50.0
    max_listings_per_page: int = 100

    # Auth
    session_ttl_hours: int = 24 * 7
    min_password_length: int = 6

    # Uploads
    max_avatar_bytes: int = 5 * 1024 * 1024

    # CORS configuration
    # Set CORS_ALLOW_ORIGINS to a comma-separated list of allowed origins.
    # "*" is for development only.
    cors_allow_origins: set[str] = field(
        default_factory=lambda: {
            "http://localhost",
            "http://localhost:5173",  # Vite dev server
            "http://127.0.0.1",
            "http://127.0.0.1:5173",
        }
    )
    cors_allow_credentials: bool = False
    cors_max_age: int = 600  # 10 minutes

    # Feature flags
    enable_assistant: bool = True
    debug_mode: bool = False

    def __post_init__(self):
        """Load overrides from environment variables."""
        self._load_env_overrides()

    def _load_env_overrides(self):
        """Load configuration from environment variables."""
        # Paths
        if db_path := os.environ.get("CROPMARKET_DB_PATH"):
            self.db_path = Path(db_path)
        if storage_path := os.environ.get("CROPMARKET_STORAGE_PATH"):
            self.storage_path = Path(storage_path)
        if rate_limit_path := os.environ.get("RATE_LIMIT_PATH"):
            self.rate_limit_path = Path(rate_limit_path)
        if public_url := os.environ.get("CROPMARKET_PUBLIC_STORAGE_URL"):
            self.public_storage_url = public_url.rstrip("/")
        if favorites_url := os.environ.get("CROPMARKET_FAVORITES_DB_URL"):
            self.favorites_db_url = favorites_url

        # Assistant
        if model := os.environ.get("ANTHROPIC_MODEL"):
            self.anthropic_model = model
        if max_tokens := os.environ.get("ASSISTANT_MAX_TOKENS"):
            self.assistant_max_tokens = int(max_tokens)
        if temperature := os.environ.get("ASSISTANT_TEMPERATURE"):
            self.assistant_temperature = float(temperature)
        if timeout := os.environ.get("LLM_TIMEOUT_SECONDS"):
            self.llm_timeout_seconds = int(timeout)

        # Rate limiting
        if rate_limit := os.environ.get("RATE_LIMIT_REQUESTS"):
            self.rate_limit_requests = int(rate_limit)
        if window := os.environ.get("RATE_LIMIT_WINDOW"):
            self.rate_limit_window_seconds = int(window)

        # Reverse proxy / headers
        if os.environ.get("TRUST_PROXY_HEADERS", "").lower() in ("1", "true", "yes"):
            self.trust_proxy_headers = True
        if trusted := os.environ.get("TRUSTED_PROXY_IPS", "").strip():
            self.trusted_proxy_ips = {ip.strip() for ip in trusted.split(",") if ip.strip()}

        # Checkout
        if fee := os.environ.get("STANDARD_DELIVERY_FEE"):
            self.standard_delivery_fee = float(fee)
        if fee := os.environ.get("EXPRESS_DELIVERY_FEE"):
            self.express_delivery_fee = float(fee)
        if tax_rate := os.environ.get("CHECKOUT_TAX_RATE"):
            rate = float(tax_rate)
            if not 0.0 <= rate < 1.0:
                logger.warning("Ignoring CHECKOUT_TAX_RATE=%s: must be in [0, 1)", tax_rate)
            else:
                self.tax_rate = rate

        # Browsing
        if radius := os.environ.get("NEARBY_RADIUS_KM"):
            self.default_nearby_radius_km = float(radius)

        # Auth
        if ttl := os.environ.get("SESSION_TTL_HOURS"):
            self.session_ttl_hours = int(ttl)

        # CORS configuration - security: requires explicit configuration
        if cors_origins := os.environ.get("CORS_ALLOW_ORIGINS", "").strip():
            if cors_origins == "*":
                logger.warning(
                    "CORS_ALLOW_ORIGINS set to '*' - allowing all origins. " "This should only be used in development."
                )
                self.cors_allow_origins = {"*"}
            else:
                self.cors_allow_origins = {origin.strip() for origin in cors_origins.split(",") if origin.strip()}
        if cors_max_age := os.environ.get("CORS_MAX_AGE"):
            self.cors_max_age = int(cors_max_age)

        # Feature flags
        if os.environ.get("DISABLE_ASSISTANT", "").lower() in ("1", "true"):
            self.enable_assistant = False
        if os.environ.get("DEBUG", "").lower() in ("1", "true"):
            self.debug_mode = True

    @property
    def anthropic_api_key(self) -> str | None:
        """Get Anthropic API key from environment (never stored in config)."""
        return os.environ.get("ANTHROPIC_API_KEY")


# Singleton instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
        if _settings.debug_mode:
            logger.info("Settings loaded with debug mode enabled")
    return _settings


def reload_settings() -> Settings:
    """Force reload settings from environment."""
    global _settings
    _settings = Settings()
    return _settings


# Convenience alias
settings = get_settings()


CATEGORY_LABELS = {
    "vegetables": "Vegetables",
    "fruits": "Fruits",
    "grains": "Grains",
    "pulses": "Pulses",
    "spices": "Spices",
    "dairy": "Dairy",
}
