"""
Tests for cropmarket.config module.

Covers:
- Default values
- Environment variable overrides
- Invalid overrides
- Singleton helpers
"""

import os
from pathlib import Path
from unittest import mock


class TestSettings:
    """Tests for Settings class."""

    def test_default_values(self):
        from cropmarket.config import Settings

        with mock.patch.dict(os.environ, {}, clear=True):
            settings = Settings()

        assert settings.db_path == Path("data/cropmarket.db")
        assert settings.public_storage_url == "/storage"
        assert settings.standard_delivery_fee == 40.0
        assert settings.express_delivery_fee == 80.0
        assert settings.standard_delivery_days == 5
        assert settings.express_delivery_days == 2
        assert settings.tax_rate == 0.05
        assert settings.default_nearby_radius_km == 50.0
        assert settings.rate_limit_requests == 10
        assert settings.enable_assistant is True
        assert settings.debug_mode is False

    def test_env_override_paths(self):
        from cropmarket.config import Settings

        env = {
            "CROPMARKET_DB_PATH": "/custom/market.db",
            "CROPMARKET_STORAGE_PATH": "/custom/storage",
            "CROPMARKET_PUBLIC_STORAGE_URL": "https://cdn.example.com/files/",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = Settings()

        assert settings.db_path == Path("/custom/market.db")
        assert settings.storage_path == Path("/custom/storage")
        assert settings.public_storage_url == "https://cdn.example.com/files"

    def test_env_override_checkout(self):
        from cropmarket.config import Settings

        env = {
            "STANDARD_DELIVERY_FEE": "30",
            "EXPRESS_DELIVERY_FEE": "95.5",
            "CHECKOUT_TAX_RATE": "0",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = Settings()

        assert settings.standard_delivery_fee == 30.0
        assert settings.express_delivery_fee == 95.5
        assert settings.tax_rate == 0.0

    def test_out_of_range_tax_rate_is_ignored(self):
        from cropmarket.config import Settings

        with mock.patch.dict(os.environ, {"CHECKOUT_TAX_RATE": "1.5"}, clear=True):
            settings = Settings()

        assert settings.tax_rate == 0.05

    def test_env_override_proxy_and_cors(self):
        from cropmarket.config import Settings

        env = {
            "TRUST_PROXY_HEADERS": "true",
            "TRUSTED_PROXY_IPS": "10.0.0.1, 10.0.0.2",
            "CORS_ALLOW_ORIGINS": "https://cropmarket.in,https://www.cropmarket.in",
        }
        with mock.patch.dict(os.environ, env, clear=True):
            settings = Settings()

        assert settings.trust_proxy_headers is True
        assert settings.trusted_proxy_ips == {"10.0.0.1", "10.0.0.2"}
        assert settings.cors_allow_origins == {"https://cropmarket.in", "https://www.cropmarket.in"}

    def test_feature_flags(self):
        from cropmarket.config import Settings

        with mock.patch.dict(os.environ, {"DISABLE_ASSISTANT": "1", "DEBUG": "true"}, clear=True):
            settings = Settings()

        assert settings.enable_assistant is False
        assert settings.debug_mode is True

    def test_api_key_read_from_environment(self):
        from cropmarket.config import Settings

        with mock.patch.dict(os.environ, {}, clear=True):
            settings = Settings()
            assert settings.anthropic_api_key is None

        with mock.patch.dict(os.environ, {"ANTHROPIC_API_KEY": "sk-test"}, clear=True):
            assert settings.anthropic_api_key == "sk-test"


class TestSettingsSingleton:
    def test_get_settings_returns_same_instance(self):
        from cropmarket.config import get_settings

        assert get_settings() is get_settings()

    def test_reload_settings_picks_up_environment(self):
        from cropmarket import config

        original = config.get_settings()
        try:
            with mock.patch.dict(os.environ, {"NEARBY_RADIUS_KM": "25"}):
                reloaded = config.reload_settings()
            assert reloaded.default_nearby_radius_km == 25.0
            assert config.get_settings() is reloaded
        finally:
            config._settings = original


def test_category_labels_cover_all_categories():
    from cropmarket.config import CATEGORY_LABELS
    from cropmarket.domain.enums import CropCategory

    assert set(CATEGORY_LABELS) == {category.value for category in CropCategory}
