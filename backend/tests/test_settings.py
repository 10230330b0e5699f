"""Settings defaults, validation and logging view."""

from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from esop_advisor.config import settings as settings_module
from esop_advisor.config.settings import EsopSettings
from esop_advisor.services.analytics import AnalyticsConfig
from esop_advisor.services.tax import TaxRegion


def test_public_names():
    assert settings_module.__all__ == ["EsopSettings", "get_settings"]


def test_engine_config_follows_settings():
    settings = EsopSettings(inflation_rate_india=Decimal("0.06"), projection_years=15)

    config = AnalyticsConfig.from_settings(settings)

    assert config.projection_years == 15
    assert config.inflation_rates[TaxRegion.INDIA] == Decimal("0.06")


@pytest.mark.parametrize("years", [0, 51])
def test_projection_horizon_is_bounded(years):
    with pytest.raises(ValidationError):
        EsopSettings(projection_years=years)


def test_secrets_are_masked_for_logging():
    logged = EsopSettings(internal_auth_token="s3cret", quote_service_token=None).dict_for_logging()

    assert logged["internal_auth_token"] == "***"
    assert logged["quote_service_token"] is None
    assert logged["cors_origins"] == "http://localhost:4200"
