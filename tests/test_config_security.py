from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.config import Settings


def test_placeholder_secrets_allowed_in_development() -> None:
    settings = Settings(_env_file=None, app_env="development")
    assert settings.identity_jwt_secret == "change-me"
    assert settings.payment_gateway_key_secret == "change-me"


def test_placeholder_jwt_secret_rejected_in_production() -> None:
    with pytest.raises(ValidationError):
        Settings(
            _env_file=None,
            app_env="production",
            identity_jwt_secret="change-me-in-production",
            payment_gateway_key_secret="live-gateway-secret",
        )


def test_placeholder_gateway_secret_rejected_in_production() -> None:
    with pytest.raises(ValidationError):
        Settings(
            _env_file=None,
            app_env="prod",
            identity_jwt_secret="super-secure-value",
            payment_gateway_key_secret="change-me",
        )


def test_custom_secrets_allowed_in_production() -> None:
    settings = Settings(
        _env_file=None,
        app_env="production",
        identity_jwt_secret="super-secure-value",
        payment_gateway_key_secret="live-gateway-secret",
    )
    assert settings.identity_jwt_secret == "super-secure-value"


def test_slot_end_hour_before_start_hour_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(_env_file=None, slot_start_hour=18, slot_end_hour=9)


def test_payment_currency_is_upper_cased() -> None:
    settings = Settings(_env_file=None, payment_currency=" inr ")
    assert settings.payment_currency == "INR"
