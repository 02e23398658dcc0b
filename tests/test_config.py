import pydantic
import pytest

from onboarding.config import OnboardingSettings


def test_defaults():
    settings = OnboardingSettings(_env_file=None)
    assert settings.default_plan_slug == "free-forever"
    assert settings.subscription_currency == "KES"
    assert settings.rpc_timeout_seconds == 5.0


def test_cors_origins_from_json_string():
    settings = OnboardingSettings(_env_file=None, cors_origins='["https://app.example.com"]')
    assert settings.cors_origins == ["https://app.example.com"]


def test_production_requires_real_service_urls():
    with pytest.raises(pydantic.ValidationError):
        OnboardingSettings(_env_file=None, app_env="production")

    settings = OnboardingSettings(
        _env_file=None,
        app_env="production",
        access_control_url="http://access-control.internal:8410",
        billing_url="http://billing.internal:8420",
    )
    assert settings.app_env == "production"


def test_timeout_must_be_positive():
    with pytest.raises(pydantic.ValidationError):
        OnboardingSettings(_env_file=None, rpc_timeout_seconds=0)
