"""
onboarding/models/common.py — Базовые типы домена онбординга.
"""

from pydantic import BaseModel


class OnboardingBase(BaseModel):
    """Базовая Pydantic-модель для схем онбординга."""

    model_config = {"str_strip_whitespace": True}
