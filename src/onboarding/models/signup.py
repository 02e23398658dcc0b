"""
onboarding/models/signup.py — Входные схемы провижининга.

``IndividualSignup`` и ``OrganizationSignup`` приходят от auth-сервиса
после подтверждения email. UUID пользователя может быть заранее
сгенерирован вызывающей стороной (якорь для учётных данных).
"""

from uuid import UUID, uuid4

from pydantic import Field, field_validator

from onboarding.models.common import OnboardingBase

EMAIL_PATTERN = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"


class IndividualSignup(OnboardingBase):
    """Схема провижининга ФЛ-аккаунта."""
    user_uuid: UUID = Field(default_factory=uuid4)
    email: str = Field(..., pattern=EMAIL_PATTERN, examples=["jane@example.com"])
    phone: str | None = Field(default=None, examples=["+254700000000"])
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    plan_slug: str | None = Field(default=None, examples=["free-forever", "pro"])

    @field_validator("phone")
    @classmethod
    def _blank_phone_is_none(cls, v: str | None) -> str | None:
        """Пустой телефон сохраняется как NULL (иначе конфликт уникальности)."""
        return v or None


class OrganizationSignup(OnboardingBase):
    """Схема провижининга организации вместе с её администратором."""
    admin_user_uuid: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=255, examples=["Acme Housing Ltd"])
    official_email: str | None = Field(default=None, pattern=EMAIL_PATTERN)
    official_phone: str | None = None
    physical_address: str | None = None
    organization_type: str = Field(default="PRIVATE_LIMITED")
    email: str = Field(..., pattern=EMAIL_PATTERN, examples=["admin@acme.co.ke"])
    phone: str | None = None
    admin_first_name: str = Field(..., min_length=1, max_length=100)
    admin_last_name: str = Field(..., min_length=1, max_length=100)
    plan_slug: str | None = None

    @field_validator("phone", "official_phone")
    @classmethod
    def _blank_phone_is_none(cls, v: str | None) -> str | None:
        return v or None
