"""
onboarding/models/identity.py — Записи Identity Store.

Строки, которые провижининг создаёт одной транзакцией:
Account, User (+UserProfile), Organization (+OrganizationProfile),
OrganizationMember и ProfileCompletion. ``IdentityDraft`` собирает их
вместе до записи, ``IdentityIds`` — ключи для компенсирующего удаления.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import Field, model_validator

from onboarding.models.common import OnboardingBase
from onboarding.models.enums import (
    AccountKind,
    AccountStatus,
    ProfileField,
    VerificationStatus,
)


class AccountRecord(OnboardingBase):
    """Корневой аккаунт (billing/identity контейнер)."""
    uuid: UUID
    code: str
    kind: AccountKind
    display_name: str
    status: AccountStatus


class UserRecord(OnboardingBase):
    """Пользователь: владелец ФЛ-аккаунта или администратор организации."""
    uuid: UUID
    code: str
    email: str
    phone: str | None = None
    first_name: str
    last_name: str
    role_name: str
    account_uuid: UUID
    status: AccountStatus


class UserProfileRecord(OnboardingBase):
    user_uuid: UUID
    bio: str | None = None


class OrganizationRecord(OnboardingBase):
    uuid: UUID
    code: str
    name: str
    account_uuid: UUID
    verification_status: VerificationStatus = VerificationStatus.PENDING


class OrganizationProfileRecord(OnboardingBase):
    organization_uuid: UUID
    official_email: str | None = None
    official_phone: str | None = None
    physical_address: str | None = None
    type_slug: str = "PRIVATE_LIMITED"


class MembershipRecord(OnboardingBase):
    """Связь администратора с организацией."""
    organization_uuid: UUID
    user_uuid: UUID
    role_name: str


class ProfileCompletionRecord(OnboardingBase):
    """Трекер заполненности профиля; владелец — пользователь ЛИБО организация."""
    user_uuid: UUID | None = None
    organization_uuid: UUID | None = None
    percentage: int = Field(..., ge=0, le=100)
    missing_fields: list[ProfileField] = Field(default_factory=list)
    is_complete: bool = False

    @model_validator(mode="after")
    def _single_owner(self) -> "ProfileCompletionRecord":
        if (self.user_uuid is None) == (self.organization_uuid is None):
            raise ValueError("ProfileCompletion must reference exactly one owner")
        return self

    @property
    def owner_uuid(self) -> UUID:
        return self.user_uuid or self.organization_uuid  # type: ignore[return-value]


class IdentityDraft(OnboardingBase):
    """Полный набор строк одного провижининга до записи в Identity Store."""
    account: AccountRecord
    user: UserRecord
    user_profile: UserProfileRecord
    organization: OrganizationRecord | None = None
    organization_profile: OrganizationProfileRecord | None = None
    membership: MembershipRecord | None = None
    completion: ProfileCompletionRecord

    @property
    def ids(self) -> "IdentityIds":
        return IdentityIds(
            account_uuid=self.account.uuid,
            user_uuid=self.user.uuid,
            organization_uuid=self.organization.uuid if self.organization else None,
        )


class IdentityIds(OnboardingBase):
    """Ключи строк, созданных на шаге LOCAL_COMMIT."""
    account_uuid: UUID
    user_uuid: UUID
    organization_uuid: UUID | None = None
