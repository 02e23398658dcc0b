"""
onboarding/models/provisioning.py — Результат провижининга.

``ProvisioningResult`` — единый тип результата оркестратора:
либо ``identity`` (успех), либо ``error`` (вид ошибки + детали).
Перевод в HTTP-ответ выполняется только в ``onboarding.api.errors``.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import Field

from onboarding.exceptions import ErrorKind, OnboardingError
from onboarding.models.common import OnboardingBase
from onboarding.models.enums import RoleType
from onboarding.models.identity import (
    AccountRecord,
    OrganizationRecord,
    ProfileCompletionRecord,
    UserRecord,
)


class PlanRef(OnboardingBase):
    """План из Billing-сервиса, разрешённый на шаге PRECHECK."""
    plan_id: str
    slug: str
    is_premium: bool = False


class Subscription(OnboardingBase):
    """Подписка, активированная Billing-сервисом."""
    subscription_id: str | None = None
    account_uuid: UUID
    plan_id: str
    status: str = "ACTIVE"
    billing_cycle: str | None = None


class ProvisionedIdentity(OnboardingBase):
    """Итог успешного провижининга (ACTIVE или PENDING_PAYMENT)."""
    account: AccountRecord
    user: UserRecord
    organization: OrganizationRecord | None = None
    completion: ProfileCompletionRecord
    role: RoleType
    plan: PlanRef
    subscription: Subscription | None = None


class ProvisioningFailure(OnboardingBase):
    """Ошибка провижининга в форме, безопасной для вызывающей стороны."""
    kind: ErrorKind
    message: str
    field: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def code(self) -> str:
        return self.kind.value

    @classmethod
    def from_error(cls, exc: OnboardingError) -> "ProvisioningFailure":
        return cls(
            kind=exc.kind,
            message=exc.message,
            field=exc.details.get("field"),
            details=exc.details,
        )


class ProvisioningResult(OnboardingBase):
    identity: ProvisionedIdentity | None = None
    error: ProvisioningFailure | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, identity: ProvisionedIdentity) -> "ProvisioningResult":
        return cls(identity=identity)

    @classmethod
    def failure(cls, exc: OnboardingError) -> "ProvisioningResult":
        return cls(error=ProvisioningFailure.from_error(exc))
