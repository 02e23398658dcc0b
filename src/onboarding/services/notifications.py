"""
onboarding/services/notifications.py — Уведомления о завершённом провижининге.

Вызывается оркестратором в фоне, только после успешного
EXTERNAL_ACTIVATION. Результат саги от уведомлений не зависит.
"""

from __future__ import annotations

import logging

from onboarding.events import NatsEventPublisher
from onboarding.models.enums import AccountKind, AccountStatus
from onboarding.models.provisioning import ProvisionedIdentity
from onboarding.services.audit_logger import OnboardingAuditAction, OnboardingAuditLogger

logger = logging.getLogger(__name__)


class ProvisioningNotifier:
    def __init__(self, publisher: NatsEventPublisher, audit: OnboardingAuditLogger) -> None:
        self._publisher = publisher
        self._audit = audit

    async def identity_provisioned(
        self,
        identity: ProvisionedIdentity,
        org_email: str | None = None,
    ) -> None:
        """Публикует ``identity.provisioned``, приветствие и аудит-запись."""
        account, user = identity.account, identity.user

        await self._publisher.publish("identity.provisioned", {
            "uuid": str(user.uuid),
            "accountUuid": str(account.uuid),
            "email": user.email,
            "role": identity.role.value,
        })

        if account.kind is AccountKind.ORGANIZATION and identity.organization is not None:
            await self._publisher.publish("organization.onboarded", {
                "accountId": account.code,
                "name": identity.organization.name,
                "adminFirstName": user.first_name,
                "adminEmail": user.email,
                "orgEmail": org_email,
                "plan": identity.plan.slug,
            })
        else:
            await self._publisher.publish("user.onboarded", {
                "accountId": account.code,
                "firstName": user.first_name,
                "email": user.email,
                "plan": identity.plan.slug,
            })

        action = (
            OnboardingAuditAction.ACCOUNT_PENDING_PAYMENT
            if account.status is AccountStatus.PENDING_PAYMENT
            else OnboardingAuditAction.ACCOUNT_PROVISIONED
        )
        await self._audit.log(
            action,
            entity_type="account",
            entity_id=str(account.uuid),
            user_id=str(user.uuid),
            details={"kind": account.kind.value, "plan": identity.plan.slug},
        )
