"""
onboarding/adapters/billing.py — Клиент Billing-сервиса (планы и подписки).

    • resolve_plan(slug)                          — PRECHECK
    • activate_subscription(account_uuid, ...)    — EXTERNAL_ACTIVATION
"""

from __future__ import annotations

import logging
from uuid import UUID

from onboarding.adapters.rpc import RpcClient
from onboarding.config import OnboardingSettings
from onboarding.exceptions import ReferenceNotFoundError, RemoteCallError
from onboarding.models.provisioning import PlanRef, Subscription

logger = logging.getLogger(__name__)


class BillingClient(RpcClient):
    service_name = "billing"

    @classmethod
    def from_settings(cls, settings: OnboardingSettings) -> "BillingClient":
        return cls(settings.billing_url, settings.rpc_timeout_seconds)

    async def resolve_plan(self, slug: str) -> PlanRef:
        """Возвращает id плана по slug и признак премиум-тарифа."""
        body = await self._call("/internal/plans/resolve", {"slug": slug}, reference=slug)
        plan_id = body.get("planId")
        if not body.get("success", True) or not plan_id:
            raise ReferenceNotFoundError(self.service_name, slug)
        return PlanRef(
            plan_id=str(plan_id),
            slug=slug,
            is_premium=bool(body.get("isPremium", False)),
        )

    async def activate_subscription(
        self,
        account_uuid: UUID,
        plan_id: str,
        billing_cycle: str | None = None,
        amount_paid: float = 0,
        currency: str = "KES",
    ) -> Subscription:
        """Подписывает аккаунт на план. Ответ ``success: false`` — ошибка."""
        body = await self._call(
            "/internal/subscriptions",
            {
                "subscriberUuid": str(account_uuid),
                "planId": plan_id,
                "billingCycle": billing_cycle,
                "amountPaid": amount_paid,
                "currency": currency,
            },
        )
        if not body.get("success"):
            raise RemoteCallError(
                self.service_name, body.get("message") or "subscription not activated"
            )

        sub = body.get("subscription") or {}
        logger.info("Subscription activated for account %s on plan %s", account_uuid, plan_id)
        return Subscription(
            subscription_id=str(sub["id"]) if sub.get("id") is not None else None,
            account_uuid=account_uuid,
            plan_id=plan_id,
            status=sub.get("status", "ACTIVE"),
            billing_cycle=sub.get("billingCycle", billing_cycle),
        )
