"""
onboarding/services/provisioning.py — Оркестратор провижининга аккаунтов.

Сага одна для ФЛ и организаций, различается только черновик строк:

    PRECHECK ─► LOCAL_COMMIT ─► EXTERNAL_ACTIVATION ─► DONE
       │              │                  │
       ▼              ▼                  ▼
     FAILED         FAILED      COMPENSATING_ROLLBACK ─► FAILED

    1. PRECHECK — параллельно разрешаем роль (Access-Control) и план
       (Billing), каждый вызов ограничен таймаутом. Записей нет.
    2. LOCAL_COMMIT — одна транзакция Identity Store. Нарушение
       уникальности → ConflictError(field), компенсировать нечего.
    3. EXTERNAL_ACTIVATION — последовательно: назначение роли, затем
       (только для бесплатного плана) активация подписки.
    4. COMPENSATING_ROLLBACK — отзыв роли и удаление локальных строк.
       Неудачное удаление — «сирота», пишется в лог как CRITICAL.

Уведомления отправляются в фоне после DONE и на результат не влияют.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import string
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Protocol
from uuid import UUID, uuid4

from onboarding.exceptions import (
    DependencyUnavailableError,
    ExternalActivationError,
    InternalError,
    OnboardingError,
    ReferenceNotFoundError,
)
from onboarding.models.enums import AccountKind, AccountStatus, ProfileField, RoleType
from onboarding.models.identity import (
    AccountRecord,
    IdentityDraft,
    IdentityIds,
    MembershipRecord,
    OrganizationProfileRecord,
    OrganizationRecord,
    ProfileCompletionRecord,
    UserProfileRecord,
    UserRecord,
)
from onboarding.models.provisioning import (
    PlanRef,
    ProvisionedIdentity,
    ProvisioningResult,
    Subscription,
)
from onboarding.models.signup import IndividualSignup, OrganizationSignup
from onboarding.services.rbac import default_role_for, role_label
from onboarding.services.saga import SagaAborted, SagaRunner, SagaStep

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════
# ИНТЕРФЕЙСЫ ЗАВИСИМОСТЕЙ
# ═══════════════════════════════════════════════════════════════════════════


class IdentityStore(Protocol):
    async def create_identity(self, draft: IdentityDraft) -> IdentityIds: ...

    async def delete_identity(self, ids: IdentityIds) -> None: ...


class AccessControl(Protocol):
    async def resolve_role_id(self, role_type: RoleType) -> str: ...

    async def assign_role(self, user_uuid: UUID, role_id: str) -> None: ...

    async def revoke_role(self, user_uuid: UUID, role_id: str) -> None: ...


class Billing(Protocol):
    async def resolve_plan(self, slug: str) -> PlanRef: ...

    async def activate_subscription(
        self,
        account_uuid: UUID,
        plan_id: str,
        billing_cycle: str | None = None,
        amount_paid: float = 0,
        currency: str = "KES",
    ) -> Subscription: ...


class Notifier(Protocol):
    async def identity_provisioned(
        self, identity: ProvisionedIdentity, org_email: str | None = None
    ) -> None: ...


# ═══════════════════════════════════════════════════════════════════════════
# ЧЕРНОВИКИ СТРОК IDENTITY STORE
# ═══════════════════════════════════════════════════════════════════════════

INDIVIDUAL_COMPLETION = 25
INDIVIDUAL_MISSING_FIELDS = [
    ProfileField.BIO,
    ProfileField.NATIONAL_ID,
    ProfileField.GENDER,
    ProfileField.DATE_OF_BIRTH,
    ProfileField.PROFILE_IMAGE,
]
ORGANIZATION_COMPLETION = 40
ORGANIZATION_MISSING_FIELDS = [
    ProfileField.KRA_PIN,
    ProfileField.REGISTRATION_NO,
    ProfileField.WEBSITE,
]

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_code(prefix: str, length: int = 8) -> str:
    """Человекочитаемый код вида ``USR-7K2QX9AB``."""
    return f"{prefix}-{''.join(secrets.choice(_CODE_ALPHABET) for _ in range(length))}"


def build_individual_draft(
    data: IndividualSignup, status: AccountStatus, role_name: str
) -> IdentityDraft:
    account_uuid = uuid4()
    user_code = generate_code("USR")
    return IdentityDraft(
        account=AccountRecord(
            uuid=account_uuid,
            code=f"ACC-{user_code}",
            kind=AccountKind.INDIVIDUAL,
            display_name=f"{data.first_name} {data.last_name}".strip(),
            status=status,
        ),
        user=UserRecord(
            uuid=data.user_uuid,
            code=user_code,
            email=data.email.lower(),
            phone=data.phone,
            first_name=data.first_name,
            last_name=data.last_name,
            role_name=role_name,
            account_uuid=account_uuid,
            status=status,
        ),
        user_profile=UserProfileRecord(user_uuid=data.user_uuid),
        completion=ProfileCompletionRecord(
            user_uuid=data.user_uuid,
            percentage=INDIVIDUAL_COMPLETION,
            missing_fields=list(INDIVIDUAL_MISSING_FIELDS),
        ),
    )


def build_organization_draft(
    data: OrganizationSignup, status: AccountStatus, role_name: str
) -> IdentityDraft:
    account_uuid = uuid4()
    org_uuid = uuid4()
    org_code = generate_code("ORG")
    return IdentityDraft(
        account=AccountRecord(
            uuid=account_uuid,
            code=f"ACC-{org_code}",
            kind=AccountKind.ORGANIZATION,
            display_name=data.name,
            status=status,
        ),
        organization=OrganizationRecord(
            uuid=org_uuid,
            code=org_code,
            name=data.name,
            account_uuid=account_uuid,
        ),
        organization_profile=OrganizationProfileRecord(
            organization_uuid=org_uuid,
            official_email=data.official_email,
            official_phone=data.official_phone,
            physical_address=data.physical_address,
            type_slug=data.organization_type,
        ),
        user=UserRecord(
            uuid=data.admin_user_uuid,
            code=generate_code("USR"),
            email=data.email.lower(),
            phone=data.phone,
            first_name=data.admin_first_name,
            last_name=data.admin_last_name,
            role_name=role_name,
            account_uuid=account_uuid,
            status=status,
        ),
        user_profile=UserProfileRecord(
            user_uuid=data.admin_user_uuid,
            bio=f"Administrator for {data.name}",
        ),
        membership=MembershipRecord(
            organization_uuid=org_uuid,
            user_uuid=data.admin_user_uuid,
            role_name=role_name,
        ),
        completion=ProfileCompletionRecord(
            organization_uuid=org_uuid,
            percentage=ORGANIZATION_COMPLETION,
            missing_fields=list(ORGANIZATION_MISSING_FIELDS),
        ),
    )


@dataclass
class _Actor:
    """Параметры саги для конкретного типа аккаунта."""
    kind: AccountKind
    user_uuid: UUID
    plan_slug: str | None
    build_draft: Callable[[AccountStatus, str], IdentityDraft]
    org_email: str | None = None

    @property
    def label(self) -> str:
        return f"provision:{self.kind.value.lower()}:{self.user_uuid}"


# ═══════════════════════════════════════════════════════════════════════════
# ОРКЕСТРАТОР
# ═══════════════════════════════════════════════════════════════════════════

STEP_LOCAL_COMMIT = "local_commit"
STEP_ASSIGN_ROLE = "assign_role"
STEP_ACTIVATE_SUBSCRIPTION = "activate_subscription"


class ProvisioningOrchestrator:
    """
    Сага провижининга поверх явно переданных зависимостей.

    Клиенты Access-Control и Billing, Identity Store и notifier создаются
    один раз при старте процесса (``onboarding.main``) и передаются сюда.
    """

    def __init__(
        self,
        store: IdentityStore,
        access_control: AccessControl,
        billing: Billing,
        notifier: Notifier | None = None,
        *,
        rpc_timeout: float = 5.0,
        default_plan_slug: str = "free-forever",
        currency: str = "KES",
    ) -> None:
        self._store = store
        self._access_control = access_control
        self._billing = billing
        self._notifier = notifier
        self._rpc_timeout = rpc_timeout
        self._default_plan_slug = default_plan_slug
        self._currency = currency
        self._pending: set[asyncio.Task] = set()

    # ── Публичные операции ────────────────────────────────────────────────

    async def provision_individual(self, data: IndividualSignup) -> ProvisioningResult:
        """Провижининг ФЛ-аккаунта: Account + User + ProfileCompletion."""
        return await self._provision(_Actor(
            kind=AccountKind.INDIVIDUAL,
            user_uuid=data.user_uuid,
            plan_slug=data.plan_slug,
            build_draft=lambda status, role: build_individual_draft(data, status, role),
        ))

    async def provision_organization(self, data: OrganizationSignup) -> ProvisioningResult:
        """Провижининг организации с администратором."""
        return await self._provision(_Actor(
            kind=AccountKind.ORGANIZATION,
            user_uuid=data.admin_user_uuid,
            plan_slug=data.plan_slug,
            build_draft=lambda status, role: build_organization_draft(data, status, role),
            org_email=data.official_email,
        ))

    async def drain_notifications(self) -> None:
        """Дождаться фоновых уведомлений (shutdown, тесты)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ── Сага ──────────────────────────────────────────────────────────────

    async def _provision(self, actor: _Actor) -> ProvisioningResult:
        try:
            identity = await self._run_saga(actor)
        except OnboardingError as exc:
            logger.info("[%s] FAILED: %s (%s)", actor.label, exc.message, exc.code)
            return ProvisioningResult.failure(exc)
        except Exception as exc:
            logger.exception("[%s] FAILED with unexpected error", actor.label)
            return ProvisioningResult.failure(
                InternalError(f"Internal failure during provisioning: {type(exc).__name__}")
            )

        logger.info(
            "[%s] DONE: account %s is %s",
            actor.label, identity.account.code, identity.account.status.value,
        )
        self._schedule_notification(identity, actor.org_email)
        return ProvisioningResult.success(identity)

    async def _run_saga(self, actor: _Actor) -> ProvisionedIdentity:
        role_type = default_role_for(actor.kind)
        slug = actor.plan_slug or self._default_plan_slug

        logger.info("[%s] PRECHECK: role=%s plan=%s", actor.label, role_type.value, slug)
        role_id, plan = await self._precheck(role_type, slug)

        status = AccountStatus.PENDING_PAYMENT if plan.is_premium else AccountStatus.ACTIVE
        draft = actor.build_draft(status, role_label(role_type))
        ids = draft.ids

        steps = [
            SagaStep(
                STEP_LOCAL_COMMIT,
                action=lambda: self._store.create_identity(draft),
                compensate=lambda: self._store.delete_identity(ids),
            ),
            SagaStep(
                STEP_ASSIGN_ROLE,
                action=lambda: self._bounded(
                    self._access_control.assign_role(ids.user_uuid, role_id), "access-control"
                ),
                compensate=lambda: self._bounded(
                    self._access_control.revoke_role(ids.user_uuid, role_id), "access-control"
                ),
                # таймаут или сбой транспорта: роль могла быть выдана
                ambiguous=lambda exc: isinstance(exc, DependencyUnavailableError),
            ),
        ]
        # Премиум-план: подписку активирует оплата, аккаунт остаётся PENDING_PAYMENT
        if not plan.is_premium:
            steps.append(SagaStep(
                STEP_ACTIVATE_SUBSCRIPTION,
                action=lambda: self._bounded(
                    self._billing.activate_subscription(
                        ids.account_uuid, plan.plan_id, None, 0, self._currency
                    ),
                    "billing",
                ),
            ))

        logger.info("[%s] LOCAL_COMMIT: account=%s", actor.label, ids.account_uuid)
        runner = SagaRunner(actor.label)
        try:
            results = await runner.run(steps)
        except asyncio.CancelledError:
            if runner.aborted is not None and runner.aborted.step != STEP_LOCAL_COMMIT:
                self._report_rollback(actor, ids, runner.aborted)
            raise
        except SagaAborted as aborted:
            if aborted.step == STEP_LOCAL_COMMIT:
                raise self._local_commit_error(aborted.cause) from aborted.cause
            self._report_rollback(actor, ids, aborted)
            raise ExternalActivationError(aborted.step) from aborted.cause

        return ProvisionedIdentity(
            account=draft.account,
            user=draft.user,
            organization=draft.organization,
            completion=draft.completion,
            role=role_type,
            plan=plan,
            subscription=results.get(STEP_ACTIVATE_SUBSCRIPTION),
        )

    async def _precheck(self, role_type: RoleType, slug: str) -> tuple[str, PlanRef]:
        """Разрешает роль и план параллельно; любой сбой — без записей."""
        role_res, plan_res = await asyncio.gather(
            self._bounded(self._access_control.resolve_role_id(role_type), "access-control"),
            self._bounded(self._billing.resolve_plan(slug), "billing"),
            return_exceptions=True,
        )
        for service, res in (("access-control", role_res), ("billing", plan_res)):
            if isinstance(res, (DependencyUnavailableError, ReferenceNotFoundError)):
                raise res
            if isinstance(res, BaseException):
                raise DependencyUnavailableError(service, type(res).__name__) from res
        return role_res, plan_res  # type: ignore[return-value]

    async def _bounded(self, awaitable: Awaitable[Any], service: str) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._rpc_timeout)
        except asyncio.TimeoutError as exc:
            raise DependencyUnavailableError(service, "timeout") from exc

    @staticmethod
    def _local_commit_error(cause: BaseException) -> OnboardingError:
        if isinstance(cause, OnboardingError):
            return cause
        return InternalError(f"Identity Store write failed: {type(cause).__name__}")

    @staticmethod
    def _report_rollback(actor: _Actor, ids: IdentityIds, aborted: SagaAborted) -> None:
        logger.error(
            "[%s] COMPENSATING_ROLLBACK after '%s' failed: %s (compensated: %s)",
            actor.label, aborted.step, aborted.cause, ", ".join(aborted.compensated) or "-",
        )
        role_error = aborted.compensation_failures.get(STEP_ASSIGN_ROLE)
        if role_error is not None:
            logger.error(
                "[%s] role grant for user %s could not be revoked: %s",
                actor.label, ids.user_uuid, role_error,
            )
        store_error = aborted.compensation_failures.get(STEP_LOCAL_COMMIT)
        if store_error is not None:
            logger.critical(
                "[%s] CRITICAL orphan: rollback failed, rows remain for account=%s "
                "user=%s org=%s — manual remediation required: %s",
                actor.label, ids.account_uuid, ids.user_uuid, ids.organization_uuid, store_error,
            )

    # ── Уведомления ───────────────────────────────────────────────────────

    def _schedule_notification(
        self, identity: ProvisionedIdentity, org_email: str | None
    ) -> None:
        if self._notifier is None:
            return
        task = asyncio.create_task(self._notify(identity, org_email))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _notify(self, identity: ProvisionedIdentity, org_email: str | None) -> None:
        try:
            await self._notifier.identity_provisioned(identity, org_email=org_email)
        except Exception as exc:
            logger.warning(
                "Notification for account %s failed (ignored): %s", identity.account.uuid, exc
            )
