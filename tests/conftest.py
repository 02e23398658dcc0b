"""Общие фикстуры: фейковые Access-Control, Billing и notifier поверх memory store."""

import asyncio
from uuid import UUID

import pytest

from onboarding.exceptions import ReferenceNotFoundError
from onboarding.memory_store import MemoryIdentityStore
from onboarding.models import (
    AccountKind,
    AccountStatus,
    IndividualSignup,
    OrganizationSignup,
    PlanRef,
    ProvisionedIdentity,
    RoleType,
    Subscription,
)
from onboarding.services.provisioning import (
    ProvisioningOrchestrator,
    build_individual_draft,
    build_organization_draft,
)
from onboarding.services.rbac import default_role_for, role_label

ROLE_IDS = {
    RoleType.GENERAL_USER: "role-general",
    RoleType.BUSINESS_SYSTEM_ADMIN: "role-business-admin",
}

FREE_PLAN = PlanRef(plan_id="plan-free", slug="free-forever")
PRO_PLAN = PlanRef(plan_id="plan-pro", slug="pro", is_premium=True)


class FakeAccessControl:
    def __init__(self) -> None:
        self.resolve_calls: list[RoleType] = []
        self.assigned: list[tuple[UUID, str]] = []
        self.revoked: list[tuple[UUID, str]] = []
        self.resolve_delay = 0.0
        self.assign_delay = 0.0
        self.fail_resolve: Exception | None = None
        self.fail_assign: Exception | None = None
        self.fail_revoke: Exception | None = None

    async def resolve_role_id(self, role_type: RoleType) -> str:
        await asyncio.sleep(self.resolve_delay)
        self.resolve_calls.append(role_type)
        if self.fail_resolve is not None:
            raise self.fail_resolve
        return ROLE_IDS[role_type]

    async def assign_role(self, user_uuid: UUID, role_id: str) -> None:
        await asyncio.sleep(0)
        if self.fail_assign is not None:
            raise self.fail_assign
        self.assigned.append((user_uuid, role_id))
        # grant is applied remotely, the ack is late
        await asyncio.sleep(self.assign_delay)

    async def revoke_role(self, user_uuid: UUID, role_id: str) -> None:
        await asyncio.sleep(0)
        if self.fail_revoke is not None:
            raise self.fail_revoke
        self.revoked.append((user_uuid, role_id))


class FakeBilling:
    def __init__(self) -> None:
        self.plans = {FREE_PLAN.slug: FREE_PLAN, PRO_PLAN.slug: PRO_PLAN}
        self.activations: list[dict] = []
        self.fail_resolve: Exception | None = None
        self.fail_activate: Exception | None = None
        self.activate_delay = 0.0

    async def resolve_plan(self, slug: str) -> PlanRef:
        await asyncio.sleep(0)
        if self.fail_resolve is not None:
            raise self.fail_resolve
        if slug not in self.plans:
            raise ReferenceNotFoundError("billing", slug)
        return self.plans[slug]

    async def activate_subscription(
        self, account_uuid, plan_id, billing_cycle=None, amount_paid=0, currency="KES"
    ) -> Subscription:
        await asyncio.sleep(self.activate_delay)
        if self.fail_activate is not None:
            raise self.fail_activate
        self.activations.append({
            "account_uuid": account_uuid,
            "plan_id": plan_id,
            "amount_paid": amount_paid,
            "currency": currency,
        })
        return Subscription(subscription_id="sub-1", account_uuid=account_uuid, plan_id=plan_id)


class RecordingNotifier:
    def __init__(self) -> None:
        self.calls: list[tuple[ProvisionedIdentity, str | None]] = []
        self.fail = False

    async def identity_provisioned(self, identity, org_email=None) -> None:
        if self.fail:
            raise RuntimeError("mail relay down")
        self.calls.append((identity, org_email))


@pytest.fixture
def store() -> MemoryIdentityStore:
    return MemoryIdentityStore()


@pytest.fixture
def access_control() -> FakeAccessControl:
    return FakeAccessControl()


@pytest.fixture
def billing() -> FakeBilling:
    return FakeBilling()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def orchestrator(store, access_control, billing, notifier) -> ProvisioningOrchestrator:
    return ProvisioningOrchestrator(
        store, access_control, billing, notifier, rpc_timeout=0.2
    )


def individual_signup(**overrides) -> IndividualSignup:
    data = {
        "email": "jane@example.com",
        "phone": "+254700000001",
        "first_name": "Jane",
        "last_name": "Wanjiru",
    }
    data.update(overrides)
    return IndividualSignup(**data)


def organization_signup(**overrides) -> OrganizationSignup:
    data = {
        "name": "Acme Housing Ltd",
        "official_email": "info@acme.co.ke",
        "official_phone": "+254200000000",
        "physical_address": "Moi Avenue 1, Nairobi",
        "email": "admin@acme.co.ke",
        "phone": "+254700000002",
        "admin_first_name": "Otieno",
        "admin_last_name": "Kamau",
    }
    data.update(overrides)
    return OrganizationSignup(**data)


def make_identity(
    kind: AccountKind = AccountKind.INDIVIDUAL, premium: bool = False
) -> ProvisionedIdentity:
    role = default_role_for(kind)
    status = AccountStatus.PENDING_PAYMENT if premium else AccountStatus.ACTIVE
    if kind is AccountKind.ORGANIZATION:
        draft = build_organization_draft(organization_signup(), status, role_label(role))
    else:
        draft = build_individual_draft(individual_signup(), status, role_label(role))
    return ProvisionedIdentity(
        account=draft.account,
        user=draft.user,
        organization=draft.organization,
        completion=draft.completion,
        role=role,
        plan=PRO_PLAN if premium else FREE_PLAN,
    )
