import json
from uuid import uuid4

import httpx
import pytest

from onboarding.adapters.access_control import AccessControlClient
from onboarding.adapters.billing import BillingClient
from onboarding.exceptions import (
    DependencyUnavailableError,
    ReferenceNotFoundError,
    RemoteCallError,
)
from onboarding.models import RoleType


def _transport(handler, seen=None):
    def _handle(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append((request.url.path, json.loads(request.content or b"{}")))
        return handler(request)
    return httpx.MockTransport(_handle)


def _access_control(handler, seen=None):
    return AccessControlClient("http://rbac.test", 1.0, transport=_transport(handler, seen))


def _billing(handler, seen=None):
    return BillingClient("http://billing.test", 1.0, transport=_transport(handler, seen))


class TestAccessControlClient:
    async def test_resolve_role_id(self):
        seen = []
        client = _access_control(
            lambda r: httpx.Response(200, json={"success": True, "roleId": 42}), seen
        )
        assert await client.resolve_role_id(RoleType.GENERAL_USER) == "42"
        assert seen == [("/internal/rbac/roles/resolve", {"roleType": "GeneralUser"})]
        await client.aclose()

    async def test_missing_role_is_reference_not_found(self):
        client = _access_control(lambda r: httpx.Response(404, json={"message": "no role"}))
        with pytest.raises(ReferenceNotFoundError) as info:
            await client.resolve_role_id(RoleType.GENERAL_USER)
        assert info.value.reference == "GeneralUser"
        await client.aclose()

    async def test_server_error_is_dependency_unavailable(self):
        client = _access_control(lambda r: httpx.Response(502, text="bad gateway"))
        with pytest.raises(DependencyUnavailableError):
            await client.resolve_role_id(RoleType.GENERAL_USER)
        await client.aclose()

    async def test_timeout_is_dependency_unavailable(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = _access_control(handler)
        with pytest.raises(DependencyUnavailableError) as info:
            await client.assign_role(uuid4(), "role-1")
        assert "timeout" in info.value.message
        await client.aclose()

    async def test_connect_error_is_dependency_unavailable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        client = _access_control(handler)
        with pytest.raises(DependencyUnavailableError):
            await client.resolve_role_id(RoleType.GENERAL_USER)
        await client.aclose()

    async def test_assign_role_success_false(self):
        client = _access_control(
            lambda r: httpx.Response(200, json={"success": False, "message": "user unknown"})
        )
        with pytest.raises(RemoteCallError) as info:
            await client.assign_role(uuid4(), "role-1")
        assert "user unknown" in info.value.message
        await client.aclose()

    async def test_revoke_role_payload(self):
        seen = []
        user_uuid = uuid4()
        client = _access_control(lambda r: httpx.Response(200, json={"success": True}), seen)
        await client.revoke_role(user_uuid, "role-1")
        assert seen == [
            ("/internal/rbac/user-roles/revoke", {"userUuid": str(user_uuid), "roleId": "role-1"})
        ]
        await client.aclose()

    async def test_client_error_is_remote_call_error(self):
        client = _access_control(lambda r: httpx.Response(400, json={"message": "bad uuid"}))
        with pytest.raises(RemoteCallError):
            await client.assign_role(uuid4(), "role-1")
        await client.aclose()


class TestBillingClient:
    async def test_resolve_plan(self):
        client = _billing(
            lambda r: httpx.Response(200, json={"success": True, "planId": "p-9", "isPremium": True})
        )
        plan = await client.resolve_plan("pro")
        assert plan.plan_id == "p-9"
        assert plan.slug == "pro"
        assert plan.is_premium
        await client.aclose()

    async def test_plan_without_id_is_reference_not_found(self):
        client = _billing(lambda r: httpx.Response(200, json={"success": True}))
        with pytest.raises(ReferenceNotFoundError):
            await client.resolve_plan("gold")
        await client.aclose()

    async def test_malformed_body_is_dependency_unavailable(self):
        client = _billing(lambda r: httpx.Response(200, content=b"<html>oops</html>"))
        with pytest.raises(DependencyUnavailableError):
            await client.resolve_plan("free-forever")
        await client.aclose()

    async def test_activate_subscription_payload(self):
        seen = []
        account_uuid = uuid4()
        client = _billing(
            lambda r: httpx.Response(201, json={
                "success": True,
                "subscription": {"id": 7, "status": "ACTIVE", "billingCycle": "MONTHLY"},
            }),
            seen,
        )

        sub = await client.activate_subscription(account_uuid, "p-1", currency="KES")

        assert seen == [("/internal/subscriptions", {
            "subscriberUuid": str(account_uuid),
            "planId": "p-1",
            "billingCycle": None,
            "amountPaid": 0,
            "currency": "KES",
        })]
        assert sub.subscription_id == "7"
        assert sub.billing_cycle == "MONTHLY"
        await client.aclose()

    async def test_activate_subscription_rejected(self):
        client = _billing(lambda r: httpx.Response(200, json={"success": False}))
        with pytest.raises(RemoteCallError):
            await client.activate_subscription(uuid4(), "p-1")
        await client.aclose()
