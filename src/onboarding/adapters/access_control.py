"""
onboarding/adapters/access_control.py — Клиент сервиса Access-Control (RBAC).

Операции, которые потребляет провижининг:
    • resolve_role_id(role_type)      — PRECHECK
    • assign_role(user_uuid, role_id) — EXTERNAL_ACTIVATION
    • revoke_role(user_uuid, role_id) — компенсация assign_role
"""

from __future__ import annotations

import logging
from uuid import UUID

from onboarding.adapters.rpc import RpcClient
from onboarding.config import OnboardingSettings
from onboarding.exceptions import ReferenceNotFoundError, RemoteCallError
from onboarding.models.enums import RoleType

logger = logging.getLogger(__name__)


class AccessControlClient(RpcClient):
    service_name = "access-control"

    @classmethod
    def from_settings(cls, settings: OnboardingSettings) -> "AccessControlClient":
        return cls(settings.access_control_url, settings.rpc_timeout_seconds)

    async def resolve_role_id(self, role_type: RoleType) -> str:
        """Возвращает id системной роли по её типу."""
        body = await self._call(
            "/internal/rbac/roles/resolve",
            {"roleType": role_type.value},
            reference=role_type.value,
        )
        role_id = body.get("roleId")
        if not body.get("success", True) or not role_id:
            raise ReferenceNotFoundError(self.service_name, role_type.value)
        return str(role_id)

    async def assign_role(self, user_uuid: UUID, role_id: str) -> None:
        body = await self._call(
            "/internal/rbac/user-roles",
            {"userUuid": str(user_uuid), "roleId": role_id},
        )
        if not body.get("success"):
            raise RemoteCallError(self.service_name, body.get("message") or "role not assigned")
        logger.info("Role %s assigned to user %s", role_id, user_uuid)

    async def revoke_role(self, user_uuid: UUID, role_id: str) -> None:
        body = await self._call(
            "/internal/rbac/user-roles/revoke",
            {"userUuid": str(user_uuid), "roleId": role_id},
        )
        if not body.get("success"):
            raise RemoteCallError(self.service_name, body.get("message") or "role not revoked")
        logger.info("Role %s revoked from user %s", role_id, user_uuid)
