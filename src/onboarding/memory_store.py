"""
═══════════════════════════════════════════════════════════════════════════════
Onboarding — In-Memory Identity Store (замена PostgreSQL для локальной разработки)
═══════════════════════════════════════════════════════════════════════════════

``MemoryIdentityStore`` повторяет контракт ``PostgresIdentityStore``:
те же уникальные ограничения (email, phone, code, name, uuid), запись
«всё или ничего» и удаление в обратном порядке зависимостей.

Активируется из ``onboarding.main → lifespan()`` при недоступности БД.
"""

from __future__ import annotations

import asyncio
import logging
from uuid import UUID

from onboarding.exceptions import ConflictError
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

logger = logging.getLogger(__name__)


class MemoryIdentityStore:
    """Identity Store в памяти процесса (данные теряются при рестарте)."""

    def __init__(self) -> None:
        self.accounts: dict[UUID, AccountRecord] = {}
        self.users: dict[UUID, UserRecord] = {}
        self.user_profiles: dict[UUID, UserProfileRecord] = {}
        self.organizations: dict[UUID, OrganizationRecord] = {}
        self.organization_profiles: dict[UUID, OrganizationProfileRecord] = {}
        self.memberships: list[MembershipRecord] = []
        self.completions: dict[UUID, ProfileCompletionRecord] = {}
        self._lock = asyncio.Lock()

    # ═══════════════════════════════════════════════════════════════════════
    # Уникальные ограничения
    # ═══════════════════════════════════════════════════════════════════════

    def _check_unique(self, draft: IdentityDraft) -> None:
        """Бросает ConflictError до того, как записана хоть одна строка."""
        user = draft.user
        if draft.account.uuid in self.accounts or user.uuid in self.users:
            raise ConflictError("uuid")
        if any(u.email == user.email for u in self.users.values()):
            raise ConflictError("email")
        if user.phone and any(u.phone == user.phone for u in self.users.values()):
            raise ConflictError("phone")

        codes = {a.code for a in self.accounts.values()}
        codes.update(u.code for u in self.users.values())
        codes.update(o.code for o in self.organizations.values())
        if draft.account.code in codes or user.code in codes:
            raise ConflictError("code")

        org = draft.organization
        if org is not None:
            if org.uuid in self.organizations:
                raise ConflictError("uuid")
            if org.code in codes:
                raise ConflictError("code")
            if any(o.name == org.name for o in self.organizations.values()):
                raise ConflictError("name")

    # ═══════════════════════════════════════════════════════════════════════
    # Запись
    # ═══════════════════════════════════════════════════════════════════════

    async def create_identity(self, draft: IdentityDraft) -> IdentityIds:
        async with self._lock:
            self._check_unique(draft)
            self.accounts[draft.account.uuid] = draft.account
            if draft.organization is not None:
                self.organizations[draft.organization.uuid] = draft.organization
            if draft.organization_profile is not None:
                self.organization_profiles[draft.organization_profile.organization_uuid] = (
                    draft.organization_profile
                )
            self.users[draft.user.uuid] = draft.user
            self.user_profiles[draft.user.uuid] = draft.user_profile
            if draft.membership is not None:
                self.memberships.append(draft.membership)
            self.completions[draft.completion.owner_uuid] = draft.completion

        logger.info(
            "Identity memory store: created account %s (%s) <%s>",
            draft.account.code, draft.account.kind.value, draft.user.email,
        )
        return draft.ids

    async def delete_identity(self, ids: IdentityIds) -> None:
        async with self._lock:
            self.completions.pop(ids.user_uuid, None)
            if ids.organization_uuid is not None:
                self.completions.pop(ids.organization_uuid, None)
                self.memberships = [
                    m for m in self.memberships if m.organization_uuid != ids.organization_uuid
                ]
            self.user_profiles.pop(ids.user_uuid, None)
            self.users.pop(ids.user_uuid, None)
            if ids.organization_uuid is not None:
                self.organization_profiles.pop(ids.organization_uuid, None)
                self.organizations.pop(ids.organization_uuid, None)
            self.accounts.pop(ids.account_uuid, None)
        logger.info("Identity memory store: removed account %s", ids.account_uuid)

    # ═══════════════════════════════════════════════════════════════════════
    # Чтение
    # ═══════════════════════════════════════════════════════════════════════

    async def get_account(self, account_uuid: UUID) -> AccountRecord | None:
        return self.accounts.get(account_uuid)

    async def get_user(self, user_uuid: UUID) -> UserRecord | None:
        return self.users.get(user_uuid)

    async def get_organization(self, org_uuid: UUID) -> OrganizationRecord | None:
        return self.organizations.get(org_uuid)

    async def get_completion(self, owner_uuid: UUID) -> ProfileCompletionRecord | None:
        return self.completions.get(owner_uuid)

    def row_count(self) -> int:
        """Общее число строк во всех таблицах."""
        return (
            len(self.accounts) + len(self.users) + len(self.user_profiles)
            + len(self.organizations) + len(self.organization_profiles)
            + len(self.memberships) + len(self.completions)
        )


def activate_identity_memory_store() -> MemoryIdentityStore:
    """
    Создаёт in-memory Identity Store вместо PostgreSQL.

    Вызывается из onboarding.main → lifespan() при недоступности БД.
    """
    logger.warning(
        "Identity memory store ACTIVATED — all data is in-memory (lost on restart)."
    )
    return MemoryIdentityStore()
