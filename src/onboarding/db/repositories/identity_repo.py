"""
onboarding/db/repositories/identity_repo.py — Транзакционный слой Identity Store.

Две операции, на которых держится сага провижининга:
    • ``create_identity`` — атомарная вставка всех строк одного аккаунта
    • ``delete_identity`` — компенсирующее удаление в обратном порядке

Нарушения уникальности переводятся в ``ConflictError(field)`` по имени
ограничения, а не по тексту ошибки БД.
"""

from __future__ import annotations

import logging
from uuid import UUID

import asyncpg

from onboarding.database import get_connection
from onboarding.exceptions import ConflictError
from onboarding.models.identity import (
    AccountRecord,
    IdentityDraft,
    IdentityIds,
    OrganizationRecord,
    ProfileCompletionRecord,
    UserRecord,
)

logger = logging.getLogger(__name__)

# Имя ограничения (001_identity_store.sql) → поле, о котором сообщаем клиенту
_CONFLICT_FIELDS: dict[str, str] = {
    "users_email_key": "email",
    "users_phone_key": "phone",
    "organizations_name_key": "name",
    "accounts_code_key": "code",
    "users_code_key": "code",
    "organizations_code_key": "code",
    "accounts_pkey": "uuid",
    "users_pkey": "uuid",
    "organizations_pkey": "uuid",
    "user_profiles_pkey": "uuid",
    "organization_profiles_pkey": "uuid",
    "organization_members_pkey": "uuid",
    "organizations_account_key": "uuid",
    "profile_completions_user_uuid_key": "uuid",
    "profile_completions_organization_uuid_key": "uuid",
}


def conflict_from_violation(exc: asyncpg.UniqueViolationError) -> ConflictError:
    """Строит ``ConflictError`` по имени нарушенного ограничения."""
    constraint = getattr(exc, "constraint_name", None) or ""
    field = _CONFLICT_FIELDS.get(constraint)
    if field is None:
        logger.warning("Unmapped unique constraint violated: %r", constraint)
        field = "uuid"
    return ConflictError(field)


class PostgresIdentityStore:
    """Identity Store поверх пула asyncpg (``onboarding.database``)."""

    async def create_identity(self, draft: IdentityDraft) -> IdentityIds:
        """Вставляет все строки черновика в одной транзакции."""
        try:
            async with get_connection() as conn:
                async with conn.transaction():
                    await self._insert_rows(conn, draft)
        except asyncpg.UniqueViolationError as exc:
            raise conflict_from_violation(exc) from exc
        logger.info(
            "Identity committed: account=%s user=%s org=%s",
            draft.account.uuid, draft.user.uuid,
            draft.organization.uuid if draft.organization else None,
        )
        return draft.ids

    async def _insert_rows(self, conn: asyncpg.Connection, draft: IdentityDraft) -> None:
        acc = draft.account
        await conn.execute(
            """
            INSERT INTO accounts (uuid, code, kind, display_name, status)
            VALUES ($1, $2, $3, $4, $5)
            """,
            acc.uuid, acc.code, acc.kind.value, acc.display_name, acc.status.value,
        )

        if draft.organization is not None:
            org = draft.organization
            await conn.execute(
                """
                INSERT INTO organizations (uuid, code, name, account_uuid, verification_status)
                VALUES ($1, $2, $3, $4, $5)
                """,
                org.uuid, org.code, org.name, org.account_uuid, org.verification_status.value,
            )
            if draft.organization_profile is not None:
                op = draft.organization_profile
                await conn.execute(
                    """
                    INSERT INTO organization_profiles
                        (organization_uuid, official_email, official_phone, physical_address, type_slug)
                    VALUES ($1, $2, $3, $4, $5)
                    """,
                    op.organization_uuid, op.official_email, op.official_phone,
                    op.physical_address, op.type_slug,
                )

        user = draft.user
        await conn.execute(
            """
            INSERT INTO users
                (uuid, code, email, phone, first_name, last_name, role_name, account_uuid, status)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
            """,
            user.uuid, user.code, user.email, user.phone, user.first_name,
            user.last_name, user.role_name, user.account_uuid, user.status.value,
        )
        await conn.execute(
            "INSERT INTO user_profiles (user_uuid, bio) VALUES ($1, $2)",
            draft.user_profile.user_uuid, draft.user_profile.bio,
        )

        if draft.membership is not None:
            m = draft.membership
            await conn.execute(
                """
                INSERT INTO organization_members (organization_uuid, user_uuid, role_name)
                VALUES ($1, $2, $3)
                """,
                m.organization_uuid, m.user_uuid, m.role_name,
            )

        c = draft.completion
        await conn.execute(
            """
            INSERT INTO profile_completions
                (user_uuid, organization_uuid, percentage, missing_fields, is_complete)
            VALUES ($1, $2, $3, $4, $5)
            """,
            c.user_uuid, c.organization_uuid, c.percentage,
            [f.value for f in c.missing_fields], c.is_complete,
        )

    async def delete_identity(self, ids: IdentityIds) -> None:
        """
        Удаляет строки провижининга в строго обратном порядке зависимостей:
        ProfileCompletion → членство → UserProfile → User →
        OrganizationProfile → Organization → Account.

        Ошибки не глушатся: решение о «сироте» принимает оркестратор.
        """
        async with get_connection() as conn:
            async with conn.transaction():
                await conn.execute(
                    "DELETE FROM profile_completions WHERE user_uuid = $1 OR organization_uuid = $2",
                    ids.user_uuid, ids.organization_uuid,
                )
                if ids.organization_uuid is not None:
                    await conn.execute(
                        "DELETE FROM organization_members WHERE organization_uuid = $1",
                        ids.organization_uuid,
                    )
                await conn.execute("DELETE FROM user_profiles WHERE user_uuid = $1", ids.user_uuid)
                await conn.execute("DELETE FROM users WHERE uuid = $1", ids.user_uuid)
                if ids.organization_uuid is not None:
                    await conn.execute(
                        "DELETE FROM organization_profiles WHERE organization_uuid = $1",
                        ids.organization_uuid,
                    )
                    await conn.execute(
                        "DELETE FROM organizations WHERE uuid = $1", ids.organization_uuid
                    )
                await conn.execute("DELETE FROM accounts WHERE uuid = $1", ids.account_uuid)
        logger.info("Identity rows removed: account=%s user=%s", ids.account_uuid, ids.user_uuid)

    # ── Чтение (только для внутреннего API) ───────────────────────────────

    async def get_account(self, account_uuid: UUID) -> AccountRecord | None:
        async with get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM accounts WHERE uuid = $1", account_uuid)
            return AccountRecord(**dict(row)) if row else None

    async def get_user(self, user_uuid: UUID) -> UserRecord | None:
        async with get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM users WHERE uuid = $1", user_uuid)
            return UserRecord(**dict(row)) if row else None

    async def get_organization(self, org_uuid: UUID) -> OrganizationRecord | None:
        async with get_connection() as conn:
            row = await conn.fetchrow("SELECT * FROM organizations WHERE uuid = $1", org_uuid)
            return OrganizationRecord(**dict(row)) if row else None

    async def get_completion(self, owner_uuid: UUID) -> ProfileCompletionRecord | None:
        async with get_connection() as conn:
            row = await conn.fetchrow(
                """
                SELECT user_uuid, organization_uuid, percentage, missing_fields, is_complete
                FROM profile_completions
                WHERE user_uuid = $1 OR organization_uuid = $1
                """,
                owner_uuid,
            )
            return ProfileCompletionRecord(**dict(row)) if row else None
