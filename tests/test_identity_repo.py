from contextlib import asynccontextmanager

import asyncpg
import pytest

from conftest import individual_signup, organization_signup
from onboarding.db.repositories import identity_repo
from onboarding.db.repositories.identity_repo import PostgresIdentityStore, conflict_from_violation
from onboarding.exceptions import ConflictError
from onboarding.models import AccountStatus
from onboarding.services.provisioning import build_individual_draft, build_organization_draft


class FakeTransaction:
    def __init__(self, conn):
        self.conn = conn

    async def __aenter__(self):
        self.conn.events.append("BEGIN")
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.conn.events.append("ROLLBACK" if exc_type else "COMMIT")
        return False


class FakeConnection:
    def __init__(self, fail_on: str | None = None, error: Exception | None = None):
        self.events: list[str] = []
        self.fail_on = fail_on
        self.error = error

    def transaction(self):
        return FakeTransaction(self)

    async def execute(self, sql, *args):
        statement = " ".join(sql.split())
        self.events.append(statement)
        if self.fail_on and statement.startswith(self.fail_on):
            raise self.error
        return "OK"


@pytest.fixture
def conn(monkeypatch):
    connection = FakeConnection()

    @asynccontextmanager
    async def fake_get_connection():
        yield connection

    monkeypatch.setattr(identity_repo, "get_connection", fake_get_connection)
    return connection


def _tables(events, verb):
    prefix = {"INSERT": "INSERT INTO ", "DELETE": "DELETE FROM "}[verb]
    return [e[len(prefix):].split()[0] for e in events if e.startswith(prefix)]


def _violation(constraint):
    exc = asyncpg.UniqueViolationError("duplicate key value violates unique constraint")
    exc.constraint_name = constraint
    return exc


async def test_create_organization_inserts_in_dependency_order(conn):
    draft = build_organization_draft(organization_signup(), AccountStatus.ACTIVE, "Business System Admin")

    ids = await PostgresIdentityStore().create_identity(draft)

    assert ids == draft.ids
    assert conn.events[0] == "BEGIN"
    assert conn.events[-1] == "COMMIT"
    assert _tables(conn.events, "INSERT") == [
        "accounts",
        "organizations",
        "organization_profiles",
        "users",
        "user_profiles",
        "organization_members",
        "profile_completions",
    ]


async def test_delete_organization_removes_in_reverse_order(conn):
    draft = build_organization_draft(organization_signup(), AccountStatus.ACTIVE, "Business System Admin")

    await PostgresIdentityStore().delete_identity(draft.ids)

    assert _tables(conn.events, "DELETE") == [
        "profile_completions",
        "organization_members",
        "user_profiles",
        "users",
        "organization_profiles",
        "organizations",
        "accounts",
    ]


async def test_delete_individual_skips_organization_tables(conn):
    draft = build_individual_draft(individual_signup(), AccountStatus.ACTIVE, "General User")

    await PostgresIdentityStore().delete_identity(draft.ids)

    assert _tables(conn.events, "DELETE") == [
        "profile_completions", "user_profiles", "users", "accounts",
    ]


async def test_unique_violation_becomes_conflict(conn):
    conn.fail_on = "INSERT INTO users"
    conn.error = _violation("users_email_key")
    draft = build_individual_draft(individual_signup(), AccountStatus.ACTIVE, "General User")

    with pytest.raises(ConflictError) as info:
        await PostgresIdentityStore().create_identity(draft)

    assert info.value.field == "email"
    assert conn.events[-1] == "ROLLBACK"


async def test_delete_errors_propagate(conn):
    conn.fail_on = "DELETE FROM users"
    conn.error = ConnectionResetError("connection lost")
    draft = build_individual_draft(individual_signup(), AccountStatus.ACTIVE, "General User")

    with pytest.raises(ConnectionResetError):
        await PostgresIdentityStore().delete_identity(draft.ids)


@pytest.mark.parametrize("constraint, field", [
    ("users_phone_key", "phone"),
    ("organizations_name_key", "name"),
    ("accounts_code_key", "code"),
    ("users_pkey", "uuid"),
    ("something_unexpected", "uuid"),
])
def test_conflict_field_by_constraint(constraint, field):
    assert conflict_from_violation(_violation(constraint)).field == field
