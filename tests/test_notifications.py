import pytest

from conftest import make_identity
from onboarding.models import AccountKind
from onboarding.services.audit_logger import OnboardingAuditAction, OnboardingAuditLogger
from onboarding.services.notifications import ProvisioningNotifier


class FakePublisher:
    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    async def publish(self, subject, data):
        self.events.append((subject, data))


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def audit(publisher):
    return OnboardingAuditLogger(publisher=publisher, use_database=False)


async def test_individual_events(publisher, audit):
    identity = make_identity()

    await ProvisioningNotifier(publisher, audit).identity_provisioned(identity)

    subjects = [s for s, _ in publisher.events]
    assert subjects == [
        "identity.provisioned",
        "user.onboarded",
        "onboarding.audit.account.provisioned",
    ]
    provisioned = publisher.events[0][1]
    assert provisioned == {
        "uuid": str(identity.user.uuid),
        "accountUuid": str(identity.account.uuid),
        "email": "jane@example.com",
        "role": "GeneralUser",
    }
    welcome = publisher.events[1][1]
    assert welcome["accountId"] == identity.account.code
    assert welcome["plan"] == "free-forever"
    assert audit.buffer_size == 1


async def test_organization_welcome_carries_org_email(publisher, audit):
    identity = make_identity(AccountKind.ORGANIZATION)

    await ProvisioningNotifier(publisher, audit).identity_provisioned(
        identity, org_email="info@acme.co.ke"
    )

    subject, payload = publisher.events[1]
    assert subject == "organization.onboarded"
    assert payload["name"] == "Acme Housing Ltd"
    assert payload["adminEmail"] == "admin@acme.co.ke"
    assert payload["orgEmail"] == "info@acme.co.ke"


async def test_premium_account_is_audited_as_pending_payment(publisher, audit):
    await ProvisioningNotifier(publisher, audit).identity_provisioned(make_identity(premium=True))
    assert publisher.events[-1][0] == "onboarding.audit.account.pending_payment"


class TestAuditLogger:
    async def test_database_failure_falls_back_to_buffer(self, publisher, monkeypatch):
        audit = OnboardingAuditLogger(publisher=publisher, use_database=True)

        async def _fail(record):
            raise ConnectionRefusedError("db down")

        monkeypatch.setattr(audit, "_write_to_db", _fail)
        await audit.log(OnboardingAuditAction.ACCOUNT_PROVISIONED, "account", "a-1")

        assert audit.buffer_size == 1
        assert publisher.events[0][0] == "onboarding.audit.account.provisioned"

    async def test_flush_writes_buffered_records(self, monkeypatch):
        audit = OnboardingAuditLogger(use_database=True)
        written = []

        async def _fail(record):
            raise ConnectionRefusedError("db down")

        async def _write(record):
            written.append(record)

        monkeypatch.setattr(audit, "_write_to_db", _fail)
        await audit.log("account.provisioned", "account", "a-1")
        await audit.log("account.provisioned", "account", "a-2")

        monkeypatch.setattr(audit, "_write_to_db", _write)
        assert await audit.flush_buffer() == 2
        assert audit.buffer_size == 0
        assert [r["entity_id"] for r in written] == ["a-1", "a-2"]

    async def test_buffer_is_bounded(self):
        audit = OnboardingAuditLogger(use_database=False, max_buffer_size=2)
        for i in range(3):
            await audit.log("account.provisioned", "account", f"a-{i}")
        assert audit.buffer_size == 2
        assert await audit.flush_buffer() == 0
