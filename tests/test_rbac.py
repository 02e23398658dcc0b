import pytest

from onboarding.models import AccountKind, RoleType
from onboarding.services import rbac


def test_catalogue_covers_every_role_and_kind():
    assert set(rbac.ROLE_LABELS) == set(RoleType)
    assert set(rbac.DEFAULT_ROLES) == set(AccountKind)


def test_default_roles():
    assert rbac.default_role_for(AccountKind.INDIVIDUAL) is RoleType.GENERAL_USER
    assert rbac.default_role_for(AccountKind.ORGANIZATION) is RoleType.BUSINESS_SYSTEM_ADMIN


def test_role_labels_are_denormalized_names():
    assert rbac.role_label(RoleType.GENERAL_USER) == "General User"
    assert rbac.role_label(RoleType.BUSINESS_SYSTEM_ADMIN) == "Business System Admin"


def test_missing_label_fails_the_check(monkeypatch):
    labels = dict(rbac.ROLE_LABELS)
    labels.pop(RoleType.MODULE_MANAGER)
    monkeypatch.setattr(rbac, "ROLE_LABELS", labels)

    with pytest.raises(RuntimeError, match="ModuleManager"):
        rbac._assert_exhaustive()
