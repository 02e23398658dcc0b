"""
onboarding/services/rbac.py — Каталог ролей провижининга.

Роль выбирается по закрытому ``RoleType``, а не по строке. Таблицы
ниже проверяются на полноту при импорте модуля: новый ``RoleType``
без метки или новый ``AccountKind`` без роли по умолчанию не пройдёт
загрузку.
"""

from __future__ import annotations

from onboarding.models.enums import AccountKind, RoleType

# ═══════════════════════════════════════════════════════════════════════════════
# Метки ролей и роли по умолчанию
# ═══════════════════════════════════════════════════════════════════════════════

ROLE_LABELS: dict[RoleType, str] = {
    RoleType.SUPER_ADMIN: "Super Admin",
    RoleType.SYSTEM_ADMIN: "System Admin",
    RoleType.COMPLIANCE_ADMIN: "Compliance Admin",
    RoleType.ANALYTICS_ADMIN: "Analytics Admin",
    RoleType.MODULE_MANAGER: "Module Manager",
    RoleType.BUSINESS_SYSTEM_ADMIN: "Business System Admin",
    RoleType.BUSINESS_CONTENT_MANAGER: "Business Content Manager",
    RoleType.GENERAL_USER: "General User",
}

# Роль, которую получает пользователь при провижининге аккаунта
DEFAULT_ROLES: dict[AccountKind, RoleType] = {
    AccountKind.INDIVIDUAL: RoleType.GENERAL_USER,
    AccountKind.ORGANIZATION: RoleType.BUSINESS_SYSTEM_ADMIN,
}


def _assert_exhaustive() -> None:
    for table_name, table, domain in (
        ("ROLE_LABELS", ROLE_LABELS, RoleType),
        ("DEFAULT_ROLES", DEFAULT_ROLES, AccountKind),
    ):
        missing = set(domain) - set(table)
        if missing:
            raise RuntimeError(f"{table_name} is missing entries for {sorted(m.value for m in missing)}")


_assert_exhaustive()


def default_role_for(kind: AccountKind) -> RoleType:
    return DEFAULT_ROLES[kind]


def role_label(role: RoleType) -> str:
    """Денормализованная метка роли для ``users.role_name``."""
    return ROLE_LABELS[role]
