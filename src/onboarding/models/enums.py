"""
onboarding/models/enums.py — Перечисления домена онбординга.

Содержит enum'ы аккаунтов, пользователей и организаций:
    • AccountKind — тип аккаунта (ФЛ или организация)
    • AccountStatus — статус аккаунта и пользователя
    • VerificationStatus — статус верификации организации
    • RoleType — закрытый набор типов ролей Access-Control
    • ProfileField — поля профиля, учитываемые в ProfileCompletion
"""

from enum import Enum


class AccountKind(str, Enum):
    """Тип аккаунта."""
    INDIVIDUAL = "INDIVIDUAL"
    ORGANIZATION = "ORGANIZATION"


class AccountStatus(str, Enum):
    """Статус аккаунта; пользователь зеркалирует статус своего аккаунта."""
    ACTIVE = "ACTIVE"
    PENDING_PAYMENT = "PENDING_PAYMENT"
    INACTIVE = "INACTIVE"


class VerificationStatus(str, Enum):
    """Статус верификации организации."""
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class RoleType(str, Enum):
    """Тип роли в сервисе Access-Control."""
    SUPER_ADMIN = "SuperAdmin"
    SYSTEM_ADMIN = "SystemAdmin"
    COMPLIANCE_ADMIN = "ComplianceAdmin"
    ANALYTICS_ADMIN = "AnalyticsAdmin"
    MODULE_MANAGER = "ModuleManager"
    BUSINESS_SYSTEM_ADMIN = "BusinessSystemAdmin"
    BUSINESS_CONTENT_MANAGER = "BusinessContentManager"
    GENERAL_USER = "GeneralUser"


class ProfileField(str, Enum):
    """Поле профиля, которое может числиться незаполненным."""
    BIO = "BIO"
    NATIONAL_ID = "NATIONAL_ID"
    GENDER = "GENDER"
    DATE_OF_BIRTH = "DATE_OF_BIRTH"
    PROFILE_IMAGE = "PROFILE_IMAGE"
    KRA_PIN = "KRA_PIN"
    REGISTRATION_NO = "REGISTRATION_NO"
    WEBSITE = "WEBSITE"
