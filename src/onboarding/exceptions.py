"""
═══════════════════════════════════════════════════════════════════════════════
Onboarding — Иерархия доменных ошибок (Custom Exception Hierarchy)
═══════════════════════════════════════════════════════════════════════════════

Базовый класс ``OnboardingError``. Каждое исключение несёт строковый код
(значение ``ErrorKind``); маппинг кодов на HTTP-статусы выполняется
в одном месте — ``onboarding.api.errors``.

Таксономия провижининга:
    • DependencyUnavailableError / ReferenceNotFoundError — PRECHECK
    • ConflictError(field)                               — LOCAL_COMMIT
    • ExternalActivationError                            — EXTERNAL_ACTIVATION
    • RemoteCallError                                    — отказ RPC-вызова
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Закрытый набор видов ошибок, видимых вызывающей стороне."""
    NOT_FOUND = "ONBOARDING_NOT_FOUND"
    CONFLICT = "ONBOARDING_CONFLICT"
    VALIDATION = "ONBOARDING_VALIDATION_ERROR"
    DEPENDENCY_UNAVAILABLE = "ONBOARDING_DEPENDENCY_UNAVAILABLE"
    REFERENCE_NOT_FOUND = "ONBOARDING_REFERENCE_NOT_FOUND"
    INTERNAL = "ONBOARDING_INTERNAL_ERROR"


class OnboardingError(Exception):
    """
    Базовое исключение для всех доменных ошибок онбординга.

    Атрибуты
    ────────
        message (str):  Описание ошибки. Передаётся клиенту в JSON.
        code (str):     Строковый код (значение ``ErrorKind``).
        details (dict): Дополнительные данные (field, service и т.д.).
    """

    def __init__(
        self,
        message: str,
        code: str = ErrorKind.INTERNAL.value,
        details: dict | None = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)

    @property
    def kind(self) -> ErrorKind:
        return ErrorKind(self.code)


class NotFoundError(OnboardingError):
    """Сущность не найдена: 404 Not Found."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            message=f"{entity} not found: {entity_id}",
            code=ErrorKind.NOT_FOUND.value,
            details={"entity": entity, "id": entity_id},
        )


class ConflictError(OnboardingError):
    """Нарушение уникальности в Identity Store: 409 Conflict."""

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(
            message or f"An identity with this {field} already exists",
            code=ErrorKind.CONFLICT.value,
            details={"field": field},
        )


class DependencyUnavailableError(OnboardingError):
    """Внешний сервис недоступен (таймаут, транспорт, 5xx)."""

    def __init__(self, service: str, reason: str = "unavailable"):
        self.service = service
        super().__init__(
            f"{service} service unavailable: {reason}",
            code=ErrorKind.DEPENDENCY_UNAVAILABLE.value,
            details={"service": service},
        )


class ReferenceNotFoundError(OnboardingError):
    """Внешний сервис не знает запрошенную роль или план."""

    def __init__(self, service: str, reference: str):
        self.service = service
        self.reference = reference
        super().__init__(
            f"{service} reference not found: {reference}",
            code=ErrorKind.REFERENCE_NOT_FOUND.value,
            details={"service": service, "reference": reference},
        )


class RemoteCallError(OnboardingError):
    """Внешний сервис ответил ``success: false`` на изменяющий вызов."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(
            f"{service} call failed: {message}",
            details={"service": service},
        )


class InternalError(OnboardingError):
    """Непредвиденный сбой (например, ошибка записи в Identity Store): 500."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message, code=ErrorKind.INTERNAL.value, details=details)


class ExternalActivationError(OnboardingError):
    """
    Сбой на шаге EXTERNAL_ACTIVATION (роль или подписка).

    Клиент получает общую внутреннюю ошибку: точная удалённая причина
    не помогает ему исправить запрос — нужна повторная подача целиком.
    """

    def __init__(self, step: str):
        self.step = step
        super().__init__(
            "Onboarding failed during external provisioning",
            code=ErrorKind.INTERNAL.value,
        )


__all__ = [
    "ErrorKind",
    "OnboardingError",
    "NotFoundError",
    "ConflictError",
    "DependencyUnavailableError",
    "ReferenceNotFoundError",
    "RemoteCallError",
    "InternalError",
    "ExternalActivationError",
]
