"""
onboarding/api/errors.py — Перевод ошибок онбординга в HTTP-ответы.

Единственное место, где ``ErrorKind`` сопоставляется со статус-кодом.
Тело ответа одинаково для всех ошибок::

    {"error": {"code": ..., "message": ..., "details": {...}, "timestamp": ...}}
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi.responses import JSONResponse

from onboarding.exceptions import ErrorKind, OnboardingError
from onboarding.models.provisioning import ProvisioningFailure

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.CONFLICT: 409,
    ErrorKind.VALIDATION: 422,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.REFERENCE_NOT_FOUND: 422,
    ErrorKind.DEPENDENCY_UNAVAILABLE: 503,
    ErrorKind.INTERNAL: 500,
}


def error_response(
    kind: ErrorKind,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=STATUS_BY_KIND[kind],
        content={
            "error": {
                "code": kind.value,
                "message": message,
                "details": details or {},
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        },
    )


def failure_response(failure: ProvisioningFailure) -> JSONResponse:
    """``ProvisioningFailure`` из результата саги → JSONResponse."""
    return error_response(failure.kind, failure.message, failure.details)


async def onboarding_error_handler(request, exc: OnboardingError) -> JSONResponse:
    """Глобальный обработчик ``OnboardingError`` (регистрируется в main)."""
    return error_response(exc.kind, exc.message, exc.details)
