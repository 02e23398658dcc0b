"""
═══════════════════════════════════════════════════════════════════════════════
Onboarding — Главная точка входа микросервиса (Application Entry Point)
═══════════════════════════════════════════════════════════════════════════════

Фабрика приложения (Application Factory Pattern) для сервиса онбординга.
Все долгоживущие зависимости (пул БД, NATS, RPC-клиенты, оркестратор)
создаются в ``lifespan`` и кладутся в ``app.state``.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import APIRouter, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from onboarding import __version__
from onboarding.adapters.access_control import AccessControlClient
from onboarding.adapters.billing import BillingClient
from onboarding.api.errors import error_response, onboarding_error_handler
from onboarding.config import get_settings
from onboarding.database import apply_migrations, close_pool, get_pool
from onboarding.events import NatsEventPublisher
from onboarding.exceptions import ErrorKind, OnboardingError
from onboarding.services.audit_logger import OnboardingAuditLogger
from onboarding.services.notifications import ProvisioningNotifier
from onboarding.services.provisioning import ProvisioningOrchestrator

# ── API роутеры ──────────────────────────────────────────────────────────
from onboarding.api.health import router as health_router
from onboarding.api.internal import router as internal_router
from onboarding.api.provisioning import router as provisioning_router

# ═══════════════════════════════════════════════════════════════════════════════
# Настройка логирования
# ═══════════════════════════════════════════════════════════════════════════════
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Lifespan — управление жизненным циклом
# ═══════════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan сервиса онбординга.

    Startup:
        1. Пул соединений к Identity Store и миграции.
        2. При недоступности БД — graceful degradation (memory store).
        3. NATS publisher, аудит-логгер, RPC-клиенты, оркестратор.

    Shutdown:
        1. Дожидаемся фоновых уведомлений, сбрасываем аудит-буфер.
        2. Закрываем RPC-клиенты, NATS и пул БД.
    """
    settings = get_settings()
    logger.info(f"Onboarding service v{__version__} starting...")
    logger.info(f"   Log level: {settings.log_level}")

    pool = None
    try:
        pool = await get_pool()
        logger.info("Identity Store pool initialized")
    except Exception as e:
        logger.warning(f"Identity Store not available — activating memory store: {e}")

    if pool is not None:
        try:
            await apply_migrations(pool)
        except Exception as e:
            logger.warning(f"Identity Store migration apply failed (non-fatal): {e}")
        from onboarding.db.repositories.identity_repo import PostgresIdentityStore
        store = PostgresIdentityStore()
    else:
        from onboarding.memory_store import activate_identity_memory_store
        store = activate_identity_memory_store()

    publisher = NatsEventPublisher(settings.nats_url)
    await publisher.connect()

    audit = OnboardingAuditLogger(publisher=publisher, use_database=pool is not None)
    access_control = AccessControlClient.from_settings(settings)
    billing = BillingClient.from_settings(settings)

    app.state.store = store
    app.state.audit = audit
    app.state.orchestrator = ProvisioningOrchestrator(
        store,
        access_control,
        billing,
        ProvisioningNotifier(publisher, audit),
        rpc_timeout=settings.rpc_timeout_seconds,
        default_plan_slug=settings.default_plan_slug,
        currency=settings.subscription_currency,
    )

    yield

    # Shutdown: уведомления → аудит → клиенты → NATS → DB
    await app.state.orchestrator.drain_notifications()
    await audit.flush_buffer()
    await access_control.aclose()
    await billing.aclose()
    await publisher.disconnect()
    try:
        await close_pool()
    except Exception as e:
        logger.warning(f"Identity Store pool close failed: {e}")
    logger.info("Onboarding service stopped")


# ═══════════════════════════════════════════════════════════════════════════════
# Фабрика приложения
# ═══════════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """Создаёт и конфигурирует FastAPI-приложение онбординга."""
    settings = get_settings()

    _is_production = settings.app_env == "production"

    app = FastAPI(
        redirect_slashes=False,
        title="Onboarding Service",
        description=(
            "Account provisioning for individuals and organizations: "
            "Identity Store records, default role assignment and "
            "subscription activation."
        ),
        version=__version__,
        lifespan=lifespan,
        docs_url=None if _is_production else "/docs",
        redoc_url=None if _is_production else "/redoc",
        openapi_url=None if _is_production else "/api/v1/openapi.json",
    )

    # ── CORS middleware ──────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
    )

    # ── Подключение API-роутеров ─────────────────────────────────────────
    v1_router = APIRouter(prefix="/api/v1")
    v1_router.include_router(provisioning_router)
    v1_router.include_router(internal_router)
    v1_router.include_router(health_router)
    app.include_router(v1_router)

    # ── Обработчики ошибок ───────────────────────────────────────────────
    app.add_exception_handler(OnboardingError, onboarding_error_handler)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Ошибки схемы запроса — в том же формате, что и доменные."""
        errors = exc.errors()
        field = None
        if errors and errors[0].get("loc"):
            field = str(errors[0]["loc"][-1])
        return error_response(
            ErrorKind.VALIDATION,
            "Request validation failed",
            {"field": field, "errors": [e.get("msg") for e in errors]},
        )

    # ── Корневой эндпоинт ────────────────────────────────────────────────
    @app.get("/")
    async def root():
        return {
            "name": "Onboarding Service",
            "version": __version__,
            "docs": "/docs",
            "api": {
                "v1": {
                    "health": "/api/v1/health",
                    "signup_individual": "/api/v1/signup/individual",
                    "signup_organization": "/api/v1/signup/organization",
                },
            },
        }

    return app


# ═══════════════════════════════════════════════════════════════════════════════
# Module-level singleton
# ═══════════════════════════════════════════════════════════════════════════════
app = create_app()


def main() -> None:
    """Запускает сервис онбординга через Uvicorn."""
    settings = get_settings()
    logger.info(f"Starting Onboarding server on {settings.api_host}:{settings.api_port}")
    uvicorn.run(
        "onboarding.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
