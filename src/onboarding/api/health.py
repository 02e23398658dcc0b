"""
onboarding/api/health.py — Health check эндпоинт сервиса онбординга.

GET /api/v1/health — проверяет Identity Store (PostgreSQL или memory).
"""

from fastapi import APIRouter, Request

from onboarding.database import check_connection
from onboarding.memory_store import MemoryIdentityStore

router = APIRouter(tags=["health"])


@router.get("/health", summary="Health check сервиса онбординга")
async def health(request: Request):
    """В режиме memory store сервис работает, но считается деградировавшим."""
    store = getattr(request.app.state, "store", None)
    if isinstance(store, MemoryIdentityStore):
        database = "memory"
        db_ok = False
    else:
        db_ok = await check_connection()
        database = "connected" if db_ok else "disconnected"
    return {
        "status": "healthy" if db_ok else "degraded",
        "database": database,
        "service": "onboarding",
    }
