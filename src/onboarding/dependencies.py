"""
═══════════════════════════════════════════════════════════════════════════════
Onboarding — Зависимости FastAPI (Dependency Injection)
═══════════════════════════════════════════════════════════════════════════════

Оркестратор и Identity Store создаются один раз в ``lifespan`` и
лежат в ``app.state``; роутеры получают их через ``Depends``.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from onboarding.services.provisioning import ProvisioningOrchestrator


def get_orchestrator(request: Request) -> ProvisioningOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Provisioning orchestrator is not initialized",
        )
    return orchestrator


def get_store(request: Request):
    """Identity Store процесса (PostgreSQL или memory fallback)."""
    store = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Identity Store is not initialized",
        )
    return store
