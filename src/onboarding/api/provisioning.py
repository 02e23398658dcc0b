"""
onboarding/api/provisioning.py — Эндпоинты провижининга аккаунтов.

POST /api/v1/signup/individual    — ФЛ-аккаунт
POST /api/v1/signup/organization  — организация с администратором

Вызываются auth-сервисом после подтверждения email. Успех — 201 с
провижиненной идентичностью; ошибка — статус по ``ErrorKind``.
"""

from fastapi import APIRouter, Depends, status

from onboarding.api.errors import failure_response
from onboarding.dependencies import get_orchestrator
from onboarding.models.provisioning import ProvisionedIdentity, ProvisioningResult
from onboarding.models.signup import IndividualSignup, OrganizationSignup
from onboarding.services.provisioning import ProvisioningOrchestrator

router = APIRouter(prefix="/signup", tags=["provisioning"])


def _respond(result: ProvisioningResult):
    if not result.ok:
        return failure_response(result.error)
    return result.identity


@router.post(
    "/individual",
    response_model=ProvisionedIdentity,
    status_code=status.HTTP_201_CREATED,
    summary="Провижининг ФЛ-аккаунта",
)
async def signup_individual(
    body: IndividualSignup,
    orchestrator: ProvisioningOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.provision_individual(body)
    return _respond(result)


@router.post(
    "/organization",
    response_model=ProvisionedIdentity,
    status_code=status.HTTP_201_CREATED,
    summary="Провижининг организации и её администратора",
)
async def signup_organization(
    body: OrganizationSignup,
    orchestrator: ProvisioningOrchestrator = Depends(get_orchestrator),
):
    """Организация, её профиль, администратор и членство — одной сагой."""
    result = await orchestrator.provision_organization(body)
    return _respond(result)
