"""
onboarding/api/internal.py — Внутренние эндпоинты для inter-service communication.

Чтение провижиненных записей Identity Store (auth-сервис, поддержка).
"""

from uuid import UUID

from fastapi import APIRouter, Depends

from onboarding.dependencies import get_store
from onboarding.exceptions import NotFoundError
from onboarding.models.identity import (
    AccountRecord,
    OrganizationRecord,
    ProfileCompletionRecord,
    UserRecord,
)

router = APIRouter(prefix="/internal", tags=["internal"])


@router.get(
    "/accounts/{account_id}",
    response_model=AccountRecord,
    summary="[Internal] Получить аккаунт по UUID",
)
async def get_account(account_id: UUID, store=Depends(get_store)):
    account = await store.get_account(account_id)
    if account is None:
        raise NotFoundError("Account", str(account_id))
    return account


@router.get(
    "/users/{user_id}",
    response_model=UserRecord,
    summary="[Internal] Получить пользователя по UUID",
)
async def get_user(user_id: UUID, store=Depends(get_store)):
    user = await store.get_user(user_id)
    if user is None:
        raise NotFoundError("User", str(user_id))
    return user


@router.get(
    "/orgs/{org_id}",
    response_model=OrganizationRecord,
    summary="[Internal] Получить организацию по UUID",
)
async def get_org(org_id: UUID, store=Depends(get_store)):
    org = await store.get_organization(org_id)
    if org is None:
        raise NotFoundError("Organization", str(org_id))
    return org


@router.get(
    "/completions/{owner_id}",
    response_model=ProfileCompletionRecord,
    summary="[Internal] Заполненность профиля пользователя или организации",
)
async def get_completion(owner_id: UUID, store=Depends(get_store)):
    """Владелец — пользователь (ФЛ) или организация."""
    completion = await store.get_completion(owner_id)
    if completion is None:
        raise NotFoundError("ProfileCompletion", str(owner_id))
    return completion
