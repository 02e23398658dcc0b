"""
onboarding/adapters/rpc.py — Базовый JSON-over-HTTP RPC-клиент.

Общая часть клиентов Access-Control и Billing. Вызов «всё или ничего»:
фиксированный таймаут, без повторов. Сбои транспорта сводятся к двум
различимым видам, чтобы оркестратор не разбирал детали httpx:

    • таймаут / сеть / 5xx / битый JSON → DependencyUnavailableError
    • 404                               → ReferenceNotFoundError
    • прочие 4xx                        → RemoteCallError
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from onboarding.exceptions import (
    DependencyUnavailableError,
    ReferenceNotFoundError,
    RemoteCallError,
)

logger = logging.getLogger(__name__)


class RpcClient:
    """Долгоживущий клиент: создаётся один раз при старте процесса."""

    service_name = "rpc"

    def __init__(
        self,
        base_url: str,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _call(
        self,
        path: str,
        payload: dict[str, Any],
        reference: str | None = None,
    ) -> dict[str, Any]:
        """POST ``payload`` на ``path`` и вернуть тело ответа."""
        try:
            response = await self._client.post(path, json=payload)
        except httpx.TimeoutException as exc:
            logger.warning("%s RPC %s timed out", self.service_name, path)
            raise DependencyUnavailableError(self.service_name, "timeout") from exc
        except httpx.HTTPError as exc:
            logger.warning("%s RPC %s failed: %s", self.service_name, path, exc)
            raise DependencyUnavailableError(self.service_name, type(exc).__name__) from exc

        if response.status_code == 404:
            raise ReferenceNotFoundError(self.service_name, reference or path)
        if response.status_code >= 500:
            logger.warning(
                "%s RPC %s returned HTTP %s", self.service_name, path, response.status_code
            )
            raise DependencyUnavailableError(
                self.service_name, f"HTTP {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise DependencyUnavailableError(self.service_name, "malformed response") from exc
        if not isinstance(body, dict):
            raise DependencyUnavailableError(self.service_name, "malformed response")

        if response.status_code >= 400:
            raise RemoteCallError(
                self.service_name, body.get("message") or f"HTTP {response.status_code}"
            )
        return body
