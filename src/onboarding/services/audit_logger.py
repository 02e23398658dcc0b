"""
onboarding/services/audit_logger.py — Аудит-лог онбординга.

Действия домена:
    • account.provisioned — аккаунт создан и активирован
    • account.pending_payment — премиум-аккаунт ждёт оплаты

Пишет в таблицу ``audit_log`` Identity Store; при недоступности БД —
в in-memory буфер. Каждая запись дублируется в NATS
(``onboarding.audit.<action>``).
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from onboarding.events import NatsEventPublisher

logger = logging.getLogger(__name__)


class OnboardingAuditAction(str, Enum):
    """Типы аудируемых действий онбординга."""

    ACCOUNT_PROVISIONED = "account.provisioned"
    ACCOUNT_PENDING_PAYMENT = "account.pending_payment"


class OnboardingAuditLogger:
    """
    Аудит-логгер сервиса онбординга.

    Поддерживает:
    - PostgreSQL (audit_log)
    - In-memory буфер (fallback)
    - NATS-публикацию аудит-событий
    """

    def __init__(
        self,
        publisher: NatsEventPublisher | None = None,
        use_database: bool = True,
        max_buffer_size: int = 10000,
    ) -> None:
        self._publisher = publisher
        self._use_database = use_database
        self._buffer: list[dict[str, Any]] = []
        self._max_buffer = max_buffer_size

    async def log(
        self,
        action: OnboardingAuditAction | str,
        entity_type: str,
        entity_id: str,
        user_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Записать аудит-событие."""
        action_str = action.value if isinstance(action, OnboardingAuditAction) else action
        record = {
            "action": action_str,
            "entity_type": entity_type,
            "entity_id": entity_id,
            "user_id": user_id,
            "details": details or {},
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        if not self._use_database:
            self._write_to_buffer(record)
        else:
            try:
                await self._write_to_db(record)
            except Exception as e:
                logger.warning("Audit DB write failed, buffering: %s", e)
                self._write_to_buffer(record)

        if self._publisher is not None:
            await self._publisher.publish(f"onboarding.audit.{action_str}", record)

    async def _write_to_db(self, record: dict[str, Any]) -> None:
        """Записать в PostgreSQL (Identity Store)."""
        from onboarding.database import get_pool

        pool = await get_pool()
        async with pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO audit_log (action, entity_type, entity_id, user_id, details)
                VALUES ($1, $2, $3, $4, $5::jsonb)
                """,
                record["action"],
                record["entity_type"],
                record["entity_id"],
                record["user_id"],
                json.dumps(record["details"], default=str),
            )

    def _write_to_buffer(self, record: dict[str, Any]) -> None:
        """Fallback в in-memory буфер."""
        if len(self._buffer) >= self._max_buffer:
            self._buffer.pop(0)
        self._buffer.append(record)

    async def flush_buffer(self) -> int:
        """Попытаться записать буферизованные события в БД."""
        if not self._buffer or not self._use_database:
            return 0
        flushed = 0
        remaining: list[dict[str, Any]] = []
        for record in self._buffer:
            try:
                await self._write_to_db(record)
                flushed += 1
            except Exception:
                remaining.append(record)
        self._buffer = remaining
        if flushed:
            logger.info("Flushed %d audit records from buffer", flushed)
        return flushed

    @property
    def buffer_size(self) -> int:
        return len(self._buffer)
