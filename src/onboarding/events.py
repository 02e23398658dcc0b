"""
onboarding/events.py — NATS Event Publisher.

Публикует события онбординга в NATS (core publish, без ожидания
подтверждения — at-most-once):
    • ``identity.provisioned``     — аккаунт провижинен (ФЛ или организация)
    • ``user.onboarded``           — приветственное письмо ФЛ
    • ``organization.onboarded``   — приветственное письмо организации
    • ``onboarding.audit.<action>`` — зеркало аудит-записей

Graceful degradation: если NATS недоступен — событие пропускается
с предупреждением в лог (не ломает основной бизнес-процесс).
"""

from __future__ import annotations

import json
import logging
from typing import Any

import nats
from nats.aio.client import Client as NATSClient

logger = logging.getLogger(__name__)


class NatsEventPublisher:
    """Одно соединение с NATS на процесс; создаётся в lifespan."""

    def __init__(self, url: str) -> None:
        self.url = url
        self._nc: NATSClient | None = None

    async def connect(self) -> NATSClient | None:
        """Подключается к NATS (если ещё не подключён)."""
        if self._nc is not None and self._nc.is_connected:
            return self._nc
        try:
            self._nc = await nats.connect(self.url)
            logger.info("NATS publisher connected: %s", self.url)
            return self._nc
        except Exception as exc:
            logger.warning("NATS connect failed (events will be skipped): %s", exc)
            self._nc = None
            return None

    async def disconnect(self) -> None:
        """Закрывает соединение с NATS."""
        if self._nc and self._nc.is_connected:
            await self._nc.drain()
            logger.info("NATS publisher disconnected")
        self._nc = None

    async def publish(self, subject: str, data: dict[str, Any]) -> None:
        """
        Публикует JSON-событие в NATS.

        Args:
            subject: Тема сообщения (e.g. ``identity.provisioned``).
            data: Payload (сериализуется в JSON).
        """
        nc = await self.connect()
        if nc is None:
            logger.debug("NATS unavailable — skipping event %s", subject)
            return
        try:
            payload = json.dumps(data, default=str).encode("utf-8")
            await nc.publish(subject, payload)
            logger.info("NATS event published: %s", subject)
        except Exception as exc:
            logger.warning("NATS publish failed for %s: %s", subject, exc)
