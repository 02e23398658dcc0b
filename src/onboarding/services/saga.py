"""
onboarding/services/saga.py — Исполнитель саги.

Сага — упорядоченный список шагов ``SagaStep(name, action, compensate)``.
Шаги выполняются последовательно; если шаг падает, компенсации уже
завершённых шагов запускаются в обратном порядке. Ошибка компенсации
не прерывает остальные компенсации и не повторяется — она попадает
в ``SagaAborted.compensation_failures``.

Упавший шаг компенсируется сам, только если его ``ambiguous(exc)``
возвращает True: исход неизвестен (таймаут удалённого вызова), и эффект
мог успеть примениться.

Отмена задачи (``asyncio.CancelledError``) тоже запускает компенсации,
после чего отмена пробрасывается дальше; итог доступен в
``SagaRunner.aborted``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


@dataclass
class SagaStep:
    name: str
    action: Callable[[], Awaitable[Any]]
    compensate: Callable[[], Awaitable[None]] | None = None
    ambiguous: Callable[[BaseException], bool] | None = None


class SagaAborted(Exception):
    """Шаг ``step`` упал; компенсации завершённых шагов уже выполнены."""

    def __init__(
        self,
        step: str,
        cause: BaseException,
        compensated: list[str],
        compensation_failures: dict[str, BaseException],
    ):
        self.step = step
        self.cause = cause
        self.compensated = compensated
        self.compensation_failures = compensation_failures
        super().__init__(f"Saga aborted at step '{step}': {cause}")


@dataclass
class SagaRunner:
    """Выполняет шаги одного экземпляра саги (не реентерабелен)."""

    label: str
    completed: list[SagaStep] = field(default_factory=list)
    aborted: SagaAborted | None = None

    async def run(self, steps: list[SagaStep]) -> dict[str, Any]:
        """
        Выполняет шаги по порядку и возвращает их результаты по имени.

        Raises:
            SagaAborted: какой-то шаг упал (после компенсации).
            BaseException: отмена и прочие не-``Exception`` — после компенсации.
        """
        results: dict[str, Any] = {}
        for step in steps:
            try:
                results[step.name] = await step.action()
            except BaseException as exc:
                logger.warning("[%s] step '%s' failed: %r", self.label, step.name, exc)
                if step.ambiguous is not None and step.ambiguous(exc):
                    self.completed.append(step)
                compensated, failures = await self._compensate()
                self.aborted = SagaAborted(step.name, exc, compensated, failures)
                if not isinstance(exc, Exception):
                    raise
                raise self.aborted from exc
            self.completed.append(step)
            logger.debug("[%s] step '%s' done", self.label, step.name)
        return results

    async def _compensate(self) -> tuple[list[str], dict[str, BaseException]]:
        compensated: list[str] = []
        failures: dict[str, BaseException] = {}
        for step in reversed(self.completed):
            if step.compensate is None:
                continue
            logger.info("[%s] compensating step '%s'", self.label, step.name)
            try:
                await step.compensate()
            except Exception as exc:
                failures[step.name] = exc
                continue
            compensated.append(step.name)
        self.completed.clear()
        return compensated, failures
