"""
═══════════════════════════════════════════════════════════════════════════════
Onboarding — Пул соединений к Identity Store (Database Connection Pool)
═══════════════════════════════════════════════════════════════════════════════

Пул соединений asyncpg к PostgreSQL с настройками из
``onboarding.config.get_settings()`` и применение SQL-миграций
из ``onboarding/db/migrations/``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

import asyncpg

from onboarding.config import get_settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).parent / "db" / "migrations"

# ═══════════════════════════════════════════════════════════════════════════════
# Глобальная переменная пула (module-level singleton)
# ═══════════════════════════════════════════════════════════════════════════════
_pool: asyncpg.Pool | None = None


async def get_pool() -> asyncpg.Pool:
    """
    Возвращает глобальный пул соединений к Identity Store.

    Создаёт пул при первом вызове с параметрами из OnboardingSettings.
    """
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = await asyncpg.create_pool(
            dsn=settings.database_url,
            min_size=settings.database_pool_min,
            max_size=settings.database_pool_max,
            command_timeout=60,
        )
        logger.info(
            f"Identity Store pool created "
            f"(min={settings.database_pool_min}, max={settings.database_pool_max})"
        )
    return _pool


async def close_pool() -> None:
    """Закрывает глобальный пул соединений."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Identity Store pool closed")


@asynccontextmanager
async def get_connection() -> AsyncGenerator[asyncpg.Connection, None]:
    """
    Выдаёт соединение из пула и возвращает его обратно.

    Использование::

        from onboarding.database import get_connection

        async with get_connection() as conn:
            async with conn.transaction():
                await conn.execute("DELETE FROM accounts WHERE uuid = $1", uuid)
    """
    pool = await get_pool()
    async with pool.acquire() as conn:
        yield conn


async def check_connection() -> bool:
    """Проверяет доступность PostgreSQL (health check)."""
    try:
        async with get_connection() as conn:
            result = await conn.fetchval("SELECT 1")
            return result == 1
    except Exception as e:
        logger.error(f"Identity Store health check failed: {e}")
        return False


async def apply_migrations(pool: asyncpg.Pool) -> int:
    """
    Применяет SQL-миграции по порядку имён файлов.

    Уже применённые файлы отмечаются в таблице ``_applied_migrations``.
    Возвращает количество применённых в этом запуске миграций.
    """
    sql_files = sorted(MIGRATIONS_DIR.glob("*.sql"))
    if not sql_files:
        logger.info("No SQL migration files found — skipping")
        return 0

    applied_now = 0
    async with pool.acquire() as conn:
        await conn.execute("""
            CREATE TABLE IF NOT EXISTS _applied_migrations (
                filename TEXT PRIMARY KEY,
                applied_at TIMESTAMPTZ DEFAULT NOW()
            )
        """)

        rows = await conn.fetch("SELECT filename FROM _applied_migrations")
        applied = {row["filename"] for row in rows}

        for sql_file in sql_files:
            if sql_file.name in applied:
                continue

            logger.info(f"Applying migration: {sql_file.name}")
            sql_text = sql_file.read_text(encoding="utf-8")
            async with conn.transaction():
                await conn.execute(sql_text)
                await conn.execute(
                    "INSERT INTO _applied_migrations (filename) VALUES ($1)",
                    sql_file.name,
                )
            applied_now += 1
            logger.info(f"Migration applied: {sql_file.name}")

    logger.info(f"All Identity Store migrations up to date ({len(sql_files)} files checked)")
    return applied_now
