"""
Abstraction pour PostgreSQL via asyncpg.

Principes :
- Un pool global unique, créé à la demande (`get_pool`) et fermé à l'arrêt (`close_pool`)
- Pas d'ORM : les requêtes propres à chaque fonctionnalité vivent dans le package `db`
"""
from __future__ import annotations

import asyncpg
import logging
from typing import Optional

logger = logging.getLogger(__name__)

_pool: Optional[asyncpg.Pool] = None


async def get_pool(dsn: str) -> asyncpg.Pool:
    """
    Retourne (et crée si nécessaire) le pool asyncpg.
    Args :
        dsn : URL de connexion Postgres
    """
    global _pool
    if _pool is None:
        _pool = await asyncpg.create_pool(dsn, min_size=1, max_size=5)
        logger.info("Pool asyncpg initialisé")
    return _pool


async def close_pool():
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None
        logger.info("Pool asyncpg fermé")
