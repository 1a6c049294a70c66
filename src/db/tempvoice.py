"""
Helpers base de données pour la fonctionnalité TempVoice.

Schéma :
- tempvoice_registry : guild_id BIGINT PRIMARY KEY, document JSONB (channel_id -> attributs de la room)
Le registre est réécrit en entier à chaque mutation (voir `replace_registry`).
"""
from __future__ import annotations

import json
import asyncpg
from typing import Mapping, Sequence

SCHEMA = """
CREATE TABLE IF NOT EXISTS tempvoice_registry (
    guild_id BIGINT PRIMARY KEY,
    document JSONB NOT NULL DEFAULT '{}'::jsonb,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

UPSERT_GUILD_SQL = """
INSERT INTO tempvoice_registry(guild_id, document, updated_at)
VALUES($1, $2::jsonb, NOW())
ON CONFLICT (guild_id) DO UPDATE SET document = EXCLUDED.document, updated_at = NOW()
"""


async def ensure_schema(pool: asyncpg.Pool):
    async with pool.acquire() as conn:
        await conn.execute(SCHEMA)


async def fetch_registry(pool: asyncpg.Pool) -> Sequence[asyncpg.Record]:
    q = "SELECT guild_id, document FROM tempvoice_registry"
    async with pool.acquire() as conn:
        return await conn.fetch(q)


async def replace_registry(pool: asyncpg.Pool, document: Mapping[str, Mapping]):
    """
    Remplace tout le registre dans une transaction : upsert des guilds présentes,
    suppression des guilds qui n'ont plus de room.
    """
    rows = [(int(gid), json.dumps(rooms)) for gid, rooms in document.items()]
    async with pool.acquire() as conn:
        async with conn.transaction():
            if rows:
                await conn.executemany(UPSERT_GUILD_SQL, rows)
                await conn.execute(
                    "DELETE FROM tempvoice_registry WHERE NOT (guild_id = ANY($1::bigint[]))",
                    [gid for gid, _ in rows],
                )
            else:
                await conn.execute("DELETE FROM tempvoice_registry")


__all__ = ["ensure_schema", "fetch_registry", "replace_registry"]
