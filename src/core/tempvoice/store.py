"""
Stockage durable du registre TempVoice.

Deux backends exposent le même contrat :
    await store.load()            -> RoomRegistry (vide si rien / données corrompues)
    await store.save(registry)    -> écriture complète, attendue par l'appelant

- `PostgresStore` : un document JSONB par guild (utilisé si DATABASE_URL est défini)
- `JsonFileStore` : un fichier JSON unique, écrit de façon atomique (fichier temporaire + replace)
"""
from __future__ import annotations

import json
import logging
import os
import tempfile

from db import tempvoice as db
from .models import RoomRegistry

logger = logging.getLogger(__name__)


class JsonFileStore:
    def __init__(self, path: str):
        self.path = path

    async def load(self) -> RoomRegistry:
        if not os.path.exists(self.path):
            return RoomRegistry()
        try:
            with open(self.path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
            if not isinstance(data, dict):
                raise ValueError("document racine non objet")
        except (OSError, ValueError):
            logger.warning("Etat TempVoice illisible (%s), repart d'un registre vide", self.path, exc_info=True)
            return RoomRegistry()
        registry = RoomRegistry.from_dict(data)
        logger.info("Etat TempVoice chargé depuis %s (%s rooms)", self.path, len(registry))
        return registry

    async def save(self, registry: RoomRegistry) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=".tempvoice-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(registry.to_dict(), fh, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise


class PostgresStore:
    def __init__(self, pool):
        self.pool = pool

    async def setup(self):
        await db.ensure_schema(self.pool)

    async def load(self) -> RoomRegistry:
        try:
            records = await db.fetch_registry(self.pool)
        except Exception:  # noqa: BLE001
            logger.exception("Lecture du registre TempVoice impossible, repart d'un registre vide")
            return RoomRegistry()
        document = {}
        for rec in records:
            raw = rec["document"]
            try:
                rooms = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
            except ValueError:
                logger.warning("Document TempVoice corrompu pour la guild %s, ignoré", rec["guild_id"])
                continue
            if isinstance(rooms, dict):
                document[str(rec["guild_id"])] = rooms
        registry = RoomRegistry.from_dict(document)
        logger.info("Etat TempVoice chargé depuis Postgres (%s rooms)", len(registry))
        return registry

    async def save(self, registry: RoomRegistry) -> None:
        await db.replace_registry(self.pool, registry.to_dict())


__all__ = ["JsonFileStore", "PostgresStore"]
