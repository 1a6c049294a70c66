from __future__ import annotations

import logging
from typing import Optional

import discord

from core.config import TempVoiceConfig
from .collector import ParameterCollector
from .dispatcher import CommandDispatcher
from .engine import AccessControlEngine
from .lifecycle import LifecycleController
from .state import TempVoiceState

logger = logging.getLogger(__name__)


class TempVoiceManager:
    """Assemble les composants TempVoice autour d'un état unique.

    Durée de vie = celle du processus : le registre est rechargé une fois depuis
    le stockage au démarrage (`load`), puis seul le processus le modifie.
    """

    def __init__(self, bot: discord.Client, config: TempVoiceConfig, store, *, collector: Optional[ParameterCollector] = None):
        self.bot = bot
        self.state = TempVoiceState(config, store)
        self.lifecycle = LifecycleController(bot, self.state)
        self.engine = AccessControlEngine(self.state)
        self.collector = collector or ParameterCollector(bot, timeout=config.collect_timeout)
        self.dispatcher = CommandDispatcher(self.state, self.engine, self.collector)

    @property
    def registry(self):
        return self.state.registry

    async def load(self):
        await self.state.load()
        logger.info("TempVoice chargé: %s rooms", len(self.state.registry))

    async def post_ready_cleanup(self):
        await self.bot.wait_until_ready()
        try:
            await self.lifecycle.cleanup_orphans()
            logger.info("Integrity report: %s", self.lifecycle.verify_integrity())
        except Exception:  # noqa: BLE001
            logger.exception("Echec nettoyage TempVoice au démarrage")

    async def close(self):
        await self.state.flush()


async def setup_tempvoice_manager(bot, config: TempVoiceConfig, store) -> TempVoiceManager:
    manager = TempVoiceManager(bot, config, store)
    await manager.load()
    bot.loop.create_task(manager.post_ready_cleanup())
    bot.tempvoice = manager  # type: ignore[attr-defined]
    return manager
