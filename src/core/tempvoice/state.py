"""
État applicatif TempVoice, détenu explicitement (pas de globales).

Regroupe le registre en mémoire, le ledger de cooldown, le stockage durable
et les effets annexes partagés : persistance, notifications du salon de logs
(fire-and-forget) et publication du panneau de contrôle.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Set

import discord

from core.config import TempVoiceConfig
from views.tempvoice import build_control_embed, build_control_view
from .models import CooldownLedger, Room, RoomRegistry

logger = logging.getLogger(__name__)


class TempVoiceState:
    def __init__(self, config: TempVoiceConfig, store, registry: Optional[RoomRegistry] = None, cooldowns: Optional[CooldownLedger] = None):
        self.config = config
        self.store = store
        self.registry = registry or RoomRegistry()
        self.cooldowns = cooldowns or CooldownLedger(config.create_cooldown)
        self._pending: Set[asyncio.Task] = set()

    async def load(self):
        self.registry = await self.store.load()

    async def persist(self):
        """Écrit le registre complet ; l'appelant attend la fin de l'écriture."""
        await self.store.save(self.registry)

    async def drop_room(self, guild_id: int, channel_id: int) -> Optional[Room]:
        room = self.registry.remove(guild_id, channel_id)
        if room is not None:
            await self.persist()
        return room

    # ---------- salon de logs ----------
    def notify(self, guild: discord.Guild, text: str) -> None:
        cid = self.config.log_channel_id
        if not cid:
            return
        channel = guild.get_channel(cid)
        if not isinstance(channel, discord.abc.Messageable):
            return
        task = asyncio.ensure_future(self._send_log(channel, text))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    @staticmethod
    async def _send_log(channel, text: str):
        try:
            await channel.send(text)
        except Exception:  # noqa: BLE001
            logger.debug("Notification de log non délivrée", exc_info=True)

    async def flush(self):
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # ---------- panneau de contrôle ----------
    async def post_panel(self, channel: discord.VoiceChannel, room: Room) -> Optional[discord.Message]:
        embed = build_control_embed(room, channel)
        targets = []
        if self.config.panel_channel_id:
            panel_channel = channel.guild.get_channel(self.config.panel_channel_id)
            if isinstance(panel_channel, discord.abc.Messageable):
                targets.append(panel_channel)
        # Repli : chat texte intégré au salon vocal
        targets.append(channel)
        for target in targets:
            view = build_control_view(channel.id)
            try:
                return await target.send(embed=embed, view=view)
            except discord.HTTPException:
                logger.debug("Impossible de publier le panneau dans %s", getattr(target, "id", "?"), exc_info=True)
            finally:
                # Les clics passent par on_interaction : la vue n'a pas à rester dans le store de discord.py
                view.stop()
        return None


__all__ = ["TempVoiceState"]
