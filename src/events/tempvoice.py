"""
Handlers d'événements Discord pour TempVoice (présence vocale, clics du panneau, salons).

Chaque handler délègue au manager attaché au bot (`bot.tempvoice`).
Une exception inattendue est loggée puis ignorée : elle n'affecte que l'événement en cours.
"""
from __future__ import annotations

import logging
import discord

logger = logging.getLogger(__name__)


def setup(bot: discord.Client):
    def _manager():
        return getattr(bot, "tempvoice", None)

    @bot.event
    async def on_voice_state_update(member: discord.Member, before: discord.VoiceState, after: discord.VoiceState):
        manager = _manager()
        if manager is None:
            return
        try:
            await manager.lifecycle.handle_voice_state_update(member, before, after)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur voice_state_update (%s)", member.id)

    @bot.event
    async def on_interaction(interaction: discord.Interaction):
        manager = _manager()
        if manager is None:
            return
        try:
            await manager.dispatcher.handle_interaction(interaction)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur interaction %s", interaction.id)

    @bot.event
    async def on_guild_channel_delete(channel: discord.abc.GuildChannel):
        manager = _manager()
        if manager is None:
            return
        try:
            await manager.lifecycle.handle_channel_delete(channel)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur channel_delete %s", channel.id)

    @bot.event
    async def on_guild_channel_update(before: discord.abc.GuildChannel, after: discord.abc.GuildChannel):
        manager = _manager()
        if manager is None:
            return
        try:
            await manager.lifecycle.handle_channel_update(before, after)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur channel_update %s", after.id)
