from __future__ import annotations

import logging
from typing import Optional

import discord

from views import tempvoice as texts
from .models import Room, clamp_user_limit
from .state import TempVoiceState

logger = logging.getLogger(__name__)


class LifecycleController:
    """Réagit aux transitions de présence vocale.

    Responsabilités:
        - Création d'une room quand un membre rejoint le lobby (cooldown par utilisateur).
        - Suppression immédiate d'une room devenue vide.
        - Republication du panneau quand le propriétaire revient dans sa room.
        - Réconciliation registre / salons Discord (suppressions et éditions externes, nettoyage au démarrage).

    Aucun compteur de membres n'est conservé entre deux événements : le registre
    et `channel.members` sont relus à chaque fois.
    """

    def __init__(self, bot: discord.Client, state: TempVoiceState):
        self.bot = bot
        self.state = state

    @property
    def registry(self):
        return self.state.registry

    async def handle_voice_state_update(self, member: discord.Member, before: discord.VoiceState, after: discord.VoiceState):
        guild = member.guild
        before_channel = before.channel
        after_channel = after.channel
        moved = before_channel != after_channel

        lobby_id = self.state.config.lobby_channel_id
        from_lobby = bool(before_channel and lobby_id and before_channel.id == lobby_id)
        if after_channel and moved and lobby_id and after_channel.id == lobby_id and not member.bot:
            await self.create_room(member)

        # Les départs de bots comptent aussi : une room peut se vider sur eux
        if before_channel and moved and self.registry.get(guild.id, before_channel.id):
            await self.delete_room_if_empty(guild, before_channel.id)

        # Le déplacement lobby -> room est celui de create_room, qui a déjà publié le panneau
        if after_channel and moved and not from_lobby:
            room = self.registry.get(guild.id, after_channel.id)
            if room is not None and room.owner == member.id:
                await self.state.post_panel(after_channel, room)

    async def create_room(self, member: discord.Member) -> Optional[Room]:
        config = self.state.config
        guild = member.guild
        if not self.state.cooldowns.try_acquire(member.id):
            logger.debug("Cooldown création actif pour %s", member.id)
            return None
        category = guild.get_channel(config.category_id) if config.category_id else None
        if not isinstance(category, discord.CategoryChannel):
            logger.warning("Catégorie TempVoice %s introuvable sur %s", config.category_id, guild.id)
            return None

        name = f"{member.display_name}'s Room"
        try:
            channel = await guild.create_voice_channel(
                name,
                category=category,
                bitrate=min(config.default_bitrate, int(guild.bitrate_limit)),
                user_limit=config.default_user_limit,
                reason="TempVoice auto-create",
            )
        except discord.HTTPException:
            logger.exception("Echec création room pour %s", member.id)
            return None

        try:
            await member.move_to(channel, reason="TempVoice auto-create")
        except discord.HTTPException:
            # Le membre a quitté le lobby entre-temps : rollback, aucune entrée écrite
            logger.info("Déplacement impossible de %s, rollback de %s", member.id, channel.id)
            try:
                await channel.delete(reason="Rollback TempVoice")
            except discord.HTTPException:
                logger.debug("Rollback échoué pour %s", channel.id, exc_info=True)
            return None

        room = Room(
            channel_id=channel.id,
            guild_id=guild.id,
            owner=member.id,
            user_limit=clamp_user_limit(config.default_user_limit),
            backup_name=name,
        )
        self.registry.add(room)
        await self.state.persist()
        self.state.notify(guild, texts.log_create(member.id, name))
        await self.state.post_panel(channel, room)
        logger.info("Room créée %s pour %s (guild %s)", channel.id, member.id, guild.id)
        return room

    async def delete_room_if_empty(self, guild: discord.Guild, channel_id: int) -> bool:
        channel = guild.get_channel(channel_id)
        if channel is None:
            # Salon disparu sans événement observé : entrée orpheline
            await self.state.drop_room(guild.id, channel_id)
            logger.info("Entrée orpheline purgée %s", channel_id)
            return True
        if channel.members:
            return False
        await self.destroy_room(guild, channel)
        self.state.notify(guild, texts.log_delete_empty(channel.name))
        return True

    async def destroy_room(self, guild: discord.Guild, channel, *, reason: str = "TempVoice room vide"):
        await self.state.drop_room(guild.id, channel.id)
        try:
            await channel.delete(reason=reason)
        except discord.HTTPException:
            logger.warning("Suppression du salon %s échouée (ignorée)", channel.id, exc_info=True)
        logger.info("Room supprimée %s", channel.id)

    async def handle_channel_delete(self, channel: discord.abc.GuildChannel):
        if await self.state.drop_room(channel.guild.id, channel.id) is not None:
            logger.info("Room supprimée manuellement %s -> purgée du registre", channel.id)

    async def handle_channel_update(self, before: discord.abc.GuildChannel, after: discord.abc.GuildChannel):
        room = self.registry.get(after.guild.id, after.id)
        if room is None or not isinstance(after, discord.VoiceChannel):
            return
        changed = False
        limit = clamp_user_limit(after.user_limit or 0)
        if limit != room.user_limit:
            room.user_limit = limit
            changed = True
        if changed:
            await self.state.persist()
        if room.backup_name and after.name != room.backup_name:
            try:
                await after.edit(name=room.backup_name, reason="TempVoice: restauration du nom")
            except discord.HTTPException:
                logger.debug("Restauration du nom impossible pour %s", after.id, exc_info=True)

    async def cleanup_orphans(self) -> tuple[int, int]:
        """Purge les entrées sans salon et supprime les rooms déjà vides (démarrage)."""
        removed = 0
        emptied = 0
        for room in list(self.registry):
            guild = self.bot.get_guild(room.guild_id)
            channel = guild.get_channel(room.channel_id) if guild else None
            if channel is None:
                self.registry.remove(room.guild_id, room.channel_id)
                removed += 1
            elif not channel.members:
                self.registry.remove(room.guild_id, room.channel_id)
                try:
                    await channel.delete(reason="TempVoice: nettoyage au démarrage")
                except discord.HTTPException:
                    logger.debug("Suppression impossible pour %s", channel.id, exc_info=True)
                emptied += 1
        if removed or emptied:
            await self.state.persist()
        logger.info("Cleanup orphelins -> entrées purgées: %s | rooms vides supprimées: %s", removed, emptied)
        return removed, emptied

    def verify_integrity(self) -> dict:
        missing = []
        for room in self.registry:
            guild = self.bot.get_guild(room.guild_id)
            if guild is None or guild.get_channel(room.channel_id) is None:
                missing.append(room.channel_id)
        return {
            "rooms_registry": len(self.registry),
            "missing_channels": missing,
        }


__all__ = ["LifecycleController"]
