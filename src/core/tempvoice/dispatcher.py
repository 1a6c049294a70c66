"""
Routage des clics sur le panneau de contrôle vers le moteur d'accès.

Séquence pour chaque activation :
    custom_id -> (action, channel_id) -> room enregistrée ? -> salon existant ? -> autorisation
    -> [collecte d'un paramètre] -> relecture de la room -> action -> réponse éphémère

Les erreurs métier (`TempVoiceError`) deviennent des réponses éphémères à l'acteur ;
toute autre exception est loggée et l'événement est ignoré.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import discord

from views import tempvoice as texts
from .collector import ParameterCollector, extract_name, mention_check, name_check
from .engine import AccessControlEngine, ActionContext
from .errors import RoomNotFound, TempVoiceError
from .state import TempVoiceState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionSpec:
    needs: Optional[str] = None  # None | "name" | "mention"


ACTIONS: dict[str, ActionSpec] = {
    "rename": ActionSpec(needs="name"),
    "limit_plus": ActionSpec(),
    "limit_minus": ActionSpec(),
    "privacy": ActionSpec(),
    "trust": ActionSpec(),
    "untrust": ActionSpec(),
    "invite": ActionSpec(needs="mention"),
    "kick": ActionSpec(needs="mention"),
    "ban": ActionSpec(needs="mention"),
    "unban": ActionSpec(needs="mention"),
    "hide": ActionSpec(),
    "reveal": ActionSpec(),
    "claim": ActionSpec(),
    "transfer": ActionSpec(needs="mention"),
    "delete": ActionSpec(),
    "more": ActionSpec(),
}


async def reply(interaction: discord.Interaction, content: str | None = None, *, embed: discord.Embed | None = None):
    kwargs = {"ephemeral": True}
    if embed is not None:
        kwargs["embed"] = embed
    if interaction.response.is_done():
        await interaction.followup.send(content, **kwargs)
    else:
        await interaction.response.send_message(content, **kwargs)


class CommandDispatcher:
    def __init__(self, state: TempVoiceState, engine: AccessControlEngine, collector: ParameterCollector):
        self.state = state
        self.engine = engine
        self.collector = collector

    async def handle_interaction(self, interaction: discord.Interaction):
        if interaction.type != discord.InteractionType.component:
            return
        parsed = texts.parse_custom_id((interaction.data or {}).get("custom_id"))
        if parsed is None:
            return  # composant d'une autre fonctionnalité
        action, channel_id = parsed
        try:
            await self._dispatch(interaction, action, channel_id)
        except TempVoiceError as e:
            await self._safe_reply(interaction, e.message)
        except Exception:  # noqa: BLE001
            logger.exception("Erreur traitement action %s sur %s", action, channel_id)
            await self._safe_reply(interaction, texts.msg_internal_error())

    async def _safe_reply(self, interaction: discord.Interaction, content: str):
        try:
            await reply(interaction, content)
        except discord.HTTPException:
            logger.debug("Réponse à l'interaction impossible", exc_info=True)

    def _resolve(self, guild: discord.Guild, channel_id: int, actor) -> ActionContext:
        room = self.state.registry.get(guild.id, channel_id)
        if room is None:
            raise RoomNotFound(texts.msg_not_registered())
        channel = guild.get_channel(channel_id)
        if channel is None:
            raise RoomNotFound(texts.msg_channel_missing())
        return ActionContext(guild=guild, channel=channel, room=room, actor=actor)

    async def _dispatch(self, interaction: discord.Interaction, action: str, channel_id: int):
        guild = interaction.guild
        if guild is None:
            raise RoomNotFound("Action disponible uniquement sur un serveur.")
        spec = ACTIONS.get(action)
        if spec is None:
            raise RoomNotFound(texts.msg_unknown_action())
        actor = interaction.user
        try:
            ctx = self._resolve(guild, channel_id, actor)
        except RoomNotFound:
            if self.state.registry.get(guild.id, channel_id) is not None:
                # Entrée orpheline : le salon a disparu sans événement observé
                await self.state.drop_room(guild.id, channel_id)
                logger.info("Entrée orpheline purgée %s (activation panneau)", channel_id)
            raise
        self.engine.authorize(ctx.room, actor)

        message = None
        if spec.needs is not None:
            await reply(interaction, texts.PROMPTS[action])
            if spec.needs == "name":
                message = await self.collector.collect(interaction.channel_id, actor.id, name_check, failure=texts.msg_no_name())
            else:
                message = await self.collector.collect(interaction.channel_id, actor.id, mention_check, failure=texts.msg_no_mention())
            # Relecture après suspension : la room a pu être supprimée ou transférée
            ctx = self._resolve(guild, channel_id, actor)

        result = await self._run(action, ctx, message)
        if isinstance(result, discord.Embed):
            await reply(interaction, embed=result)
        else:
            await reply(interaction, result)

    async def _run(self, action: str, ctx: ActionContext, message: Optional[discord.Message]):
        engine = self.engine
        target = message.mentions[0] if message is not None and message.mentions else None
        if action == "rename":
            return await engine.rename(ctx, extract_name(message))
        if action == "limit_plus":
            return await engine.change_limit(ctx, +1)
        if action == "limit_minus":
            return await engine.change_limit(ctx, -1)
        if action == "privacy":
            return await engine.toggle_privacy(ctx)
        if action == "trust":
            return await engine.trust(ctx)
        if action == "untrust":
            return await engine.untrust(ctx)
        if action == "invite":
            return await engine.invite(ctx, target)
        if action == "kick":
            return await engine.kick(ctx, target)
        if action == "ban":
            return await engine.ban(ctx, target)
        if action == "unban":
            return await engine.unban(ctx, target)
        if action == "hide":
            return await engine.set_hidden(ctx, True)
        if action == "reveal":
            return await engine.set_hidden(ctx, False)
        if action == "claim":
            return await engine.claim(ctx)
        if action == "transfer":
            return await engine.transfer(ctx, target)
        if action == "delete":
            return await engine.delete(ctx)
        return engine.describe(ctx)


__all__ = ["CommandDispatcher", "ACTIONS", "ActionSpec", "reply"]
