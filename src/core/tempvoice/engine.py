"""
Moteur de contrôle d'accès des rooms TempVoice.

Chaque action :
1. vérifie l'autorisation de l'acteur (avant toute mutation) ;
2. modifie la Room en mémoire (une seule mutation synchrone) ;
3. émet la commande Discord correspondante (best-effort : échec loggé, pas d'annulation) ;
4. persiste le registre complet (attendu) puis notifie le salon de logs (fire-and-forget).

Hypothèse de fonctionnement : le bot est le seul à écrire les overwrites
@everyone (connect / view) des rooms ; l'état précédent n'est pas relu avant écriture.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import discord

from core.permissions import MANAGE_CHANNELS, has_perms
from views import tempvoice as texts
from .errors import InvalidTarget, PlatformCommandFailure, Unauthorized
from .models import Room, clamp_user_limit
from .state import TempVoiceState

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 100


@dataclass
class ActionContext:
    guild: discord.Guild
    channel: discord.VoiceChannel
    room: Room
    actor: discord.Member


class AccessControlEngine:
    def __init__(self, state: TempVoiceState):
        self.state = state

    # ---------- autorisation ----------
    def is_authorized(self, room: Room, actor: Any) -> bool:
        if room.is_manager(actor.id):
            return True
        owner_id = self.state.config.owner_id
        if owner_id and actor.id == owner_id:
            return True
        return has_perms(actor, MANAGE_CHANNELS)

    def authorize(self, room: Room, actor: Any) -> None:
        if not self.is_authorized(room, actor):
            raise Unauthorized()

    # ---------- utilitaires ----------
    async def _commit(self, ctx: ActionContext, log_line: Optional[str] = None):
        await self.state.persist()
        if log_line:
            self.state.notify(ctx.guild, log_line)

    @staticmethod
    def _principal(guild: discord.Guild, target: Any):
        if isinstance(target, (discord.Member, discord.Role)):
            return target
        member = guild.get_member(target.id if hasattr(target, "id") else int(target))
        if member is not None:
            return member
        return discord.Object(id=getattr(target, "id", target), type=discord.Member)

    async def _edit_overwrite(self, ctx: ActionContext, target: Any, **perms: Optional[bool]):
        principal = self._principal(ctx.guild, target)
        overwrite = ctx.channel.overwrites_for(principal)
        overwrite.update(**perms)
        try:
            if overwrite.is_empty():
                await ctx.channel.set_permissions(principal, overwrite=None, reason="TempVoice")
            else:
                await ctx.channel.set_permissions(principal, overwrite=overwrite, reason="TempVoice")
        except discord.HTTPException:
            logger.debug("Overwrite %s impossible pour %s sur %s", perms, getattr(principal, "id", "?"), ctx.channel.id, exc_info=True)

    async def _edit_channel(self, ctx: ActionContext, **fields):
        try:
            await ctx.channel.edit(reason="TempVoice", **fields)
        except discord.HTTPException:
            logger.debug("Edition %s impossible sur %s", list(fields), ctx.channel.id, exc_info=True)

    # ---------- actions ----------
    async def rename(self, ctx: ActionContext, name: str) -> str:
        self.authorize(ctx.room, ctx.actor)
        name = (name or "").strip()[:NAME_MAX_LENGTH]
        if not name:
            raise InvalidTarget(texts.msg_no_name())
        # backup_name d'abord : l'événement channel_update qui suit ne doit pas restaurer l'ancien nom
        ctx.room.backup_name = name
        await self._edit_channel(ctx, name=name)
        await self._commit(ctx, texts.log_renamed(str(ctx.actor), ctx.channel.id, name))
        return texts.msg_renamed(name)

    async def change_limit(self, ctx: ActionContext, delta: int) -> str:
        self.authorize(ctx.room, ctx.actor)
        new_limit = clamp_user_limit(ctx.room.user_limit + delta)
        ctx.room.user_limit = new_limit
        await self._edit_channel(ctx, user_limit=new_limit)
        await self._commit(ctx, texts.log_limit(ctx.channel.name, new_limit, str(ctx.actor)))
        return texts.msg_limit(new_limit)

    async def toggle_privacy(self, ctx: ActionContext) -> str:
        self.authorize(ctx.room, ctx.actor)
        room = ctx.room
        enable = not room.private
        room.private = enable
        room.locked = enable
        everyone = ctx.guild.default_role
        if enable:
            await self._edit_overwrite(ctx, everyone, connect=False)
            for uid in sorted({room.owner} | room.co_owners):
                await self._edit_overwrite(ctx, discord.Object(id=uid), connect=True)
        else:
            # Retour à l'héritage (état d'origine d'une room fraîchement créée)
            await self._edit_overwrite(ctx, everyone, connect=None)
        await self._commit(ctx, texts.log_private(ctx.channel.name, enable, str(ctx.actor)))
        return texts.msg_private(enable)

    async def trust(self, ctx: ActionContext) -> str:
        self.authorize(ctx.room, ctx.actor)
        ctx.room.trusted.add(ctx.actor.id)
        await self._commit(ctx, texts.log_trust(ctx.channel.name, str(ctx.actor), True))
        return texts.msg_trusted(str(ctx.actor))

    async def untrust(self, ctx: ActionContext) -> str:
        self.authorize(ctx.room, ctx.actor)
        ctx.room.trusted.discard(ctx.actor.id)
        await self._commit(ctx, texts.log_trust(ctx.channel.name, str(ctx.actor), False))
        return texts.msg_untrusted(str(ctx.actor))

    async def invite(self, ctx: ActionContext, target: discord.abc.User) -> str:
        self.authorize(ctx.room, ctx.actor)
        try:
            await target.send(f"{ctx.actor} t'invite dans le vocal {ctx.channel.mention} sur {ctx.guild.name}")
        except discord.HTTPException:
            raise PlatformCommandFailure(texts.msg_invite_failed()) from None
        return texts.msg_invite_sent(str(target))

    async def kick(self, ctx: ActionContext, target: Any) -> str:
        self.authorize(ctx.room, ctx.actor)
        member = target if isinstance(target, discord.Member) else ctx.guild.get_member(target.id)
        voice = getattr(member, "voice", None)
        if member is None or voice is None or voice.channel is None or voice.channel.id != ctx.channel.id:
            raise InvalidTarget(texts.msg_not_in_room())
        try:
            await member.move_to(None, reason=f"TempVoice kick par {ctx.actor}")
        except discord.HTTPException:
            raise PlatformCommandFailure() from None
        self.state.notify(ctx.guild, texts.log_kick(str(member), ctx.channel.name, str(ctx.actor)))
        return texts.msg_kicked(str(member))

    async def ban(self, ctx: ActionContext, target: Any) -> str:
        self.authorize(ctx.room, ctx.actor)
        if target.id == ctx.room.owner:
            raise InvalidTarget(texts.msg_cannot_ban_owner())
        ctx.room.banned.add(target.id)
        await self._edit_overwrite(ctx, target, connect=False)
        member = ctx.guild.get_member(target.id)
        voice = getattr(member, "voice", None)
        if voice is not None and voice.channel is not None and voice.channel.id == ctx.channel.id:
            try:
                await member.move_to(None, reason="TempVoice ban")
            except discord.HTTPException:
                logger.debug("Déconnexion du banni %s impossible", target.id, exc_info=True)
        await self._commit(ctx, texts.log_ban(str(target), ctx.channel.name, str(ctx.actor)))
        return texts.msg_banned(str(target))

    async def unban(self, ctx: ActionContext, target: Any) -> str:
        self.authorize(ctx.room, ctx.actor)
        ctx.room.banned.discard(target.id)
        await self._edit_overwrite(ctx, target, connect=None)
        await self._commit(ctx, texts.log_unban(str(target), ctx.channel.name, str(ctx.actor)))
        return texts.msg_unbanned(str(target))

    async def set_hidden(self, ctx: ActionContext, hidden: bool) -> str:
        self.authorize(ctx.room, ctx.actor)
        ctx.room.hidden = hidden
        await self._edit_overwrite(ctx, ctx.guild.default_role, view_channel=False if hidden else None)
        await self._commit(ctx, texts.log_hidden(ctx.channel.name, hidden, str(ctx.actor)))
        return texts.msg_hidden(hidden)

    async def _hand_over(self, ctx: ActionContext, user: Any):
        ctx.room.set_owner(user.id)
        await self._edit_overwrite(ctx, user, connect=True if ctx.room.private else None)

    async def claim(self, ctx: ActionContext) -> str:
        # Inconditionnel : l'ancien propriétaire peut encore être connecté
        self.authorize(ctx.room, ctx.actor)
        await self._hand_over(ctx, ctx.actor)
        await self._commit(ctx, texts.log_claim(str(ctx.actor), ctx.channel.name))
        return texts.msg_claimed()

    async def transfer(self, ctx: ActionContext, target: Any) -> str:
        self.authorize(ctx.room, ctx.actor)
        await self._hand_over(ctx, target)
        await self._commit(ctx, texts.log_transfer(ctx.channel.name, str(target)))
        return texts.msg_transferred(str(target))

    async def delete(self, ctx: ActionContext) -> str:
        self.authorize(ctx.room, ctx.actor)
        await self.state.drop_room(ctx.guild.id, ctx.channel.id)
        try:
            await ctx.channel.delete(reason=f"TempVoice supprimée par {ctx.actor}")
        except discord.HTTPException:
            logger.warning("Suppression du salon %s échouée (ignorée)", ctx.channel.id, exc_info=True)
        self.state.notify(ctx.guild, texts.log_delete(ctx.channel.name, str(ctx.actor)))
        return texts.msg_deleted()

    def describe(self, ctx: ActionContext) -> discord.Embed:
        self.authorize(ctx.room, ctx.actor)
        return texts.build_details_embed(ctx.room, ctx.channel)


__all__ = ["AccessControlEngine", "ActionContext"]
