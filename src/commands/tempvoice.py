"""
Groupe de commandes slash `/tempvoice` (list, cleanup, panel).

- list / cleanup : réservés aux membres ayant Manage Channels
- panel : republie le panneau de la room où se trouve l'appelant (mêmes règles que les boutons)
"""
from __future__ import annotations

import discord
from discord import app_commands
import logging
from core.tempvoice.manager import TempVoiceManager
from core.permissions import require_perms, MANAGE_CHANNELS
from views import tempvoice as tv_view

logger = logging.getLogger(__name__)

tempvoice_group = app_commands.Group(name="tempvoice", description="Gestion des salons vocaux temporaires")


def get_manager(interaction: discord.Interaction) -> TempVoiceManager:
    mgr = getattr(interaction.client, "tempvoice", None)
    if mgr is None:
        raise RuntimeError("TempVoice manager non initialisé")
    return mgr  # type: ignore


@tempvoice_group.command(name="list", description="Lister les rooms temporaires actives")
@require_perms(MANAGE_CHANNELS, message="Manage Channels requis.")
async def tempvoice_list(interaction: discord.Interaction):
    mgr = get_manager(interaction)
    await interaction.response.defer(ephemeral=True)
    rooms = mgr.registry.guild_rooms(interaction.guild.id)
    if not rooms:
        await interaction.followup.send(tv_view.msg_no_room(), ephemeral=True)
        return
    lines = []
    for room in sorted(rooms, key=lambda r: r.created_at):
        ch = interaction.guild.get_channel(room.channel_id)
        lines.append(tv_view.fmt_room_line(room, ch.name if ch else None))
    await interaction.followup.send("\n".join(lines)[:2000], ephemeral=True)


@tempvoice_group.command(name="cleanup", description="Purger les rooms orphelines ou vides")
@require_perms(MANAGE_CHANNELS, message="Manage Channels requis.")
async def tempvoice_cleanup(interaction: discord.Interaction):
    mgr = get_manager(interaction)
    await interaction.response.defer(ephemeral=True)
    removed, emptied = await mgr.lifecycle.cleanup_orphans()
    report = mgr.lifecycle.verify_integrity()
    await interaction.followup.send(tv_view.msg_cleanup_report(removed, emptied, report), ephemeral=True)


@tempvoice_group.command(name="panel", description="Republier le panneau de ta room")
async def tempvoice_panel(interaction: discord.Interaction):
    mgr = get_manager(interaction)
    guild = interaction.guild
    voice = getattr(interaction.user, "voice", None)
    channel = voice.channel if voice else None
    room = mgr.registry.get(guild.id, channel.id) if guild and channel else None
    if room is None:
        await interaction.response.send_message(tv_view.msg_not_in_voice(), ephemeral=True)
        return
    if not mgr.engine.is_authorized(room, interaction.user):
        await interaction.response.send_message("❌ Non autorisé.", ephemeral=True)
        return
    msg = await mgr.state.post_panel(channel, room)
    await interaction.response.send_message(
        tv_view.msg_panel_posted() if msg else tv_view.msg_panel_failed(), ephemeral=True
    )


def register(bot: discord.Client):
    bot.tree.add_command(tempvoice_group)

__all__ = ["register"]
