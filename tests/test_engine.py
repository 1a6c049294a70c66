"""Tests du moteur de contrôle d'accès (autorisation + actions)."""
from types import SimpleNamespace
from unittest.mock import AsyncMock

import discord
import pytest

from core.tempvoice.engine import ActionContext
from core.tempvoice.errors import InvalidTarget, PlatformCommandFailure, Unauthorized
from core.tempvoice.models import Room

from conftest import APP_OWNER_ID, GUILD_ID, LOG_ID, connect, make_member, make_voice_channel

ROOM_ID = 700


@pytest.fixture
def alice(guild):
    return make_member(guild, 1, "Alice")


@pytest.fixture
def bob(guild):
    return make_member(guild, 2, "Bob")


@pytest.fixture
def channel(guild):
    return make_voice_channel(guild, ROOM_ID, "Alice's Room")


@pytest.fixture
def room(state, alice):
    room = Room(channel_id=ROOM_ID, guild_id=GUILD_ID, owner=alice.id, backup_name="Alice's Room")
    state.registry.add(room)
    return room


@pytest.fixture
def ctx(guild, channel, room, alice):
    return ActionContext(guild=guild, channel=channel, room=room, actor=alice)


def _as(ctx, actor):
    return ActionContext(guild=ctx.guild, channel=ctx.channel, room=ctx.room, actor=actor)


def _forbidden():
    return discord.Forbidden(SimpleNamespace(status=403, reason="Forbidden"), "Cannot send messages to this user")


class TestAuthorization:
    def test_owner_and_co_owner(self, engine, room, alice, bob):
        assert engine.is_authorized(room, alice)
        assert not engine.is_authorized(room, bob)
        room.co_owners.add(bob.id)
        assert engine.is_authorized(room, bob)

    def test_manage_channels_and_admin(self, engine, room, guild):
        mod = make_member(guild, 3, "Mod", perms=discord.Permissions(manage_channels=True).value)
        admin = make_member(guild, 4, "Admin", perms=discord.Permissions(administrator=True).value)
        assert engine.is_authorized(room, mod)
        assert engine.is_authorized(room, admin)

    def test_application_owner(self, engine, room, guild):
        assert engine.is_authorized(room, make_member(guild, APP_OWNER_ID, "Dev"))

    @pytest.mark.asyncio
    async def test_unauthorized_action_changes_nothing(self, engine, ctx, bob, store):
        with pytest.raises(Unauthorized):
            await engine.change_limit(_as(ctx, bob), +1)
        assert ctx.room.user_limit == 0
        ctx.channel.edit.assert_not_awaited()
        assert store.saves == 0


class TestLimit:
    @pytest.mark.asyncio
    async def test_saturates_at_99(self, engine, ctx):
        for _ in range(150):
            await engine.change_limit(ctx, +1)
        assert ctx.room.user_limit == 99
        assert ctx.channel.user_limit == 99

    @pytest.mark.asyncio
    async def test_never_below_zero(self, engine, ctx, store):
        msg = await engine.change_limit(ctx, -1)
        assert ctx.room.user_limit == 0
        assert "illimité" in msg
        assert store.saves == 1


class TestPrivacy:
    @pytest.mark.asyncio
    async def test_toggle_twice_restores_everyone_connect(self, engine, ctx, alice, bob):
        ctx.room.co_owners.add(bob.id)
        everyone = ctx.guild.default_role
        original = ctx.channel.overwrites_for(everyone).connect

        await engine.toggle_privacy(ctx)
        assert ctx.room.private and ctx.room.locked
        assert ctx.channel.overwrites_for(everyone).connect is False
        assert ctx.channel.overwrites_for(alice).connect is True
        assert ctx.channel.overwrites_for(bob).connect is True

        await engine.toggle_privacy(ctx)
        assert not ctx.room.private
        assert ctx.channel.overwrites_for(everyone).connect is original

    @pytest.mark.asyncio
    async def test_hide_then_reveal(self, engine, ctx):
        everyone = ctx.guild.default_role
        await engine.set_hidden(ctx, True)
        assert ctx.room.hidden
        assert ctx.channel.overwrites_for(everyone).view_channel is False
        await engine.set_hidden(ctx, False)
        assert not ctx.room.hidden
        assert everyone.id not in ctx.channel.overwrite_map


class TestBan:
    @pytest.mark.asyncio
    async def test_ban_then_unban_restores_unset(self, engine, ctx, bob):
        await engine.ban(ctx, bob)
        assert bob.id in ctx.room.banned
        assert ctx.channel.overwrites_for(bob).connect is False

        await engine.unban(ctx, bob)
        assert bob.id not in ctx.room.banned
        assert ctx.channel.overwrites_for(bob).connect is None
        assert bob.id not in ctx.channel.overwrite_map

    @pytest.mark.asyncio
    async def test_ban_is_idempotent(self, engine, ctx, bob):
        await engine.ban(ctx, bob)
        await engine.ban(ctx, bob)
        assert ctx.room.banned == {bob.id}

    @pytest.mark.asyncio
    async def test_cannot_ban_owner(self, engine, ctx, alice, store):
        with pytest.raises(InvalidTarget):
            await engine.ban(ctx, alice)
        assert alice.id not in ctx.room.banned
        assert store.saves == 0

    @pytest.mark.asyncio
    async def test_ban_disconnects_connected_target(self, engine, ctx, bob):
        connect(bob, ctx.channel)
        await engine.ban(ctx, bob)
        bob.move_to.assert_awaited_once()
        assert bob.voice is None


class TestRename:
    @pytest.mark.asyncio
    async def test_rename_sets_backup_name(self, engine, ctx, state, guild):
        msg = await engine.rename(ctx, "  Chill Zone ")
        assert ctx.room.backup_name == "Chill Zone"
        assert ctx.channel.name == "Chill Zone"
        assert "Chill Zone" in msg
        await state.flush()
        guild.get_channel(LOG_ID).send.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_empty_name_rejected(self, engine, ctx):
        with pytest.raises(InvalidTarget):
            await engine.rename(ctx, "   ")
        assert ctx.room.backup_name == "Alice's Room"

    @pytest.mark.asyncio
    async def test_long_name_truncated(self, engine, ctx):
        await engine.rename(ctx, "x" * 150)
        assert len(ctx.room.backup_name) == 100


class TestTrust:
    @pytest.mark.asyncio
    async def test_trust_untrust_actor(self, engine, ctx, alice):
        await engine.trust(ctx)
        await engine.trust(ctx)
        assert ctx.room.trusted == {alice.id}
        await engine.untrust(ctx)
        await engine.untrust(ctx)
        assert ctx.room.trusted == set()


class TestInviteKick:
    @pytest.mark.asyncio
    async def test_invite_sends_dm(self, engine, ctx, bob):
        msg = await engine.invite(ctx, bob)
        bob.send.assert_awaited_once()
        assert "Bob" in msg

    @pytest.mark.asyncio
    async def test_invite_dm_refused(self, engine, ctx, bob):
        bob.send = AsyncMock(side_effect=_forbidden())
        with pytest.raises(PlatformCommandFailure):
            await engine.invite(ctx, bob)

    @pytest.mark.asyncio
    async def test_kick_member_in_room(self, engine, ctx, bob):
        connect(bob, ctx.channel)
        await engine.kick(ctx, bob)
        bob.move_to.assert_awaited_once()
        assert bob not in ctx.channel.members

    @pytest.mark.asyncio
    async def test_kick_member_elsewhere_rejected(self, engine, ctx, bob, guild):
        connect(bob, make_voice_channel(guild, 701, "other"))
        with pytest.raises(InvalidTarget):
            await engine.kick(ctx, bob)
        bob.move_to.assert_not_awaited()


class TestOwnership:
    @pytest.mark.asyncio
    async def test_claim_is_unconditional(self, engine, ctx, alice, bob):
        connect(alice, ctx.channel)
        ctx.room.co_owners.add(bob.id)
        await engine.claim(_as(ctx, bob))
        assert ctx.room.owner == bob.id

    @pytest.mark.asyncio
    async def test_transfer_clears_ban_of_new_owner(self, engine, ctx, bob, store):
        ctx.room.banned.add(bob.id)
        await engine.transfer(ctx, bob)
        assert ctx.room.owner == bob.id
        assert bob.id not in ctx.room.banned
        assert store.snapshot[str(GUILD_ID)][str(ROOM_ID)]["owner"] == bob.id

    @pytest.mark.asyncio
    async def test_transfer_in_private_room_grants_connect(self, engine, ctx, bob):
        await engine.toggle_privacy(ctx)
        await engine.transfer(ctx, bob)
        assert ctx.channel.overwrites_for(bob).connect is True


class TestDelete:
    @pytest.mark.asyncio
    async def test_delete_removes_entry_and_channel(self, engine, ctx, state, store):
        await engine.delete(ctx)
        assert state.registry.get(GUILD_ID, ROOM_ID) is None
        ctx.channel.delete.assert_awaited_once()
        assert store.snapshot == {}

    @pytest.mark.asyncio
    async def test_describe_lists_room_state(self, engine, ctx, bob):
        ctx.room.banned.add(bob.id)
        embed = engine.describe(ctx)
        fields = {f.name: f.value for f in embed.fields}
        assert fields["Bannis"] == f"<@{bob.id}>"
        assert fields["Propriétaire"] == "<@1>"
