"""Faux objets Discord partagés par les tests TempVoice."""
from __future__ import annotations

import asyncio
import itertools
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from core.config import TempVoiceConfig
from core.tempvoice.collector import ParameterCollector
from core.tempvoice.dispatcher import CommandDispatcher
from core.tempvoice.engine import AccessControlEngine
from core.tempvoice.lifecycle import LifecycleController
from core.tempvoice.models import CooldownLedger, RoomRegistry
from core.tempvoice.state import TempVoiceState

GUILD_ID = 1000
LOBBY_ID = 2000
CATEGORY_ID = 3000
LOG_ID = 4000
PANEL_ID = 5000
APP_OWNER_ID = 9999

_ids = itertools.count(10_000)


def make_text_channel(guild, cid: int, name: str):
    ch = MagicMock(spec=discord.TextChannel)
    ch.id = cid
    ch.name = name
    ch.guild = guild
    ch.send = AsyncMock()
    guild.channels[cid] = ch
    return ch


def make_voice_channel(guild, cid: int, name: str, *, user_limit: int = 0):
    ch = MagicMock(spec=discord.VoiceChannel)
    ch.id = cid
    ch.name = name
    ch.guild = guild
    ch.members = []
    ch.user_limit = user_limit
    ch.mention = f"<#{cid}>"
    ch.overwrite_map = {}

    def overwrites_for(target):
        stored = ch.overwrite_map.get(target.id)
        if stored is None:
            return discord.PermissionOverwrite()
        return discord.PermissionOverwrite.from_pair(*stored.pair())

    async def set_permissions(target, *, overwrite=None, reason=None):
        if overwrite is None:
            ch.overwrite_map.pop(target.id, None)
        else:
            ch.overwrite_map[target.id] = overwrite

    async def edit(*, reason=None, **fields):
        for key, value in fields.items():
            setattr(ch, key, value)

    async def delete(*, reason=None):
        guild.channels.pop(cid, None)

    ch.overwrites_for = MagicMock(side_effect=overwrites_for)
    ch.set_permissions = AsyncMock(side_effect=set_permissions)
    ch.edit = AsyncMock(side_effect=edit)
    ch.delete = AsyncMock(side_effect=delete)
    ch.send = AsyncMock()
    guild.channels[cid] = ch
    return ch


class FakeGuild:
    def __init__(self, gid: int = GUILD_ID):
        self.id = gid
        self.name = "Test Guild"
        self.bitrate_limit = 96000.0
        self.channels: dict = {}
        self.members: dict = {}
        self.default_role = MagicMock(spec=discord.Role)
        self.default_role.id = gid
        self.created: list = []
        self.create_fails = False

    def get_channel(self, cid):
        return self.channels.get(cid)

    def get_member(self, uid):
        return self.members.get(uid)

    async def create_voice_channel(self, name, *, category=None, bitrate=None, user_limit=0, reason=None):
        if self.create_fails:
            raise discord.HTTPException(MagicMock(status=500, reason="boom"), "boom")
        ch = make_voice_channel(self, next(_ids), name, user_limit=user_limit)
        ch.category = category
        ch.bitrate = bitrate
        self.created.append(ch)
        return ch


def make_member(guild: FakeGuild, uid: int, name: str, *, perms: int = 0):
    m = MagicMock(spec=discord.Member)
    m.id = uid
    m.name = name
    m.display_name = name
    m.bot = False
    m.guild = guild
    m.mention = f"<@{uid}>"
    m.guild_permissions = discord.Permissions(perms)
    m.__str__.return_value = name
    m.voice = None
    m.send = AsyncMock()

    async def move_to(channel, *, reason=None):
        old = m.voice.channel if m.voice else None
        if old is not None and m in old.members:
            old.members.remove(m)
        if channel is None:
            m.voice = None
        else:
            channel.members.append(m)
            m.voice = SimpleNamespace(channel=channel)

    m.move_to = AsyncMock(side_effect=move_to)
    guild.members[uid] = m
    return m


def connect(member, channel):
    """Place le membre dans un salon vocal et retourne (before, after) pour voice_state_update."""
    before = SimpleNamespace(channel=member.voice.channel if member.voice else None)
    if before.channel is not None and member in before.channel.members:
        before.channel.members.remove(member)
    if channel is not None:
        channel.members.append(member)
        member.voice = SimpleNamespace(channel=channel)
    else:
        member.voice = None
    return before, SimpleNamespace(channel=channel)


def make_message(author, channel_id: int, content: str = "", mentions=()):
    return SimpleNamespace(
        author=author,
        channel=SimpleNamespace(id=channel_id),
        content=content,
        mentions=list(mentions),
    )


class FakeWaiter:
    """Remplace `Client.wait_for` : consomme la file de messages, expire si aucun ne correspond."""

    def __init__(self):
        self.queue: list = []
        self.calls = 0

    async def wait_for(self, event, *, check=None, timeout=None):
        self.calls += 1
        for message in list(self.queue):
            if check is None or check(message):
                self.queue.remove(message)
                return message
        raise asyncio.TimeoutError()


class MemoryStore:
    def __init__(self, registry: RoomRegistry | None = None):
        self.saves = 0
        self.snapshot: dict = registry.to_dict() if registry else {}

    async def load(self):
        return RoomRegistry.from_dict(self.snapshot)

    async def save(self, registry):
        self.saves += 1
        self.snapshot = registry.to_dict()


class FakeResponse:
    def __init__(self):
        self.sent: list = []
        self._done = False

    def is_done(self):
        return self._done

    async def send_message(self, content=None, **kwargs):
        self._done = True
        self.sent.append(kwargs.get("embed") if content is None else content)

    async def defer(self, **kwargs):
        self._done = True


class FakeFollowup:
    def __init__(self):
        self.sent: list = []

    async def send(self, content=None, **kwargs):
        self.sent.append(kwargs.get("embed") if content is None else content)


class FakeInteraction:
    def __init__(self, guild, user, custom_id: str, channel_id: int = PANEL_ID):
        self.id = next(_ids)
        self.type = discord.InteractionType.component
        self.data = {"custom_id": custom_id}
        self.guild = guild
        self.user = user
        self.channel_id = channel_id
        self.response = FakeResponse()
        self.followup = FakeFollowup()

    @property
    def replies(self):
        return self.response.sent + self.followup.sent


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


@pytest.fixture
def guild():
    g = FakeGuild()
    category = MagicMock(spec=discord.CategoryChannel)
    category.id = CATEGORY_ID
    g.channels[CATEGORY_ID] = category
    make_voice_channel(g, LOBBY_ID, "➕ Créer un salon")
    make_text_channel(g, LOG_ID, "tempvoice-logs")
    make_text_channel(g, PANEL_ID, "setup-panel")
    return g


@pytest.fixture
def config():
    return TempVoiceConfig(
        lobby_channel_id=LOBBY_ID,
        category_id=CATEGORY_ID,
        log_channel_id=LOG_ID,
        panel_channel_id=PANEL_ID,
        owner_id=APP_OWNER_ID,
        create_cooldown=8.0,
    )


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def state(config, store, clock):
    return TempVoiceState(config, store, cooldowns=CooldownLedger(config.create_cooldown, clock=clock))


@pytest.fixture
def bot(guild):
    client = MagicMock()
    client.get_guild = MagicMock(side_effect=lambda gid: guild if gid == guild.id else None)
    return client


@pytest.fixture
def lifecycle(bot, state):
    return LifecycleController(bot, state)


@pytest.fixture
def engine(state):
    return AccessControlEngine(state)


@pytest.fixture
def waiter():
    return FakeWaiter()


@pytest.fixture
def dispatcher(state, engine, waiter):
    collector = ParameterCollector(SimpleNamespace(wait_for=waiter.wait_for), timeout=30.0)
    return CommandDispatcher(state, engine, collector)
