"""
Shared fixtures: a real SQLite database in tmp_path, small stand-ins for the
nextcord objects the handlers touch, and a log recorder.
"""

import asyncio
import itertools
import random
from datetime import datetime, timedelta, UTC

import pytest

import database
import notifications.handlers
import notifications.poller
from database import Database
from notifications.poller import NotificationPoller

CHANNEL_ID = 1234
GUILD_ID = 555

_ids = itertools.count(1)


class FakeChannel:
    def __init__(self, fail=False):
        self.id = CHANNEL_ID
        self.sent = []
        self.fail = fail

    async def send(self, content=None, **kwargs):
        if self.fail:
            raise RuntimeError("Missing Permissions")
        self.sent.append({"content": content, **kwargs})


class FakeMember:
    def __init__(self, name, bot=False, fail_dm=False, dm_delay=0):
        self.id = next(_ids)
        self.name = name
        self.bot = bot
        self.fail_dm = fail_dm
        self.dm_delay = dm_delay
        self.dms = []

    async def send(self, content):
        if self.dm_delay:
            await asyncio.sleep(self.dm_delay)
        if self.fail_dm:
            raise RuntimeError("Cannot send messages to this user")
        self.dms.append(content)


class FakeGuild:
    def __init__(self, members):
        self.id = GUILD_ID
        self.members = members

    async def _iter_members(self):
        for member in self.members:
            yield member

    def fetch_members(self, limit=None):
        return self._iter_members()


class FakeBot:
    def __init__(self, channel=None, guild=None):
        self.channel = channel or FakeChannel()
        self.guild = guild or FakeGuild([])
        self.channel_lookup_fails = False

    async def fetch_channel(self, channel_id):
        if self.channel_lookup_fails:
            raise RuntimeError("Unknown Channel")
        return self.channel

    async def fetch_guild(self, guild_id):
        if guild_id != self.guild.id:
            raise RuntimeError("Unknown Guild")
        return self.guild


class LogRecorder:
    def __init__(self):
        self.records = []

    def __call__(self, message, level="info"):
        self.records.append((level, message))

    def at(self, level):
        return [message for lvl, message in self.records if lvl == level]


@pytest.fixture
def logs(monkeypatch):
    recorder = LogRecorder()
    for module in (database, notifications.poller, notifications.handlers):
        monkeypatch.setattr(module, "log_message", recorder)
    return recorder


@pytest.fixture
def db(tmp_path, logs):
    database_ = Database(str(tmp_path / "notifications.db"))
    yield database_
    database_.close()


@pytest.fixture
def fake_bot():
    return FakeBot()


@pytest.fixture
def poller(fake_bot, db):
    return NotificationPoller(fake_bot, db, CHANNEL_ID, rng=random.Random(7))


@pytest.fixture
def insert_row(db):
    """Insert a notification row and return its id."""
    def _insert(type_name, **fields):
        columns = ["type"] + list(fields)
        values = [type_name] + [
            value.isoformat() if isinstance(value, datetime) else value
            for value in fields.values()
        ]
        placeholders = ", ".join("?" for _ in columns)
        cur = db.execute(
            f"INSERT INTO notifications ({', '.join(columns)}) VALUES ({placeholders})",
            values,
        )
        return cur.lastrowid
    return _insert


@pytest.fixture
def is_sent(db):
    def _is_sent(notif_id):
        rows = db.fetchall("SELECT sent FROM notifications WHERE id = ?", (notif_id,))
        return bool(rows[0][0])
    return _is_sent


@pytest.fixture
def in_seconds():
    """Aware UTC datetime offset from now."""
    def _in_seconds(seconds):
        return datetime.now(UTC) + timedelta(seconds=seconds)
    return _in_seconds


@pytest.fixture
def guild_members(fake_bot):
    """Populate the fake guild; each spec is (name, is_bot[, dm_fails[, dm_delay]])."""
    def _populate(*specs):
        members = [FakeMember(*spec) for spec in specs]
        fake_bot.guild.members = members
        return members
    return _populate
