"""Shared pytest fixtures and discord.py stand-ins for the bot test suite.

Nothing here talks to Discord: voice channels, voice clients, guilds and
contexts are small fakes that record what the bot asked them to do.
"""

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import discord
import pytest

from audio_source import RestartableSource
from music_commands import MusicCommands
from voice_session import SessionManager

BOT_ID = 999


def http_error(message: str = "send failed") -> discord.HTTPException:
    response = SimpleNamespace(status=500, reason="Internal Server Error")
    return discord.HTTPException(response, message)


async def drain(rounds: int = 5) -> None:
    """Let callbacks scheduled on the event loop run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ---------------------------------------------------------------------------
# discord.py stand-ins
# ---------------------------------------------------------------------------

class FakeVoiceState:
    def __init__(self, channel=None, self_deaf: bool = False) -> None:
        self.channel = channel
        self.self_deaf = self_deaf


class FakeMember:
    def __init__(self, id: int, name: str = "member", voice=None, bot: bool = False) -> None:
        self.id = id
        self.name = name
        self.voice = voice
        self.bot = bot

    @property
    def mention(self) -> str:
        return f"<@{self.id}>"


class FakeTextChannel:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list = []
        self.embeds: list = []

    async def send(self, content=None, *, embed=None, **kwargs):
        if self.fail:
            raise http_error()
        if embed is not None:
            self.embeds.append(embed)
        else:
            self.sent.append(content)
        return SimpleNamespace(content=content, embed=embed)


class FakeVoiceClient:
    def __init__(self, channel) -> None:
        self.channel = channel
        self.guild = channel.guild
        self.connected = True
        self.fail_disconnect = False
        self.played: list = []
        self.after = None
        self.stop_calls = 0
        self._playing = False

    def is_connected(self) -> bool:
        return self.connected

    def is_playing(self) -> bool:
        return self._playing

    def is_paused(self) -> bool:
        return False

    def play(self, source, *, after=None) -> None:
        if not self.connected:
            raise discord.ClientException("Not connected to voice.")
        self.played.append(source)
        self.after = after
        self._playing = True

    def stop(self) -> None:
        self._playing = False
        self.stop_calls += 1

    def finish(self, error=None) -> None:
        """Simulate the current track reaching its end."""
        self._playing = False
        self.after(error)

    async def move_to(self, channel) -> None:
        self.channel = channel

    async def disconnect(self, *, force: bool = False) -> None:
        if self.fail_disconnect:
            raise discord.ClientException("disconnect failed")
        self.connected = False
        self.guild.voice_client = None


class FakeVoiceChannel:
    def __init__(self, guild, id: int = 100, name: str = "General", members=None) -> None:
        self.guild = guild
        self.id = id
        self.name = name
        self.members = list(members or [])
        self.connect_error: Exception | None = None
        self.connect_calls = 0

    @property
    def mention(self) -> str:
        return f"<#{self.id}>"

    async def connect(self, *, timeout: float = 60.0, **kwargs):
        self.connect_calls += 1
        if self.connect_error is not None:
            raise self.connect_error
        if self.guild.voice_client is not None:
            raise discord.ClientException("Already connected to a voice channel.")
        voice_client = FakeVoiceClient(self)
        self.guild.voice_client = voice_client
        return voice_client


class FakeGuild:
    def __init__(self, id: int = 1, me=None) -> None:
        self.id = id
        self.name = "Test Guild"
        self.me = me
        self.voice_client = None
        self.voice_state_calls: list = []

    async def change_voice_state(self, *, channel, self_mute: bool = False, self_deaf: bool = False) -> None:
        self.voice_state_calls.append({"channel": channel, "self_deaf": self_deaf})
        self.me.voice = FakeVoiceState(channel, self_deaf=self_deaf)


class FakeContext:
    def __init__(self, bot, guild, author, channel) -> None:
        self.bot = bot
        self.guild = guild
        self.author = author
        self.channel = channel
        self.command = None
        self.replies: list = []

    async def send(self, content=None, **kwargs):
        return await self.channel.send(content, **kwargs)

    async def reply(self, content=None, **kwargs):
        self.replies.append(content)
        return await self.channel.send(content, **kwargs)


class FakeSource(RestartableSource):
    """Resolved source that never spawns FFmpeg."""

    def __init__(self, url: str, broken: bool = False) -> None:
        super().__init__(url=url, stream_url=f"{url}#stream", title=url.rsplit("/", 1)[-1])
        self.broken = broken

    def create_audio(self):
        if self.broken:
            raise discord.ClientException("ffmpeg was not found.")
        return SimpleNamespace(source=self)


class FakeResolver:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.error: Exception | None = None
        self.before_return = None
        self.broken = False

    async def __call__(self, url: str) -> FakeSource:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        if self.before_return is not None:
            await self.before_return()
        return FakeSource(url, broken=self.broken)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def bot_member() -> FakeMember:
    return FakeMember(BOT_ID, "Sunny", bot=True)


@pytest.fixture()
def guild(bot_member) -> FakeGuild:
    return FakeGuild(id=1, me=bot_member)


@pytest.fixture()
def voice_channel(guild) -> FakeVoiceChannel:
    return FakeVoiceChannel(guild)


@pytest.fixture()
def text_channel() -> FakeTextChannel:
    return FakeTextChannel()


@pytest.fixture()
def listener(voice_channel) -> FakeMember:
    member = FakeMember(1, "alice", voice=FakeVoiceState(voice_channel))
    voice_channel.members.append(member)
    return member


@pytest.fixture()
async def manager():
    manager = SessionManager()
    yield manager
    await manager.close_all()


@pytest.fixture()
def bot(bot_member, manager):
    return SimpleNamespace(user=bot_member, sessions=manager)


@pytest.fixture()
def resolver() -> FakeResolver:
    return FakeResolver()


@pytest.fixture()
def cog(bot, resolver) -> MusicCommands:
    return MusicCommands(bot, resolver=resolver)


@pytest.fixture()
def ctx(bot, guild, listener, text_channel) -> FakeContext:
    return FakeContext(bot, guild, listener, text_channel)


