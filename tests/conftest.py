# tests/conftest.py
import pathlib
import textwrap
import types

import discord
import pytest

from listener_handler import config as handler_config


class FakeClient:
    """Records add_listener/login calls the way commands.Bot would receive them."""

    def __init__(self, valid_token="valid-token", login_error=None):
        self.valid_token = valid_token
        self.login_error = login_error
        self.logged_in = False
        self.listeners: list[tuple[str, object]] = []
        self.fired: list[tuple] = []

    async def login(self, token):
        if self.login_error is not None:
            raise self.login_error
        if token != self.valid_token:
            raise discord.LoginFailure("Improper token has been passed.")
        self.logged_in = True

    def add_listener(self, func, name):
        self.listeners.append((name, func))

    async def fire(self, name, *args):
        for listener_name, func in self.listeners:
            if listener_name == name:
                await func(*args)


@pytest.fixture
def client():
    return FakeClient()


@pytest.fixture
def make_message():
    def _make(content: str):
        return types.SimpleNamespace(content=content, calls=[])

    return _make


@pytest.fixture
def write_listener(tmp_path: pathlib.Path):
    """Write a listener source file under tmp_path and return its path."""

    def _write(relpath: str, source: str) -> pathlib.Path:
        path = tmp_path / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(source), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def command_source():
    """Source of a command listener class recording its invocations on the message."""

    def _source(aliases, tag: str = "cmd") -> str:
        return f"""
        from listener_handler import CommandListener


        class Command(CommandListener):
            aliases = {aliases!r}

            async def listener(self, context):
                context.message.calls.append(({tag!r}, context.command_name, context.args))
        """

    return _source


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch, tmp_path):
    # Keep a developer's .env and shell env out of settings-based tests
    monkeypatch.chdir(tmp_path)
    for var in ("DISCORD_TOKEN", "EVENTS_FOLDER", "COMMANDS_FOLDER", "HANDLER_VERBOSE", "COMMAND_PREFIX"):
        monkeypatch.delenv(var, raising=False)
    handler_config._settings = None
    yield
    handler_config._settings = None
