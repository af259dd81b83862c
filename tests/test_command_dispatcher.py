import logging

import pytest

from listener_handler import CommandListenerDescriptor, RegistryFrozenError
from listener_handler.handlers import CommandDispatcher, parse_command
from listener_handler.state import ListenerRegistry


def recorder(tag):
    async def callback(context):
        context.message.calls.append((tag, context.command_name, context.args))

    return callback


def build_dispatcher(*entries):
    registry = ListenerRegistry()
    for aliases, callback in entries:
        registry.register(CommandListenerDescriptor.from_raw(aliases, callback))
    return CommandDispatcher(registry.freeze())


def test_parse_command():
    assert parse_command("!", "!echo hello world") == ("echo", ["hello", "world"])
    assert parse_command("!", "!PING") == ("ping", [])
    # single-space split keeps empty tokens
    assert parse_command("!", "!echo  a") == ("echo", ["", "a"])
    assert parse_command("!", "hello") is None
    assert parse_command("$$", "$$Roll 2d6") == ("roll", ["2d6"])


def test_prefix_match_is_case_sensitive():
    assert parse_command("bot.", "BOT.ping") is None
    assert parse_command("bot.", "bot.ping") == ("ping", [])


@pytest.mark.asyncio
async def test_dispatch_invokes_matching_command(client, make_message):
    dispatcher = build_dispatcher((["ping", "p"], recorder("ping")))
    message = make_message("!ping")

    await dispatcher.dispatch("!", message, client, handler=None)

    assert message.calls == [("ping", "ping", [])]


@pytest.mark.asyncio
async def test_dispatch_passes_full_context(client, make_message):
    seen = []

    def callback(context):
        seen.append(context)

    dispatcher = build_dispatcher(("echo", callback))
    message = make_message("!echo hello world")
    handler = object()

    await dispatcher.dispatch("!", message, client, handler)

    context = seen[0]
    assert context.command_name == "echo"
    assert context.args == ["hello", "world"]
    assert context.prefix == "!"
    assert context.message is message
    assert context.client is client
    assert context.handler is handler


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["!ping", "!PING", "!Ping"])
async def test_alias_matching_is_case_insensitive(client, make_message, content):
    dispatcher = build_dispatcher((["Ping"], recorder("ping")))
    message = make_message(content)

    await dispatcher.dispatch("!", message, client, handler=None)

    assert message.calls == [("ping", "ping", [])]


@pytest.mark.asyncio
async def test_message_without_prefix_triggers_nothing(client, make_message):
    dispatcher = build_dispatcher((["hello"], recorder("hello")))
    message = make_message("hello")

    await dispatcher.dispatch("!", message, client, handler=None)

    assert message.calls == []


@pytest.mark.asyncio
async def test_unknown_command_is_a_noop(client, make_message):
    dispatcher = build_dispatcher((["ping"], recorder("ping")))
    message = make_message("!pong")

    await dispatcher.dispatch("!", message, client, handler=None)

    assert message.calls == []


@pytest.mark.asyncio
async def test_alias_match_is_exact_not_substring(client, make_message):
    dispatcher = build_dispatcher(("help", recorder("help")))
    message = make_message("!hel")

    await dispatcher.dispatch("!", message, client, handler=None)

    assert message.calls == []


@pytest.mark.asyncio
async def test_earlier_registration_wins_shared_alias(client, make_message):
    dispatcher = build_dispatcher(
        (["roll", "r"], recorder("first")),
        (["r", "random"], recorder("second")),
    )

    shared = make_message("!r")
    await dispatcher.dispatch("!", shared, client, handler=None)
    assert shared.calls == [("first", "r", [])]

    unique = make_message("!random")
    await dispatcher.dispatch("!", unique, client, handler=None)
    assert unique.calls == [("second", "random", [])]


@pytest.mark.asyncio
async def test_failing_command_is_logged_and_swallowed(client, make_message, caplog):
    async def boom(context):
        raise RuntimeError("kaboom")

    dispatcher = build_dispatcher(("boom", boom))

    await dispatcher.dispatch("!", make_message("!boom"), client, handler=None)

    assert "Command execution failed" in caplog.text
    record = next(r for r in caplog.records if r.getMessage() == "Command execution failed")
    assert record.levelno == logging.ERROR
    assert record.command_name == "boom"


def test_registry_rejects_registration_after_freeze():
    registry = ListenerRegistry().freeze()

    with pytest.raises(RegistryFrozenError):
        registry.register(CommandListenerDescriptor.from_raw("late", lambda context: None))


def test_registry_keeps_alias_sets_whole():
    registry = ListenerRegistry()
    registry.register(CommandListenerDescriptor.from_raw(["a", "b"], recorder("ab")))
    registry.register(CommandListenerDescriptor.from_raw(["c"], recorder("c")))

    assert registry.command_count == 2
    assert registry.commands[0].aliases == ("a", "b")
    assert registry.find_command("b") is registry.commands[0]
    assert registry.find_command("d") is None


def test_descriptor_rejects_empty_aliases():
    with pytest.raises(ValueError):
        CommandListenerDescriptor.from_raw([], recorder("x"))
    with pytest.raises(ValueError):
        CommandListenerDescriptor.from_raw("", recorder("x"))
