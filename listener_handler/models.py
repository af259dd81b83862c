"""リスナー用型定義

リスナー記述子・コールバックに渡すコンテキスト・クライアントの
インターフェースを定義します。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Protocol, Union

if TYPE_CHECKING:
    from listener_handler.handler import Handler


class ListenerKind(Enum):
    """スキャン対象フォルダの種別"""
    EVENTS = "events"
    COMMANDS = "commands"


class ListenerClient(Protocol):
    """ハンドラーが利用するクライアントの機能

    discord.ext.commands.Bot はこのインターフェースを満たします。
    """

    async def login(self, token: str) -> None: ...

    def add_listener(self, func: Callable[..., Awaitable[Any]], name: str) -> None: ...


@dataclass(frozen=True)
class ListenerContext:
    """イベントコールバックと読み込み完了コールバックに渡すコンテキスト"""
    client: ListenerClient
    handler: Handler


@dataclass(frozen=True)
class CommandContext:
    """コマンドコールバックに渡すコンテキスト"""
    command_name: str
    args: list[str]
    prefix: str
    message: Any  # discord.Message など content 属性を持つオブジェクト
    client: ListenerClient
    handler: Handler


EventCallback = Callable[..., Union[Awaitable[Any], Any]]
CommandCallback = Callable[[CommandContext], Union[Awaitable[Any], Any]]


@dataclass(frozen=True)
class EventListenerDescriptor:
    """イベントリスナー記述子"""
    event_name: str
    callback: EventCallback
    source: Path | None = field(default=None, compare=False)


@dataclass(frozen=True)
class CommandListenerDescriptor:
    """コマンドリスナー記述子

    aliases は小文字化・重複除去済み（初出順）。
    """
    aliases: tuple[str, ...]
    callback: CommandCallback
    source: Path | None = field(default=None, compare=False)

    @classmethod
    def from_raw(
        cls,
        aliases: str | list[str] | tuple[str, ...],
        callback: CommandCallback,
        source: Path | None = None,
    ) -> CommandListenerDescriptor:
        """文字列または文字列のシーケンスからエイリアスを正規化して生成

        Raises:
            ValueError: エイリアスが空、または文字列以外を含む場合
        """
        if isinstance(aliases, str):
            aliases = [aliases]

        normalized: list[str] = []
        for alias in aliases:
            if not isinstance(alias, str):
                raise ValueError(f"Alias must be a string, got {type(alias).__name__}")
            alias = alias.lower()
            if not alias:
                raise ValueError("Alias must be a non-empty string")
            if alias not in normalized:
                normalized.append(alias)

        if not normalized:
            raise ValueError("Command listener must declare at least one alias")

        return cls(aliases=tuple(normalized), callback=callback, source=source)

    def matches(self, command_name: str) -> bool:
        """コマンド名がエイリアスに完全一致するか"""
        return command_name in self.aliases


ListenerDescriptor = Union[EventListenerDescriptor, CommandListenerDescriptor]


class EventListener:
    """イベントリスナーの基底クラス

    サブクラスは event にイベント名を設定し、listener を実装します。
    listener はコンテキストに続けてイベント本来の引数を受け取ります。
    """

    event: str = ""

    async def listener(self, context: ListenerContext, *args: Any) -> None:
        raise NotImplementedError


class CommandListener:
    """コマンドリスナーの基底クラス

    サブクラスは aliases（文字列またはリスト）を設定し、listener を実装します。
    """

    aliases: str | list[str] | tuple[str, ...] = ()

    async def listener(self, context: CommandContext) -> None:
        raise NotImplementedError
