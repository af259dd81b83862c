"""
リスナーハンドラー メインモジュール

イベント・コマンドフォルダのスキャン、クライアントへのログイン、
受信メッセージのコマンドディスパッチをまとめて提供します。
"""

import inspect
import logging
import os
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

import discord

from listener_handler.config import HandlerSettings, get_settings
from listener_handler.exceptions import AuthError, ConfigurationError
from listener_handler.handlers import CommandDispatcher, EventBinder
from listener_handler.loader import FolderScanner
from listener_handler.models import (
    CommandListenerDescriptor,
    EventListenerDescriptor,
    ListenerClient,
    ListenerContext,
    ListenerKind,
)
from listener_handler.state import ListenerRegistry

logger = logging.getLogger(__name__)

LoadedCallback = Callable[[ListenerContext], Union[Awaitable[Any], Any]]


def entry_module_dir() -> Path:
    """エントリーモジュール（__main__）のディレクトリを取得

    対話環境などで __main__ にファイルがない場合はカレントディレクトリ。
    """
    main_file = getattr(sys.modules.get("__main__"), "__file__", None)
    if main_file:
        return Path(main_file).resolve().parent
    return Path(os.getcwd())


class Handler:
    """リスナーハンドラー

    責務:
    - クライアントのログイン
    - イベント・コマンドフォルダのスキャンと登録
    - 受信メッセージのコマンドディスパッチ
    """

    def __init__(
        self,
        client: ListenerClient,
        token: Optional[str] = None,
        verbose: bool = False,
        events_folder: Optional[str] = None,
        commands_folder: Optional[str] = None,
        base_path: Optional[Union[str, Path]] = None,
        prefix: str = "!",
    ) -> None:
        """初期化

        Args:
            client: discord.ext.commands.Bot などのクライアント
            token: ログインに使うトークン（login() を呼ぶ場合のみ必須）
            verbose: 読み込み通知を INFO で出力するか
            events_folder: イベントフォルダ（base_path からの相対パス）
            commands_folder: コマンドフォルダ（base_path からの相対パス）
            base_path: フォルダ解決の基準ディレクトリ（省略時はエントリーモジュールのディレクトリ）
            prefix: on_message で使うコマンド接頭辞
        """
        self.client = client
        self.token = token
        self.verbose = verbose
        self.events_folder = events_folder
        self.commands_folder = commands_folder
        self.base_path = Path(base_path) if base_path is not None else None
        self.prefix = prefix

        self.scanner = FolderScanner(verbose=verbose)

        # ディスパッチが参照するのは常に確定済みのレジストリ
        self._event_registry = ListenerRegistry()
        self._dispatcher = CommandDispatcher(ListenerRegistry().freeze())

        logger.info(
            "Handler initialized",
            extra={
                "events_folder": events_folder,
                "commands_folder": commands_folder,
                "verbose": verbose,
            }
        )

    @classmethod
    def from_settings(
        cls,
        client: ListenerClient,
        settings: Optional[HandlerSettings] = None,
        **overrides: Any,
    ) -> "Handler":
        """設定からハンドラーを生成

        Args:
            client: クライアント
            settings: 設定（省略時はグローバル設定）
            **overrides: コンストラクタ引数の上書き
        """
        settings = settings or get_settings()
        options: dict[str, Any] = {
            "token": settings.discord_token,
            "verbose": settings.handler_verbose,
            "events_folder": settings.events_folder,
            "commands_folder": settings.commands_folder,
            "prefix": settings.command_prefix,
        }
        options.update(overrides)
        return cls(client, **options)

    async def login(self) -> None:
        """設定されたトークンでクライアントにログイン

        Raises:
            AuthError: トークン未設定、トークン不正、または API に接続できない場合
        """
        if not self.token:
            raise AuthError("No token configured for login", reason="missing_token")

        try:
            await self.client.login(self.token)
        except discord.LoginFailure as e:
            raise AuthError("Invalid token", reason="invalid_token") from e
        except Exception as e:
            raise AuthError("Invalid token or Discord API down", reason="unavailable") from e

        logger.info("Client logged in")

    async def run(
        self,
        on_loaded_events: Optional[LoadedCallback] = None,
        on_loaded_commands: Optional[LoadedCallback] = None,
    ) -> None:
        """イベント・コマンドフォルダを順にスキャンする

        どちらのフォルダも設定されていない場合は何もしません。
        エラーはログに記録し、呼び出し元には伝播しません。

        Args:
            on_loaded_events: イベント読み込み完了後に呼ぶコールバック
            on_loaded_commands: コマンド読み込み完了後に呼ぶコールバック
        """
        try:
            context = ListenerContext(client=self.client, handler=self)

            if self.events_folder:
                if self._load_events(self._resolve_folder(self.events_folder)):
                    await self._notify(on_loaded_events, context)

            if self.commands_folder:
                if self._load_commands(self._resolve_folder(self.commands_folder)):
                    await self._notify(on_loaded_commands, context)

        except Exception as e:
            logger.error(
                "Handler run failed",
                extra={"error": str(e)},
                exc_info=True,
            )

    async def import_commands(self, prefix: str, message: Any) -> None:
        """受信メッセージをコマンドとして処理

        Args:
            prefix: コマンド接頭辞
            message: content 属性を持つ受信メッセージ
        """
        await self._dispatcher.dispatch(prefix, message, self.client, self)

    async def on_message(self, message: Any) -> None:
        """設定済みの接頭辞で受信メッセージを処理

        client.add_listener(handler.on_message, "on_message") でそのまま登録できます。
        """
        await self.import_commands(self.prefix, message)

    @property
    def commands(self) -> tuple[CommandListenerDescriptor, ...]:
        """登録済みコマンド（登録順）"""
        return self._dispatcher.registry.commands

    @property
    def event_names(self) -> list[str]:
        """リスナーを登録したイベント名"""
        return self._event_registry.event_names()

    def get_command(self, name: str) -> Optional[CommandListenerDescriptor]:
        """コマンド名から登録済みコマンドを取得"""
        return self._dispatcher.registry.find_command(name.lower())

    def _resolve_folder(self, folder: str) -> Path:
        base = self.base_path if self.base_path is not None else entry_module_dir()
        return base / folder

    def _load_events(self, path: Path) -> bool:
        """イベントフォルダを読み込み、各リスナーをクライアントに登録"""
        try:
            result = self.scanner.scan(path, ListenerKind.EVENTS)
        except ConfigurationError as e:
            logger.error("Events folder is invalid", extra=e.details)
            return False

        binder = EventBinder(self.client, self, registry=self._event_registry)
        for descriptor in result.descriptors:
            if isinstance(descriptor, EventListenerDescriptor):
                binder.bind(descriptor)
        return True

    def _load_commands(self, path: Path) -> bool:
        """コマンドフォルダを読み込み、確定済みレジストリに差し替える"""
        try:
            result = self.scanner.scan(path, ListenerKind.COMMANDS)
        except ConfigurationError as e:
            logger.error("Commands folder is invalid", extra=e.details)
            return False

        registry = ListenerRegistry()
        for descriptor in result.descriptors:
            if isinstance(descriptor, CommandListenerDescriptor):
                registry.register(descriptor)

        self._dispatcher = CommandDispatcher(registry.freeze())
        return True

    @staticmethod
    async def _notify(callback: Optional[LoadedCallback], context: ListenerContext) -> None:
        if callback is None:
            return
        result = callback(context)
        if inspect.isawaitable(result):
            await result
