"""リスナーレジストリ

読み込まれたイベントリスナーとコマンドリスナーを保持します。
スキャン完了後に freeze() され、以降はディスパッチの唯一の参照元になります。
"""

import logging
from collections import defaultdict
from typing import Optional

from listener_handler.exceptions import RegistryFrozenError
from listener_handler.models import (
    CommandListenerDescriptor,
    EventCallback,
    EventListenerDescriptor,
)

logger = logging.getLogger(__name__)


class ListenerRegistry:
    """リスナーレジストリ

    イベント名 -> コールバック列 と、登録順のコマンド記述子列を管理します。
    エイリアスは記述子ごとにまとめて保持し、個別キーには展開しません。
    """

    def __init__(self) -> None:
        """初期化"""
        # イベント名 -> コールバック（登録順、重複可）
        self._events: dict[str, list[EventCallback]] = defaultdict(list)

        # コマンド記述子（登録順）
        self._commands: list[CommandListenerDescriptor] = []

        self._frozen = False

    def freeze(self) -> "ListenerRegistry":
        """レジストリを確定し、以降の登録を禁止する"""
        self._frozen = True
        logger.debug(
            "Listener registry frozen",
            extra={
                "command_count": len(self._commands),
                "event_count": sum(len(v) for v in self._events.values()),
            }
        )
        return self

    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise RegistryFrozenError("Listener registry is frozen; no further registration allowed")

    def add_event(self, descriptor: EventListenerDescriptor) -> None:
        """イベントリスナーを記録

        Args:
            descriptor: イベントリスナー記述子

        Raises:
            RegistryFrozenError: 確定済みの場合
        """
        self._ensure_mutable()
        self._events[descriptor.event_name].append(descriptor.callback)

    def register(self, descriptor: CommandListenerDescriptor) -> None:
        """コマンドリスナーを登録

        エイリアスが他のコマンドと重複していても登録は行われますが、
        ディスパッチでは先に登録されたコマンドが優先されます。

        Args:
            descriptor: コマンドリスナー記述子

        Raises:
            RegistryFrozenError: 確定済みの場合
        """
        self._ensure_mutable()

        shadowed = [a for a in descriptor.aliases if self.find_command(a) is not None]
        if shadowed:
            logger.warning(
                "Command aliases already registered; earlier command takes precedence",
                extra={"aliases": shadowed, "source": str(descriptor.source)}
            )

        self._commands.append(descriptor)

    def find_command(self, command_name: str) -> Optional[CommandListenerDescriptor]:
        """コマンド名に一致する最初のコマンドを取得

        Args:
            command_name: 小文字化済みのコマンド名

        Returns:
            一致したコマンド記述子（見つからない場合はNone）
        """
        for descriptor in self._commands:
            if descriptor.matches(command_name):
                return descriptor
        return None

    @property
    def commands(self) -> tuple[CommandListenerDescriptor, ...]:
        """登録順のコマンド記述子"""
        return tuple(self._commands)

    @property
    def command_count(self) -> int:
        return len(self._commands)

    def event_names(self) -> list[str]:
        """リスナーが登録されているイベント名の一覧"""
        return list(self._events.keys())
