"""イベントバインドサービス

イベントリスナーをクライアントのイベントに購読させます。
コールバックにはコンテキストを明示的な第1引数として渡します。
"""

import functools
import inspect
import logging
from typing import TYPE_CHECKING, Any, Optional

from listener_handler.models import (
    EventCallback,
    EventListenerDescriptor,
    ListenerClient,
    ListenerContext,
)
from listener_handler.state.listener_registry import ListenerRegistry

if TYPE_CHECKING:
    from listener_handler.handler import Handler

logger = logging.getLogger(__name__)


def listener_event_name(event_name: str) -> str:
    """discord.py のリスナー名（on_ 接頭辞付き）に変換"""
    return event_name if event_name.startswith("on_") else f"on_{event_name}"


class EventBinder:
    """イベントバインドサービス

    責務:
    - コールバックへのコンテキスト注入
    - クライアントへのリスナー登録
    - 登録したイベントのレジストリへの記録
    """

    def __init__(
        self,
        client: ListenerClient,
        handler: "Handler",
        registry: Optional[ListenerRegistry] = None,
    ):
        """初期化

        Args:
            client: リスナーを登録するクライアント
            handler: コンテキストに含めるハンドラー
            registry: 登録したイベントを記録するレジストリ
        """
        self.client = client
        self.handler = handler
        self.registry = registry

    def bind(self, descriptor: EventListenerDescriptor) -> None:
        """イベントリスナーを登録

        同じイベント名への複数登録はすべて保持され、すべて発火します。

        Args:
            descriptor: イベントリスナー記述子
        """
        wrapped = self._wrap(descriptor.callback)
        name = listener_event_name(descriptor.event_name)

        self.client.add_listener(wrapped, name)
        if self.registry is not None:
            self.registry.add_event(descriptor)

        logger.debug(
            "Event listener bound",
            extra={"event": descriptor.event_name, "listener_name": name}
        )

    def _wrap(self, callback: EventCallback):
        """コンテキストを先頭引数として渡すコルーチンでコールバックを包む"""
        context = ListenerContext(client=self.client, handler=self.handler)

        @functools.wraps(callback)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            result = callback(context, *args, **kwargs)
            if inspect.isawaitable(result):
                result = await result
            return result

        return wrapper
