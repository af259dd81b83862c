"""Discord Bot 用リスナーハンドラー

イベント・コマンドのリスナーファイルをフォルダから読み込み、
クライアントへの登録とコマンドのディスパッチを行います。
"""

from listener_handler.exceptions import (
    AuthError,
    ConfigurationError,
    DispatchError,
    HandlerError,
    LoadError,
    RegistryFrozenError,
)
from listener_handler.handler import Handler
from listener_handler.models import (
    CommandContext,
    CommandListener,
    CommandListenerDescriptor,
    EventListener,
    EventListenerDescriptor,
    ListenerContext,
    ListenerKind,
)

__all__ = [
    "AuthError",
    "CommandContext",
    "CommandListener",
    "CommandListenerDescriptor",
    "ConfigurationError",
    "DispatchError",
    "EventListener",
    "EventListenerDescriptor",
    "Handler",
    "HandlerError",
    "ListenerContext",
    "ListenerKind",
    "LoadError",
    "RegistryFrozenError",
]
