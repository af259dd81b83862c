"""リスナーハンドラー 実行系モジュール

Modules:
    event_binder: イベントリスナーのクライアントへの登録
    command_dispatcher: 受信メッセージのコマンドへのディスパッチ
"""

from listener_handler.handlers.command_dispatcher import CommandDispatcher, parse_command
from listener_handler.handlers.event_binder import EventBinder

__all__ = ["CommandDispatcher", "EventBinder", "parse_command"]
