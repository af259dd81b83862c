"""コマンドディスパッチサービス

受信メッセージからコマンド名と引数を解析し、
一致するコマンドリスナーを1つだけ実行します。
"""

import inspect
import logging
from typing import TYPE_CHECKING, Any, Optional

from listener_handler.exceptions import DispatchError
from listener_handler.models import CommandContext, ListenerClient
from listener_handler.state.listener_registry import ListenerRegistry

if TYPE_CHECKING:
    from listener_handler.handler import Handler

logger = logging.getLogger(__name__)


def parse_command(prefix: str, content: str) -> Optional[tuple[str, list[str]]]:
    """メッセージ本文からコマンド名と引数を取り出す

    Args:
        prefix: コマンド接頭辞（大文字小文字を区別）
        content: メッセージ本文

    Returns:
        (小文字化したコマンド名, 引数リスト)。接頭辞で始まらない場合はNone
    """
    if not content.startswith(prefix):
        return None

    # 半角スペース1文字ごとに分割（連続スペースは空の引数になる）
    command_token, *args = content.split(" ")
    return command_token[len(prefix):].lower(), args


class CommandDispatcher:
    """コマンドディスパッチサービス

    責務:
    - 接頭辞の判定とコマンド解析
    - 登録順で最初に一致したコマンドの実行
    - コマンド実行エラーのログ記録（呼び出し元へは伝播しない）
    """

    def __init__(self, registry: ListenerRegistry):
        """初期化

        Args:
            registry: 参照するレジストリ
        """
        self.registry = registry

    async def dispatch(
        self,
        prefix: str,
        message: Any,
        client: ListenerClient,
        handler: "Handler",
    ) -> None:
        """メッセージをコマンドにディスパッチ

        Args:
            prefix: コマンド接頭辞
            message: content 属性を持つ受信メッセージ
            client: コンテキストに含めるクライアント
            handler: コンテキストに含めるハンドラー
        """
        parsed = parse_command(prefix, message.content)
        if parsed is None:
            return

        command_name, args = parsed
        descriptor = self.registry.find_command(command_name)
        if descriptor is None:
            logger.debug("No command matched", extra={"command_name": command_name})
            return

        context = CommandContext(
            command_name=command_name,
            args=args,
            prefix=prefix,
            message=message,
            client=client,
            handler=handler,
        )

        try:
            await self._invoke(descriptor.callback, context, descriptor.source)
        except DispatchError as e:
            logger.error(
                "Command execution failed",
                extra={**e.details, "error": str(e.__cause__)},
                exc_info=True,
            )
            return

        logger.debug(
            "Command executed",
            extra={"command_name": command_name, "arg_count": len(args)}
        )

    async def _invoke(self, callback, context: CommandContext, source: Any) -> None:
        """コマンドコールバックを実行（内部メソッド）

        Raises:
            DispatchError: コールバックが例外を送出した場合
        """
        try:
            result = callback(context)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            raise DispatchError(
                f"Command '{context.command_name}' failed",
                details={"command_name": context.command_name, "source": str(source)},
            ) from e
