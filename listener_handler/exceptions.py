"""リスナーハンドラー カスタム例外定義

スキャン・ロード・認証・ディスパッチの各段階で発生するエラーを
種別タグ (kind) 付きの例外階層として定義します。
呼び出し側はメッセージ文字列ではなく例外クラスや kind で分岐できます。
"""

from typing import Any


class HandlerError(Exception):
    """リスナーハンドラー基底例外クラス

    全てのハンドラー固有例外の親クラス。
    エラーメッセージと詳細情報を保持。
    """

    kind = "handler"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        """
        Args:
            message: エラーメッセージ
            details: エラーの詳細情報（デバッグ用）
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(HandlerError):
    """設定エラー

    設定されたフォルダパスがディレクトリでない場合など。
    そのスキャン呼び出しのみが失敗します。
    """

    kind = "configuration"


class LoadError(HandlerError):
    """リスナーファイルのロードエラー

    モジュールの読み込み、インスタンス化、フィールド取得の失敗。
    ログに記録され、該当ファイルはスキップされます。
    """

    kind = "load"

    def __init__(self, message: str, path: Any = None, details: dict[str, Any] | None = None):
        self.path = path
        super().__init__(message, details={"path": str(path), **(details or {})})


class AuthError(HandlerError):
    """認証エラー

    トークン未設定、トークン不正、または Discord API に到達できない場合。
    reason には "missing_token" / "invalid_token" / "unavailable" のいずれかが入り、
    元の例外は __cause__ に保持されます。
    """

    kind = "auth"

    def __init__(self, message: str, reason: str, details: dict[str, Any] | None = None):
        self.reason = reason
        super().__init__(message, details={"reason": reason, **(details or {})})


class DispatchError(HandlerError):
    """コマンド実行時のエラー

    コマンドコールバックが例外を送出した場合に使用。
    ディスパッチャー内でログに記録され、呼び出し元には伝播しません。
    """

    kind = "dispatch"


class RegistryFrozenError(HandlerError):
    """確定済みレジストリへの登録エラー"""

    kind = "registry"
