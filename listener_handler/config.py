"""ハンドラー設定管理モジュール

環境変数 (.env を含む) からハンドラーの設定を読み込む。
未設定の項目は適切なデフォルト値を持つ。
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class HandlerSettings(BaseSettings):
    """ハンドラー設定クラス

    環境変数から設定を読み込み、型チェックとバリデーションを実行します。
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # === 認証 ===
    discord_token: str | None = None

    # === リスナーフォルダ（エントリーモジュールのディレクトリからの相対パス） ===
    events_folder: str | None = None
    commands_folder: str | None = None

    # === 動作設定 ===
    handler_verbose: bool = False
    command_prefix: str = "!"


# グローバル設定インスタンス
_settings: HandlerSettings | None = None


def get_settings() -> HandlerSettings:
    """設定インスタンスを取得（シングルトン）"""
    global _settings
    if _settings is None:
        _settings = HandlerSettings()
    return _settings


def reload_settings() -> HandlerSettings:
    """設定を再読み込み

    パッケージ内からは呼ばれない。テストで環境変数を差し替えた後に使う。
    """
    global _settings
    _settings = HandlerSettings()
    return _settings
