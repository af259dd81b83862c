"""リスナーフォルダのスキャンと動的読み込み"""

from listener_handler.loader.folder_scanner import LISTENER_SUFFIXES, FolderScanner, ScanResult

__all__ = ["FolderScanner", "LISTENER_SUFFIXES", "ScanResult"]
