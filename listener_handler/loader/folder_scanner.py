"""
リスナーフォルダのスキャンとリスナーモジュールの動的読み込みを行うモジュール
"""

import importlib.machinery
import importlib.util
import inspect
import itertools
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any, List, Optional, Tuple

from listener_handler.exceptions import ConfigurationError, LoadError
from listener_handler.models import (
    CommandListener,
    CommandListenerDescriptor,
    EventListener,
    EventListenerDescriptor,
    ListenerDescriptor,
    ListenerKind,
)

logger = logging.getLogger(__name__)

# リスナーとして読み込むファイル拡張子
LISTENER_SUFFIXES = (".py", ".pyw")

EXCLUDED_DIRS = {"__pycache__"}

# 動的読み込みしたモジュールの名前空間
MODULE_NAMESPACE = "listener_handler.listeners"

_module_counter = itertools.count()


@dataclass
class ScanResult:
    """1回のスキャン結果"""
    root: Path
    kind: ListenerKind
    descriptors: List[ListenerDescriptor] = field(default_factory=list)
    errors: List[LoadError] = field(default_factory=list)


class FolderScanner:
    """リスナーフォルダを走査し、リスナー記述子を生成するクラス

    ディレクトリは明示的なワークリストで深さ優先に走査します。
    1ファイルの読み込み失敗はそのファイルだけをスキップし、
    サブディレクトリの一覧取得失敗はそのディレクトリだけを放棄します。
    """

    def __init__(self, verbose: bool = False, suffixes: tuple[str, ...] = LISTENER_SUFFIXES) -> None:
        """
        Args:
            verbose: 読み込み通知を INFO で出力するか
            suffixes: 読み込み対象のファイル拡張子
        """
        self.verbose = verbose
        self.suffixes = suffixes

    def scan(self, path: str | Path, kind: ListenerKind) -> ScanResult:
        """
        フォルダ配下のリスナーファイルをすべて読み込む

        Args:
            path: スキャンするディレクトリ
            kind: イベントフォルダかコマンドフォルダか

        Returns:
            読み込んだ記述子と、スキップしたファイルのエラー

        Raises:
            ConfigurationError: path がディレクトリでない場合
        """
        root = Path(path)
        if not root.is_dir():
            raise ConfigurationError(
                f"The path {root} is not a directory",
                details={"path": str(root), "kind": kind.value},
            )

        result = ScanResult(root=root, kind=kind)

        # (パス, ディレクトリか) を後入れ先出しで取り出すため、一覧は逆順に積む
        stack: List[Tuple[Path, bool]] = [(root, True)]
        while stack:
            current, is_dir = stack.pop()
            if is_dir:
                entries = self._list_directory(current)
                if entries is None:
                    # このディレクトリは放棄し、残りのワークリストを続行
                    continue
                stack.extend(reversed(entries))
                continue

            # 対象外の拡張子は読み込まず、ログにも出さない
            if not self._is_listener_file(current):
                continue

            try:
                descriptor = self._load_descriptor(current, kind)
            except LoadError as e:
                # このファイルだけをスキップ
                logger.error(
                    "Failed to load listener",
                    extra={"path": str(current), "kind": kind.value, "error": str(e)},
                    exc_info=e.__cause__ or e,
                )
                result.errors.append(e)
                continue

            if descriptor is None:
                continue

            result.descriptors.append(descriptor)
            self._log_loaded(descriptor)

        logger.info(
            "Listener folder scanned",
            extra={
                "path": str(root),
                "kind": kind.value,
                "loaded": len(result.descriptors),
                "failed": len(result.errors),
            }
        )
        return result

    def _list_directory(self, directory: Path) -> Optional[List[Tuple[Path, bool]]]:
        """ディレクトリの子要素を一覧取得（順序はファイルシステム依存）

        シンボリックリンクのディレクトリは辿らない。
        """
        children: List[Tuple[Path, bool]] = []
        try:
            with os.scandir(directory) as it:
                for entry in it:
                    is_dir = entry.is_dir(follow_symlinks=False)
                    if is_dir and (entry.name in EXCLUDED_DIRS or entry.name.startswith(".")):
                        continue
                    if entry.is_symlink() and entry.is_dir():
                        logger.debug("Skipping symlinked directory", extra={"path": entry.path})
                        continue
                    children.append((directory / entry.name, is_dir))
        except OSError as e:
            logger.error(
                "Failed to list listener directory",
                extra={"path": str(directory), "error": str(e)},
            )
            return None
        return children

    def _is_listener_file(self, path: Path) -> bool:
        return path.suffix in self.suffixes and not path.name.startswith("_")

    def _load_descriptor(self, path: Path, kind: ListenerKind) -> Optional[ListenerDescriptor]:
        """
        1ファイルを読み込み、記述子を生成する

        Returns:
            記述子（リスナーをエクスポートしていないファイルはNone）

        Raises:
            LoadError: 読み込み、インスタンス化、フィールド取得に失敗した場合
        """
        module = self._import_file(path)

        try:
            return self._build_descriptor(module, path, kind)
        except LoadError:
            raise
        except Exception as e:
            raise LoadError(f"Failed to read listener from {path}", path=path) from e

    def _build_descriptor(
        self, module: ModuleType, path: Path, kind: ListenerKind
    ) -> Optional[ListenerDescriptor]:
        """読み込み済みモジュールからエクスポートを取り出し、記述子を組み立てる"""
        export = self._resolve_export(module)
        if export is None:
            logger.debug("No listener export found", extra={"path": str(path)})
            return None

        try:
            instance = export() if inspect.isclass(export) else export
        except Exception as e:
            raise LoadError(f"Failed to instantiate listener in {path}", path=path) from e

        listener = getattr(instance, "listener", None)
        if not callable(listener):
            raise LoadError(f"Missing callable 'listener' in {path}", path=path)

        if kind is ListenerKind.EVENTS:
            event = getattr(instance, "event", None)
            if not isinstance(event, str) or not event:
                raise LoadError(
                    f"Invalid 'event' in {path}: must be a non-empty string", path=path
                )
            return EventListenerDescriptor(event_name=event, callback=listener, source=path)

        aliases = getattr(instance, "aliases", None)
        if aliases is None:
            raise LoadError(f"Missing 'aliases' in {path}", path=path)
        try:
            return CommandListenerDescriptor.from_raw(aliases, listener, source=path)
        except (TypeError, ValueError) as e:
            raise LoadError(f"Invalid 'aliases' in {path}: {e}", path=path) from e

    def _import_file(self, path: Path) -> ModuleType:
        """ファイルを一意なモジュール名で読み込む"""
        module_name = f"{MODULE_NAMESPACE}.{path.stem}_{next(_module_counter)}"
        # 拡張子によらず SourceFileLoader で読み込む
        loader = importlib.machinery.SourceFileLoader(module_name, str(path))
        spec = importlib.util.spec_from_file_location(module_name, path, loader=loader)
        if spec is None or spec.loader is None:
            raise LoadError(f"Cannot create module spec for {path}", path=path)

        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            del sys.modules[module_name]
            raise LoadError(f"Failed to import {path}", path=path) from e
        return module

    @staticmethod
    def _resolve_export(module: ModuleType) -> Any:
        """
        モジュールからリスナーを取り出す

        優先順位:
        1. default 属性（明示的なエクスポート）
        2. モジュール内で定義された EventListener / CommandListener のサブクラス
        3. listener 属性を持つモジュール自体
        """
        export = getattr(module, "default", None)
        if export is not None:
            return export

        candidates = [
            obj for obj in vars(module).values()
            if inspect.isclass(obj)
            and obj.__module__ == module.__name__
            and issubclass(obj, (EventListener, CommandListener))
        ]
        if candidates:
            if len(candidates) > 1:
                logger.warning(
                    "Multiple listener classes in one file; using the first",
                    extra={"module_name": module.__name__, "classes": [c.__name__ for c in candidates]}
                )
            return candidates[0]

        if hasattr(module, "listener"):
            return module

        return None

    def _log_loaded(self, descriptor: ListenerDescriptor) -> None:
        level = logging.INFO if self.verbose else logging.DEBUG
        if isinstance(descriptor, EventListenerDescriptor):
            logger.log(
                level,
                f"[HANDLER] Event '{descriptor.event_name}' loaded",
                extra={"source": str(descriptor.source)}
            )
        else:
            logger.log(
                level,
                f"[HANDLER] Command which aliases are [{', '.join(descriptor.aliases)}] loaded",
                extra={"source": str(descriptor.source)}
            )
