"""
带备份的文档存储。

一次打开即一个事务（`DocumentTransaction`）：
1) 同一文档在同一存储内同时只允许一个事务（按文档加锁）。
2) 首次打开且没有备份时，把当前磁盘内容（不存在则为空字典）写成 `<file>.bak`。
3) `commit()` 原子写回；`discard()` 放弃修改。两者之一必须在退出时执行，
   `with` 块未显式提交时自动放弃。
4) 备份在流程成功后由调用方 `clean_backup()` 清理；失败时保留用于手动恢复。
"""

from __future__ import annotations

import os
import shutil
import threading
from collections.abc import Callable
from typing import Any

from .errors import DocumentWriteError
from .plist_edit import load_plist_dict, plist_filename, save_plist_atomic

Transform = Callable[[dict[str, Any]], dict[str, Any]]


def document_path(directory: str, name: str) -> str:
    return os.path.join(directory, plist_filename(name))


def backup_path(directory: str, name: str) -> str:
    return document_path(directory, name) + ".bak"


def document_key(directory: str, name: str) -> tuple[str, str]:
    """锁与触达记录共用的文档标识（目录取绝对路径）。"""
    return (os.path.abspath(directory), name)


class DocumentTransaction:
    """单个文档的一次读-改-写事务。"""

    def __init__(self, store: DocumentStore, directory: str, name: str) -> None:
        self.directory = directory
        self.name = name
        self.path = document_path(directory, name)
        self._store = store
        self._done = False
        self._key = document_key(directory, name)
        self._lock = store._lock_for(directory, name)
        # 锁不可重入：同一线程重复打开会永久阻塞，直接报错。
        if store._owners.get(self._key) == threading.get_ident():
            raise RuntimeError(f"document already open in this thread: {self.path}")
        self._lock.acquire()
        store._owners[self._key] = threading.get_ident()
        try:
            store._ensure_backup(directory, name)
            self.tree: dict[str, Any] = load_plist_dict(self.path)
        except BaseException:
            self._release()
            raise

    @property
    def finished(self) -> bool:
        return self._done

    def _release(self) -> None:
        self._done = True
        self._store._owners.pop(self._key, None)
        self._lock.release()

    def _finish(self) -> None:
        if self._done:
            raise RuntimeError(f"transaction already finished: {self.path}")
        self._release()

    def commit(self, tree: dict[str, Any] | None = None) -> dict[str, Any]:
        """原子写回并结束事务；写入失败同样结束事务并抛出 `DocumentWriteError`。"""
        if self._done:
            raise RuntimeError(f"transaction already finished: {self.path}")
        if tree is not None:
            self.tree = tree
        try:
            save_plist_atomic(self.path, self.tree)
        finally:
            self._finish()
        return self.tree

    def discard(self) -> None:
        """放弃内存中的修改并结束事务。"""
        self._finish()

    def __enter__(self) -> DocumentTransaction:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if not self._done:
            self.discard()


class DocumentStore:
    """按 `(目录, 文档名)` 管理事务、备份与本次运行触达过的文档。

    每个文档一把不可重入锁；同一线程在提交或放弃前再次 `open` 同一文档会抛出
    `RuntimeError`，其他线程则阻塞等待。
    """

    def __init__(self) -> None:
        self._locks: dict[tuple[str, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._touched: list[tuple[str, str]] = []
        self._owners: dict[tuple[str, str], int] = {}

    @property
    def touched(self) -> list[tuple[str, str]]:
        """本存储打开过的文档，按首次打开顺序。"""
        return list(self._touched)

    def _lock_for(self, directory: str, name: str) -> threading.Lock:
        key = document_key(directory, name)
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            if key not in self._touched:
                self._touched.append(key)
            return lock

    def _ensure_backup(self, directory: str, name: str) -> None:
        bak = backup_path(directory, name)
        if os.path.exists(bak):
            return
        src = document_path(directory, name)
        if os.path.exists(src):
            # 先校验能否解析，避免把坏文件当作备份。
            load_plist_dict(src)
            try:
                shutil.copy(src, bak)
            except OSError as e:
                raise DocumentWriteError(f"failed to back up {src}: {e}") from e
        else:
            save_plist_atomic(bak, {})

    def open(self, directory: str, name: str) -> DocumentTransaction:
        """打开文档并返回事务句柄（必要时先创建备份）。"""
        return DocumentTransaction(self, directory, name)

    def modify(self, directory: str, name: str, transform: Transform) -> dict[str, Any]:
        """打开 -> 变换 -> 原子写回，返回新的文档树。变换抛错时不写盘。"""
        with self.open(directory, name) as doc:
            return doc.commit(transform(doc.tree))

    def clean_backup(self, directory: str, name: str, restore: bool = False) -> None:
        """删除备份；`restore=True` 时先用备份覆盖当前文档（手动回滚）。"""
        bak = backup_path(directory, name)
        if not os.path.exists(bak):
            return
        if restore:
            save_plist_atomic(document_path(directory, name), load_plist_dict(bak))
        os.remove(bak)
