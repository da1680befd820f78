"""
plist 文档的磁盘读写。

设计原则：
- 文档根节点必须是字典；文件不存在时视为空字典。
- 写入先落到同目录临时文件再 `os.replace`，失败时磁盘上保留原内容。
- 覆盖已有文件时保留其权限位；新文件按 umask 取默认权限。
"""

from __future__ import annotations

import os
import plistlib
import stat
import tempfile
from typing import Any
from xml.parsers.expat import ExpatError

from .errors import DocumentReadError, DocumentWriteError


def plist_filename(name: str) -> str:
    """文档名到文件名：无扩展名时补 `.plist`（`Info` -> `Info.plist`）。"""
    return name if "." in name else f"{name}.plist"


def load_plist(path: str) -> Any:
    """从磁盘读取 plist（自动识别 XML/Binary）并返回对象。"""
    with open(path, "rb") as f:
        return plistlib.load(f)


def load_plist_dict(path: str) -> dict[str, Any]:
    """读取根节点为字典的 plist；文件不存在时返回空字典。"""
    if not os.path.exists(path):
        return {}
    try:
        obj = load_plist(path)
    except (plistlib.InvalidFileException, ExpatError, ValueError, OSError) as e:
        raise DocumentReadError(f"failed to parse plist: {path}: {e}") from e
    if not isinstance(obj, dict):
        raise DocumentReadError(f"plist root is not a dict: {path}")
    return obj


def _target_mode(path: str) -> int:
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def save_plist_atomic(path: str, obj: dict[str, Any]) -> None:
    """以 XML plist 格式原子写回磁盘。"""
    try:
        data = plistlib.dumps(obj, fmt=plistlib.FMT_XML, sort_keys=False)
    except (TypeError, ValueError, OverflowError) as e:
        raise DocumentWriteError(f"failed to encode plist: {path}: {e}") from e

    directory = os.path.dirname(path) or "."
    tmp_path = ""
    try:
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{os.path.basename(path)}.", suffix=".tmp", dir=directory
        )
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        # mkstemp 创建的临时文件为 0600。
        os.chmod(tmp_path, _target_mode(path))
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path and os.path.exists(tmp_path):
            try:
                os.remove(tmp_path)
            except OSError:
                pass
        raise DocumentWriteError(f"failed to write plist: {path}: {e}") from e
