"""
流程通用工具：外部命令执行与中间目录清理。
"""

from __future__ import annotations

import os
import shutil
import subprocess

from .errors import CollaboratorError


def run_cmd(cmd: list[str], *, cwd: str | None = None, verbose: bool = False) -> None:
    """执行外部命令，失败时抛出带 stderr 的 `CollaboratorError`。"""
    if verbose:
        if cwd:
            print(f"+ (cd {cwd}) {' '.join(cmd)}")
        else:
            print(f"+ {' '.join(cmd)}")
    try:
        p = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, cwd=cwd, check=False)
    except OSError as e:
        raise CollaboratorError(f"Command failed: {' '.join(cmd)}\n{e}") from e
    if p.returncode != 0:
        raise CollaboratorError(
            f"Command failed: {' '.join(cmd)}\n{p.stderr.decode(errors='replace')}"
        )


def remove_intermediates(path: str) -> bool:
    """存在时递归删除构建中间目录，返回是否删除。"""
    if not path or not os.path.isdir(path):
        return False
    shutil.rmtree(path)
    return True
