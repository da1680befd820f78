"""
按构建上下文定位 Xcode 工程与文档目录。
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass

from .types import Context, UserContext

SERVICE_PROJECT_NAME = "Exponent"

_NON_ALNUM_RE = re.compile(r"[^A-Za-z0-9]")


@dataclass(frozen=True)
class WorkspacePaths:
    """文档目录（`Supporting`）、iOS 工程目录与工程名。"""

    document_directory: str
    project_directory: str
    project_name: str


def project_name_for(app_name: str) -> str:
    """把应用名转成 Xcode 工程名：去掉非字母数字字符。"""
    return _NON_ALNUM_RE.sub("", app_name or "")


def resolve_workspace_paths(ctx: Context) -> WorkspacePaths:
    """本地工程位于 `<project>/ios/<Name>`；构建服务工程位于工作区模板目录。"""
    if isinstance(ctx, UserContext):
        project_directory = os.path.join(ctx.data.project_path, "ios")
        project_name = project_name_for(str(ctx.config.get("name") or ""))
        if not project_name:
            raise SystemExit("Error: app config must declare a name for local iOS projects.")
    else:
        project_directory = ctx.build.workspace_source_path
        project_name = SERVICE_PROJECT_NAME
        if not project_directory:
            raise SystemExit("Error: service builds require build.workspaceSourcePath.")

    return WorkspacePaths(
        document_directory=os.path.join(project_directory, project_name, "Supporting"),
        project_directory=project_directory,
        project_name=project_name,
    )
