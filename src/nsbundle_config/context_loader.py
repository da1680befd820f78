"""
从 JSON 文件构建上下文（供 CLI 使用）。

文件结构：
  {
    "type": "user" | "service",
    "config": {...},                       # 可省略：user 取 data.exp，service 取 data.manifest
    "published": {"url": "...", "releaseChannel": "default"},
    "data": {...},                         # user: exp/projectPath；service: manifest/bundleUrl/...
    "build": {"configuration": "Release", "workspaceSourcePath": "..."}   # 仅 service
  }
"""

from __future__ import annotations

import json
import os
from typing import Any

from .types import (
    BuildMeta,
    Context,
    Published,
    ServiceContext,
    ServiceData,
    UserContext,
    UserData,
)


def _dict(obj: Any, what: str) -> dict[str, Any]:
    if obj is None:
        return {}
    if not isinstance(obj, dict):
        raise SystemExit(f"Error: context field {what} must be an object")
    return obj


def context_from_dict(raw: dict[str, Any], *, base_dir: str = "") -> Context:
    """把 JSON 对象转换成 `UserContext` / `ServiceContext`；相对路径按 `base_dir` 展开。"""

    def _path(p: Any) -> str:
        if not isinstance(p, str) or not p:
            return ""
        p = os.path.expanduser(p)
        return p if os.path.isabs(p) or not base_dir else os.path.join(base_dir, p)

    kind = raw.get("type")
    published_raw = _dict(raw.get("published"), "published")
    published = Published(
        url=str(published_raw.get("url") or ""),
        release_channel=str(published_raw.get("releaseChannel") or "default"),
    )
    data = _dict(raw.get("data"), "data")

    if kind == "user":
        exp = _dict(data.get("exp"), "data.exp")
        config = _dict(raw.get("config"), "config") or exp
        return UserContext(
            config=config,
            published=published,
            data=UserData(exp=exp, project_path=_path(data.get("projectPath"))),
        )

    if kind == "service":
        manifest = _dict(data.get("manifest"), "data.manifest")
        config = _dict(raw.get("config"), "config") or manifest
        build = _dict(raw.get("build"), "build")
        configuration = build.get("configuration") or "Release"
        if configuration not in ("Debug", "Release"):
            raise SystemExit(
                f"Error: build.configuration must be Debug or Release, got: {configuration}"
            )
        private = data.get("privateConfig")
        return ServiceContext(
            config=config,
            published=published,
            data=ServiceData(
                manifest=manifest,
                bundle_url=str(data.get("bundleUrl") or ""),
                source_path=_path(data.get("sourcePath")),
                intermediates_path=_path(data.get("intermediatesPath")),
                private_config=_dict(private, "data.privateConfig") if private is not None else None,
            ),
            build=BuildMeta(
                configuration=configuration,
                workspace_source_path=_path(build.get("workspaceSourcePath")),
            ),
        )

    raise SystemExit(f"Error: context type must be 'user' or 'service', got: {kind!r}")


def load_context(path: str) -> Context:
    """读取并解析上下文 JSON 文件。"""
    if not os.path.isfile(path):
        raise SystemExit(f"Error: context file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, ValueError) as e:
        raise SystemExit(f"Error: failed to read context file {path}: {e}") from e
    if not isinstance(raw, dict):
        raise SystemExit(f"Error: context file must contain a JSON object: {path}")
    return context_from_dict(raw, base_dir=os.path.dirname(os.path.abspath(path)))
