"""
构建上下文与流程共享的轻量类型定义。

上下文是按构建类型区分的标签联合：
- `UserContext`：本地开发（detached）工程。
- `ServiceContext`：构建服务集中打包的壳应用。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union

# 构建服务未单独配置 Fabric 时使用的崩溃上报 key。
DEFAULT_CRASH_REPORTING_KEY = "81130e95ea13cd7ed9a4f455e96214902c721c99"

BuildConfiguration = Literal["Debug", "Release"]


@dataclass(frozen=True)
class Settings:
    """流程级可注入配置。"""

    default_crash_reporting_key: str = DEFAULT_CRASH_REPORTING_KEY


@dataclass(frozen=True)
class Published:
    """发布信息：manifest 地址与发布渠道。"""

    url: str
    release_channel: str = "default"


@dataclass(frozen=True)
class UserData:
    """本地开发构建的附加数据。"""

    # `exp`：本地 app.json 中的原始配置对象。
    exp: dict[str, Any]
    project_path: str


@dataclass(frozen=True)
class BuildMeta:
    """构建服务的构建元数据。"""

    configuration: BuildConfiguration = "Release"
    workspace_source_path: str = ""


@dataclass(frozen=True)
class ServiceData:
    """构建服务打包所需的 manifest 与源码路径。"""

    manifest: dict[str, Any]
    bundle_url: str = ""
    source_path: str = ""
    intermediates_path: str = ""
    private_config: dict[str, Any] | None = None


@dataclass(frozen=True)
class UserContext:
    config: dict[str, Any]
    published: Published
    data: UserData

    @property
    def variant(self) -> str:
        return "user"


@dataclass(frozen=True)
class ServiceContext:
    config: dict[str, Any]
    published: Published
    data: ServiceData
    build: BuildMeta = field(default_factory=BuildMeta)

    @property
    def variant(self) -> str:
        return "service"


Context = Union[UserContext, ServiceContext]


def private_config_of(ctx: Context) -> dict[str, Any] | None:
    """返回私有配置（仅构建服务上下文可能存在），否则 `None`。"""
    if isinstance(ctx, ServiceContext):
        return ctx.data.private_config
    return None


def ios_config(config: dict[str, Any]) -> dict[str, Any]:
    """取 `config.ios`，缺失或类型不对时返回空字典。"""
    ios = config.get("ios")
    return ios if isinstance(ios, dict) else {}
