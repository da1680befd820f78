"""
`EXShell.plist`（壳应用运行时配置）变换步骤。
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .steps import Step
from .types import Context, UserContext, ios_config

SplashPredicate = Callable[[dict[str, Any], str], bool]


def uses_modern_splash_api(config: dict[str, Any], platform: str) -> bool:
    """应用是否声明了新版启动屏配置（`splash` 或 `<platform>.splash`）。"""
    if config.get("splash"):
        return True
    platform_config = config.get(platform)
    return isinstance(platform_config, dict) and bool(platform_config.get("splash"))


def configure_shell_plist(
    tree: dict[str, Any],
    ctx: Context,
    *,
    splash_predicate: SplashPredicate = uses_modern_splash_api,
) -> dict[str, Any]:
    """标记壳应用并写入发布地址、渠道、权限与若干运行时开关。"""
    ios = ios_config(ctx.config)
    out = dict(tree)
    out["isShell"] = True
    out["manifestUrl"] = ctx.published.url
    out["releaseChannel"] = ctx.published.release_channel
    if ios.get("permissions"):
        permissions = ios["permissions"]
        out["permissions"] = list(permissions) if isinstance(permissions, list) else permissions
    if isinstance(ctx, UserContext):
        # 开发者为 bundle id 配好权限前，detached 应用跳过 manifest 校验。
        out["isManifestVerificationBypassed"] = True
    if "isRemoteJSEnabled" in ios:
        out["isRemoteJSEnabled"] = ios["isRemoteJSEnabled"]
    if not splash_predicate(ctx.config, "ios"):
        # 旧版加载 API：隐藏原生启动屏。
        out["isSplashScreenDisabled"] = True
    return out


def build_shell_plist_steps(splash_predicate: SplashPredicate = uses_modern_splash_api) -> list[Step]:
    return [
        Step(
            "configure_shell_plist",
            lambda tree, ctx: configure_shell_plist(tree, ctx, splash_predicate=splash_predicate),
        ),
    ]
