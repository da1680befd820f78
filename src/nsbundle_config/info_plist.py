"""
`Info.plist` 变换步骤。

公共步骤的执行顺序（见 `build_info_plist_steps`）：
1) 合并 `ios.infoPlist` 自定义键（最先执行，后续内置步骤在冲突时覆盖它）。
2) 包标识、名称、版本号与构建号。
3) URL scheme（含 `OAuthRedirect`）。
4) 私有配置派生字段（仅构建服务且有私有配置时）。
5) 权限描述文案替换。
6) 设备族（`UIDeviceFamily`）。
"""

from __future__ import annotations

import functools
from typing import Any

from .errors import MissingBundleIdentifierError
from .steps import Step
from .types import (
    DEFAULT_CRASH_REPORTING_KEY,
    Context,
    ServiceContext,
    Settings,
    UserContext,
    ios_config,
    private_config_of,
)

USAGE_DESCRIPTION_MARKER = "UsageDescription"
PERMISSION_PLACEHOLDER = "Expo experiences"
OAUTH_REDIRECT_NAME = "OAuthRedirect"
SHELL_LAUNCH_STORYBOARD = "LaunchScreenShell"

# 1 = iPhone，2 = iPad。
DEVICE_FAMILY_PHONE = 1
DEVICE_FAMILY_TABLET = 2


def merge_custom_info_plist(tree: dict[str, Any], ctx: Context) -> dict[str, Any]:
    """浅合并开发者在 `ios.infoPlist` 中声明的原始键值。"""
    out = dict(tree)
    extra = ios_config(ctx.config).get("infoPlist")
    if isinstance(extra, dict):
        for key, value in extra.items():
            out[key] = value
    return out


def configure_identity(tree: dict[str, Any], ctx: Context) -> dict[str, Any]:
    """设置包标识、应用名、版本号（默认 `0.0.0`）与构建号（默认 `1`）。"""
    ios = ios_config(ctx.config)
    bundle_id = ios.get("bundleIdentifier")
    if not isinstance(bundle_id, str) or not bundle_id:
        raise MissingBundleIdentifierError(
            "Cannot configure an iOS app with no bundle identifier."
        )

    out = dict(tree)
    out["CFBundleIdentifier"] = bundle_id
    name = ctx.config.get("name")
    if name:
        out["CFBundleName"] = name
    out["CFBundleShortVersionString"] = str(ctx.config.get("version") or "0.0.0")
    out["CFBundleVersion"] = str(ios.get("buildNumber") or "1")
    return out


def linking_schemes(ctx: Context) -> list[str]:
    """按顺序收集应用 scheme、Facebook scheme 与 Google 登录保留 scheme。"""
    schemes: list[str] = []
    scheme = ctx.config.get("scheme")
    if isinstance(scheme, str) and scheme:
        schemes.append(scheme)

    fb_scheme = ctx.config.get("facebookScheme")
    if isinstance(fb_scheme, str) and fb_scheme.startswith("fb"):
        schemes.append(fb_scheme)

    private = private_config_of(ctx)
    google = private.get("googleSignIn") if private else None
    if isinstance(google, dict) and google.get("reservedClientId"):
        schemes.append(google["reservedClientId"])
    return schemes


def configure_linking_schemes(tree: dict[str, Any], ctx: Context) -> dict[str, Any]:
    """用应用自身的 scheme 列表与 `OAuthRedirect` 替换 `CFBundleURLTypes`。"""
    out = dict(tree)
    out["CFBundleURLTypes"] = [
        {"CFBundleURLSchemes": linking_schemes(ctx)},
        {
            # 应用代码按名称 `OAuthRedirect` 查找该条目。
            "CFBundleURLName": OAUTH_REDIRECT_NAME,
            "CFBundleURLSchemes": [out["CFBundleIdentifier"]],
        },
    ]
    return out


def configure_private_keys(
    tree: dict[str, Any],
    ctx: Context,
    *,
    default_crash_reporting_key: str = DEFAULT_CRASH_REPORTING_KEY,
) -> dict[str, Any]:
    """写入由私有配置派生的 key；非构建服务或无私有配置时原样返回。"""
    private = private_config_of(ctx)
    if not isinstance(ctx, ServiceContext) or private is None:
        return tree

    out = dict(tree)
    # 显式声明未使用非豁免加密时，免去 App Store Connect 中的手动确认。
    if "usesNonExemptEncryption" in private and private["usesNonExemptEncryption"] is False:
        out["ITSAppUsesNonExemptEncryption"] = False

    if private.get("googleMapsApiKey"):
        out["GMSApiKey"] = private["googleMapsApiKey"]

    fabric = private.get("fabric")
    fabric_key = fabric.get("apiKey") if isinstance(fabric, dict) else None
    out["Fabric"] = {
        "APIKey": fabric_key or default_crash_reporting_key,
        "Kits": [{"KitInfo": {}, "KitName": "Crashlytics"}],
    }

    branch = private.get("branch")
    if isinstance(branch, dict) and branch:
        out["branch_key"] = {"live": branch.get("apiKey", "")}
    return out


def substitute_permission_texts(tree: dict[str, Any], ctx: Context) -> dict[str, Any]:
    """把权限描述中的占位文案替换成应用名（未设置时为 `this app`）。"""
    app_name = ctx.config.get("name") or "this app"
    out = dict(tree)
    for key, value in tree.items():
        if USAGE_DESCRIPTION_MARKER in key and isinstance(value, str):
            out[key] = value.replace(PERMISSION_PLACEHOLDER, app_name, 1)
    return out


def configure_device_family(tree: dict[str, Any], ctx: Context) -> dict[str, Any]:
    """默认仅 iPhone；`supportsTablet` 加 iPad；`isTabletOnly` 优先，仅 iPad。"""
    ios = ios_config(ctx.config)
    out = dict(tree)
    if ios.get("isTabletOnly"):
        out["UIDeviceFamily"] = [DEVICE_FAMILY_TABLET]
    elif ios.get("supportsTablet"):
        out["UIDeviceFamily"] = [DEVICE_FAMILY_PHONE, DEVICE_FAMILY_TABLET]
    else:
        out["UIDeviceFamily"] = [DEVICE_FAMILY_PHONE]
    return out


def apply_local_development_overrides(tree: dict[str, Any], ctx: Context) -> dict[str, Any]:
    """本地开发：追加 detached scheme，并移除设备族限制。"""
    if not isinstance(ctx, UserContext):
        return tree

    out = dict(tree)
    exp = ctx.data.exp
    detach = exp.get("detach") if isinstance(exp.get("detach"), dict) else {}
    detached_scheme = detach.get("scheme")
    if exp.get("isDetached") and detached_scheme:
        url_types = [
            dict(x) if isinstance(x, dict) else x for x in out.get("CFBundleURLTypes") or []
        ]
        if not url_types or not isinstance(url_types[0], dict):
            url_types.insert(0, {"CFBundleURLSchemes": []})
        first = url_types[0]
        schemes = list(first.get("CFBundleURLSchemes") or [])
        schemes.append(detached_scheme)
        first["CFBundleURLSchemes"] = schemes
        out["CFBundleURLTypes"] = url_types

    out.pop("UIDeviceFamily", None)
    return out


def use_shell_launch_screen(tree: dict[str, Any], ctx: Context) -> dict[str, Any]:
    """构建服务壳应用使用专用的启动屏 storyboard。"""
    _ = ctx
    out = dict(tree)
    out["UILaunchStoryboardName"] = SHELL_LAUNCH_STORYBOARD
    return out


def usage_description_keys(tree: dict[str, Any]) -> list[str]:
    """列出文档中的权限描述键。"""
    return [key for key in tree if USAGE_DESCRIPTION_MARKER in key]


def print_usage_description_notice(tree: dict[str, Any]) -> None:
    """提示开发者检查自动写入的权限描述键。"""
    keys = usage_description_keys(tree)
    if not keys:
        return
    print("We added some permissions keys to `Info.plist` in your detached iOS project:")
    for key in keys:
        print(f"  {key}")
    print(
        "You may want to revise them to include language appropriate to your project. "
        "You can also remove them if your app will never use the corresponding API. "
        "See the Apple docs for these keys."
    )


def build_info_plist_steps(settings: Settings | None = None) -> list[Step]:
    """返回公共 `Info.plist` 步骤的有序列表。"""
    settings = settings or Settings()
    return [
        Step("merge_custom_info_plist", merge_custom_info_plist),
        Step("configure_identity", configure_identity),
        Step("configure_linking_schemes", configure_linking_schemes),
        Step(
            "configure_private_keys",
            functools.partial(
                configure_private_keys,
                default_crash_reporting_key=settings.default_crash_reporting_key,
            ),
        ),
        Step("substitute_permission_texts", substitute_permission_texts),
        Step("configure_device_family", configure_device_family),
    ]


INFO_PLIST_STEPS = build_info_plist_steps()

LOCAL_DEVELOPMENT_STEPS = [
    Step("apply_local_development_overrides", apply_local_development_overrides),
]

SERVICE_INFO_PLIST_STEPS = [
    Step("use_shell_launch_screen", use_shell_launch_screen),
]
