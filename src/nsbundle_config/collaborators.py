"""
流程在固定节点调用的外部协作步骤，以及它们的默认实现。

核心流程只依赖 `Collaborators` 中的可调用对象；测试或宿主程序可以整体替换。
默认实现是对 `requests` 与 macOS 工具（`/usr/bin/sips`、`xcrun actool`）的轻量封装。
"""

from __future__ import annotations

import json
import os
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import requests

from .errors import ResourceFetchError
from .pipeline_utils import run_cmd
from .shell_plist import uses_modern_splash_api
from .types import Context, ios_config
from .workspace import WorkspacePaths, resolve_workspace_paths

FETCH_TIMEOUT_SECONDS = 60.0
LAUNCH_IMAGE_FILENAME = "launch_background_image.png"

# (point size, scales, idiom)
ICON_SPECS: tuple[tuple[float, tuple[int, ...], str], ...] = (
    (20, (2, 3), "iphone"),
    (29, (1, 2, 3), "iphone"),
    (40, (2, 3), "iphone"),
    (60, (2, 3), "iphone"),
    (20, (1, 2), "ipad"),
    (29, (1, 2), "ipad"),
    (40, (1, 2), "ipad"),
    (76, (1, 2), "ipad"),
    (83.5, (2,), "ipad"),
    (1024, (1,), "ios-marketing"),
)


def fetch_and_save_resource(url: str, destination: str) -> None:
    """下载 `url` 到 `destination`；先写 `.part` 再改名，失败抛 `ResourceFetchError`。"""
    part = destination + ".part"
    try:
        with requests.get(url, stream=True, timeout=FETCH_TIMEOUT_SECONDS) as resp:
            resp.raise_for_status()
            with open(part, "wb") as f:
                for chunk in resp.iter_content(chunk_size=64 * 1024):
                    if chunk:
                        f.write(chunk)
        os.replace(part, destination)
    except (requests.RequestException, OSError) as e:
        if os.path.exists(part):
            try:
                os.remove(part)
            except OSError:
                pass
        raise ResourceFetchError(f"failed to fetch {url} -> {destination}: {e}") from e


def _format_size(size: float) -> str:
    return f"{size:g}"


def _resolve_icon_source(
    config: dict[str, Any], output_directory: str, project_source_path: str
) -> str:
    """返回本地图标路径；远程地址先下载到输出目录。未声明图标返回空串。"""
    icon = ios_config(config).get("iconUrl") or ios_config(config).get("icon")
    icon = icon or config.get("iconUrl") or config.get("icon")
    if not isinstance(icon, str) or not icon:
        return ""
    if icon.startswith(("http://", "https://")):
        local = os.path.join(output_directory, "icon-source.png")
        fetch_and_save_resource(icon, local)
        return local
    if os.path.isabs(icon):
        return icon
    return os.path.join(project_source_path or "", icon)


def generate_app_icons(
    config: dict[str, Any], output_directory: str, project_source_path: str
) -> None:
    """用 `sips` 把应用图标缩放成 `AppIcon.appiconset` 所需的各尺寸并写入 `Contents.json`。"""
    os.makedirs(output_directory, exist_ok=True)
    source = _resolve_icon_source(config, output_directory, project_source_path)
    if not source:
        return

    images: list[dict[str, str]] = []
    written: set[str] = set()
    for size, scales, idiom in ICON_SPECS:
        for scale in scales:
            filename = f"icon-{_format_size(size)}@{scale}x.png"
            if filename not in written:
                pixels = str(int(size * scale))
                dest = os.path.join(output_directory, filename)
                run_cmd(["/usr/bin/sips", "-Z", pixels, source, "--out", dest])
                written.add(filename)
            images.append(
                {
                    "size": f"{_format_size(size)}x{_format_size(size)}",
                    "idiom": idiom,
                    "filename": filename,
                    "scale": f"{scale}x",
                }
            )

    contents = {"images": images, "info": {"version": 1, "author": "expo"}}
    with open(os.path.join(output_directory, "Contents.json"), "w", encoding="utf-8") as f:
        json.dump(contents, f, indent=2)


def build_asset_archive(
    manifest: dict[str, Any],
    document_directory: str,
    source_path: str,
    intermediates_path: str,
) -> None:
    """生成图标资源目录并用 `actool` 编译出 `Assets.car` 到文档目录。"""
    catalog = os.path.join(intermediates_path, "Images.xcassets")
    template = os.path.join(source_path, "Images.xcassets")
    if os.path.isdir(catalog):
        shutil.rmtree(catalog)
    if os.path.isdir(template):
        shutil.copytree(template, catalog)
    else:
        os.makedirs(catalog, exist_ok=True)

    icon_dir = os.path.join(catalog, "AppIcon.appiconset")
    generate_app_icons(manifest, icon_dir, source_path)

    run_cmd(
        [
            "xcrun",
            "actool",
            "--minimum-deployment-target",
            "10.0",
            "--platform",
            "iphoneos",
            "--app-icon",
            "AppIcon",
            "--output-partial-info-plist",
            os.path.join(intermediates_path, "assetcatalog_generated_info.plist"),
            "--compress-pngs",
            "--compile",
            document_directory,
            catalog,
        ]
    )


def _splash_image_url(manifest: dict[str, Any]) -> str:
    for splash in (ios_config(manifest).get("splash"), manifest.get("splash")):
        if isinstance(splash, dict) and isinstance(splash.get("imageUrl"), str):
            return splash["imageUrl"]
    return ""


def configure_launch_screen_assets(
    manifest: dict[str, Any], document_directory: str, source_path: str
) -> None:
    """下载声明的启动屏背景图到文档目录；未声明时不做任何事。"""
    _ = source_path
    url = _splash_image_url(manifest)
    if not url:
        return
    fetch_and_save_resource(url, os.path.join(document_directory, LAUNCH_IMAGE_FILENAME))


@dataclass(frozen=True)
class Collaborators:
    """流程使用的外部协作步骤集合，可按需替换任一项。"""

    fetch_and_save_resource: Callable[[str, str], None] = fetch_and_save_resource
    generate_app_icons: Callable[[dict[str, Any], str, str], None] = generate_app_icons
    build_asset_archive: Callable[[dict[str, Any], str, str, str], None] = build_asset_archive
    configure_launch_screen_assets: Callable[[dict[str, Any], str, str], None] = (
        configure_launch_screen_assets
    )
    uses_modern_splash_api: Callable[[dict[str, Any], str], bool] = uses_modern_splash_api
    resolve_workspace_paths: Callable[[Context], WorkspacePaths] = resolve_workspace_paths
