"""
文档目录只读信息查看模块。

不经过 `DocumentStore`，因此不会创建备份，也不会修改任何文件。
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from .document_store import backup_path, document_path
from .pipeline import ENTITLEMENTS, INFO_PLIST, SHELL_PLIST
from .plist_edit import load_plist_dict


@dataclass(frozen=True)
class DocumentsInfo:
    """文档目录关键信息快照。"""

    directory: str
    bundle_id: str
    display_name: str
    version: str
    build: str
    url_schemes: list[str]
    device_family: list[int]
    launch_storyboard: str
    manifest_url: str
    release_channel: str
    shell_flags: dict[str, bool]
    aps_environment: str
    associated_domains: list[str]
    present: list[str]
    pending_backups: list[str]


def _plist_str(d: dict[str, Any], key: str) -> str:
    v = d.get(key)
    return v if isinstance(v, str) else ""


def _collect_url_schemes(info: dict[str, Any]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    url_types = info.get("CFBundleURLTypes")
    if not isinstance(url_types, list):
        return out
    for item in url_types:
        if not isinstance(item, dict):
            continue
        schemes = item.get("CFBundleURLSchemes")
        if not isinstance(schemes, list):
            continue
        for scheme in schemes:
            if isinstance(scheme, str) and scheme and scheme not in seen:
                seen.add(scheme)
                out.append(scheme)
    return out


def inspect_documents(directory: str) -> DocumentsInfo:
    """读取目录中的三个文档并返回结构化结果。"""
    if not os.path.isdir(directory):
        raise SystemExit(f"Error: directory not found: {directory}")

    names = (INFO_PLIST, SHELL_PLIST, ENTITLEMENTS)
    present = [n for n in names if os.path.isfile(document_path(directory, n))]
    pending = [n for n in names if os.path.isfile(backup_path(directory, n))]

    info = load_plist_dict(document_path(directory, INFO_PLIST))
    shell = load_plist_dict(document_path(directory, SHELL_PLIST))
    ent = load_plist_dict(document_path(directory, ENTITLEMENTS))

    family = info.get("UIDeviceFamily")
    domains = ent.get("com.apple.developer.associated-domains")
    flags = {
        key: bool(shell[key])
        for key in (
            "isShell",
            "isManifestVerificationBypassed",
            "isRemoteJSEnabled",
            "isSplashScreenDisabled",
        )
        if key in shell
    }

    return DocumentsInfo(
        directory=directory,
        bundle_id=_plist_str(info, "CFBundleIdentifier"),
        display_name=_plist_str(info, "CFBundleDisplayName") or _plist_str(info, "CFBundleName"),
        version=_plist_str(info, "CFBundleShortVersionString"),
        build=_plist_str(info, "CFBundleVersion"),
        url_schemes=_collect_url_schemes(info),
        device_family=[x for x in family if isinstance(x, int)] if isinstance(family, list) else [],
        launch_storyboard=_plist_str(info, "UILaunchStoryboardName"),
        manifest_url=_plist_str(shell, "manifestUrl"),
        release_channel=_plist_str(shell, "releaseChannel"),
        shell_flags=flags,
        aps_environment=_plist_str(ent, "aps-environment"),
        associated_domains=[x for x in domains if isinstance(x, str)]
        if isinstance(domains, list)
        else [],
        present=present,
        pending_backups=pending,
    )


def print_documents_info(info: DocumentsInfo) -> None:
    """打印文档目录关键信息。"""
    print("Bundle Documents:")
    print(f"  Directory          : {info.directory}")
    print(f"  Present            : {', '.join(info.present) or '-'}")
    print(f"  Bundle ID          : {info.bundle_id or '-'}")
    print(f"  Name               : {info.display_name or '-'}")
    print(f"  Version            : {info.version or '-'}")
    print(f"  Build              : {info.build or '-'}")
    print(f"  URL Schemes        : {', '.join(info.url_schemes) or '-'}")
    if info.device_family:
        print(f"  Device Family      : {', '.join(str(x) for x in info.device_family)}")
    else:
        print("  Device Family      : -")
    print(f"  Launch Storyboard  : {info.launch_storyboard or '-'}")
    print(f"  Manifest URL       : {info.manifest_url or '-'}")
    print(f"  Release Channel    : {info.release_channel or '-'}")
    for key, value in info.shell_flags.items():
        print(f"  {key:<19}: {'yes' if value else 'no'}")
    print(f"  aps-environment    : {info.aps_environment or '-'}")
    print(f"  Associated Domains : {', '.join(info.associated_domains) or '-'}")
    if info.pending_backups:
        print(f"  Pending Backups    : {', '.join(info.pending_backups)}")
        print("  Note               : a previous run did not finish; use --restore to roll back")
