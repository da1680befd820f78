"""
iOS shell app bundle configuration pipeline.

High-level flow:
1) Refuse to run without a published manifest url (nothing is opened yet).
2) Resolve the document directory (`.../Supporting`) for the context.
3) Common phase, both variants:
   - `Info.plist`: custom `ios.infoPlist` merge, identity/version, URL schemes,
     private-config keys, permission texts, device family.
   - `EXShell.plist`: shell runtime flags.
4) Variant phase:
   - user: local development overrides on `Info.plist`, app icon generation.
   - service: entitlements, shell launch screen, asset archive, launch screen
     assets, manifest/bundle preload, intermediates cleanup.
5) Drop the `.bak` backups of every document opened in this run.

Any exception aborts the run; backups are kept so the documents can be restored
manually (`DocumentStore.clean_backup(..., restore=True)` / `--restore`).
"""

from __future__ import annotations

import json
import os
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .collaborators import Collaborators
from .document_store import DocumentStore
from .entitlements import ENTITLEMENTS_STEPS
from .errors import DocumentWriteError, NotPublishedError
from .info_plist import (
    LOCAL_DEVELOPMENT_STEPS,
    SERVICE_INFO_PLIST_STEPS,
    build_info_plist_steps,
    print_usage_description_notice,
)
from .pipeline_utils import remove_intermediates
from .shell_plist import build_shell_plist_steps
from .steps import Step, apply_steps
from .types import Context, ServiceContext, Settings, UserContext
from .workspace import WorkspacePaths

INFO_PLIST = "Info"
SHELL_PLIST = "EXShell"
ENTITLEMENTS = "Exponent.entitlements"

MANIFEST_FILENAME = "shell-app-manifest.json"
BUNDLE_FILENAME = "shell-app.bundle"
DEFAULT_INTERMEDIATES_DIRNAME = "shellAppIntermediates"


@dataclass(frozen=True)
class RunResult:
    """一次成功运行的结果。"""

    state: str
    document_directory: str
    documents: list[str]


def _modify(
    store: DocumentStore,
    directory: str,
    name: str,
    ctx: Context,
    steps: Sequence[Step],
    *,
    verbose: bool,
) -> dict[str, Any]:
    if verbose:
        print(f"Configuring {name} under {directory}")
    return store.modify(directory, name, lambda tree: apply_steps(tree, ctx, steps, verbose=verbose))


def preload_manifest_and_bundle(
    manifest: dict[str, Any],
    bundle_url: str,
    document_directory: str,
    *,
    collaborators: Collaborators,
) -> None:
    """把 manifest 与 JS bundle 预置到文档目录。"""
    manifest_path = os.path.join(document_directory, MANIFEST_FILENAME)
    try:
        with open(manifest_path, "w", encoding="utf-8") as f:
            json.dump(manifest, f)
    except OSError as e:
        raise DocumentWriteError(f"failed to write manifest: {manifest_path}: {e}") from e
    collaborators.fetch_and_save_resource(
        bundle_url, os.path.join(document_directory, BUNDLE_FILENAME)
    )


def _configure_user(
    ctx: UserContext,
    store: DocumentStore,
    paths: WorkspacePaths,
    collaborators: Collaborators,
    *,
    verbose: bool,
) -> None:
    info = _modify(
        store, paths.document_directory, INFO_PLIST, ctx, LOCAL_DEVELOPMENT_STEPS, verbose=verbose
    )
    print_usage_description_notice(info)

    icon_path = os.path.join(
        paths.project_directory, paths.project_name, "Assets.xcassets", "AppIcon.appiconset"
    )
    if verbose:
        print(f"Generating app icons: {icon_path}")
    collaborators.generate_app_icons(ctx.data.exp, icon_path, ctx.data.project_path)


def _configure_service(
    ctx: ServiceContext,
    store: DocumentStore,
    paths: WorkspacePaths,
    collaborators: Collaborators,
    *,
    verbose: bool,
) -> None:
    directory = paths.document_directory
    manifest = ctx.data.manifest
    intermediates = ctx.data.intermediates_path or os.path.join(
        paths.project_directory, os.pardir, DEFAULT_INTERMEDIATES_DIRNAME
    )
    print(f"Modifying config files under {directory}...")

    _modify(store, directory, ENTITLEMENTS, ctx, ENTITLEMENTS_STEPS, verbose=verbose)
    _modify(store, directory, INFO_PLIST, ctx, SERVICE_INFO_PLIST_STEPS, verbose=verbose)

    print("Compiling resources...")
    collaborators.build_asset_archive(manifest, directory, ctx.data.source_path, intermediates)
    collaborators.configure_launch_screen_assets(manifest, directory, ctx.data.source_path)
    preload_manifest_and_bundle(
        manifest,
        ctx.data.bundle_url or str(manifest.get("bundleUrl") or ""),
        directory,
        collaborators=collaborators,
    )

    if remove_intermediates(intermediates) and verbose:
        print(f"Removed intermediates: {intermediates}")


def run(
    ctx: Context,
    *,
    collaborators: Collaborators | None = None,
    settings: Settings | None = None,
    store: DocumentStore | None = None,
    verbose: bool = False,
) -> RunResult:
    """按上下文配置文档目录中的三个文档；成功时清理备份并返回结果。"""
    if not ctx.published.url:
        raise NotPublishedError("Can't configure a NSBundle without a published url.")

    collaborators = collaborators or Collaborators()
    settings = settings or Settings()
    store = store or DocumentStore()

    paths = collaborators.resolve_workspace_paths(ctx)
    directory = paths.document_directory
    os.makedirs(directory, exist_ok=True)

    _modify(
        store, directory, INFO_PLIST, ctx, build_info_plist_steps(settings), verbose=verbose
    )
    shell = _modify(
        store,
        directory,
        SHELL_PLIST,
        ctx,
        build_shell_plist_steps(collaborators.uses_modern_splash_api),
        verbose=verbose,
    )
    if verbose:
        print(f"Using shell config: {shell}")

    if isinstance(ctx, UserContext):
        _configure_user(ctx, store, paths, collaborators, verbose=verbose)
    elif isinstance(ctx, ServiceContext):
        _configure_service(ctx, store, paths, collaborators, verbose=verbose)
    else:
        raise TypeError(f"unsupported context: {type(ctx).__name__}")

    print("Cleaning up iOS...")
    touched = store.touched
    for doc_dir, name in touched:
        store.clean_backup(doc_dir, name, restore=False)

    print("Done:")
    print(f"  Variant  : {ctx.variant}")
    print(f"  Directory: {directory}")
    print(f"  Documents: {', '.join(name for _d, name in touched)}")
    return RunResult(
        state="completed",
        document_directory=directory,
        documents=[name for _d, name in touched],
    )
