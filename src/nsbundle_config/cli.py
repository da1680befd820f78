"""
`nsbundle-config` 的命令行入口模块。

负责读取上下文文件与参数，并调用 `nsbundle_config.pipeline.run`；
另提供 `--inspect`（只读查看）与 `--restore`（用备份手动回滚）两种模式。
"""

import argparse
import os
from collections.abc import Sequence

from .context_loader import load_context
from .document_store import DocumentStore, backup_path
from .errors import NsBundleConfigError
from .inspect import inspect_documents, print_documents_info
from .pipeline import ENTITLEMENTS, INFO_PLIST, SHELL_PLIST, run
from .types import DEFAULT_CRASH_REPORTING_KEY, Settings


def _log_step(message: str) -> None:
    """输出简洁的流程阶段提示。"""
    print(f"[nsbundle-config] {message}")


def _abs(p: str) -> str:
    """将输入路径展开为绝对路径。"""
    return os.path.abspath(os.path.expanduser(p))


def build_parser() -> argparse.ArgumentParser:
    """构建并返回 `nsbundle-config` 命令行参数解析器。"""
    p = argparse.ArgumentParser(
        prog="nsbundle-config",
        formatter_class=argparse.RawTextHelpFormatter,
        description=(
            "Configure Info.plist, EXShell.plist and Exponent.entitlements of an iOS\n"
            "shell app for a local (user) or build-service (service) build.\n"
            "Backups (*.bak) are kept when a run fails; restore them with --restore."
        ),
    )
    p.add_argument("-c", "--context", default="", help="Context JSON file describing the build")
    p.add_argument(
        "--crash-reporting-key",
        default="",
        help=f"Default Fabric API key for service builds (default: {DEFAULT_CRASH_REPORTING_KEY})",
    )
    p.add_argument(
        "--inspect",
        default="",
        metavar="DIR",
        help="Only print key info of the documents in DIR without modifying anything",
    )
    p.add_argument(
        "--restore",
        default="",
        metavar="DIR",
        help="Restore documents in DIR from their backups and remove the backups",
    )
    p.add_argument("--verbose", action="store_true", help="Verbose logging")
    return p


def _restore(directory: str) -> int:
    store = DocumentStore()
    restored = 0
    for name in (INFO_PLIST, SHELL_PLIST, ENTITLEMENTS):
        if not os.path.isfile(backup_path(directory, name)):
            continue
        try:
            store.clean_backup(directory, name, restore=True)
        except NsBundleConfigError as e:
            raise SystemExit(f"Error: failed to restore {name}: {e}") from e
        _log_step(f"Restored {name}")
        restored += 1
    if not restored:
        _log_step(f"No backups found under {directory}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """CLI 入口：解析参数并分派到查看、回滚或配置流程。"""
    parser = build_parser()
    ns = parser.parse_args(argv)
    modes = [bool(ns.context), bool(ns.inspect), bool(ns.restore)]
    if sum(modes) > 1:
        raise SystemExit("Error: -c/--context, --inspect and --restore cannot be used together.")
    if not any(modes):
        raise SystemExit(
            "Error: missing -c/--context.\n"
            "Hint: pass a context JSON file, or use --inspect DIR / --restore DIR.\n"
        )

    if ns.inspect:
        _log_step("Inspecting bundle documents")
        try:
            info = inspect_documents(_abs(ns.inspect))
        except NsBundleConfigError as e:
            raise SystemExit(f"Error: {e}") from e
        print_documents_info(info)
        return 0

    if ns.restore:
        directory = _abs(ns.restore)
        if not os.path.isdir(directory):
            raise SystemExit(f"Error: directory not found: {directory}")
        _log_step(f"Restoring backups under {directory}")
        return _restore(directory)

    context_path = _abs(ns.context)
    _log_step(f"Loading context: {context_path}")
    ctx = load_context(context_path)
    _log_step(f"Variant: {ctx.variant}")

    settings = Settings()
    if ns.crash_reporting_key:
        settings = Settings(default_crash_reporting_key=ns.crash_reporting_key)

    _log_step("Starting configuration pipeline")
    try:
        run(ctx, settings=settings, verbose=bool(ns.verbose))
    except NsBundleConfigError as e:
        raise SystemExit(
            f"Error: {e}\n"
            "Backups of modified documents were kept; use --restore DIR to roll back.\n"
        ) from e
    return 0
