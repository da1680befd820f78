"""
文档变换步骤的类型与顺序组合。

每个步骤都是纯函数 `(tree, ctx) -> tree`：不修改入参、不做 I/O，
后一步总是接收前一步的结果。
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from .types import Context

StepFn = Callable[[dict[str, Any], Context], dict[str, Any]]


@dataclass(frozen=True)
class Step:
    """具名步骤，便于日志输出与单独测试。"""

    name: str
    fn: StepFn

    def __call__(self, tree: dict[str, Any], ctx: Context) -> dict[str, Any]:
        return self.fn(tree, ctx)


def apply_steps(
    tree: dict[str, Any],
    ctx: Context,
    steps: Sequence[Step],
    *,
    verbose: bool = False,
) -> dict[str, Any]:
    """按顺序应用步骤，返回最终文档树。任一步骤抛错即中止。"""
    cur = tree
    for step in steps:
        if verbose:
            print(f"  - {step.name}")
        cur = step(cur, ctx)
    return cur
