"""Line-level diff based on the longest common subsequence.

``compute_diff`` is pure and runs in O(m*n) time and space for inputs
of m and n lines.  ``DiffEngine`` wraps it with a size guard that reports
pathologically large inputs as changed without running the table.
"""

from __future__ import annotations

import logging
import math

from .models import DiffKind, DiffOp, DiffResult

logger = logging.getLogger(__name__)


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` only; a trailing newline yields a final empty line."""
    return text.split("\n")


def _lcs_table(old: list[str], new: list[str]) -> list[list[int]]:
    m, n = len(old), len(new)
    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(1, m + 1):
        row, prev = dp[i], dp[i - 1]
        old_line = old[i - 1]
        for j in range(1, n + 1):
            if old_line == new[j - 1]:
                row[j] = prev[j - 1] + 1
            else:
                row[j] = max(prev[j], row[j - 1])
    return dp


def _backtrack(
    old: list[str], new: list[str], dp: list[list[int]]
) -> list[DiffOp]:
    ops: list[DiffOp] = []
    i, j = len(old), len(new)
    while i > 0 or j > 0:
        if i > 0 and j > 0 and old[i - 1] == new[j - 1]:
            ops.append(DiffOp(kind=DiffKind.CONTEXT, text=new[j - 1], position=j))
            i -= 1
            j -= 1
        elif j > 0 and (i == 0 or dp[i][j - 1] >= dp[i - 1][j]):
            # ties go to add
            ops.append(DiffOp(kind=DiffKind.ADD, text=new[j - 1], position=j))
            j -= 1
        else:
            ops.append(DiffOp(kind=DiffKind.REMOVE, text=old[i - 1], position=i))
            i -= 1
    ops.reverse()
    return ops


def compute_diff(old_text: str, new_text: str) -> DiffResult:
    """Diff two texts line by line.

    Identical inputs return an empty result with zero cost.  Otherwise
    the result lists every line of both texts as ``context``, ``add`` or
    ``remove``, in output order.
    """
    if old_text == new_text:
        return DiffResult()

    old, new = split_lines(old_text), split_lines(new_text)
    ops = _backtrack(old, new, _lcs_table(old, new))
    return DiffResult(
        ops=ops,
        additions=sum(1 for op in ops if op.kind == DiffKind.ADD),
        deletions=sum(1 for op in ops if op.kind == DiffKind.REMOVE),
        cost=len(old) * len(new),
    )


def estimate_lines_changed(text: str) -> int:
    """Coarse change estimate: ten percent of the lines, at least one."""
    return max(1, math.ceil(len(split_lines(text)) * 0.1))


class DiffEngine:
    """Size-guarded diff.

    Args:
        max_lines: Inputs with more lines than this on either side are
            reported as ``omitted`` instead of being diffed.
    """

    def __init__(self, max_lines: int = 2000) -> None:
        if max_lines < 1:
            raise ValueError(f"max_lines must be >= 1, got {max_lines}")
        self.max_lines = max_lines

    def diff(self, old_text: str, new_text: str) -> DiffResult:
        if old_text == new_text:
            return DiffResult()

        old_count = old_text.count("\n") + 1
        new_count = new_text.count("\n") + 1
        if old_count > self.max_lines or new_count > self.max_lines:
            logger.info(
                "Diff omitted: %d -> %d lines exceeds limit of %d",
                old_count,
                new_count,
                self.max_lines,
            )
            return DiffResult(omitted=True)

        return compute_diff(old_text, new_text)
