from typing import Sequence, Tuple

from bulked.code_block import ContextLine


def extract_context(
    lines: Sequence[str], match_line: int, window: int
) -> Tuple[Tuple[ContextLine, ...], Tuple[ContextLine, ...]]:
    """Returns the lines before and after match_line (1-indexed).

    Windows are clipped to the file: before covers
    max(1, match_line - window)..match_line - 1 and after covers
    match_line + 1..min(total, match_line + window). Neighbouring matches
    get their own copies of shared lines.
    """
    if window < 0:
        raise ValueError(f"context window must be >= 0, got {window}")
    total = len(lines)
    if match_line < 1 or match_line > total:
        return (), ()

    start = max(1, match_line - window)
    before = tuple(
        ContextLine(n, lines[n - 1]) for n in range(start, match_line)
    )

    end = min(total, match_line + window)
    after = tuple(
        ContextLine(n, lines[n - 1]) for n in range(match_line + 1, end + 1)
    )
    return before, after

