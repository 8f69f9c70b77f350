import difflib
import enum
from collections import OrderedDict
from typing import Dict, List

from bulked import log_utils
from bulked.code_block import (
    Applied,
    ApplyOutcome,
    ApplyReport,
    Conflict,
    ContextLine,
    EditRequest,
    Failed,
    Skipped,
    fingerprint_context,
)
from bulked.file_system import FileSystem, detect_line_ending, join_lines, split_lines
from bulked.structured_format import parse_structured


class ApplyMode(enum.Enum):
    COMMIT = "commit"
    DRY_RUN = "dry_run"


def group_by_file(requests: List[EditRequest]) -> Dict[str, List[EditRequest]]:
    """Groups requests per file, keeping first-appearance order of files."""
    groups: Dict[str, List[EditRequest]] = OrderedDict()
    for request in requests:
        groups.setdefault(request.target.file_path, []).append(request)
    return groups


def find_conflict(requests: List[EditRequest], lines: List[str]) -> str:
    """Returns why the requests cannot be applied to lines, or '' if they can."""
    total = len(lines)
    for request in requests:
        block = request.target
        if block.end_line > total:
            return (f"block at line {block.anchor_line} spans lines {block.anchor_line}-{block.end_line}"
                    f" but the file has {total} lines")
        if any(n < 1 or n > total for n in request.context_line_numbers):
            return f"context around line {block.anchor_line} is past the end of the file"
        current = [ContextLine(n, lines[n - 1]) for n in request.context_line_numbers]
        if fingerprint_context(current) != request.expected_context_fingerprint:
            return f"context around line {block.anchor_line} changed since the search"

    ordered = sorted(requests, key=lambda r: r.target.anchor_line)
    for first, second in zip(ordered, ordered[1:]):
        if first.target.overlaps(second.target):
            return (f"edits at lines {first.target.anchor_line}-{first.target.end_line} and "
                    f"{second.target.anchor_line}-{second.target.end_line} overlap")
    return ""


def splice(lines: List[str], requests: List[EditRequest]) -> List[str]:
    """Replaces each request's span with its body, bottom-up so line numbers stay valid."""
    result = list(lines)
    for request in sorted(requests, key=lambda r: r.target.anchor_line, reverse=True):
        block = request.target
        result[block.anchor_line - 1:block.end_line] = list(block.body)
    return result


def unified_diff(path: str, old: str, new: str) -> str:
    diff = difflib.unified_diff(
        split_lines(old),
        split_lines(new),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
        lineterm="",
    )
    return "\n".join(diff)


def apply_file(
    path: str, requests: List[EditRequest], mode: ApplyMode, file_system: FileSystem
) -> ApplyOutcome:
    """Applies all requests for one file. Nothing is written unless every request fits."""
    try:
        content = file_system.read_text(path)
    except (OSError, UnicodeDecodeError) as e:
        return Failed(path, f"cannot read file: {e}")

    lines = split_lines(content)
    reason = find_conflict(requests, lines)
    if reason:
        return Conflict(path, reason)

    new_lines = splice(lines, requests)
    if new_lines == lines:
        return Skipped(path, "no changes")

    new_content = join_lines(
        new_lines,
        detect_line_ending(content),
        trailing_newline=content.endswith("\n"),
    )
    edits = sum(
        1 for r in requests
        if list(r.target.body) != lines[r.target.anchor_line - 1:r.target.end_line]
    )
    diff = unified_diff(path, content, new_content)

    if mode is ApplyMode.COMMIT:
        try:
            file_system.write_text(path, new_content)
        except OSError as e:
            return Failed(path, f"cannot write file: {e}")
    log_utils.debug(f"{path}: {edits} edit(s) {'previewed' if mode is ApplyMode.DRY_RUN else 'written'}")
    return Applied(path, edits, diff, dry_run=mode is ApplyMode.DRY_RUN)


def apply_requests(
    requests: List[EditRequest], mode: ApplyMode, file_system: FileSystem
) -> ApplyReport:
    """Applies already parsed requests file by file. A failing file does not stop the others."""
    report = ApplyReport()
    for path, file_requests in group_by_file(requests).items():
        outcome = apply_file(path, file_requests, mode, file_system)
        report.outcomes.append(outcome)
    return report


def apply(source: str, mode: ApplyMode, file_system: FileSystem) -> ApplyReport:
    """Parses structured text and applies it.

    Raises:
        ParseError: the input is malformed. No file has been touched.
    """
    requests = parse_structured(source)
    log_utils.debug(f"Parsed {len(requests)} edit block(s)")
    return apply_requests(requests, mode, file_system)
