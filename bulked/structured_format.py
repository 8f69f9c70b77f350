"""Text format for search results that can be edited and fed back to apply.

A document is an optional version line followed by one block per match,
blocks separated by blank lines:

    # bulked structured v1

    src/app.py:25
    @@ 1 @@
    24-    x = 1
    25:    return compute(x)
    26-

The header is `path:line` (anchor line). The marker carries the number of
original lines the block replaces. Lines tagged `N-` are context and must be
left alone. Everything between the leading and trailing context is the new
body: `N:` and bare `:` prefixes are stripped, other lines are taken as is.
Outside blocks, a line that is `#` alone or `#` followed by whitespace is a
comment.
"""
import re
from typing import List, Sequence, Tuple

from rich.text import Text

from bulked.code_block import (
    ContextLine,
    EditBlock,
    EditRequest,
    Match,
    SearchResult,
    fingerprint_context,
)
from bulked.file_system import split_lines

FORMAT_VERSION = 1
VERSION_LINE = f"# bulked structured v{FORMAT_VERSION}"

_VERSION_RE = re.compile(r"^#\s*bulked structured v(\d+)\s*$", re.ASCII)
# A lone "#" or "#" followed by whitespace. "#name.py:3" is a header.
_COMMENT_RE = re.compile(r"^#(\s|$)")
_LINE_NUMBER_RE = re.compile(r"^\d+$", re.ASCII)
_MARKER_RE = re.compile(r"^@@ (\d+) @@\s*$", re.ASCII)
_CONTEXT_RE = re.compile(r"^(\d+)-(.*)$", re.ASCII)
_BODY_RE = re.compile(r"^(\d+):(.*)$", re.ASCII)


class ParseError(ValueError):
    """Structured input is malformed. line_number is 1-based in the input."""

    def __init__(self, message: str, line_number: int = None):
        self.message = message
        self.line_number = line_number
        super().__init__(f"line {line_number}: {message}" if line_number else message)


# --- Writing ---

def format_match(match: Match) -> List[str]:
    """Lines of the structured block for one match."""
    lines = [f"{match.file_path}:{match.line_number}", "@@ 1 @@"]
    lines.extend(f"{c.line_number}-{c.content}" for c in match.context_before)
    lines.append(f"{match.line_number}:{match.line_content}")
    lines.extend(f"{c.line_number}-{c.content}" for c in match.context_after)
    return lines


def format_structured(result: SearchResult) -> str:
    """Renders every match, in order, as an editable block."""
    out = [VERSION_LINE]
    for match in result.matches:
        out.append("")
        out.extend(format_match(match))
    return "\n".join(out) + "\n"


def format_plain(result: SearchResult) -> Text:
    """Human-oriented rendering without tags. Not accepted by parse_structured."""
    text = Text()
    for i, match in enumerate(result.matches):
        numbers = [c.line_number for c in match.context_lines] + [match.line_number]
        width = len(str(max(numbers)))
        if i:
            text.append("--\n", style="dim")
        text.append(f"{match.file_path}:{match.line_number}\n", style="bold magenta")
        for c in match.context_before:
            text.append(f"   {c.line_number:>{width}} | {c.content}\n", style="dim")
        text.append(f">  {match.line_number:>{width}} | ", style="bold green")
        text.append(f"{match.line_content}\n")
        for c in match.context_after:
            text.append(f"   {c.line_number:>{width}} | {c.content}\n", style="dim")
    return text


# --- Reading ---

def _parse_header(line: str, line_number: int) -> Tuple[str, int]:
    path, sep, anchor = line.rpartition(":")
    if not sep or not path:
        raise ParseError(f"expected block header 'path:line', got {line!r}", line_number)
    anchor = anchor.strip()
    if not _LINE_NUMBER_RE.match(anchor) or int(anchor) < 1:
        raise ParseError(f"invalid line number {anchor!r} in header {line!r}", line_number)
    return path, int(anchor)


def _split_context(
    block: Sequence[str], anchor: int, span: int
) -> Tuple[List[ContextLine], List[str], List[ContextLine]]:
    """Separates leading context, body and trailing context of a block."""
    before: List[ContextLine] = []
    start = 0
    while start < len(block):
        m = _CONTEXT_RE.match(block[start])
        if not m:
            break
        n = int(m.group(1))
        if n >= anchor or (before and n != before[-1].line_number + 1):
            break
        before.append(ContextLine(n, m.group(2)))
        start += 1

    after: List[ContextLine] = []
    end = len(block)
    while end > start:
        m = _CONTEXT_RE.match(block[end - 1])
        if not m:
            break
        n = int(m.group(1))
        if n < anchor + span or (after and n != after[0].line_number - 1):
            break
        after.insert(0, ContextLine(n, m.group(2)))
        end -= 1

    return before, list(block[start:end]), after


def _decode_body_line(line: str) -> str:
    m = _BODY_RE.match(line)
    if m:
        return m.group(2)
    if line.startswith(":"):
        return line[1:]
    return line


def parse_structured(text: str) -> List[EditRequest]:
    """Parses structured text into edit requests, in input order.

    Raises:
        ParseError: on the first malformed header, marker or version line.
    """
    lines = split_lines(text)
    requests = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if not line.strip():
            i += 1
            continue
        m = _VERSION_RE.match(line)
        if m or _COMMENT_RE.match(line):
            if m and int(m.group(1)) != FORMAT_VERSION:
                raise ParseError(f"unsupported format version {m.group(1)}", i + 1)
            i += 1
            continue

        path, anchor = _parse_header(line, i + 1)
        if i + 1 >= len(lines):
            raise ParseError(f"missing '@@ N @@' marker after header {line!r}", i + 2)
        marker = _MARKER_RE.match(lines[i + 1])
        if not marker:
            raise ParseError(f"expected '@@ N @@' marker, got {lines[i + 1]!r}", i + 2)
        span = int(marker.group(1))
        if span < 1:
            raise ParseError("marker line count must be at least 1", i + 2)

        j = i + 2
        while j < len(lines) and lines[j].strip():
            j += 1
        before, body, after = _split_context(lines[i + 2:j], anchor, span)
        context = before + after
        requests.append(EditRequest(
            target=EditBlock(path, anchor, span, tuple(_decode_body_line(b) for b in body)),
            expected_context_fingerprint=fingerprint_context(context),
            context_line_numbers=tuple(c.line_number for c in context),
        ))
        i = j
    return requests
