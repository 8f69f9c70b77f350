"""Builds search results from locations found by other tools.

Accepted inputs, one location per record:
  grep   path:line[:anything]        (grep -n, rg -n, compiler diagnostics, ...)
  jsonl  {"path": "...", "line": N}  one object per line
  json   [{"path": "...", "line": N}, ...]
  csv    a header row naming a path column and a line column
"""
import csv
import io
import json
import re
from dataclasses import dataclass
from typing import Iterable, List

from bulked import log_utils
from bulked.code_block import BinaryFileSkipped, FileReadError, Match, SearchResult
from bulked.context import extract_context
from bulked.file_system import FileSystem

INPUT_FORMATS = ("auto", "grep", "json", "jsonl", "csv")

_PATH_HEADERS = {"path", "file", "filepath", "filename"}
_LINE_HEADERS = {"line", "lineno", "linenum", "linenumber", "ln"}
_GREP_RE = re.compile(r"^(.+?):(\d+)(?:\D|$)")


class IngestError(ValueError):
    """Location input could not be read."""


@dataclass(frozen=True)
class IngestRecord:
    path: str
    line: int


def guess_format(text: str) -> str:
    """Guesses the input format from its first non-blank line."""
    first = next((line for line in text.splitlines() if line.strip()), "")
    if first.startswith("[{"):
        return "json"
    if first.startswith("{"):
        return "jsonl"
    for char in first:
        if char == ",":
            return "csv"
        if char == ":":
            return "grep"
    return "grep"


def _record_from_object(obj, where: str) -> IngestRecord:
    if not isinstance(obj, dict) or "path" not in obj or "line" not in obj:
        raise IngestError(f"{where}: expected an object with 'path' and 'line'")
    try:
        line = int(obj["line"])
    except (TypeError, ValueError):
        raise IngestError(f"{where}: 'line' is not a number: {obj['line']!r}")
    return IngestRecord(str(obj["path"]), line)


def parse_grep(text: str) -> List[IngestRecord]:
    """Lines without a numeric line field (headers, separators) are skipped."""
    records = []
    for line in text.splitlines():
        m = _GREP_RE.match(line)
        if m:
            records.append(IngestRecord(m.group(1), int(m.group(2))))
    return records


def parse_jsonl(text: str) -> List[IngestRecord]:
    records = []
    for number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            obj = json.loads(line)
        except json.JSONDecodeError as e:
            raise IngestError(f"line {number}: invalid JSON: {e}")
        records.append(_record_from_object(obj, f"line {number}"))
    return records


def parse_json(text: str) -> List[IngestRecord]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise IngestError(f"invalid JSON: {e}")
    if not isinstance(data, list):
        raise IngestError("expected a JSON array of objects")
    return [_record_from_object(obj, f"item {i}") for i, obj in enumerate(data)]


def _normalize_header(header: str) -> str:
    return "".join(c for c in header.lower() if not c.isspace() and c not in "-_")


def _header_kind(header: str) -> str:
    name = _normalize_header(header)
    # Plural headers ("paths", "lines") are accepted too.
    for candidate in (name, name[:-1]):
        if candidate in _PATH_HEADERS:
            return "path"
        if candidate in _LINE_HEADERS:
            return "line"
    return ""


def parse_csv(text: str) -> List[IngestRecord]:
    reader = csv.reader(io.StringIO(text))
    headers = next(reader, None)
    if not headers:
        raise IngestError("CSV input is empty")
    path_column = line_column = None
    for i, header in enumerate(headers):
        kind = _header_kind(header)
        if kind == "path":
            path_column = i
        elif kind == "line":
            line_column = i
    if path_column is None or line_column is None:
        raise IngestError(f"CSV header needs a path column and a line column, got {headers}")

    records = []
    for row_number, row in enumerate(reader, start=2):
        if not row:
            continue
        if len(row) <= max(path_column, line_column):
            raise IngestError(f"CSV row {row_number}: missing fields")
        try:
            line = int(row[line_column])
        except ValueError:
            raise IngestError(f"CSV row {row_number}: line number {row[line_column]!r} is not a number")
        records.append(IngestRecord(row[path_column], line))
    return records


_PARSERS = {
    "grep": parse_grep,
    "json": parse_json,
    "jsonl": parse_jsonl,
    "csv": parse_csv,
}


def parse_records(text: str, input_format: str = "auto") -> List[IngestRecord]:
    if input_format == "auto":
        input_format = guess_format(text)
        log_utils.debug(f"Guessed input format: {input_format}")
    if input_format not in _PARSERS:
        raise IngestError(f"unknown input format {input_format!r}")
    return _PARSERS[input_format](text)


def ingest(records: Iterable[IngestRecord], file_system: FileSystem, context_lines: int) -> SearchResult:
    """Turns locations into matches with context, in record order.

    Only the lines up to the end of each context window are read, so
    locations near the top of large files stay cheap. Unreadable files,
    binary files and line numbers outside the file are reported as errors.
    """
    if context_lines < 0:
        raise ValueError(f"context_lines must be >= 0, got {context_lines}")
    matches = []
    errors = []
    unusable = set()  # paths already reported as binary or unreadable
    checked = set()
    for record in records:
        if record.path in unusable:
            continue
        try:
            if record.path not in checked:
                checked.add(record.path)
                if file_system.is_binary(record.path):
                    errors.append(BinaryFileSkipped(record.path))
                    unusable.add(record.path)
                    continue
            head = file_system.read_line_range(record.path, 1, record.line + context_lines)
        except (OSError, UnicodeDecodeError) as e:
            errors.append(FileReadError(record.path, str(e)))
            unusable.add(record.path)
            continue

        if record.line < 1:
            errors.append(FileReadError(record.path, f"line {record.line} is out of range"))
            continue
        if record.line > len(head):
            # head holds the whole file when it ends before the requested line
            errors.append(FileReadError(
                record.path, f"line {record.line} is out of range (file has {len(head)} lines)"
            ))
            continue
        before, after = extract_context(head, record.line, context_lines)
        offset = sum(len(line.encode("utf-8")) + 1 for line in head[:record.line - 1])
        matches.append(Match(record.path, record.line, head[record.line - 1], offset, before, after))
    return SearchResult(matches=tuple(matches), errors=tuple(errors))
