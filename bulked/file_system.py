import abc
import os
import shutil
import tempfile
from typing import Dict, List, Tuple, Union

# Bytes sampled from the head of a file when deciding whether it is binary.
BINARY_SAMPLE_SIZE = 8192


# --- Line helpers ---

def split_lines(text: str) -> List[str]:
    """Splits text into lines without terminators.

    Only '\\n' (optionally preceded by '\\r') ends a line, so the numbering
    matches what grep-like tools report. A trailing newline does not open
    an extra empty line.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def detect_line_ending(text: str) -> str:
    """Returns '\\r\\n' when the text uses Windows line endings, '\\n' otherwise."""
    return "\r\n" if "\r\n" in text else "\n"


def join_lines(lines: List[str], line_ending: str = "\n", trailing_newline: bool = True) -> str:
    """Inverse of split_lines for a given line ending style."""
    if not lines:
        return ""
    return line_ending.join(lines) + (line_ending if trailing_newline else "")


def looks_binary(sample: bytes) -> bool:
    """True when the sample contains a NUL byte or is not valid UTF-8."""
    if b"\0" in sample:
        return True
    try:
        sample.decode("utf-8")
    except UnicodeDecodeError as e:
        # A multi-byte character cut off by the sample boundary is still text.
        if e.reason == "unexpected end of data" and len(sample) >= BINARY_SAMPLE_SIZE:
            return False
        return True
    return False


# --- FileSystem port ---

class FileSystem(abc.ABC):
    """Everything the searcher and the apply engine need from storage.

    Failures surface as OSError subclasses (FileNotFoundError,
    IsADirectoryError, PermissionError, ...) or UnicodeDecodeError.
    """

    @abc.abstractmethod
    def read_text(self, path: str) -> str:
        """Returns the UTF-8 decoded content with line endings untouched."""

    @abc.abstractmethod
    def exists(self, path: str) -> bool:
        pass

    @abc.abstractmethod
    def is_binary(self, path: str) -> bool:
        pass

    @abc.abstractmethod
    def write_text(self, path: str, text: str) -> None:
        """Replaces the file content atomically."""

    def read_line_range(self, path: str, start: int, end: int) -> List[str]:
        """Returns lines start..end (1-indexed, inclusive), clipped to the file."""
        if end < start:
            return []
        lines = split_lines(self.read_text(path))
        return lines[max(start, 1) - 1:end]


class PhysicalFileSystem(FileSystem):
    """The real disk."""

    def read_text(self, path: str) -> str:
        # newline='' keeps '\r\n' so the apply engine can preserve it.
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()

    def read_line_range(self, path: str, start: int, end: int) -> List[str]:
        result = []
        if end < start:
            return result
        # Binary iteration splits on b'\n' only, matching split_lines.
        with open(path, "rb") as f:
            for line_number, raw in enumerate(f, start=1):
                if line_number > end:
                    break
                if line_number >= start:
                    result.extend(split_lines(raw.decode("utf-8")))
        return result

    def exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_binary(self, path: str) -> bool:
        with open(path, "rb") as f:
            return looks_binary(f.read(BINARY_SAMPLE_SIZE))

    def write_text(self, path: str, text: str) -> None:
        """Writes to a temporary sibling and renames it over the target.

        Readers see either the old or the new content, never a partial file.
        The permission bits of an existing target are kept. A symlink is
        resolved first so the link stays in place and its target is edited.
        """
        path = os.path.realpath(path)
        directory = os.path.dirname(path)
        tmp = tempfile.NamedTemporaryFile(
            mode="w", encoding="utf-8", newline="", dir=directory,
            prefix=f".{os.path.basename(path)}.", suffix=".tmp", delete=False,
        )
        try:
            with tmp:
                tmp.write(text)
                tmp.flush()
                os.fsync(tmp.fileno())
            if os.path.exists(path):
                shutil.copymode(path, tmp.name)
            os.replace(tmp.name, path)
        except BaseException:
            if os.path.exists(tmp.name):
                os.unlink(tmp.name)
            raise


class MemoryFileSystem(FileSystem):
    """Dict-backed file system for tests. Paths are compared as given."""

    def __init__(self, files: Dict[str, Union[str, bytes]] = None):
        self._files: Dict[str, bytes] = {}
        self.writes: List[Tuple[str, str]] = []  # (path, text) for every write_text call
        for path, content in (files or {}).items():
            self.add_file(path, content)

    def add_file(self, path: str, content: Union[str, bytes]) -> None:
        if isinstance(content, str):
            content = content.encode("utf-8")
        self._files[path] = content

    def remove_file(self, path: str) -> None:
        del self._files[path]

    @property
    def files(self) -> List[str]:
        return sorted(self._files)

    def _get(self, path: str) -> bytes:
        if path not in self._files:
            raise FileNotFoundError(2, "No such file or directory", path)
        return self._files[path]

    def read_text(self, path: str) -> str:
        return self._get(path).decode("utf-8")

    def exists(self, path: str) -> bool:
        return path in self._files

    def is_binary(self, path: str) -> bool:
        return looks_binary(self._get(path)[:BINARY_SAMPLE_SIZE])

    def write_text(self, path: str, text: str) -> None:
        self.writes.append((path, text))
        self._files[path] = text.encode("utf-8")
