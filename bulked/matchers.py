import abc
import re
from dataclasses import dataclass
from typing import List


class PatternError(ValueError):
    """The search pattern does not compile."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class MatchPosition:
    """One matching line as reported by a Matcher."""
    line_number: int  # 1-indexed
    byte_offset: int  # UTF-8 offset of the first match on the line, from the start of the text
    line_content: str  # Without the line terminator


class Matcher(abc.ABC):
    """Finds the lines of a text that match a compiled pattern."""

    @classmethod
    @abc.abstractmethod
    def compile(cls, pattern: str) -> "Matcher":
        """Returns a matcher for pattern or raises PatternError."""

    @abc.abstractmethod
    def find_matches(self, text: str) -> List[MatchPosition]:
        """Returns one position per matching line, in file order."""


class RegexMatcher(Matcher):
    """Python `re` semantics, applied line by line."""

    def __init__(self, regex: "re.Pattern"):
        self.regex = regex

    @classmethod
    def compile(cls, pattern: str) -> "RegexMatcher":
        try:
            return cls(re.compile(pattern))
        except re.error as e:
            raise PatternError(f"invalid pattern {pattern!r}: {e}") from e

    def find_matches(self, text: str) -> List[MatchPosition]:
        positions = []
        offset = 0
        raw_lines = text.split("\n")
        if raw_lines and raw_lines[-1] == "":
            raw_lines.pop()
        for line_number, raw in enumerate(raw_lines, start=1):
            line = raw[:-1] if raw.endswith("\r") else raw
            m = self.regex.search(line)
            if m:
                column = len(line[:m.start()].encode("utf-8"))
                positions.append(MatchPosition(line_number, offset + column, line))
            offset += len(raw.encode("utf-8")) + 1
        return positions


class StubMatcher(Matcher):
    """Returns a fixed set of positions regardless of the text."""

    def __init__(self, positions: List[MatchPosition] = None):
        self.positions = list(positions or [])
        self.calls: List[str] = []

    @classmethod
    def compile(cls, pattern: str) -> "StubMatcher":
        return cls()

    def find_matches(self, text: str) -> List[MatchPosition]:
        self.calls.append(text)
        return list(self.positions)
