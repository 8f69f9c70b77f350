import hashlib
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple, Union

from bulked.matchers import PatternError


@dataclass(frozen=True)
class ContextLine:
    """A line shown around a match. Content carries no line terminator."""
    line_number: int
    content: str


@dataclass(frozen=True)
class Match:
    """A single matching line plus the context around it."""
    file_path: str
    line_number: int
    line_content: str
    byte_offset: int
    context_before: Tuple[ContextLine, ...] = ()  # Ascending, ends at line_number - 1
    context_after: Tuple[ContextLine, ...] = ()   # Ascending, starts at line_number + 1

    @property
    def context_lines(self) -> Tuple[ContextLine, ...]:
        return self.context_before + self.context_after


# --- Search errors ---

@dataclass(frozen=True)
class FileReadError:
    path: str
    cause: str

    def describe(self) -> str:
        return f"{self.path}: {self.cause}"


@dataclass(frozen=True)
class BinaryFileSkipped:
    path: str

    def describe(self) -> str:
        return f"{self.path}: binary file skipped"


# PatternError aborts a search instead of being accumulated, but it is
# part of the same family of problems.
SearchError = Union[FileReadError, BinaryFileSkipped, PatternError]


@dataclass(frozen=True)
class SearchResult:
    """Matches in walker order (files) and position order (within a file)."""
    matches: Tuple[Match, ...] = ()
    errors: Tuple[SearchError, ...] = ()

    @property
    def file_paths(self) -> List[str]:
        """Distinct files with at least one match, in first-match order."""
        seen = []
        for match in self.matches:
            if match.file_path not in seen:
                seen.append(match.file_path)
        return seen

    @property
    def read_errors(self) -> List[FileReadError]:
        return [e for e in self.errors if isinstance(e, FileReadError)]


# --- Edits ---

@dataclass(frozen=True)
class EditBlock:
    """Replacement text for the span anchor_line..end_line of a file."""
    file_path: str
    anchor_line: int
    original_line_count: int
    body: Tuple[str, ...]

    @property
    def end_line(self) -> int:
        return self.anchor_line + self.original_line_count - 1

    def overlaps(self, other: "EditBlock") -> bool:
        return self.anchor_line <= other.end_line and other.anchor_line <= self.end_line


@dataclass(frozen=True)
class EditRequest:
    """An EditBlock plus what its surroundings looked like when it was produced."""
    target: EditBlock
    expected_context_fingerprint: str
    context_line_numbers: Tuple[int, ...] = ()


def fingerprint_context(lines: Sequence[ContextLine]) -> str:
    """Stable digest of context lines, numbers included."""
    digest = hashlib.sha256()
    for line in lines:
        digest.update(f"{line.line_number}\t{line.content}\n".encode("utf-8"))
    return digest.hexdigest()


# --- Apply outcomes, one per file ---

@dataclass(frozen=True)
class Applied:
    file_path: str
    edits_applied: int
    diff: str = ""  # Unified diff of the change
    dry_run: bool = False

    def describe(self) -> str:
        verb = "would apply" if self.dry_run else "applied"
        return f"{self.file_path}: {verb} {self.edits_applied} edit(s)"


@dataclass(frozen=True)
class Skipped:
    file_path: str
    reason: str

    def describe(self) -> str:
        return f"{self.file_path}: skipped ({self.reason})"


@dataclass(frozen=True)
class Conflict:
    file_path: str
    reason: str

    def describe(self) -> str:
        return f"{self.file_path}: conflict, {self.reason}"


@dataclass(frozen=True)
class Failed:
    file_path: str
    cause: str

    def describe(self) -> str:
        return f"{self.file_path}: failed, {self.cause}"


ApplyOutcome = Union[Applied, Skipped, Conflict, Failed]


@dataclass
class ApplyReport:
    """Outcomes of one apply call, in first-appearance order of the files."""
    outcomes: List[ApplyOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return not any(isinstance(o, (Conflict, Failed)) for o in self.outcomes)

    @property
    def applied(self) -> List[Applied]:
        return [o for o in self.outcomes if isinstance(o, Applied)]

    @property
    def problems(self) -> List[ApplyOutcome]:
        return [o for o in self.outcomes if isinstance(o, (Conflict, Failed))]
