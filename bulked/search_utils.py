from dataclasses import dataclass
from typing import Callable

from bulked import log_utils
from bulked.code_block import BinaryFileSkipped, FileReadError, Match, SearchResult
from bulked.config import DEFAULT_CONTEXT_LINES
from bulked.context import extract_context
from bulked.file_system import FileSystem, split_lines
from bulked.matchers import Matcher, RegexMatcher
from bulked.walkers import IgnoreWalker, Walker


@dataclass
class SearchConfig:
    pattern: str
    root_path: str = "."
    context_lines: int = DEFAULT_CONTEXT_LINES
    respect_gitignore: bool = True
    include_hidden: bool = False
    follow_symlinks: bool = False

    def build_walker(self) -> IgnoreWalker:
        return IgnoreWalker(
            self.root_path,
            respect_gitignore=self.respect_gitignore,
            include_hidden=self.include_hidden,
            follow_symlinks=self.follow_symlinks,
        )


def search(
    config: SearchConfig,
    file_system: FileSystem,
    walker: Walker,
    compile_matcher: Callable[[str], Matcher] = RegexMatcher.compile,
) -> SearchResult:
    """Searches every file the walker yields for config.pattern.

    Files that are binary or unreadable, and directories below the root
    that cannot be listed, are recorded in SearchResult.errors and do not
    stop the search.

    Raises:
        PatternError: the pattern does not compile. No file has been read.
        OSError: the root directory cannot be listed.
    """
    if config.context_lines < 0:
        raise ValueError(f"context_lines must be >= 0, got {config.context_lines}")
    matcher = compile_matcher(config.pattern)

    matches = []
    errors = []
    files_searched = 0

    def record_unreadable_directory(directory: str, error: OSError) -> None:
        errors.append(FileReadError(directory, str(error)))

    for path in walker.files(on_error=record_unreadable_directory):
        try:
            if file_system.is_binary(path):
                errors.append(BinaryFileSkipped(path))
                continue
            content = file_system.read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            errors.append(FileReadError(path, str(e)))
            continue

        files_searched += 1
        lines = split_lines(content)
        for position in matcher.find_matches(content):
            before, after = extract_context(lines, position.line_number, config.context_lines)
            matches.append(Match(
                file_path=path,
                line_number=position.line_number,
                line_content=position.line_content,
                byte_offset=position.byte_offset,
                context_before=before,
                context_after=after,
            ))

    log_utils.debug(
        f"Searched {files_searched} file(s): {len(matches)} match(es), {len(errors)} skipped or unreadable"
    )
    return SearchResult(matches=tuple(matches), errors=tuple(errors))
