import abc
import os
from typing import Callable, Iterator, List, Optional, Set, Tuple

import pathspec

from bulked import log_utils

GITIGNORE_FILENAME = ".gitignore"
ALWAYS_SKIPPED_DIRS = {".git"}

# Called with the path of a directory that could not be listed.
ErrorHandler = Callable[[str, OSError], None]


class Walker(abc.ABC):
    """Enumerates candidate file paths."""

    @abc.abstractmethod
    def files(self, on_error: Optional[ErrorHandler] = None) -> Iterator[str]:
        """Returns a fresh lazy iterator over file paths on every call.

        A directory below the root that cannot be listed is passed to
        on_error and skipped. When the root itself cannot be listed the
        OSError propagates.
        """


class SimpleWalker(Walker):
    """Yields a fixed list of paths, in order."""

    def __init__(self, paths: List[str]):
        self.paths = list(paths)

    def files(self, on_error: Optional[ErrorHandler] = None) -> Iterator[str]:
        return iter(list(self.paths))


def load_gitignore(directory: str) -> Optional[pathspec.PathSpec]:
    """Reads directory/.gitignore into a PathSpec, or None when there is none."""
    path = os.path.join(directory, GITIGNORE_FILENAME)
    if not os.path.isfile(path):
        return None
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        return pathspec.GitIgnoreSpec.from_lines(f.read().splitlines())


class IgnoreWalker(Walker):
    """Walks a directory tree the way a developer expects a code search to.

    Entries are visited in sorted order, so the result is deterministic.
    `.git` is never entered. Each `.gitignore` applies to its own directory
    and everything below it.
    """

    def __init__(
        self,
        root: str,
        respect_gitignore: bool = True,
        include_hidden: bool = False,
        follow_symlinks: bool = False,
    ):
        self.root = root
        self.respect_gitignore = respect_gitignore
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks

    def files(self, on_error: Optional[ErrorHandler] = None) -> Iterator[str]:
        if os.path.isfile(self.root):
            return iter([self.root])
        return self._walk(self.root, [], set(), on_error)

    def _walk(
        self,
        directory: str,
        specs: List[Tuple[str, pathspec.PathSpec]],
        visited: Set[str],
        on_error: Optional[ErrorHandler],
    ) -> Iterator[str]:
        # Guards against symlink cycles when following links.
        real = os.path.realpath(directory)
        if real in visited:
            return
        visited.add(real)

        try:
            entries = sorted(os.scandir(directory), key=lambda e: e.name)
            if self.respect_gitignore:
                spec = load_gitignore(directory)
                if spec is not None:
                    specs = specs + [(directory, spec)]
        except OSError as e:
            if directory == self.root:
                raise
            if on_error is not None:
                on_error(directory, e)
            else:
                log_utils.warning(f"Skipping unreadable directory {directory}: {e}")
            return

        for entry in entries:
            if not self.include_hidden and entry.name.startswith("."):
                continue
            if entry.is_symlink() and not self.follow_symlinks:
                continue
            is_dir = entry.is_dir(follow_symlinks=self.follow_symlinks)
            if is_dir and entry.name in ALWAYS_SKIPPED_DIRS:
                continue
            if self._is_ignored(entry.path, is_dir, specs):
                continue
            if is_dir:
                yield from self._walk(entry.path, specs, visited, on_error)
            elif entry.is_file(follow_symlinks=self.follow_symlinks):
                yield entry.path

    @staticmethod
    def _is_ignored(path: str, is_dir: bool, specs: List[Tuple[str, pathspec.PathSpec]]) -> bool:
        for base, spec in specs:
            relative = os.path.relpath(path, base).replace(os.sep, "/")
            if is_dir:
                relative += "/"
            if spec.match_file(relative):
                return True
        return False
