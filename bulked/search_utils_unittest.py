import os
import tempfile
import unittest
from unittest.mock import MagicMock

from bulked.code_block import BinaryFileSkipped, ContextLine, FileReadError
from bulked.file_system import MemoryFileSystem
from bulked.matchers import MatchPosition, PatternError, StubMatcher
from bulked.search_utils import SearchConfig, search
from bulked.walkers import IgnoreWalker, SimpleWalker, Walker

_HUNDRED_LINES = "".join(f"line {n}\n" for n in range(1, 101)).replace("line 3\n", "needle here\n")


class TestSearch(unittest.TestCase):
    def test_match_near_start_of_file(self):
        fs = MemoryFileSystem({"big.txt": _HUNDRED_LINES})
        result = search(SearchConfig("needle", context_lines=5), fs, SimpleWalker(["big.txt"]))

        [match] = result.matches
        self.assertEqual(match.file_path, "big.txt")
        self.assertEqual(match.line_number, 3)
        self.assertEqual(match.line_content, "needle here")
        self.assertEqual(match.byte_offset, len("line 1\nline 2\n"))
        self.assertEqual(match.context_before, (ContextLine(1, "line 1"), ContextLine(2, "line 2")))
        self.assertEqual([c.line_number for c in match.context_after], [4, 5, 6, 7, 8])
        self.assertEqual(result.errors, ())

    def test_adjacent_matches_keep_their_own_context(self):
        fs = MemoryFileSystem({"f.txt": "a\nhit 1\nhit 2\nb\n"})
        result = search(SearchConfig("hit", context_lines=1), fs, SimpleWalker(["f.txt"]))

        first, second = result.matches
        self.assertEqual(first.line_number, 2)
        self.assertEqual(first.context_after, (ContextLine(3, "hit 2"),))
        self.assertEqual(second.line_number, 3)
        self.assertEqual(second.context_before, (ContextLine(2, "hit 1"),))

    def test_files_in_walker_order(self):
        fs = MemoryFileSystem({"a.py": "x\n", "b.py": "x\nx\n"})
        result = search(SearchConfig("x", context_lines=0), fs, SimpleWalker(["b.py", "a.py"]))
        self.assertEqual([(m.file_path, m.line_number) for m in result.matches], [("b.py", 1), ("b.py", 2), ("a.py", 1)])
        self.assertEqual(result.file_paths, ["b.py", "a.py"])

    def test_invalid_pattern_touches_no_file(self):
        fs = MagicMock()
        walker = MagicMock()
        with self.assertRaises(PatternError):
            search(SearchConfig("(unclosed"), fs, walker)
        walker.files.assert_not_called()
        fs.read_text.assert_not_called()

    def test_binary_and_unreadable_files_are_reported(self):
        fs = MemoryFileSystem({"img.bin": b"\x00\x01", "ok.txt": "match\n"})
        result = search(SearchConfig("match"), fs, SimpleWalker(["img.bin", "gone.txt", "ok.txt"]))
        self.assertEqual(len(result.matches), 1)
        self.assertEqual(result.errors[0], BinaryFileSkipped("img.bin"))
        self.assertIsInstance(result.errors[1], FileReadError)
        self.assertEqual(result.errors[1].path, "gone.txt")
        self.assertEqual(result.read_errors, [result.errors[1]])

    def test_unreadable_directory_is_recorded(self):
        class LockedDirectoryWalker(Walker):
            def files(self, on_error=None):
                on_error("locked", PermissionError(13, "Permission denied", "locked"))
                yield "ok.txt"

        fs = MemoryFileSystem({"ok.txt": "match\n"})
        result = search(SearchConfig("match"), fs, LockedDirectoryWalker())
        self.assertEqual(len(result.matches), 1)
        self.assertEqual(result.read_errors, [FileReadError("locked", "[Errno 13] Permission denied: 'locked'")])

    def test_unlistable_root_raises(self):
        with tempfile.TemporaryDirectory() as tmp:
            missing = os.path.join(tmp, "missing")
            with self.assertRaises(OSError):
                search(SearchConfig("x", root_path=missing), MemoryFileSystem(), IgnoreWalker(missing))

    def test_empty_file(self):
        fs = MemoryFileSystem({"empty.txt": ""})
        result = search(SearchConfig(".*"), fs, SimpleWalker(["empty.txt"]))
        self.assertEqual(result.matches, ())
        self.assertEqual(result.errors, ())

    def test_custom_matcher(self):
        fs = MemoryFileSystem({"f.txt": "one\ntwo\nthree\n"})
        stub = StubMatcher([MatchPosition(2, 4, "two")])
        result = search(SearchConfig("ignored", context_lines=1), fs, SimpleWalker(["f.txt"]), lambda p: stub)
        [match] = result.matches
        self.assertEqual((match.line_number, match.line_content), (2, "two"))
        self.assertEqual(match.context_before, (ContextLine(1, "one"),))
        self.assertEqual(match.context_after, (ContextLine(3, "three"),))

    def test_negative_context_rejected(self):
        with self.assertRaises(ValueError):
            search(SearchConfig("x", context_lines=-1), MemoryFileSystem(), SimpleWalker([]))


class TestSearchConfig(unittest.TestCase):
    def test_build_walker(self):
        config = SearchConfig("x", root_path="src", respect_gitignore=False, include_hidden=True)
        walker = config.build_walker()
        self.assertIsInstance(walker, IgnoreWalker)
        self.assertEqual(walker.root, "src")
        self.assertFalse(walker.respect_gitignore)
        self.assertTrue(walker.include_hidden)
        self.assertFalse(walker.follow_symlinks)

    def test_defaults(self):
        config = SearchConfig("x")
        self.assertEqual(config.context_lines, 20)
        self.assertTrue(config.respect_gitignore)
        self.assertFalse(config.include_hidden)


if __name__ == "__main__":
    unittest.main()
