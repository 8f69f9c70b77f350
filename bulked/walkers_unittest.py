import os
import tempfile
import unittest
from unittest.mock import patch

from bulked.walkers import IgnoreWalker, SimpleWalker


class TestIgnoreWalker(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = self.tmp.name
        self._touch("b.py")
        self._touch("a.py")
        self._touch("build/out.py")
        self._touch("src/keep.py")
        self._touch("src/generated.py")
        self._touch("src/deep/x.log")
        self._touch(".hidden/secret.py")
        self._touch(".env")
        self._touch(".git/config")
        self._write(".gitignore", "build/\n*.log\n")
        self._write("src/.gitignore", "generated.py\n")

    def tearDown(self):
        self.tmp.cleanup()

    def _write(self, relative, content):
        path = os.path.join(self.root, relative)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)

    def _touch(self, relative):
        self._write(relative, "")

    def _relative(self, paths):
        return [os.path.relpath(p, self.root).replace(os.sep, "/") for p in paths]

    def test_respects_gitignore_and_skips_hidden(self):
        files = self._relative(IgnoreWalker(self.root).files())
        self.assertEqual(files, ["a.py", "b.py", "src/keep.py"])

    def test_no_ignore(self):
        files = self._relative(IgnoreWalker(self.root, respect_gitignore=False).files())
        self.assertEqual(files, ["a.py", "b.py", "build/out.py", "src/deep/x.log", "src/generated.py", "src/keep.py"])

    def test_hidden_files_included_but_git_dir_never(self):
        files = self._relative(IgnoreWalker(self.root, include_hidden=True).files())
        self.assertIn(".hidden/secret.py", files)
        self.assertIn(".env", files)
        self.assertIn(".gitignore", files)
        self.assertNotIn(".git/config", files)

    def test_files_is_restartable(self):
        walker = IgnoreWalker(self.root)
        self.assertEqual(list(walker.files()), list(walker.files()))

    def test_root_file_yields_itself(self):
        path = os.path.join(self.root, "a.py")
        self.assertEqual(list(IgnoreWalker(path).files()), [path])

    @unittest.skipUnless(hasattr(os, "symlink"), "symlinks not supported")
    def test_symlinks_skipped_unless_followed(self):
        link = os.path.join(self.root, "link.py")
        os.symlink(os.path.join(self.root, "a.py"), link)
        self.assertNotIn("link.py", self._relative(IgnoreWalker(self.root).files()))
        self.assertIn("link.py", self._relative(IgnoreWalker(self.root, follow_symlinks=True).files()))

    @unittest.skipUnless(hasattr(os, "symlink"), "symlinks not supported")
    def test_symlink_cycle_terminates(self):
        os.symlink(self.root, os.path.join(self.root, "src", "loop"))
        files = self._relative(IgnoreWalker(self.root, follow_symlinks=True).files())
        self.assertIn("src/keep.py", files)

    def _denying_scandir(self, denied):
        real_scandir = os.scandir

        def scandir(path):
            if path == denied:
                raise PermissionError(13, "Permission denied", path)
            return real_scandir(path)

        return patch("bulked.walkers.os.scandir", side_effect=scandir)

    def test_unreadable_root_raises(self):
        with self._denying_scandir(self.root):
            with self.assertRaises(PermissionError):
                list(IgnoreWalker(self.root).files())

    def test_unreadable_subdirectory_is_reported_and_skipped(self):
        src = os.path.join(self.root, "src")
        reported = []
        with self._denying_scandir(src):
            files = self._relative(IgnoreWalker(self.root).files(on_error=lambda p, e: reported.append((p, e))))
        self.assertEqual(files, ["a.py", "b.py"])
        self.assertEqual(len(reported), 1)
        self.assertEqual(reported[0][0], src)
        self.assertIsInstance(reported[0][1], PermissionError)

    def test_unreadable_subdirectory_warns_without_handler(self):
        src = os.path.join(self.root, "src")
        with self._denying_scandir(src), patch("bulked.walkers.log_utils.warning") as warning:
            files = self._relative(IgnoreWalker(self.root).files())
        self.assertEqual(files, ["a.py", "b.py"])
        warning.assert_called_once()
        self.assertIn(src, warning.call_args[0][0])


class TestSimpleWalker(unittest.TestCase):
    def test_yields_given_paths(self):
        walker = SimpleWalker(["b.py", "a.py"])
        self.assertEqual(list(walker.files()), ["b.py", "a.py"])
        self.assertEqual(list(walker.files()), ["b.py", "a.py"])


if __name__ == "__main__":
    unittest.main()
