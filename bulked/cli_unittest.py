import io
import os
import tempfile
import unittest
from unittest.mock import patch

from bulked import cli, log_utils
from bulked.config import Settings


@patch("bulked.cli.load_settings", return_value=Settings())
class TestCli(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = self.tmp.name
        self.app = self._write("app.py", "import os\n\ndef run():\n    return os.getcwd()\n")

    def tearDown(self):
        self.tmp.cleanup()
        log_utils.set_verbose(False)

    def _write(self, name, content):
        path = os.path.join(self.root, name)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        return path

    def _read(self, path):
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()

    def _run(self, argv, stdin=""):
        with patch("sys.stdout", new_callable=io.StringIO) as out, \
                patch("sys.stderr", new_callable=io.StringIO) as err, \
                patch("sys.stdin", io.StringIO(stdin)):
            code = cli.main(argv)
        return code, out.getvalue(), err.getvalue()

    def test_search_prints_structured_blocks(self, _settings):
        code, out, _ = self._run(["search", r"getcwd", self.root, "-C", "1"])
        self.assertEqual(code, 0)
        self.assertIn(f"{self.app}:4\n@@ 1 @@\n3-def run():\n4:    return os.getcwd()\n", out)

    def test_search_plain(self, _settings):
        code, out, _ = self._run(["search", r"getcwd", self.root, "--plain"])
        self.assertEqual(code, 0)
        self.assertIn(">  4 |     return os.getcwd()", out)
        self.assertNotIn("@@", out)

    def test_search_without_matches_succeeds(self, _settings):
        code, out, _ = self._run(["search", r"nothing_like_this", self.root])
        self.assertEqual(code, 0)
        self.assertEqual(out, "# bulked structured v1\n")

    def test_search_invalid_pattern(self, _settings):
        code, out, err = self._run(["search", "(", self.root])
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("Error", err)

    def test_search_missing_root(self, _settings):
        code, _, err = self._run(["search", "x", os.path.join(self.root, "nope")])
        self.assertEqual(code, 1)
        self.assertIn("Path not found", err)

    def test_search_unreadable_root_fails(self, _settings):
        real_scandir = os.scandir

        def scandir(path):
            if path == self.root:
                raise PermissionError(13, "Permission denied", path)
            return real_scandir(path)

        with patch("bulked.walkers.os.scandir", side_effect=scandir):
            code, out, err = self._run(["search", "os", self.root])
        self.assertEqual(code, 1)
        self.assertEqual(out, "")
        self.assertIn("Cannot read", err)

    def test_search_unreadable_root_file_fails(self, _settings):
        denied = PermissionError(13, "Permission denied", self.app)
        with patch("bulked.cli.PhysicalFileSystem.is_binary", side_effect=denied):
            code, _, err = self._run(["search", "os", self.app])
        self.assertEqual(code, 1)
        self.assertIn("Permission denied", " ".join(err.split()))

    @unittest.skipUnless(hasattr(os, "symlink"), "symlinks not supported")
    def test_apply_through_symlink_keeps_link(self, _settings):
        link = os.path.join(self.root, "link.py")
        os.symlink(self.app, link)
        _, out, _ = self._run(["search", r"getcwd", link, "-C", "1"])
        self.assertIn(f"{link}:4\n", out)

        code, _, err = self._run(["apply"], stdin=out.replace("4:    return os.getcwd()", "4:    return os.getcwdb()"))
        self.assertEqual(code, 0, err)
        self.assertTrue(os.path.islink(link))
        self.assertEqual(self._read(self.app), "import os\n\ndef run():\n    return os.getcwdb()\n")

    def test_search_edit_apply_round_trip(self, _settings):
        _, out, _ = self._run(["search", r"getcwd", self.root, "-C", "2"])
        edited = self._write("edits.txt", out.replace("4:    return os.getcwd()", "4:    return os.getcwdb()"))

        code, out, err = self._run(["apply", "-i", edited])
        self.assertEqual(code, 0, err)
        self.assertEqual(out, "")
        self.assertEqual(self._read(self.app), "import os\n\ndef run():\n    return os.getcwdb()\n")

    def test_apply_from_stdin_dry_run(self, _settings):
        _, out, _ = self._run(["search", r"import", self.root])
        code, out, err = self._run(["apply", "--dry-run"], stdin=out.replace("1:import os", "1:import sys"))
        self.assertEqual(code, 0)
        self.assertIn("-import os\n+import sys", out)
        self.assertIn("would apply 1 edit(s)", err)
        self.assertEqual(self._read(self.app), "import os\n\ndef run():\n    return os.getcwd()\n")

    def test_apply_conflict_exits_nonzero(self, _settings):
        _, out, _ = self._run(["search", r"getcwd", self.root, "-C", "1"])
        self._write("app.py", "import os\n\ndef walk():\n    return os.getcwd()\n")
        code, _, err = self._run(["apply"], stdin=out.replace("getcwd()", "getcwdb()"))
        self.assertEqual(code, 1)
        self.assertIn("conflict", err)
        self.assertIn("def walk():", self._read(self.app))

    def test_apply_parse_error(self, _settings):
        code, _, err = self._run(["apply"], stdin="no separator here\n@@ 1 @@\n")
        self.assertEqual(code, 1)
        self.assertIn("Invalid structured input", err)

    def test_apply_unreadable_input(self, _settings):
        code, _, err = self._run(["apply", "-i", os.path.join(self.root, "missing.txt")])
        self.assertEqual(code, 1)
        self.assertIn("Cannot read input", err)

    def test_apply_nothing(self, _settings):
        code, _, err = self._run(["apply"], stdin="")
        self.assertEqual(code, 0)
        self.assertIn("No edits", err)

    def test_ingest_grep_output(self, _settings):
        locations = self._write("hits.txt", f"{self.app}:3:def run():\n")
        code, out, _ = self._run(["ingest", locations, "-C", "0"])
        self.assertEqual(code, 0)
        self.assertIn(f"{self.app}:3\n@@ 1 @@\n3:def run():\n", out)

    def test_ingest_bad_input(self, _settings):
        code, _, err = self._run(["ingest", "-f", "json"], stdin="not json")
        self.assertEqual(code, 1)
        self.assertIn("Invalid location input", err)

    def test_verbose_reports_skipped_binaries(self, _settings):
        with open(os.path.join(self.root, "data.bin"), "wb") as f:
            f.write(b"\x00os\x00")
        code, _, err = self._run(["search", "os", self.root, "-v"])
        self.assertEqual(code, 0)
        self.assertIn("binary file skipped", err)


if __name__ == "__main__":
    unittest.main()
