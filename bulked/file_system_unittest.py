import os
import stat
import tempfile
import unittest
from unittest.mock import patch

from bulked import file_system
from bulked.file_system import MemoryFileSystem, PhysicalFileSystem


class TestLineHelpers(unittest.TestCase):
    def test_split_lines_drops_single_trailing_newline(self):
        self.assertEqual(file_system.split_lines("a\nb\n"), ["a", "b"])
        self.assertEqual(file_system.split_lines("a\nb"), ["a", "b"])

    def test_split_lines_keeps_blank_lines(self):
        self.assertEqual(file_system.split_lines("a\n\n\nb\n"), ["a", "", "", "b"])
        self.assertEqual(file_system.split_lines("\n"), [""])

    def test_split_lines_strips_carriage_returns(self):
        self.assertEqual(file_system.split_lines("a\r\nb\r\n"), ["a", "b"])

    def test_split_lines_only_breaks_on_newline(self):
        self.assertEqual(file_system.split_lines("a\x0cb\n"), ["a\x0cb"])

    def test_split_lines_empty(self):
        self.assertEqual(file_system.split_lines(""), [])

    def test_detect_line_ending(self):
        self.assertEqual(file_system.detect_line_ending("a\r\nb"), "\r\n")
        self.assertEqual(file_system.detect_line_ending("a\nb"), "\n")
        self.assertEqual(file_system.detect_line_ending("a"), "\n")

    def test_join_lines(self):
        self.assertEqual(file_system.join_lines(["a", "b"]), "a\nb\n")
        self.assertEqual(file_system.join_lines(["a", "b"], "\r\n", trailing_newline=False), "a\r\nb")
        self.assertEqual(file_system.join_lines([]), "")

    def test_looks_binary(self):
        self.assertTrue(file_system.looks_binary(b"abc\0def"))
        self.assertTrue(file_system.looks_binary(b"\xff\xfe garbage"))
        self.assertFalse(file_system.looks_binary("héllo".encode("utf-8")))
        self.assertFalse(file_system.looks_binary(b""))

    def test_looks_binary_tolerates_character_cut_at_sample_boundary(self):
        sample = ("a" * (file_system.BINARY_SAMPLE_SIZE - 1)).encode() + "é".encode("utf-8")[:1]
        self.assertEqual(len(sample), file_system.BINARY_SAMPLE_SIZE)
        self.assertFalse(file_system.looks_binary(sample))


class TestPhysicalFileSystem(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = self.tmp.name
        self.fs = PhysicalFileSystem()

    def tearDown(self):
        self.tmp.cleanup()

    def _write(self, name, data: bytes) -> str:
        path = os.path.join(self.dir, name)
        with open(path, "wb") as f:
            f.write(data)
        return path

    def test_read_text_preserves_crlf(self):
        path = self._write("crlf.txt", b"one\r\ntwo\r\n")
        self.assertEqual(self.fs.read_text(path), "one\r\ntwo\r\n")

    def test_read_line_range(self):
        path = self._write("lines.txt", b"1\n2\n3\n4\n5\n")
        self.assertEqual(self.fs.read_line_range(path, 2, 4), ["2", "3", "4"])
        self.assertEqual(self.fs.read_line_range(path, 4, 99), ["4", "5"])
        self.assertEqual(self.fs.read_line_range(path, 4, 3), [])

    def test_read_line_range_strips_crlf(self):
        path = self._write("crlf.txt", b"a\r\nb\r\nc")
        self.assertEqual(self.fs.read_line_range(path, 1, 3), ["a", "b", "c"])

    def test_missing_file_raises(self):
        with self.assertRaises(FileNotFoundError):
            self.fs.read_text(os.path.join(self.dir, "missing.txt"))
        self.assertFalse(self.fs.exists(os.path.join(self.dir, "missing.txt")))

    def test_is_binary(self):
        self.assertTrue(self.fs.is_binary(self._write("bin.dat", b"\x00\x01\x02")))
        self.assertFalse(self.fs.is_binary(self._write("text.txt", b"plain text\n")))

    def test_write_text_replaces_content(self):
        path = self._write("target.txt", b"old\n")
        self.fs.write_text(path, "new\r\ncontent\r\n")
        with open(path, "rb") as f:
            self.assertEqual(f.read(), b"new\r\ncontent\r\n")
        self.assertEqual(os.listdir(self.dir), ["target.txt"])

    def test_write_text_keeps_permissions(self):
        path = self._write("script.sh", b"echo hi\n")
        os.chmod(path, 0o755)
        self.fs.write_text(path, "echo bye\n")
        self.assertEqual(stat.S_IMODE(os.stat(path).st_mode), 0o755)

    @unittest.skipUnless(hasattr(os, "symlink"), "symlinks not supported")
    def test_write_text_through_symlink_edits_target(self):
        target = self._write("real.txt", b"a\nneedle\nb\n")
        os.chmod(target, 0o640)
        link = os.path.join(self.dir, "link.txt")
        os.symlink(target, link)

        self.fs.write_text(link, "a\nchanged\nb\n")

        self.assertTrue(os.path.islink(link))
        with open(target, "rb") as f:
            self.assertEqual(f.read(), b"a\nchanged\nb\n")
        self.assertEqual(stat.S_IMODE(os.stat(target).st_mode), 0o640)
        self.assertEqual(sorted(os.listdir(self.dir)), ["link.txt", "real.txt"])

    def test_failed_replace_leaves_original_and_no_temp_file(self):
        path = self._write("target.txt", b"original\n")
        with patch("bulked.file_system.os.replace", side_effect=OSError("disk full")):
            with self.assertRaises(OSError):
                self.fs.write_text(path, "changed\n")
        with open(path, "rb") as f:
            self.assertEqual(f.read(), b"original\n")
        self.assertEqual(os.listdir(self.dir), ["target.txt"])


class TestMemoryFileSystem(unittest.TestCase):
    def test_read_write(self):
        fs = MemoryFileSystem({"a.py": "x = 1\n"})
        self.assertTrue(fs.exists("a.py"))
        self.assertEqual(fs.read_text("a.py"), "x = 1\n")
        fs.write_text("a.py", "x = 2\n")
        self.assertEqual(fs.read_text("a.py"), "x = 2\n")
        self.assertEqual(fs.writes, [("a.py", "x = 2\n")])

    def test_missing_file(self):
        fs = MemoryFileSystem()
        with self.assertRaises(FileNotFoundError):
            fs.read_text("nope.py")

    def test_binary_and_undecodable(self):
        fs = MemoryFileSystem({"img.png": b"\x89PNG\r\n\x1a\n\x00", "bad.txt": b"\xff\xfe"})
        self.assertTrue(fs.is_binary("img.png"))
        with self.assertRaises(UnicodeDecodeError):
            fs.read_text("bad.txt")

    def test_read_line_range(self):
        fs = MemoryFileSystem({"f.txt": "1\n2\n3\n"})
        self.assertEqual(fs.read_line_range("f.txt", 0, 2), ["1", "2"])
        self.assertEqual(fs.read_line_range("f.txt", 3, 10), ["3"])

    def test_files_and_remove(self):
        fs = MemoryFileSystem({"b.py": "", "a.py": ""})
        self.assertEqual(fs.files, ["a.py", "b.py"])
        fs.remove_file("a.py")
        self.assertEqual(fs.files, ["b.py"])


if __name__ == "__main__":
    unittest.main()
