import unittest

from bulked import ingest as ingest_module
from bulked.code_block import BinaryFileSkipped, ContextLine, FileReadError
from bulked.file_system import MemoryFileSystem
from bulked.ingest import IngestError, IngestRecord, guess_format, ingest, parse_records


class TestGuessFormat(unittest.TestCase):
    def test_guesses(self):
        self.assertEqual(guess_format('[{"path": "a", "line": 1}]'), "json")
        self.assertEqual(guess_format('{"path": "a", "line": 1}\n'), "jsonl")
        self.assertEqual(guess_format("path,line\na.py,1\n"), "csv")
        self.assertEqual(guess_format("a.py:1:foo, bar\n"), "grep")
        self.assertEqual(guess_format("\n\nsrc/a.py:3:x\n"), "grep")
        self.assertEqual(guess_format(""), "grep")


class TestParseRecords(unittest.TestCase):
    def test_grep(self):
        text = "src/a.py:12:    call()\nsrc/b.py:3:7: warning\nsrc/a.py-13-context\n--\nweird:name.py:4:x\n"
        self.assertEqual(parse_records(text, "grep"), [
            IngestRecord("src/a.py", 12),
            IngestRecord("src/b.py", 3),
            IngestRecord("weird:name.py", 4),
        ])

    def test_jsonl(self):
        text = '{"path": "a.py", "line": 2}\n\n{"path": "b.py", "line": "5", "extra": true}\n'
        self.assertEqual(parse_records(text), [IngestRecord("a.py", 2), IngestRecord("b.py", 5)])

    def test_json(self):
        text = '[{"path": "a.py", "line": 1}, {"path": "b.py", "line": 9}]'
        self.assertEqual(parse_records(text), [IngestRecord("a.py", 1), IngestRecord("b.py", 9)])

    def test_csv_with_loose_headers(self):
        text = "File Path,Line-Number,message\na.py,3,oops\nb.py,10,again\n"
        self.assertEqual(parse_records(text, "csv"), [IngestRecord("a.py", 3), IngestRecord("b.py", 10)])

    def test_csv_plural_headers(self):
        self.assertEqual(parse_records("paths,lines\na.py,1\n", "csv"), [IngestRecord("a.py", 1)])

    def test_errors(self):
        with self.assertRaises(IngestError):
            parse_records("[{not json", "json")
        with self.assertRaises(IngestError):
            parse_records('{"path": "a.py"}\n', "jsonl")
        with self.assertRaises(IngestError):
            parse_records("name,value\na,1\n", "csv")
        with self.assertRaises(IngestError):
            parse_records("path,line\na.py,x\n", "csv")
        with self.assertRaises(IngestError):
            parse_records("a.py:1", "xml")


class TestIngest(unittest.TestCase):
    def setUp(self):
        self.fs = MemoryFileSystem({
            "a.py": "one\ntwo\nthree\nfour\n",
            "blob.bin": b"\x00\x00",
        })

    def test_builds_matches_with_context(self):
        result = ingest([IngestRecord("a.py", 2), IngestRecord("a.py", 2)], self.fs, 1)
        self.assertEqual(len(result.matches), 2)
        match = result.matches[0]
        self.assertEqual((match.line_number, match.line_content), (2, "two"))
        self.assertEqual(match.byte_offset, 4)
        self.assertEqual(match.context_before, (ContextLine(1, "one"),))
        self.assertEqual(match.context_after, (ContextLine(3, "three"),))

    def test_problems_become_errors(self):
        records = [
            IngestRecord("missing.py", 1),
            IngestRecord("blob.bin", 1),
            IngestRecord("a.py", 9),
            IngestRecord("a.py", 4),
        ]
        result = ingest(records, self.fs, 0)
        self.assertEqual([m.line_number for m in result.matches], [4])
        self.assertIsInstance(result.errors[0], FileReadError)
        self.assertEqual(result.errors[1], BinaryFileSkipped("blob.bin"))
        self.assertIn("out of range", result.errors[2].cause)

    def test_reads_only_up_to_the_context_window(self):
        calls = []
        original = self.fs.read_line_range

        def recording_read(path, start, end):
            calls.append((path, start, end))
            return original(path, start, end)

        self.fs.read_line_range = recording_read
        result = ingest([IngestRecord("a.py", 1), IngestRecord("a.py", 3)], self.fs, 1)
        self.assertEqual(calls, [("a.py", 1, 2), ("a.py", 1, 4)])
        self.assertEqual(result.matches[1].context_after, (ContextLine(4, "four"),))

    def test_line_zero_is_out_of_range(self):
        result = ingest([IngestRecord("a.py", 0)], self.fs, 2)
        self.assertEqual(result.matches, ())
        self.assertIn("out of range", result.errors[0].cause)

    def test_known_formats(self):
        self.assertEqual(set(ingest_module.INPUT_FORMATS), {"auto", "grep", "json", "jsonl", "csv"})


if __name__ == "__main__":
    unittest.main()
