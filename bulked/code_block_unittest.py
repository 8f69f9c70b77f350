import unittest

from bulked import code_block


class TestMatch(unittest.TestCase):
    def test_context_lines_in_file_order(self):
        match = code_block.Match(
            file_path="a.py",
            line_number=3,
            line_content="x",
            byte_offset=4,
            context_before=(code_block.ContextLine(2, "b"),),
            context_after=(code_block.ContextLine(4, "d"),),
        )
        self.assertEqual([c.line_number for c in match.context_lines], [2, 4])

    def test_matches_are_immutable(self):
        line = code_block.ContextLine(1, "a")
        with self.assertRaises(AttributeError):
            line.content = "b"


class TestSearchResult(unittest.TestCase):
    def test_file_paths_in_first_match_order(self):
        result = code_block.SearchResult(matches=tuple(
            code_block.Match(path, n, "", 0) for path, n in [("b.py", 1), ("a.py", 2), ("b.py", 5)]
        ))
        self.assertEqual(result.file_paths, ["b.py", "a.py"])


class TestEditBlock(unittest.TestCase):
    def test_end_line(self):
        self.assertEqual(code_block.EditBlock("a.py", 10, 3, ()).end_line, 12)

    def test_overlaps(self):
        block = code_block.EditBlock("a.py", 10, 3, ())
        self.assertTrue(block.overlaps(code_block.EditBlock("a.py", 12, 1, ())))
        self.assertTrue(block.overlaps(code_block.EditBlock("a.py", 8, 3, ())))
        self.assertFalse(block.overlaps(code_block.EditBlock("a.py", 13, 1, ())))
        self.assertFalse(block.overlaps(code_block.EditBlock("a.py", 7, 3, ())))


class TestFingerprint(unittest.TestCase):
    def test_depends_on_numbers_and_content(self):
        base = code_block.fingerprint_context([code_block.ContextLine(1, "a")])
        self.assertEqual(base, code_block.fingerprint_context([code_block.ContextLine(1, "a")]))
        self.assertNotEqual(base, code_block.fingerprint_context([code_block.ContextLine(2, "a")]))
        self.assertNotEqual(base, code_block.fingerprint_context([code_block.ContextLine(1, "a ")]))

    def test_line_boundaries_matter(self):
        joined = code_block.fingerprint_context([code_block.ContextLine(1, "ab")])
        split = code_block.fingerprint_context([code_block.ContextLine(1, "a"), code_block.ContextLine(1, "b")])
        self.assertNotEqual(joined, split)


class TestApplyReport(unittest.TestCase):
    def test_succeeded(self):
        report = code_block.ApplyReport([
            code_block.Applied("a.py", 1),
            code_block.Skipped("b.py", "no changes"),
        ])
        self.assertTrue(report.succeeded)
        report.outcomes.append(code_block.Failed("c.py", "boom"))
        self.assertFalse(report.succeeded)
        self.assertEqual([o.file_path for o in report.problems], ["c.py"])

    def test_describe(self):
        self.assertEqual(code_block.Applied("a.py", 2, dry_run=True).describe(), "a.py: would apply 2 edit(s)")
        self.assertEqual(code_block.Conflict("a.py", "context changed").describe(), "a.py: conflict, context changed")


if __name__ == "__main__":
    unittest.main()
