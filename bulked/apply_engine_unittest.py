import unittest
from unittest.mock import patch

from bulked.apply_engine import ApplyMode, apply, apply_requests, find_conflict, group_by_file, splice
from bulked.code_block import Applied, Conflict, EditBlock, EditRequest, Failed, Skipped, fingerprint_context
from bulked.file_system import MemoryFileSystem
from bulked.search_utils import SearchConfig, search
from bulked.structured_format import ParseError, format_structured
from bulked.walkers import SimpleWalker

_APP = "\n".join([
    "import os",
    "",
    "def handler():",
    "    x = 1",
    "    return compute(x)",
    "",
    "def other():",
    "    return compute(2)",
]) + "\n"


def _search_text(fs, pattern, paths, context=1):
    config = SearchConfig(pattern=pattern, context_lines=context)
    return format_structured(search(config, fs, SimpleWalker(paths)))


def _request(path, anchor, body, span=1):
    return EditRequest(EditBlock(path, anchor, span, tuple(body)), fingerprint_context([]), ())


class TestApply(unittest.TestCase):
    def setUp(self):
        self.fs = MemoryFileSystem({"app.py": _APP})

    def test_unmodified_results_change_nothing(self):
        text = _search_text(self.fs, r"compute", ["app.py"])
        report = apply(text, ApplyMode.COMMIT, self.fs)
        self.assertEqual(report.outcomes, [Skipped("app.py", "no changes")])
        self.assertTrue(report.succeeded)
        self.assertEqual(self.fs.writes, [])

    def test_edit_is_written(self):
        text = _search_text(self.fs, r"compute", ["app.py"])
        text = text.replace("5:    return compute(x)", "5:    return compute(x, cache=True)")
        report = apply(text, ApplyMode.COMMIT, self.fs)
        [outcome] = report.outcomes
        self.assertIsInstance(outcome, Applied)
        self.assertEqual(outcome.edits_applied, 1)
        self.assertFalse(outcome.dry_run)
        self.assertEqual(self.fs.read_text("app.py"), _APP.replace("compute(x)", "compute(x, cache=True)"))

    def test_edits_changing_line_counts_are_spliced_bottom_up(self):
        text = _search_text(self.fs, r"compute", ["app.py"])
        text = text.replace("5:    return compute(x)\n", "5:    y = compute(x)\n:    return y\n")
        text = text.replace("8:    return compute(2)\n", "")
        report = apply(text, ApplyMode.COMMIT, self.fs)
        self.assertEqual(report.outcomes[0].edits_applied, 2)
        self.assertEqual(self.fs.read_text("app.py"), "\n".join([
            "import os",
            "",
            "def handler():",
            "    x = 1",
            "    y = compute(x)",
            "    return y",
            "",
            "def other():",
        ]) + "\n")

    def test_reapplying_after_a_new_search_is_idempotent(self):
        text = _search_text(self.fs, r"compute\(x\)", ["app.py"])
        apply(text.replace("5:    return compute(x)", "5:    return compute(x) + 1"), ApplyMode.COMMIT, self.fs)
        after_first = self.fs.read_text("app.py")

        again = _search_text(self.fs, r"compute\(x\)", ["app.py"])
        report = apply(again, ApplyMode.COMMIT, self.fs)
        self.assertEqual([type(o) for o in report.outcomes], [Skipped])
        self.assertEqual(self.fs.read_text("app.py"), after_first)

    def test_changed_context_is_a_conflict(self):
        text = _search_text(self.fs, r"compute\(x\)", ["app.py"])
        edited = text.replace("5:    return compute(x)", "5:    return compute(x, y)")
        self.fs.add_file("app.py", _APP.replace("    x = 1", "    x = 2"))

        report = apply(edited, ApplyMode.COMMIT, self.fs)
        [outcome] = report.outcomes
        self.assertIsInstance(outcome, Conflict)
        self.assertIn("line 5", outcome.reason)
        self.assertFalse(report.succeeded)
        self.assertEqual(self.fs.read_text("app.py"), _APP.replace("    x = 1", "    x = 2"))
        self.assertEqual(self.fs.writes, [])

    def test_one_conflict_blocks_the_whole_file_but_not_other_files(self):
        self.fs.add_file("lib.py", "def compute(v):\n    return v\n")
        text = _search_text(self.fs, r"compute", ["app.py", "lib.py"])
        edited = text.replace("compute", "calculate")
        self.fs.add_file("app.py", _APP.replace("def other():", "def renamed():"))

        report = apply(edited, ApplyMode.COMMIT, self.fs)
        self.assertIsInstance(report.outcomes[0], Conflict)
        self.assertIsInstance(report.outcomes[1], Applied)
        self.assertFalse(report.succeeded)
        self.assertEqual(self.fs.read_text("lib.py"), "def calculate(v):\n    return v\n")
        self.assertIn("compute(x)", self.fs.read_text("app.py"))

    def test_truncated_file_is_a_conflict(self):
        text = _search_text(self.fs, r"compute\(2\)", ["app.py"], context=0)
        self.fs.add_file("app.py", "import os\n")
        [outcome] = apply(text.replace("compute(2)", "compute(3)"), ApplyMode.COMMIT, self.fs).outcomes
        self.assertIsInstance(outcome, Conflict)

    def test_missing_file_fails(self):
        text = _search_text(self.fs, r"import", ["app.py"])
        self.fs.remove_file("app.py")
        report = apply(text.replace("import os", "import sys"), ApplyMode.COMMIT, self.fs)
        [outcome] = report.outcomes
        self.assertIsInstance(outcome, Failed)
        self.assertFalse(report.succeeded)

    def test_write_error_fails(self):
        text = _search_text(self.fs, r"import", ["app.py"])
        with patch.object(self.fs, "write_text", side_effect=PermissionError("read-only")):
            [outcome] = apply(text.replace("import os", "import sys"), ApplyMode.COMMIT, self.fs).outcomes
        self.assertIsInstance(outcome, Failed)
        self.assertIn("read-only", outcome.cause)
        self.assertEqual(self.fs.read_text("app.py"), _APP)

    def test_dry_run_reports_diff_without_writing(self):
        text = _search_text(self.fs, r"import", ["app.py"])
        report = apply(text.replace("1:import os", "1:import sys"), ApplyMode.DRY_RUN, self.fs)
        [outcome] = report.outcomes
        self.assertIsInstance(outcome, Applied)
        self.assertTrue(outcome.dry_run)
        self.assertIn("--- a/app.py", outcome.diff)
        self.assertIn("+++ b/app.py", outcome.diff)
        self.assertIn("-import os", outcome.diff)
        self.assertIn("+import sys", outcome.diff)
        self.assertEqual(self.fs.read_text("app.py"), _APP)
        self.assertEqual(self.fs.writes, [])

    def test_parse_error_touches_nothing(self):
        with patch.object(self.fs, "read_text", wraps=self.fs.read_text) as read:
            with self.assertRaises(ParseError):
                apply("app.py:1\n@@ 1 @@\n1:x\n\nno-separator\n@@ 1 @@\n1:y\n", ApplyMode.COMMIT, self.fs)
            read.assert_not_called()
        self.assertEqual(self.fs.writes, [])

    def test_empty_input_is_a_successful_no_op(self):
        report = apply("", ApplyMode.COMMIT, self.fs)
        self.assertEqual(report.outcomes, [])
        self.assertTrue(report.succeeded)

    def test_crlf_and_missing_trailing_newline_are_preserved(self):
        self.fs.add_file("win.txt", "alpha\r\nbeta\r\ngamma")
        text = _search_text(self.fs, r"beta|gamma", ["win.txt"])
        text = text.replace("2:beta", "2:BETA").replace("3:gamma", "3:GAMMA")
        apply(text, ApplyMode.COMMIT, self.fs)
        self.assertEqual(self.fs.read_text("win.txt"), "alpha\r\nBETA\r\nGAMMA")


class TestApplyHelpers(unittest.TestCase):
    def test_group_by_file_keeps_first_appearance_order(self):
        requests = [_request("b.py", 1, []), _request("a.py", 1, []), _request("b.py", 3, [])]
        groups = group_by_file(requests)
        self.assertEqual(list(groups), ["b.py", "a.py"])
        self.assertEqual([r.target.anchor_line for r in groups["b.py"]], [1, 3])

    def test_overlapping_spans_conflict(self):
        lines = ["a", "b", "c", "d"]
        requests = [_request("f", 1, ["x"], span=2), _request("f", 2, ["y"])]
        self.assertIn("overlap", find_conflict(requests, lines))
        self.assertEqual(find_conflict([_request("f", 1, ["x"], span=2), _request("f", 3, ["y"])], lines), "")

    def test_duplicate_blocks_conflict(self):
        requests = [_request("f", 2, ["x"]), _request("f", 2, ["x"])]
        self.assertNotEqual(find_conflict(requests, ["a", "b"]), "")

    def test_splice_order_independent(self):
        lines = ["1", "2", "3", "4"]
        requests = [_request("f", 1, ["one", "uno"]), _request("f", 3, [])]
        self.assertEqual(splice(lines, requests), ["one", "uno", "2", "4"])
        self.assertEqual(splice(lines, list(reversed(requests))), ["one", "uno", "2", "4"])

    def test_apply_requests_without_text(self):
        fs = MemoryFileSystem({"f.txt": "a\nb\n"})
        report = apply_requests([_request("f.txt", 2, ["B"])], ApplyMode.COMMIT, fs)
        self.assertEqual(report.applied[0].file_path, "f.txt")
        self.assertEqual(fs.read_text("f.txt"), "a\nB\n")


if __name__ == "__main__":
    unittest.main()
