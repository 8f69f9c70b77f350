import unittest

from bulked.code_block import ContextLine
from bulked.context import extract_context

TEN_LINES = [f"line {n}" for n in range(1, 11)]


class TestExtractContext(unittest.TestCase):
    def test_window_in_the_middle(self):
        before, after = extract_context(TEN_LINES, 5, 2)
        self.assertEqual(before, (ContextLine(3, "line 3"), ContextLine(4, "line 4")))
        self.assertEqual(after, (ContextLine(6, "line 6"), ContextLine(7, "line 7")))

    def test_match_on_first_line(self):
        before, after = extract_context(TEN_LINES, 1, 3)
        self.assertEqual(before, ())
        self.assertEqual([c.line_number for c in after], [2, 3, 4])

    def test_match_on_last_line(self):
        before, after = extract_context(TEN_LINES, 10, 3)
        self.assertEqual([c.line_number for c in before], [7, 8, 9])
        self.assertEqual(after, ())

    def test_match_in_the_middle_of_fifty_lines(self):
        lines = [f"row {n}" for n in range(1, 51)]
        before, after = extract_context(lines, 25, 20)
        self.assertEqual([c.line_number for c in before], list(range(5, 25)))
        self.assertEqual([c.line_number for c in after], list(range(26, 46)))
        self.assertEqual(before[0], ContextLine(5, "row 5"))
        self.assertEqual(after[-1], ContextLine(45, "row 45"))

    def test_window_larger_than_short_file(self):
        before, after = extract_context(TEN_LINES, 3, 20)
        self.assertEqual([c.line_number for c in before], [1, 2])
        self.assertEqual([c.line_number for c in after], list(range(4, 11)))

    def test_window_clipped_near_start(self):
        # 100-line file, match on line 3, window 5: before 1-2, after 4-8.
        lines = [str(n) for n in range(1, 101)]
        before, after = extract_context(lines, 3, 5)
        self.assertEqual([c.line_number for c in before], [1, 2])
        self.assertEqual([c.line_number for c in after], [4, 5, 6, 7, 8])

    def test_counts_follow_the_formula(self):
        total, window = len(TEN_LINES), 4
        for match_line in range(1, total + 1):
            before, after = extract_context(TEN_LINES, match_line, window)
            self.assertEqual(len(before), min(window, match_line - 1))
            self.assertEqual(len(after), min(window, total - match_line))

    def test_zero_window(self):
        self.assertEqual(extract_context(TEN_LINES, 5, 0), ((), ()))

    def test_degenerate_inputs(self):
        self.assertEqual(extract_context([], 1, 5), ((), ()))
        self.assertEqual(extract_context(["only"], 1, 5), ((), ()))
        self.assertEqual(extract_context(TEN_LINES, 0, 2), ((), ()))
        self.assertEqual(extract_context(TEN_LINES, 11, 2), ((), ()))

    def test_negative_window_is_rejected(self):
        with self.assertRaises(ValueError):
            extract_context(TEN_LINES, 5, -1)



if __name__ == "__main__":
    unittest.main()
