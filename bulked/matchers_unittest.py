import unittest

from bulked.matchers import MatchPosition, PatternError, RegexMatcher, StubMatcher


class TestRegexMatcher(unittest.TestCase):
    def test_invalid_pattern_raises_pattern_error(self):
        with self.assertRaises(PatternError) as ctx:
            RegexMatcher.compile("foo(")
        self.assertIn("foo(", ctx.exception.message)

    def test_one_position_per_matching_line(self):
        matcher = RegexMatcher.compile(r"TODO")
        positions = matcher.find_matches("a\nTODO TODO\nb\n# TODO\n")
        self.assertEqual([p.line_number for p in positions], [2, 4])
        self.assertEqual(positions[0].line_content, "TODO TODO")

    def test_byte_offset_points_at_first_match(self):
        matcher = RegexMatcher.compile(r"x")
        positions = matcher.find_matches("é\nabx\n")
        # "é" is two bytes, plus the newline
        self.assertEqual(positions, [MatchPosition(2, 3 + 2, "abx")])

    def test_crlf_content_is_stripped(self):
        matcher = RegexMatcher.compile(r"end$")
        positions = matcher.find_matches("the end\r\nnot\r\n")
        self.assertEqual(positions, [MatchPosition(1, 4, "the end")])

    def test_no_matches(self):
        self.assertEqual(RegexMatcher.compile("zzz").find_matches("abc\n"), [])
        self.assertEqual(RegexMatcher.compile("a").find_matches(""), [])


class TestStubMatcher(unittest.TestCase):
    def test_returns_canned_positions(self):
        canned = [MatchPosition(3, 10, "line three")]
        matcher = StubMatcher(canned)
        self.assertEqual(matcher.find_matches("anything"), canned)
        self.assertEqual(matcher.calls, ["anything"])


if __name__ == "__main__":
    unittest.main()
