import unittest

from bulked import structured_format
from bulked.code_block import (
    ContextLine,
    EditBlock,
    EditRequest,
    Match,
    SearchResult,
    fingerprint_context,
)
from bulked.structured_format import ParseError, format_plain, format_structured, parse_structured


def _unmodified_request(match):
    return EditRequest(
        target=EditBlock(match.file_path, match.line_number, 1, (match.line_content,)),
        expected_context_fingerprint=fingerprint_context(match.context_lines),
        context_line_numbers=tuple(line.line_number for line in match.context_lines),
    )


def _match(path="src/app.py", line=25, content="    return compute(x)", before=(), after=()):
    return Match(
        file_path=path,
        line_number=line,
        line_content=content,
        byte_offset=0,
        context_before=tuple(ContextLine(n, c) for n, c in before),
        context_after=tuple(ContextLine(n, c) for n, c in after),
    )


_SAMPLE_MATCH = _match(
    before=[(23, "def handler():"), (24, "    x = 1")],
    after=[(26, ""), (27, "# end")],
)


class TestFormatStructured(unittest.TestCase):
    def test_block_layout(self):
        expected = (
            "# bulked structured v1\n"
            "\n"
            "src/app.py:25\n"
            "@@ 1 @@\n"
            "23-def handler():\n"
            "24-    x = 1\n"
            "25:    return compute(x)\n"
            "26-\n"
            "27-# end\n"
        )
        self.assertEqual(format_structured(SearchResult(matches=(_SAMPLE_MATCH,))), expected)

    def test_empty_result_is_only_the_version_line(self):
        self.assertEqual(format_structured(SearchResult()), structured_format.VERSION_LINE + "\n")

    def test_overlapping_matches_are_not_deduplicated(self):
        first = _match(line=2, content="b", before=[(1, "a")], after=[(3, "c")])
        second = _match(line=3, content="c", before=[(2, "b")], after=[(4, "d")])
        text = format_structured(SearchResult(matches=(first, second)))
        self.assertEqual(text.count("src/app.py:"), 2)
        self.assertIn("3-c\n", text)
        self.assertIn("3:c\n", text)


class TestFormatPlain(unittest.TestCase):
    def test_plain_has_no_tags(self):
        plain = format_plain(SearchResult(matches=(_SAMPLE_MATCH,))).plain
        self.assertIn("src/app.py:25\n", plain)
        self.assertIn(">  25 |     return compute(x)\n", plain)
        self.assertIn("   23 | def handler():\n", plain)
        self.assertNotIn("@@", plain)

    def test_plain_output_is_rejected_by_parser(self):
        plain = format_plain(SearchResult(matches=(_SAMPLE_MATCH,))).plain
        with self.assertRaises(ParseError):
            parse_structured(plain)


class TestParseStructured(unittest.TestCase):
    def test_round_trip(self):
        matches = (
            _SAMPLE_MATCH,
            _match(path="src/util.py", line=1, content="import sys", after=[(2, "import os")]),
            _match(path="src/util.py", line=9, content="", before=[(8, "x")]),
            _match(path="weird:name.py", line=3, content="3:looks:tagged"),
        )
        requests = parse_structured(format_structured(SearchResult(matches=matches)))
        self.assertEqual(requests, [_unmodified_request(m) for m in matches])

    def test_edited_body(self):
        text = (
            "src/app.py:25\n"
            "@@ 1 @@\n"
            "24-    x = 1\n"
            "25:    return compute(x, y)\n"
            ":    log(x)\n"
            "    done()\n"
            "26-\n"
        )
        [request] = parse_structured(text)
        self.assertEqual(request.target, EditBlock(
            "src/app.py", 25, 1, ("    return compute(x, y)", "    log(x)", "    done()")
        ))
        self.assertEqual(request.context_line_numbers, (24, 26))
        self.assertEqual(
            request.expected_context_fingerprint,
            fingerprint_context([ContextLine(24, "    x = 1"), ContextLine(26, "")]),
        )

    def test_deleted_body(self):
        [request] = parse_structured("a.py:2\n@@ 1 @@\n1-one\n3-three\n")
        self.assertEqual(request.target.body, ())
        self.assertEqual(request.context_line_numbers, (1, 3))

    def test_context_like_line_out_of_sequence_is_body(self):
        [request] = parse_structured("a.py:5\n@@ 1 @@\n4-four\n5:five\n2-looks like context\n6-six\n")
        self.assertEqual(request.target.body, ("five", "2-looks like context"))
        self.assertEqual(request.context_line_numbers, (4, 6))

    def test_multi_line_span(self):
        [request] = parse_structured("a.py:5\n@@ 2 @@\n4-four\n5:five\n6:six\n7-seven\n")
        self.assertEqual(request.target.original_line_count, 2)
        self.assertEqual(request.target.end_line, 6)
        self.assertEqual(request.target.body, ("five", "six"))

    def test_crlf_input(self):
        [request] = parse_structured("a.py:2\r\n@@ 1 @@\r\n1-one\r\n2:two\r\n")
        self.assertEqual(request.target.body, ("two",))

    def test_marker_trailing_whitespace_ignored(self):
        [request] = parse_structured("a.py:2\n@@ 1 @@   \n2:two\n")
        self.assertEqual(request.target.anchor_line, 2)

    def test_comments_and_blank_lines_between_blocks(self):
        text = "# notes\n\n\na.py:1\n@@ 1 @@\n1:x\n\n# more\nb.py:1\n@@ 1 @@\n1:y\n"
        self.assertEqual([r.target.file_path for r in parse_structured(text)], ["a.py", "b.py"])

    def test_hash_prefixed_path_is_a_header(self):
        text = "#\n#notes.md:2\n@@ 1 @@\n2:changed\n"
        [request] = parse_structured(text)
        self.assertEqual(request.target.file_path, "#notes.md")
        self.assertEqual(request.target.anchor_line, 2)
        self.assertEqual(request.target.body, ("changed",))

    def test_empty_input(self):
        self.assertEqual(parse_structured(""), [])
        self.assertEqual(parse_structured(structured_format.VERSION_LINE + "\n"), [])

    def test_header_without_separator(self):
        with self.assertRaises(ParseError) as ctx:
            parse_structured("src/app.py\n@@ 1 @@\n1:x\n")
        self.assertEqual(ctx.exception.line_number, 1)

    def test_header_with_bad_line_number(self):
        for header in ("a.py:abc", "a.py:0", "a.py:", "a.py:\u00b2", "a.py:\u0663"):
            with self.assertRaises(ParseError):
                parse_structured(f"{header}\n@@ 1 @@\n1:x\n")

    def test_missing_marker(self):
        with self.assertRaises(ParseError) as ctx:
            parse_structured("a.py:1\n1:x\n")
        self.assertEqual(ctx.exception.line_number, 2)
        with self.assertRaises(ParseError):
            parse_structured("a.py:1")

    def test_zero_span_marker(self):
        with self.assertRaises(ParseError):
            parse_structured("a.py:1\n@@ 0 @@\n1:x\n")

    def test_unsupported_version(self):
        with self.assertRaises(ParseError):
            parse_structured("# bulked structured v2\n")


if __name__ == "__main__":
    unittest.main()
