"""Tests for repopulse.analysis.extractor."""

from __future__ import annotations

from repopulse.analysis.extractor import (
    analyze_file,
    extract_comments,
    find_task_markers,
    has_documentation,
)
from repopulse.analysis.models import Comment, CommentKind, TaskCategory
from repopulse.config import DEFAULT_KEYWORDS


class TestExtractComments:
    def test_single_line_slashes(self):
        comments = extract_comments("const a = 1;\n// TODO: fix this\nconst b = 2;")
        assert len(comments) == 1
        assert comments[0].text == "TODO: fix this"
        assert comments[0].line_number == 2
        assert comments[0].kind == CommentKind.SINGLE_LINE

    def test_single_line_hash(self):
        comments = extract_comments("x = 1  # NOTE   spaces are trimmed")
        assert comments[0].text == "NOTE   spaces are trimmed"

    def test_marker_with_no_text_is_not_a_comment(self):
        assert extract_comments("//\n#   ") == []

    def test_comment_like_text_in_strings_is_picked_up(self):
        comments = extract_comments('const url = "http://example.com";')
        assert len(comments) == 1
        assert comments[0].text == 'example.com";'

    def test_multi_line_block(self):
        content = "/*\n * FIXME: leaks memory\n */\nfoo();"
        comments = extract_comments(content)
        assert len(comments) == 1
        assert comments[0].kind == CommentKind.MULTI_LINE
        assert comments[0].line_number == 1
        assert comments[0].text == "/*\n* FIXME: leaks memory\n*/"

    def test_opening_line_does_not_close_block(self):
        content = "/* one-liner */\nfoo();\n// TODO: skipped while block is open\n*/\n// after"
        comments = extract_comments(content)
        assert [c.kind for c in comments] == [CommentKind.MULTI_LINE, CommentKind.SINGLE_LINE]
        assert comments[0].text.endswith("*/")
        assert comments[0].line_number == 1
        assert comments[1].text == "after"
        assert comments[1].line_number == 5

    def test_python_docstring_block(self):
        content = 'def f():\n    """\n    TODO: document\n    """\n    return 1'
        comments = extract_comments(content)
        assert len(comments) == 1
        assert comments[0].line_number == 2
        assert "TODO: document" in comments[0].text

    def test_any_closer_closes_any_block(self):
        content = '/*\nstill open\n"""\n// next'
        comments = extract_comments(content)
        assert comments[0].kind == CommentKind.MULTI_LINE
        assert comments[0].text == '/*\nstill open\n"""'
        assert comments[1].text == "next"

    def test_unterminated_block_is_dropped(self):
        comments = extract_comments("// first\n/*\n * TODO: never closed\n")
        assert len(comments) == 1
        assert comments[0].text == "first"

    def test_empty_content(self):
        assert extract_comments("") == []


class TestFindTaskMarkers:
    def _comment(self, text: str) -> Comment:
        return Comment(text=text, line_number=3, kind=CommentKind.SINGLE_LINE)

    def test_todo_with_colon(self):
        markers = find_task_markers(self._comment("TODO: fix this"), DEFAULT_KEYWORDS)
        assert len(markers) == 1
        assert markers[0].category == TaskCategory.TODO
        assert markers[0].keyword == "TODO:"
        assert markers[0].description == "fix this"
        assert markers[0].line_number == 3

    def test_keyword_without_colon(self):
        markers = find_task_markers(self._comment("FIXME handle null"), DEFAULT_KEYWORDS)
        assert markers[0].category == TaskCategory.FIXME
        assert markers[0].description == "handle null"

    def test_matching_is_case_sensitive(self):
        assert find_task_markers(self._comment("Todo later"), DEFAULT_KEYWORDS) == []

    def test_one_marker_per_category(self):
        markers = find_task_markers(self._comment("TODO: rewrite TODO list"), DEFAULT_KEYWORDS)
        assert len(markers) == 1

    def test_several_categories_in_one_comment(self):
        markers = find_task_markers(self._comment("FIXME-SECURITY: escape html"), DEFAULT_KEYWORDS)
        categories = {m.category for m in markers}
        assert categories == {TaskCategory.FIXME, TaskCategory.SECURITY}
        security = next(m for m in markers if m.category == TaskCategory.SECURITY)
        assert security.keyword == "FIXME-SECURITY"
        assert security.description == "escape html"

    def test_empty_description_falls_back_to_comment_text(self):
        markers = find_task_markers(self._comment("TODO"), DEFAULT_KEYWORDS)
        assert markers[0].description == "TODO"

    def test_custom_keywords(self):
        keywords = {TaskCategory.TODO: ["LATER"]}
        markers = find_task_markers(self._comment("LATER: cache this"), keywords)
        assert markers[0].category == TaskCategory.TODO
        assert markers[0].description == "cache this"


class TestHasDocumentation:
    def test_jsdoc_block(self):
        assert has_documentation("/** Adds numbers */\nfunction add() {}", "javascript")

    def test_triple_slash(self):
        assert has_documentation("/// doc", "typescript")

    def test_tags_are_case_insensitive(self):
        assert has_documentation("// see README for details", "javascript")
        assert has_documentation(" * @param a first", "javascript")

    def test_docstring_counts_only_for_python(self):
        assert has_documentation('"""Module doc."""', "python")
        assert not has_documentation('const s = """x""";', "javascript")

    def test_undocumented(self):
        assert not has_documentation("x = 1\n", "python")


class TestAnalyzeFile:
    def test_scenario_todo_in_javascript(self):
        content = "function f() {\n  // TODO: fix this\n  return 1;\n}"
        analysis = analyze_file(content, "src/app.js", DEFAULT_KEYWORDS)

        assert analysis.language == "javascript"
        assert analysis.line_count == 4
        assert analysis.size == len(content.encode("utf-8"))
        assert len(analysis.markers) == 1
        marker = analysis.markers[0]
        assert marker.category == TaskCategory.TODO
        assert marker.description == "fix this"
        assert marker.line_number == 2

    def test_trailing_newline_counts_a_line(self):
        analysis = analyze_file("a = 1\n", "a.py", DEFAULT_KEYWORDS)
        assert analysis.line_count == 2

    def test_explicit_size_wins(self):
        analysis = analyze_file("x", "a.go", DEFAULT_KEYWORDS, size=999)
        assert analysis.size == 999

    def test_unknown_language_still_gets_comments(self):
        analysis = analyze_file("# TODO: tidy", "Makefile", DEFAULT_KEYWORDS)
        assert analysis.language == "unknown"
        assert analysis.complexity == 0
        assert analysis.markers[0].description == "tidy"

    def test_python_structure_is_attached(self):
        content = "def f():\n    pass\n"
        analysis = analyze_file(content, "pkg/mod.py", DEFAULT_KEYWORDS)
        assert analysis.complexity == 1
        assert len(analysis.incomplete_code) == 1

    def test_is_deterministic(self):
        content = "// TODO: a\n/*\n BUG: b\n*/\nif (x) { eval(y); }"
        first = analyze_file(content, "a.js", DEFAULT_KEYWORDS)
        second = analyze_file(content, "a.js", DEFAULT_KEYWORDS)
        assert first == second
