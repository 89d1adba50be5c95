"""Comment and pattern extraction for a single source file.

Comments are found with a line-oriented textual scan rather than a
tokenizer, so comment-like sequences inside string literals are picked up
too. A multi-line block only closes on a later line that contains a closing
sequence; a block still open at end of file is dropped.
"""

from __future__ import annotations

import re

from repopulse.analysis.languages import detect_language
from repopulse.analysis.models import (
    Comment,
    CommentKind,
    FileAnalysis,
    TaskCategory,
    TaskMarker,
)
from repopulse.analysis.structure import analyzer_for

SINGLE_LINE_PATTERN = re.compile(r"//|#")
SINGLE_LINE_TEXT = re.compile(r"(?://|#)\s*(.+)")
MULTI_LINE_START = re.compile(r"/\*|\"\"\"|'''")
MULTI_LINE_END = re.compile(r"\*/|\"\"\"|'''")

DOC_MARKERS = ("/**", "///")
DOC_TAGS = ("readme", "@param", "@returns", "@description")
DOCSTRING_LANGUAGES = frozenset({"python"})


def analyze_file(
    content: str,
    path: str,
    keywords: dict[TaskCategory, list[str]],
    size: int | None = None,
) -> FileAnalysis:
    """Analyze one file's content. Pure: same input, same FileAnalysis."""
    language = detect_language(path)

    comments = tuple(
        _attach_markers(comment, keywords) for comment in extract_comments(content)
    )
    structure = analyzer_for(language).analyze(content, language)

    return FileAnalysis(
        path=path,
        size=len(content.encode("utf-8")) if size is None else size,
        language=language,
        comments=comments,
        incomplete_code=tuple(structure.incomplete_code),
        security_issues=tuple(structure.security_issues),
        complexity=structure.complexity,
        function_count=structure.function_count,
        has_tests=structure.has_tests,
        has_documentation=has_documentation(content, language),
        line_count=len(content.split("\n")),
    )


def extract_comments(content: str) -> list[Comment]:
    comments: list[Comment] = []

    in_block = False
    block_lines: list[str] = []
    block_start = 0

    for index, line in enumerate(content.split("\n")):
        line_number = index + 1
        trimmed = line.strip()

        if not in_block and MULTI_LINE_START.search(trimmed):
            in_block = True
            block_start = line_number
            block_lines = [trimmed]
        elif in_block:
            block_lines.append(trimmed)
            if MULTI_LINE_END.search(trimmed):
                comments.append(
                    Comment(
                        text="\n".join(block_lines),
                        line_number=block_start,
                        kind=CommentKind.MULTI_LINE,
                    )
                )
                in_block = False
                block_lines = []
        elif SINGLE_LINE_PATTERN.search(trimmed):
            match = SINGLE_LINE_TEXT.search(trimmed)
            if match:
                comments.append(
                    Comment(
                        text=match.group(1),
                        line_number=line_number,
                        kind=CommentKind.SINGLE_LINE,
                    )
                )

    return comments


def find_task_markers(
    comment: Comment, keywords: dict[TaskCategory, list[str]]
) -> list[TaskMarker]:
    """Find at most one marker per category in a comment.

    When several keywords of one category match, the longest wins, so
    "TODO:" is preferred over "TODO" for "TODO: fix this".
    """
    markers: list[TaskMarker] = []
    for category, triggers in keywords.items():
        matched = [t for t in triggers if t in comment.text]
        if not matched:
            continue
        keyword = max(matched, key=len)
        start = comment.text.index(keyword) + len(keyword)
        description = comment.text[start:].strip().lstrip(":-").strip()
        markers.append(
            TaskMarker(
                category=category,
                keyword=keyword,
                description=description or comment.text,
                line_number=comment.line_number,
            )
        )
    return markers


def has_documentation(content: str, language: str) -> bool:
    if any(marker in content for marker in DOC_MARKERS):
        return True
    lowered = content.lower()
    if any(tag in lowered for tag in DOC_TAGS):
        return True
    return language in DOCSTRING_LANGUAGES and '"""' in content


def _attach_markers(comment: Comment, keywords: dict[TaskCategory, list[str]]) -> Comment:
    return Comment(
        text=comment.text,
        line_number=comment.line_number,
        kind=comment.kind,
        markers=tuple(find_task_markers(comment, keywords)),
    )
