"""Structural analysis strategies, one per language family.

The C-family strategy parses JavaScript/TypeScript with tree-sitter and
walks the syntax tree. The indentation strategy is a line heuristic for
Python. Every other language gets the null strategy.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from tree_sitter import Node, Parser, Tree
from tree_sitter_language_pack import get_language

from repopulse.analysis.languages import LanguageFamily, language_family
from repopulse.analysis.models import Finding, FindingType
from repopulse.errors import ParseError

logger = logging.getLogger(__name__)

TEST_FRAMEWORK_CALLS = frozenset({"describe", "it", "test", "expect"})
EVAL_CALLS = frozenset({"eval"})
UNIMPLEMENTED_PHRASES = ("not implemented", "todo", "unimplemented")

FUNCTION_NODES = frozenset({
    "function_declaration",
    "generator_function_declaration",
    "arrow_function",
})
CONDITIONAL_NODES = frozenset({"if_statement", "switch_statement"})
LOOP_NODES = frozenset({"for_statement", "while_statement"})

# The tsx grammar accepts JSX and type annotations in either language.
GRAMMARS: dict[str, str] = {
    "javascript": "tsx",
    "typescript": "tsx",
}

# Parsers are not shared between threads.
_local = threading.local()


@dataclass
class StructuralResult:
    complexity: int = 0
    function_count: int = 0
    incomplete_code: list[Finding] = field(default_factory=list)
    security_issues: list[Finding] = field(default_factory=list)
    has_tests: bool = False


class StructuralAnalyzer(ABC):
    """Contract for language-family structural passes."""

    family: LanguageFamily

    @abstractmethod
    def analyze(self, content: str, language: str) -> StructuralResult:
        """Return complexity, findings and the test signal for one file."""


class NullAnalyzer(StructuralAnalyzer):
    family = LanguageFamily.NONE

    def analyze(self, content: str, language: str) -> StructuralResult:
        return StructuralResult()


class CFamilyAnalyzer(StructuralAnalyzer):
    """Syntax-tree pass for curly-brace languages."""

    family = LanguageFamily.C_FAMILY

    def analyze(self, content: str, language: str) -> StructuralResult:
        try:
            tree = self._parse(content, language)
        except ParseError as e:
            logger.debug(f"Structural parse failed for {language} source: {e}")
            return StructuralResult(
                incomplete_code=[
                    Finding(
                        type=FindingType.SYNTAX_ERROR,
                        description="Possible syntax error or incomplete code",
                    )
                ]
            )

        result = StructuralResult()
        conditionals = 0
        loops = 0
        for node in _walk(tree.root_node):
            kind = node.type
            if kind in FUNCTION_NODES:
                result.function_count += 1
            elif kind in CONDITIONAL_NODES:
                conditionals += 1
            elif kind in LOOP_NODES:
                loops += 1
            elif kind == "throw_statement":
                finding = _unimplemented_throw(node)
                if finding:
                    result.incomplete_code.append(finding)
            elif kind == "call_expression":
                callee = _callee_name(node)
                if callee in TEST_FRAMEWORK_CALLS:
                    result.has_tests = True
                if callee in EVAL_CALLS:
                    result.security_issues.append(
                        Finding(
                            type=FindingType.EVAL_USAGE,
                            description="Use of eval() is a security risk",
                            line_number=_line(node),
                        )
                    )

        result.complexity = 1 + conditionals + loops
        return result

    def _parse(self, content: str, language: str) -> Tree:
        grammar = GRAMMARS.get(language, "tsx")
        tree = _get_parser(grammar).parse(content.encode("utf-8"))
        if tree.root_node.has_error:
            raise ParseError(f"{grammar} source contains syntax errors")
        return tree


class IndentationAnalyzer(StructuralAnalyzer):
    """Line-oriented heuristics for indentation-block languages."""

    family = LanguageFamily.INDENTATION

    TEST_MARKERS = ("def test_", "import unittest", "import pytest")

    def analyze(self, content: str, language: str) -> StructuralResult:
        result = StructuralResult()
        lines = content.split("\n")

        complexity = 1
        for index, line in enumerate(lines):
            trimmed = line.strip()

            # Each prefix group counts at most once per line
            if trimmed.startswith(("if ", "elif ")):
                complexity += 1
            if trimmed.startswith(("for ", "while ")):
                complexity += 1
            if trimmed.startswith(("except ", "except:")):
                complexity += 1

            if any(marker in trimmed for marker in self.TEST_MARKERS):
                result.has_tests = True

            if trimmed == "pass" and index > 0 and lines[index - 1].strip().endswith(":"):
                result.incomplete_code.append(
                    Finding(
                        type=FindingType.EMPTY_IMPLEMENTATION,
                        description="Empty function or class with only pass statement",
                        line_number=index + 1,
                    )
                )

            if "raise NotImplementedError" in trimmed:
                result.incomplete_code.append(
                    Finding(
                        type=FindingType.NOT_IMPLEMENTED,
                        description="NotImplementedError raised",
                        line_number=index + 1,
                    )
                )

        result.complexity = complexity
        return result


STRATEGIES: dict[LanguageFamily, StructuralAnalyzer] = {
    LanguageFamily.C_FAMILY: CFamilyAnalyzer(),
    LanguageFamily.INDENTATION: IndentationAnalyzer(),
    LanguageFamily.NONE: NullAnalyzer(),
}


def analyzer_for(language: str) -> StructuralAnalyzer:
    return STRATEGIES[language_family(language)]


def _get_parser(grammar: str) -> Parser:
    parsers = getattr(_local, "parsers", None)
    if parsers is None:
        parsers = _local.parsers = {}
    if grammar not in parsers:
        parsers[grammar] = Parser(get_language(grammar))
    return parsers[grammar]


def _walk(root: Node):
    """Depth-first, pre-order walk without recursion."""
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _text(node: Node) -> str:
    return node.text.decode("utf-8", errors="replace") if node.text else ""


def _line(node: Node) -> int:
    return node.start_point[0] + 1


def _callee_name(call: Node) -> str | None:
    func = call.child_by_field_name("function")
    if func is not None and func.type == "identifier":
        return _text(func)
    return None


def _unimplemented_throw(throw: Node) -> Finding | None:
    """Match `throw new X("not implemented")` style statements."""
    expression = next((c for c in throw.named_children if c.type == "new_expression"), None)
    if expression is None:
        return None
    arguments = expression.child_by_field_name("arguments")
    if arguments is None or not arguments.named_children:
        return None
    first = arguments.named_children[0]
    if first.type != "string":
        return None

    message = _text(first)[1:-1]
    lowered = message.lower()
    if any(phrase in lowered for phrase in UNIMPLEMENTED_PHRASES):
        return Finding(
            type=FindingType.UNIMPLEMENTED,
            description=message,
            line_number=_line(throw),
        )
    return None
