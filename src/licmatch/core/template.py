# template.py
# SPDX-License-Identifier: MIT
"""License template parsing and rendering.

Templates annotate canonical license text with two directives:

* ``<<beginOptional>> ... <<endOptional>>`` marks text that a conforming
  license statement may leave out. Regions nest.
* ``<<var;name="...";original="...";match="...">>`` marks text that may be
  replaced by anything the ``match`` regular expression accepts.

:func:`parse_template` builds an immutable node tree in one left-to-right
pass. :func:`render` walks that tree under a :class:`RenderPolicy` and
returns text fragments split at every optional boundary, so callers can
tell which part of the output came from which region.
"""

from __future__ import annotations

import bisect
import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Union

from .errors import NestingLimitError, TemplateSyntaxError
from .log import get_logger
from .normalize import normalize

log = get_logger(__name__)

__all__ = [
    "TextNode",
    "OptionalNode",
    "VariableNode",
    "TemplateNode",
    "OptionalTextHandling",
    "VarTextHandling",
    "RenderPolicy",
    "ORIGINAL_POLICY",
    "MATCHER_POLICY",
    "PATTERN_DELIMITER",
    "parse_template",
    "render",
    "non_optional_text",
]

DIRECTIVE_START = "<<"
DIRECTIVE_END = ">>"
PATTERN_DELIMITER = "~~~"

_ATTRIBUTE_RE = re.compile(r'\s*([A-Za-z_][\w-]*)\s*=\s*"((?:[^"\\]|\\.)*)"\s*', re.DOTALL)
_KEYWORD_RE = re.compile(r"\s*([A-Za-z]+)\s*")


@dataclass(frozen=True, slots=True)
class TextNode:
    """Literal template text, with the position of its first character."""

    text: str
    line: int = 1
    column: int = 0


@dataclass(frozen=True, slots=True)
class VariableNode:
    """A replaceable region.

    Attributes:
        name (str): Rule name, used in mismatch diagnostics.
        original (str): Default text shown when rendering the original.
        match (str): Regular expression describing acceptable replacements.
        line (int): 1-based line of the directive.
        column (int): 0-based column of the directive.
    """

    name: str
    original: str
    match: str
    line: int = 1
    column: int = 0

    @property
    def alternatives(self) -> tuple[str, ...]:
        """Top-level ``|`` branches of ``match``, including empty ones."""
        return tuple(_split_alternatives(self.match))


@dataclass(frozen=True, slots=True)
class OptionalNode:
    children: tuple["TemplateNode", ...]
    line: int = 1
    column: int = 0


TemplateNode = Union[TextNode, OptionalNode, VariableNode]


class OptionalTextHandling(str, Enum):
    ORIGINAL = "original"
    OMIT = "omit"
    REGEX_USING_TOKENS = "regex_using_tokens"


class VarTextHandling(str, Enum):
    ORIGINAL = "original"
    OMIT = "omit"
    REGEX = "regex"


@dataclass(frozen=True, slots=True)
class RenderPolicy:
    """How optional regions and variables are written out by :func:`render`."""

    optional: OptionalTextHandling = OptionalTextHandling.ORIGINAL
    variable: VarTextHandling = VarTextHandling.ORIGINAL


ORIGINAL_POLICY = RenderPolicy(OptionalTextHandling.ORIGINAL, VarTextHandling.ORIGINAL)
MATCHER_POLICY = RenderPolicy(OptionalTextHandling.REGEX_USING_TOKENS, VarTextHandling.REGEX)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _split_alternatives(pattern: str) -> list[str]:
    """Split a regex on ``|`` outside groups, classes and escapes."""
    parts: list[str] = []
    depth = 0
    in_class = False
    start = 0
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\":
            i += 2
            continue
        if in_class:
            if ch == "]":
                in_class = False
        elif ch == "[":
            in_class = True
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth = max(0, depth - 1)
        elif ch == "|" and depth == 0:
            parts.append(pattern[start:i])
            start = i + 1
        i += 1
    parts.append(pattern[start:])
    return parts


class _Positions:
    """Maps string offsets to (line, column) pairs."""

    def __init__(self, source: str) -> None:
        self._starts = [0] + [m.end() for m in re.finditer(r"\r\n|\n|\r", source)]

    def at(self, offset: int) -> tuple[int, int]:
        idx = bisect.bisect_right(self._starts, offset) - 1
        return idx + 1, offset - self._starts[idx]


def _find_directive_end(source: str, start: int) -> int:
    """Return the offset of the ``>>`` closing the directive opened at ``start``.

    Double-quoted attribute values may contain ``>``, ``;`` and ``<``;
    a backslash escapes the next character inside quotes. Returns -1 when
    the directive is not terminated.
    """
    i = start + len(DIRECTIVE_START)
    in_quote = False
    n = len(source)
    while i < n:
        ch = source[i]
        if in_quote:
            if ch == "\\":
                i += 2
                continue
            if ch == '"':
                in_quote = False
        elif ch == '"':
            in_quote = True
        elif source.startswith(DIRECTIVE_END, i):
            return i
        i += 1
    return -1


def _parse_attributes(body: str, directive: str, line: int, column: int) -> dict[str, str]:
    attrs: dict[str, str] = {}
    pos = 0
    while pos < len(body):
        if body[pos] == ";" or body[pos].isspace():
            pos += 1
            continue
        m = _ATTRIBUTE_RE.match(body, pos)
        if not m:
            raise TemplateSyntaxError(
                "Malformed directive attribute", directive=directive, line=line, column=column
            )
        attrs[m.group(1)] = m.group(2).replace('\\"', '"')
        pos = m.end()
    return attrs


def parse_template(source: str, *, max_depth: int = 32) -> tuple[TemplateNode, ...]:
    """Parse template source into a tree of nodes.

    Literal runs holding only whitespace are not emitted.

    Args:
        source (str): Template text.
        max_depth (int): Deepest optional nesting accepted.

    Returns:
        tuple[TemplateNode, ...]: Top-level nodes in source order.

    Raises:
        TemplateSyntaxError: On an unterminated or unknown directive, an
            ``<<endOptional>>`` without a matching begin, an unclosed
            ``<<beginOptional>>``, a ``var`` missing ``name`` or ``match``,
            or a ``match`` that is not a valid regular expression.
        NestingLimitError: If optional regions nest deeper than ``max_depth``.
    """
    positions = _Positions(source)
    # Each frame: (children, line, column, directive text) of an open optional.
    stack: list[tuple[list[TemplateNode], int, int, str]] = []
    current: list[TemplateNode] = []
    pos = 0
    n = len(source)

    def emit_text(start: int, end: int) -> None:
        chunk = source[start:end]
        if chunk.strip():
            line, column = positions.at(start)
            current.append(TextNode(chunk, line, column))

    while pos < n:
        begin = source.find(DIRECTIVE_START, pos)
        if begin < 0:
            emit_text(pos, n)
            break
        emit_text(pos, begin)
        line, column = positions.at(begin)
        end = _find_directive_end(source, begin)
        if end < 0:
            raise TemplateSyntaxError(
                "Unterminated directive", directive=source[begin:begin + 40], line=line, column=column
            )
        directive = source[begin:end + len(DIRECTIVE_END)]
        inner = source[begin + len(DIRECTIVE_START):end]
        m = _KEYWORD_RE.match(inner)
        keyword = m.group(1) if m else ""
        rest = inner[m.end():] if m else inner
        if keyword == "beginOptional":
            if len(stack) >= max_depth:
                raise NestingLimitError("Template optional", max_depth)
            stack.append((current, line, column, directive))
            current = []
        elif keyword == "endOptional":
            if not stack:
                raise TemplateSyntaxError(
                    "endOptional without matching beginOptional",
                    directive=directive, line=line, column=column,
                )
            children = tuple(current)
            current, open_line, open_column, _ = stack.pop()
            current.append(OptionalNode(children, open_line, open_column))
        elif keyword == "var":
            attrs = _parse_attributes(rest, directive, line, column)
            for required in ("name", "match"):
                if required not in attrs:
                    raise TemplateSyntaxError(
                        f"var directive missing required attribute {required!r}",
                        directive=directive, line=line, column=column,
                    )
            try:
                re.compile(attrs["match"])
            except re.error as exc:
                raise TemplateSyntaxError(
                    f"var match is not a valid regular expression ({exc})",
                    directive=directive, line=line, column=column,
                ) from exc
            current.append(
                VariableNode(attrs["name"], attrs.get("original", ""), attrs["match"], line, column)
            )
        else:
            raise TemplateSyntaxError(
                f"Unknown directive {keyword!r}", directive=directive, line=line, column=column
            )
        pos = end + len(DIRECTIVE_END)

    if stack:
        _, line, column, directive = stack[-1]
        raise TemplateSyntaxError(
            "beginOptional without matching endOptional", directive=directive, line=line, column=column
        )
    log.debug("Parsed template: %d top-level nodes", len(current))
    return tuple(current)


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class _FragmentWriter:
    """Accumulates rendered text and cuts it into fragments at region edges."""

    def __init__(self, policy: RenderPolicy) -> None:
        self.policy = policy
        self.fragments: list[str] = []
        self.buffer: list[str] = []
        self.pending_tokens: list[str] = []
        self.regex_depth = 0

    def flush(self) -> None:
        text = "".join(self.buffer)
        if text:
            self.fragments.append(text)
        self.buffer = []

    def flush_tokens(self) -> None:
        if self.pending_tokens:
            self.buffer.append("".join(re.escape(t) + r"\s*" for t in self.pending_tokens))
            self.pending_tokens = []

    def text(self, text: str) -> None:
        if self.regex_depth:
            self.pending_tokens.extend(token.text for token in normalize(text))
        else:
            self.buffer.append(text)

    def variable(self, node: VariableNode) -> None:
        handling = self.policy.variable
        if handling is VarTextHandling.ORIGINAL:
            self.text(node.original)
        elif handling is VarTextHandling.OMIT:
            if self.regex_depth:
                self.flush_tokens()
            else:
                self.flush()
        elif self.regex_depth:
            self.flush_tokens()
            self.buffer.append(f"({node.match})")
        else:
            self.flush()
            self.buffer.append(f"{PATTERN_DELIMITER}({node.match}){PATTERN_DELIMITER}")
            self.flush()

    def optional(self, node: OptionalNode) -> None:
        handling = self.policy.optional
        if handling is OptionalTextHandling.OMIT:
            self.flush()
            return
        if handling is OptionalTextHandling.ORIGINAL:
            self.flush()
            self.nodes(node.children)
            self.flush()
            return
        if self.regex_depth == 0:
            self.flush()
            self.buffer.append(f"{PATTERN_DELIMITER}(")
        else:
            self.flush_tokens()
            self.buffer.append("(")
        self.regex_depth += 1
        self.nodes(node.children)
        self.flush_tokens()
        self.buffer.append(")?")
        self.regex_depth -= 1
        if self.regex_depth == 0:
            self.buffer.append(PATTERN_DELIMITER)
            self.flush()

    def nodes(self, nodes: Sequence[TemplateNode]) -> None:
        for node in nodes:
            if isinstance(node, TextNode):
                self.text(node.text)
            elif isinstance(node, VariableNode):
                self.variable(node)
            else:
                self.optional(node)


def render(nodes: Sequence[TemplateNode], policy: RenderPolicy = ORIGINAL_POLICY) -> list[str]:
    """Render a template tree into text fragments.

    Fragments are cut at every optional boundary; under
    ``VarTextHandling.OMIT`` and ``VarTextHandling.REGEX`` they are also
    cut at variables. Pattern fragments are wrapped in ``~~~``.

    Args:
        nodes (Sequence[TemplateNode]): Output of :func:`parse_template`.
        policy (RenderPolicy): Optional and variable handling.

    Returns:
        list[str]: Non-empty fragments in template order.
    """
    writer = _FragmentWriter(policy)
    writer.nodes(nodes)
    writer.flush()
    return writer.fragments


def non_optional_text(
    source: str,
    var_handling: VarTextHandling = VarTextHandling.OMIT,
    *,
    max_depth: int = 32,
) -> list[str]:
    """Return the text fragments every conforming license statement must contain."""
    nodes = parse_template(source, max_depth=max_depth)
    return render(nodes, RenderPolicy(OptionalTextHandling.OMIT, var_handling))
