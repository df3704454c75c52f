# pattern.py
# SPDX-License-Identifier: MIT
"""Token-level matchers compiled from license templates.

A template tree is compiled into a small program over normalized tokens:

* ``TOK key``     consume one token whose comparison key equals ``key``
* ``VAR regex``   consume a run of tokens whose source wording the regex accepts
* ``SPLIT a b``   continue at ``a`` or at ``b`` (optional regions)
* ``MATCH``       accept

Jumps only go forward, so the program is acyclic. Matching explores
``(instruction, position)`` states with an explicit stack and a visited
set, which keeps the work polynomial and independent of the host
recursion limit. Candidate tokens that are comment debris (``*``, ``#``,
``/``) may be skipped anywhere; the same tokens in the template compile
as optional.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional

from .config import LimitsConfig
from .errors import MatchBudgetExceeded
from .log import get_logger
from .normalize import Token, normalize
from .template import OptionalNode, TemplateNode, TextNode, VariableNode

log = get_logger(__name__)

__all__ = [
    "MatchResult",
    "TokenPattern",
    "compile_template",
    "compile_text",
]

_TOK = 0
_VAR = 1
_SPLIT = 2
_MATCH = 3

_VAR_FLAGS = re.IGNORECASE | re.DOTALL


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Outcome of comparing a text to a license.

    Attributes:
        found (bool): True when the text matches (no difference found).
        message (str | None): Description of the first divergence.
        location (tuple[int, int] | None): ``(line, column)`` in the
            candidate text where the divergence starts, when known.
    """

    found: bool
    message: Optional[str] = None
    location: Optional[tuple[int, int]] = None

    @property
    def difference_found(self) -> bool:
        return not self.found

    def __bool__(self) -> bool:
        return self.found


@dataclass(frozen=True, slots=True)
class _First:
    """What the program can consume next from a given instruction."""

    keys: frozenset[str]
    any: bool
    can_end: bool

    def allows(self, tokens: Sequence[Token], pos: int, full: bool) -> bool:
        if self.any:
            return True
        n = len(tokens)
        if self.can_end and (not full or pos == n):
            return True
        if pos >= n:
            return False
        token = tokens[pos]
        return token.key in self.keys or token.skippable


def _first_sets(code: Sequence[tuple[Any, ...]]) -> list[_First]:
    firsts: list[_First] = [None] * len(code)  # type: ignore[list-item]
    for pc in range(len(code) - 1, -1, -1):
        instr = code[pc]
        op = instr[0]
        if op == _MATCH:
            firsts[pc] = _First(frozenset(), False, True)
        elif op == _TOK:
            firsts[pc] = _First(frozenset((instr[1],)), False, False)
        elif op == _SPLIT:
            a, b = firsts[instr[1]], firsts[instr[2]]
            firsts[pc] = _First(a.keys | b.keys, a.any or b.any, a.can_end or b.can_end)
        else:
            nxt = firsts[pc + 1]
            empty_ok = instr[1].fullmatch("") is not None
            firsts[pc] = _First(nxt.keys, True, nxt.can_end and empty_ok)
    return firsts


def _search_entries(code: Sequence[tuple[Any, ...]]) -> tuple[int, ...]:
    """Instructions a within-text search starts from.

    A leading variable whose rule accepts empty text is stepped over: any
    run it absorbs at the start of a match could equally be left outside
    the match, so such templates are anchored on the literal that follows.
    """
    entries: set[int] = set()
    seen: set[int] = set()
    pending = [0]
    while pending:
        pc = pending.pop()
        if pc in seen:
            continue
        seen.add(pc)
        instr = code[pc]
        if instr[0] == _SPLIT:
            pending.extend((instr[1], instr[2]))
        elif instr[0] == _VAR and instr[1].fullmatch("") is not None:
            pending.append(pc + 1)
        else:
            entries.add(pc)
    return tuple(sorted(entries))


def _where(token: Token) -> str:
    return f' starting at line #{token.line} column #{token.column} "{token.text}"'


class _Search:
    """One matching attempt over a candidate token sequence."""

    __slots__ = (
        "pattern", "tokens", "n", "visited", "steps",
        "fail_pos", "fail_instr", "tail_pos", "_source",
    )

    def __init__(self, pattern: "TokenPattern", tokens: Sequence[Token]) -> None:
        self.pattern = pattern
        self.tokens = tokens
        self.n = len(tokens)
        self.visited: set[tuple[int, int]] = set()
        self.steps = 0
        self.fail_pos = -1
        self.fail_instr: tuple[Any, ...] | None = None
        self.tail_pos = -1
        self._source: tuple[str, list[int], list[int]] | None = None

    def _tick(self) -> None:
        self.steps += 1
        if self.steps > self.pattern.max_match_states:
            raise MatchBudgetExceeded(
                f"Matcher explored more than {self.pattern.max_match_states} states over {self.n} tokens"
            )

    def _note_failure(self, pos: int, instr: tuple[Any, ...]) -> None:
        if pos > self.fail_pos:
            self.fail_pos = pos
            self.fail_instr = instr

    def source_text(self) -> tuple[str, list[int], list[int]]:
        """Candidate wording with one space between tokens that do not touch.

        Returns the text and the start and end offset of every token in it,
        so the span a variable absorbs is a slice of one shared string.
        """
        if self._source is None:
            parts: list[str] = []
            starts: list[int] = []
            ends: list[int] = []
            offset = 0
            prev: Token | None = None
            for token in self.tokens:
                if prev is not None and not prev.touches(token):
                    parts.append(" ")
                    offset += 1
                starts.append(offset)
                parts.append(token.source)
                offset += len(token.source)
                ends.append(offset)
                prev = token
            self._source = ("".join(parts), starts, ends)
        return self._source

    def run(self, start: int, full: bool, entries: Sequence[int] = (0,)) -> bool:
        code = self.pattern.code
        firsts = self.pattern.firsts
        max_chars = self.pattern.max_variable_chars
        tokens = self.tokens
        n = self.n
        visited = self.visited
        stack = [(pc, start) for pc in reversed(entries)]
        while stack:
            state = stack.pop()
            if state in visited:
                continue
            visited.add(state)
            self._tick()
            pc, pos = state
            instr = code[pc]
            op = instr[0]
            if op != _VAR and pos < n and tokens[pos].skippable:
                stack.append((pc, pos + 1))

            if op == _MATCH:
                if not full or pos == n:
                    return True
                if pos > self.tail_pos:
                    self.tail_pos = pos
            elif op == _TOK:
                if pos < n and tokens[pos].key == instr[1]:
                    stack.append((pc + 1, pos + 1))
                else:
                    self._note_failure(pos, instr)
            elif op == _SPLIT:
                stack.append((instr[2], pos))
                stack.append((instr[1], pos))
            else:
                regex = instr[1]
                follow = firsts[pc + 1]
                source, starts, ends = self.source_text()
                begin = starts[pos] if pos < n else len(source)
                matched = False
                j = pos
                while True:
                    end = ends[j - 1] if j > pos else begin
                    if follow.allows(tokens, j, full) and regex.fullmatch(source, begin, end):
                        matched = True
                        if (pc + 1, j) not in visited:
                            stack.append((pc + 1, j))
                    if j >= n or ends[j] - begin > max_chars:
                        break
                    j += 1
                    self._tick()
                if not matched:
                    self._note_failure(pos, instr)
        return False

    def diagnose(self) -> MatchResult:
        tokens = self.tokens
        n = self.n
        if self.tail_pos >= 0 and self.tail_pos >= self.fail_pos:
            token = tokens[self.tail_pos]
            return MatchResult(
                False,
                "Additional text found after the end of the expected license text" + _where(token),
                (token.line, token.column),
            )
        instr = self.fail_instr
        pos = self.fail_pos
        if instr is None:
            return MatchResult(False, "Text does not match the license")
        if instr[0] == _VAR:
            name = instr[2]
            if pos < n:
                token = tokens[pos]
                return MatchResult(
                    False,
                    f"Variable text rule {name} did not match the compare text" + _where(token),
                    (token.line, token.column),
                )
            return MatchResult(False, f"Variable text rule {name} did not match the compare text at end of text")
        expected = instr[2].text
        if pos >= n:
            return MatchResult(False, f'Missing text at end of text; expected "{expected}"')
        token = tokens[pos]
        return MatchResult(
            False,
            "Normal text of license does not match" + _where(token) + f'; expected "{expected}"',
            (token.line, token.column),
        )


class TokenPattern:
    """A compiled matcher over normalized tokens.

    Instances are immutable after construction and safe to share between
    threads; every call allocates its own search state.

    Attributes:
        code (tuple): Program instructions.
        required_keys (tuple[str, ...]): Keys of the literal tokens outside
            every optional region, in order. A candidate lacking them as a
            subsequence cannot match.
    """

    def __init__(
        self,
        code: Sequence[tuple[Any, ...]],
        required_keys: Sequence[str],
        *,
        max_variable_chars: int = 10_000,
        max_match_states: int = 2_000_000,
    ) -> None:
        self.code = tuple(code)
        self.required_keys = tuple(required_keys)
        self.firsts = _first_sets(self.code)
        self.search_entries = _search_entries(self.code)
        self.max_variable_chars = max_variable_chars
        self.max_match_states = max_match_states

    def __repr__(self) -> str:
        return f"TokenPattern(instructions={len(self.code)}, required={len(self.required_keys)})"

    def could_match(self, tokens: Sequence[Token]) -> bool:
        """Cheap necessary condition: required keys appear in order."""
        it = iter([token.key for token in tokens])
        return all(key in it for key in self.required_keys)

    def match(self, tokens: Sequence[Token]) -> MatchResult:
        """Match the whole token sequence, reporting the first divergence."""
        search = _Search(self, tokens)
        if search.run(0, full=True):
            return MatchResult(True)
        return search.diagnose()

    def search(self, tokens: Sequence[Token]) -> bool:
        """Return True if some contiguous run of ``tokens`` matches.

        Raises:
            MatchBudgetExceeded: If the whole search explores more than
                ``max_match_states`` states.
        """
        if not self.could_match(tokens):
            return False
        entries = self.search_entries
        starts = [self.firsts[pc] for pc in entries]
        if any(first.can_end for first in starts):
            return True
        search = _Search(self, tokens)
        for start in range(len(tokens)):
            if any(first.allows(tokens, start, False) for first in starts) and search.run(
                start, full=False, entries=entries
            ):
                return True
        return False


class _ProgramBuilder:
    def __init__(self) -> None:
        self.code: list[tuple[Any, ...]] = []
        self.required: list[str] = []

    def token(self, token: Token, optional_depth: int) -> None:
        if token.skippable:
            at = len(self.code)
            self.code.append((_SPLIT, at + 1, at + 2))
            self.code.append((_TOK, token.key, token))
            return
        self.code.append((_TOK, token.key, token))
        if optional_depth == 0:
            self.required.append(token.key)

    def nodes(self, nodes: Sequence[TemplateNode], depth: int) -> None:
        for node in nodes:
            if isinstance(node, TextNode):
                for token in normalize(node.text, start_line=node.line, start_column=node.column):
                    self.token(token, depth)
            elif isinstance(node, VariableNode):
                self.code.append((_VAR, re.compile(node.match, _VAR_FLAGS), node.name))
            elif isinstance(node, OptionalNode):
                at = len(self.code)
                self.code.append((_SPLIT, at + 1, -1))
                self.nodes(node.children, depth + 1)
                self.code[at] = (_SPLIT, at + 1, len(self.code))

    def build(self, limits: LimitsConfig) -> TokenPattern:
        self.code.append((_MATCH,))
        return TokenPattern(
            self.code,
            self.required,
            max_variable_chars=limits.max_variable_chars,
            max_match_states=limits.max_match_states,
        )


def compile_template(nodes: Sequence[TemplateNode], *, limits: LimitsConfig | None = None) -> TokenPattern:
    """Compile a parsed template into a :class:`TokenPattern`.

    Optional regions become "nothing or the region" and variables become
    regular expressions over the candidate's own wording of the tokens
    they absorb, matched case-insensitively with ``.`` spanning line breaks.
    """
    builder = _ProgramBuilder()
    builder.nodes(nodes, 0)
    pattern = builder.build(limits or LimitsConfig())
    log.debug("Compiled template pattern: %r", pattern)
    return pattern


def compile_text(text: str, *, limits: LimitsConfig | None = None) -> TokenPattern:
    """Compile plain license text, for licenses that ship no template."""
    builder = _ProgramBuilder()
    for token in normalize(text):
        builder.token(token, 0)
    return builder.build(limits or LimitsConfig())
