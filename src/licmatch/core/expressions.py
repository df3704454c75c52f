# expressions.py
# SPDX-License-Identifier: MIT
"""License expression values and the parsing adapter that builds them.

Expressions are immutable trees of small dataclasses. Parsing is delegated
to the ``license-expression`` library; this module only converts its
symbol tree into the variants below, flattening directly nested groups of
the same operator (``a AND (b AND c)`` is one conjunctive set of three).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from boolean.boolean import ParseError
from license_expression import ExpressionError, LicenseSymbol, LicenseWithExceptionSymbol, Licensing

from .config import LimitsConfig
from .errors import LicenseExpressionSyntaxError, NestingLimitError
from .log import get_logger

log = get_logger(__name__)

__all__ = [
    "ListedLicense",
    "ExtractedLicense",
    "ConjunctiveSet",
    "DisjunctiveSet",
    "NoneLicense",
    "NoAssertionLicense",
    "OrLater",
    "WithException",
    "LicenseExpression",
    "NONE_LICENSE",
    "NOASSERTION_LICENSE",
    "parse_license_expression",
    "is_license_pass_deny_list",
    "is_license_pass_allow_list",
]

LICENSE_REF_PREFIX = "LicenseRef-"
DOCUMENT_REF_PREFIX = "DocumentRef-"
NONE_ID = "NONE"
NOASSERTION_ID = "NOASSERTION"

_licensing = Licensing()


@dataclass(frozen=True, slots=True)
class ListedLicense:
    """A license from the shared corpus, identified by its canonical id."""

    license_id: str

    def __str__(self) -> str:
        return self.license_id


@dataclass(frozen=True, slots=True)
class ExtractedLicense:
    """A document-local license, e.g. ``LicenseRef-foo``."""

    license_id: str

    def __str__(self) -> str:
        return self.license_id


@dataclass(frozen=True, slots=True)
class ConjunctiveSet:
    members: tuple["LicenseExpression", ...]

    def __str__(self) -> str:
        return _join(self.members, " AND ")


@dataclass(frozen=True, slots=True)
class DisjunctiveSet:
    members: tuple["LicenseExpression", ...]

    def __str__(self) -> str:
        return _join(self.members, " OR ")


@dataclass(frozen=True, slots=True)
class NoneLicense:
    def __str__(self) -> str:
        return NONE_ID


@dataclass(frozen=True, slots=True)
class NoAssertionLicense:
    def __str__(self) -> str:
        return NOASSERTION_ID


@dataclass(frozen=True, slots=True)
class OrLater:
    """``license+``: this version of the license or any later one."""

    license: Union[ListedLicense, ExtractedLicense]

    def __str__(self) -> str:
        return f"{self.license}+"


@dataclass(frozen=True, slots=True)
class WithException:
    license: Union[ListedLicense, ExtractedLicense, OrLater]
    exception_id: str

    def __str__(self) -> str:
        return f"{self.license} WITH {self.exception_id}"


LicenseExpression = Union[
    ListedLicense,
    ExtractedLicense,
    ConjunctiveSet,
    DisjunctiveSet,
    NoneLicense,
    NoAssertionLicense,
    OrLater,
    WithException,
]

NONE_LICENSE = NoneLicense()
NOASSERTION_LICENSE = NoAssertionLicense()


def _join(members: tuple[LicenseExpression, ...], op: str) -> str:
    parts = []
    for member in members:
        text = str(member)
        if isinstance(member, (ConjunctiveSet, DisjunctiveSet)):
            text = f"({text})"
        parts.append(text)
    return op.join(parts)


def _simple(key: str) -> LicenseExpression:
    upper = key.upper()
    if upper == NONE_ID:
        return NONE_LICENSE
    if upper == NOASSERTION_ID:
        return NOASSERTION_LICENSE
    if key.endswith("+") and len(key) > 1:
        inner = _simple(key[:-1])
        if isinstance(inner, (ListedLicense, ExtractedLicense)):
            return OrLater(inner)
        raise LicenseExpressionSyntaxError(f"'+' cannot follow {key[:-1]!r}")
    if key.startswith(LICENSE_REF_PREFIX) or key.startswith(DOCUMENT_REF_PREFIX):
        return ExtractedLicense(key)
    return ListedLicense(key)


def _paren_depth(text: str) -> int:
    depth = deepest = 0
    for ch in text:
        if ch == "(":
            depth += 1
            deepest = max(deepest, depth)
        elif ch == ")":
            depth -= 1
    return deepest


def _convert(node, depth: int, max_depth: int) -> LicenseExpression:
    if depth > max_depth:
        raise NestingLimitError("License expression", max_depth)
    if isinstance(node, LicenseWithExceptionSymbol):
        license = _simple(node.license_symbol.key)
        if not isinstance(license, (ListedLicense, ExtractedLicense, OrLater)):
            raise LicenseExpressionSyntaxError(f"WITH cannot follow {license}")
        return WithException(license, node.exception_symbol.key)
    if isinstance(node, LicenseSymbol):
        return _simple(node.key)
    if isinstance(node, (_licensing.AND, _licensing.OR)):
        op = _licensing.AND if isinstance(node, _licensing.AND) else _licensing.OR
        members: list[LicenseExpression] = []
        # Same-operator children are spliced into this set.
        pending = list(reversed(node.args))
        while pending:
            child = pending.pop()
            if isinstance(child, op):
                pending.extend(reversed(child.args))
            else:
                members.append(_convert(child, depth + 1, max_depth))
        if op is _licensing.AND:
            return ConjunctiveSet(tuple(members))
        return DisjunctiveSet(tuple(members))
    raise LicenseExpressionSyntaxError(f"Unsupported expression element {node!r}")


def parse_license_expression(text: str, *, limits: LimitsConfig | None = None) -> LicenseExpression:
    """Parse license-expression text into a :data:`LicenseExpression` tree.

    ``LicenseRef-`` and ``DocumentRef-...:LicenseRef-`` ids become
    :class:`ExtractedLicense`; ``NONE`` and ``NOASSERTION`` become the
    sentinels; a trailing ``+`` becomes :class:`OrLater`.

    Args:
        text (str): Expression such as ``"MIT OR (Apache-2.0 AND LicenseRef-x)"``.
        limits (LimitsConfig | None): Supplies ``max_expression_depth``,
            the deepest nesting accepted. Defaults to :class:`LimitsConfig`.

    Returns:
        LicenseExpression: Parsed expression.

    Raises:
        LicenseExpressionSyntaxError: If ``text`` is empty or malformed.
        NestingLimitError: If the expression nests deeper than the limit.
    """
    max_depth = (limits or LimitsConfig()).max_expression_depth
    if not text or not text.strip():
        raise LicenseExpressionSyntaxError("Empty license expression")
    if _paren_depth(text) > max_depth:
        raise NestingLimitError("License expression", max_depth)
    try:
        parsed = _licensing.parse(text, validate=False, strict=False)
    except (ExpressionError, ParseError) as exc:
        raise LicenseExpressionSyntaxError(f"Invalid license expression {text!r}: {exc}") from exc
    if parsed is None:
        raise LicenseExpressionSyntaxError("Empty license expression")
    return _convert(parsed, 0, max_depth)


def _passes(expr: LicenseExpression, ids: frozenset[str], leaf_passes) -> bool:
    if isinstance(expr, ConjunctiveSet):
        return all(_passes(member, ids, leaf_passes) for member in expr.members)
    if isinstance(expr, DisjunctiveSet):
        return any(_passes(member, ids, leaf_passes) for member in expr.members)
    return leaf_passes(str(expr) in ids)


def is_license_pass_deny_list(expr: LicenseExpression | None, *deny_ids: str) -> bool:
    """Return True if ``expr`` can be satisfied without any denied license.

    Every member of a conjunctive set must pass; one member of a
    disjunctive set is enough. An empty deny list always passes.
    """
    if expr is None or not deny_ids:
        return True
    return _passes(expr, frozenset(deny_ids), lambda listed: not listed)


def is_license_pass_allow_list(expr: LicenseExpression | None, *allow_ids: str) -> bool:
    """Return True if ``expr`` can be satisfied using only allowed licenses.

    An empty allow list never passes.
    """
    if expr is None or not allow_ids:
        return False
    return _passes(expr, frozenset(allow_ids), lambda listed: listed)
