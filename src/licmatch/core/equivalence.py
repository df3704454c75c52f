# equivalence.py
# SPDX-License-Identifier: MIT
"""Structural equality of license expressions across documents.

Two expressions are equal when they describe the same licensing terms:
listed ids must be identical, document-local (extracted) ids must be
related by the caller's translation map, and AND/OR sets must pair up
member for member regardless of order.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Mapping, Sequence

from .config import LimitsConfig
from .errors import ComparisonMisuseError, NestingLimitError
from .expressions import (
    ConjunctiveSet,
    DisjunctiveSet,
    ExtractedLicense,
    LicenseExpression,
    ListedLicense,
    NoAssertionLicense,
    NoneLicense,
    OrLater,
    WithException,
)
from .log import get_logger

log = get_logger(__name__)

__all__ = ["is_license_equal"]

_SENTINELS = (NoneLicense, NoAssertionLicense)


def is_license_equal(
    a: LicenseExpression,
    b: LicenseExpression,
    translation: Mapping[str, str] | None = None,
    *,
    limits: LimitsConfig | None = None,
) -> bool:
    """Return True if ``a`` (from one document) equals ``b`` (from another).

    Args:
        a (LicenseExpression): Expression from the source document.
        b (LicenseExpression): Expression from the compared document.
        translation (Mapping[str, str] | None): Extracted license id in the
            source document -> id of the same license text in the compared
            document. An extracted id with no entry is not equal to anything.
        limits (LimitsConfig | None): Supplies ``max_expression_depth``,
            the deepest set nesting compared.

    Returns:
        bool: Whether the expressions are equivalent.

    Raises:
        ComparisonMisuseError: If ``a`` and ``b`` are the same non-sentinel
            object; the translation map only relates two documents.
        NestingLimitError: If either expression nests deeper than the limit.
    """
    if a is b and not isinstance(a, _SENTINELS):
        raise ComparisonMisuseError(
            f"Cannot compare license expression {a} with itself across documents"
        )
    max_depth = (limits or LimitsConfig()).max_expression_depth
    return _Comparer(translation or {}, max_depth).equal(a, b, 0)


class _Comparer:
    def __init__(self, translation: Mapping[str, str], max_depth: int) -> None:
        self.translation = translation
        self.max_depth = max_depth

    def equal(self, a: LicenseExpression, b: LicenseExpression, depth: int) -> bool:
        if depth > self.max_depth:
            raise NestingLimitError("License expression", self.max_depth)
        match (a, b):
            case (ListedLicense(license_id=left), ListedLicense(license_id=right)):
                return left == right
            case (ExtractedLicense(license_id=left), ExtractedLicense(license_id=right)):
                translated = self.translation.get(left)
                if translated is None:
                    log.debug("No translation for extracted license %s", left)
                    return False
                return translated == right
            case (ConjunctiveSet(members=left), ConjunctiveSet(members=right)):
                return self.sets_equal(left, right, depth)
            case (DisjunctiveSet(members=left), DisjunctiveSet(members=right)):
                return self.sets_equal(left, right, depth)
            case (NoneLicense(), NoneLicense()) | (NoAssertionLicense(), NoAssertionLicense()):
                return True
            case (OrLater(license=left), OrLater(license=right)):
                return self.equal(left, right, depth + 1)
            case (WithException(license=left, exception_id=exc_left), WithException(license=right, exception_id=exc_right)):
                return exc_left == exc_right and self.equal(left, right, depth + 1)
            case _:
                return False

    def sets_equal(
        self,
        left: Sequence[LicenseExpression],
        right: Sequence[LicenseExpression],
        depth: int,
    ) -> bool:
        if len(left) != len(right):
            return False
        adjacency: list[list[int]] = []
        for member in left:
            candidates = [j for j, other in enumerate(right) if self.equal(member, other, depth + 1)]
            if not candidates:
                return False
            adjacency.append(candidates)
        return _has_perfect_matching(adjacency, len(right))


def _has_perfect_matching(adjacency: list[list[int]], n_right: int) -> bool:
    """Return True if every left vertex can be paired with a distinct right one.

    Uses breadth-first augmenting paths, so the result never depends on
    member order.
    """
    match_left = [-1] * len(adjacency)
    match_right = [-1] * n_right
    for root in range(len(adjacency)):
        reached_from: dict[int, int] = {}
        seen = {root}
        queue = deque([root])
        free = -1
        while queue and free < 0:
            u = queue.popleft()
            for v in adjacency[u]:
                if v in reached_from:
                    continue
                reached_from[v] = u
                owner = match_right[v]
                if owner < 0:
                    free = v
                    break
                if owner not in seen:
                    seen.add(owner)
                    queue.append(owner)
        if free < 0:
            return False
        v = free
        while True:
            u = reached_from[v]
            previous = match_left[u]
            match_left[u] = v
            match_right[v] = u
            if u == root:
                break
            v = previous
    return True
