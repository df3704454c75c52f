# errors.py
# SPDX-License-Identifier: MIT
"""Exception types raised by the licmatch engine.

Matching and comparison over well-formed input never raise; these cover
malformed templates or expressions, explicit resource limits, lookups of
ids the corpus does not know, and misuse of the comparison API.
"""

from __future__ import annotations

__all__ = [
    "LicmatchError",
    "TemplateSyntaxError",
    "NestingLimitError",
    "MatchBudgetExceeded",
    "UnknownLicenseError",
    "LicenseExpressionSyntaxError",
    "ComparisonMisuseError",
]


class LicmatchError(RuntimeError):
    """Base class for every error raised by licmatch."""


class TemplateSyntaxError(LicmatchError, ValueError):
    """A license template could not be parsed.

    Attributes:
        directive (str | None): Text of the offending ``<<...>>`` directive,
            when the failure is tied to one.
        line (int | None): 1-based line of the directive in the template.
        column (int | None): 0-based column of the directive.
    """

    def __init__(
        self,
        message: str,
        *,
        directive: str | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        self.directive = directive
        self.line = line
        self.column = column
        if line is not None:
            message = f"{message} (line {line}, column {column})"
        if directive:
            message = f"{message}: {directive!r}"
        super().__init__(message)


class NestingLimitError(LicmatchError):
    """A template or license expression nests deeper than the configured limit."""

    def __init__(self, what: str, limit: int) -> None:
        self.what = what
        self.limit = limit
        super().__init__(f"{what} nesting exceeds the limit of {limit}")


class MatchBudgetExceeded(LicmatchError):
    """The matcher explored more search states than ``max_match_states`` allows."""


class UnknownLicenseError(LicmatchError, KeyError):
    """The corpus has no license or exception with the requested id."""

    def __init__(self, license_id: str, kind: str = "license") -> None:
        self.license_id = license_id
        self.kind = kind
        super().__init__(f"Unknown {kind} id {license_id!r}")

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class LicenseExpressionSyntaxError(LicmatchError, ValueError):
    """License-expression text could not be parsed."""


class ComparisonMisuseError(LicmatchError, ValueError):
    """``is_license_equal`` was asked to compare an expression object with itself."""
