# __init__.py
# SPDX-License-Identifier: MIT
"""
Top-level package exports for :mod:`licmatch`.

Public surface and stability
----------------------------
The symbols listed in :data:`PRIMARY_API` are the recommended public surface
and are exported via :data:`__all__`. In general, callers should:

- Wrap their license list in an :class:`InMemoryCorpus` (or any object
  satisfying :class:`LicenseCorpus`).
- Build a :class:`StandardLicenseMatcher` over it and ask whether a text is,
  or contains, a standard license.
- Parse expressions with :func:`parse_license_expression` and compare them
  across documents with :func:`is_license_equal`.

Advanced / expert surface
-------------------------
Template parsing, rendering and the compiled token patterns are imported
here for convenience. Anything *not* listed in :data:`PRIMARY_API` may
change between releases.

Examples:
    Checking a text against one license::

        >>> from licmatch import InMemoryCorpus, StandardLicense, StandardLicenseMatcher
        >>> corpus = InMemoryCorpus([StandardLicense("X-1.0", "Do what you like.")])
        >>> matcher = StandardLicenseMatcher(corpus)
        >>> matcher.is_text_standard_license("X-1.0", "// DO WHAT YOU LIKE.").found
        True
"""


from __future__ import annotations

# ---------------------------------------------------------------------------
# Package version
# ---------------------------------------------------------------------------
try:
    from importlib.metadata import version as _pkg_version

    __version__ = _pkg_version("licmatch")
except Exception:  # PackageNotFoundError or runtime env oddities
    __version__ = "0.0.0+unknown"


# ---------------------------------------------------------------------------
# Primary public API (stable; exported via __all__)
# ---------------------------------------------------------------------------
from .core.cache import MatcherCache
from .core.config import LicmatchConfig, LimitsConfig, LoggingConfig, ScanConfig, load_config_from_path
from .core.corpus import InMemoryCorpus, LicenseCorpus, StandardException, StandardLicense
from .core.equivalence import is_license_equal
from .core.errors import (
    ComparisonMisuseError,
    LicenseExpressionSyntaxError,
    LicmatchError,
    MatchBudgetExceeded,
    NestingLimitError,
    TemplateSyntaxError,
    UnknownLicenseError,
)
from .core.expressions import (
    ConjunctiveSet,
    DisjunctiveSet,
    ExtractedLicense,
    ListedLicense,
    NoAssertionLicense,
    NoneLicense,
    OrLater,
    WithException,
    is_license_pass_allow_list,
    is_license_pass_deny_list,
    parse_license_expression,
)
from .core.matcher import StandardLicenseMatcher, is_text_matching_template
from .core.normalize import is_license_text_equivalent, normalize
from .core.pattern import MatchResult

# ---------------------------------------------------------------------------
# Advanced / expert API (imported for convenience; not exported via __all__)
# ---------------------------------------------------------------------------
from .core.log import configure_logging, get_logger, temp_level
from .core.normalize import Token, first_license_token, is_single_token_string, render as render_tokens, token_texts
from .core.pattern import TokenPattern, compile_template, compile_text
from .core.template import (
    OptionalTextHandling,
    RenderPolicy,
    VarTextHandling,
    non_optional_text,
    parse_template,
    render,
)

# ---------------------------------------------------------------------------
# Stable export list
# ---------------------------------------------------------------------------
PRIMARY_API = [
    "__version__",
    "StandardLicenseMatcher",
    "is_text_matching_template",
    "MatchResult",
    "MatcherCache",
    "InMemoryCorpus",
    "LicenseCorpus",
    "StandardLicense",
    "StandardException",
    "normalize",
    "is_license_text_equivalent",
    "parse_license_expression",
    "is_license_equal",
    "is_license_pass_deny_list",
    "is_license_pass_allow_list",
    "ListedLicense",
    "ExtractedLicense",
    "ConjunctiveSet",
    "DisjunctiveSet",
    "NoneLicense",
    "NoAssertionLicense",
    "OrLater",
    "WithException",
    "LicmatchConfig",
    "LimitsConfig",
    "ScanConfig",
    "LoggingConfig",
    "load_config_from_path",
    "LicmatchError",
    "TemplateSyntaxError",
    "NestingLimitError",
    "MatchBudgetExceeded",
    "UnknownLicenseError",
    "LicenseExpressionSyntaxError",
    "ComparisonMisuseError",
]

__all__ = list(PRIMARY_API)
