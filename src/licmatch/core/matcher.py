# matcher.py
# SPDX-License-Identifier: MIT
"""Match free-form text against the standard license corpus.

:class:`StandardLicenseMatcher` answers four questions for licenses, and
the same questions for license exceptions:

* does this text match license X (with a diagnostic when it does not)?
* does this text contain license X somewhere?
* which licenses does this text match?
* which licenses does this text contain?

Each corpus entry is compiled once into a
:class:`~licmatch.core.pattern.TokenPattern`, from its template when the
corpus has one and from its plain text otherwise, and kept in a
:class:`~licmatch.core.cache.MatcherCache` keyed by kind, id and corpus
version. Whole-corpus questions fan out over a bounded thread pool.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from typing import Optional, Union

from .cache import MatcherCache
from .concurrency import Executor, resolve_scan_executor_config
from .config import LicmatchConfig, LimitsConfig
from .corpus import LicenseCorpus, StandardException, StandardLicense
from .errors import LicmatchError, NestingLimitError, TemplateSyntaxError
from .log import get_logger
from .normalize import Token, normalize
from .pattern import MatchResult, TokenPattern, compile_template, compile_text
from .template import parse_template

log = get_logger(__name__)

__all__ = [
    "StandardLicenseMatcher",
    "is_text_matching_template",
]

LICENSE_KIND = "license"
EXCEPTION_KIND = "exception"

CorpusEntry = Union[StandardLicense, StandardException]


def _compile_entry(entry: CorpusEntry, limits: LimitsConfig) -> TokenPattern:
    if entry.template:
        try:
            nodes = parse_template(entry.template, max_depth=limits.max_template_depth)
            return compile_template(nodes, limits=limits)
        except (TemplateSyntaxError, NestingLimitError) as exc:
            log.warning("Template for %s is unusable, matching its plain text instead: %s", entry.license_id, exc)
    return compile_text(entry.text, limits=limits)


def is_text_matching_template(template: str, text: str, *, limits: LimitsConfig | None = None) -> MatchResult:
    """Match ``text`` against a template source that is not in any corpus.

    Nothing is cached.

    Raises:
        TemplateSyntaxError: If ``template`` is malformed.
    """
    limits = limits or LimitsConfig()
    nodes = parse_template(template, max_depth=limits.max_template_depth)
    return compile_template(nodes, limits=limits).match(normalize(text))


class StandardLicenseMatcher:
    """Text-to-corpus matching with a shared compiled-matcher cache.

    Args:
        corpus (LicenseCorpus): Source of license and exception texts.
        cache (MatcherCache | None): Compiled matcher cache; share one
            between matchers over the same corpus to compile each entry
            once. A fresh cache is created when omitted.
        config (LicmatchConfig | None): Limits and scan settings.
    """

    def __init__(
        self,
        corpus: LicenseCorpus,
        *,
        cache: Optional[MatcherCache] = None,
        config: Optional[LicmatchConfig] = None,
    ) -> None:
        self.corpus = corpus
        self.cache = cache if cache is not None else MatcherCache()
        self.config = config or LicmatchConfig()
        self.config.validate()

    # -------------------------
    # Compiled patterns
    # -------------------------
    def _pattern(self, kind: str, entry_id: str) -> TokenPattern:
        key = (kind, entry_id, self.corpus.version)

        def factory() -> TokenPattern:
            if kind == LICENSE_KIND:
                entry: CorpusEntry = self.corpus.get_license(entry_id)
            else:
                entry = self.corpus.get_exception(entry_id)
            log.debug("Compiling %s matcher for %s", kind, entry_id)
            return _compile_entry(entry, self.config.limits)

        return self.cache.get_or_compute(key, factory)

    def license_pattern(self, license_id: str) -> TokenPattern:
        return self._pattern(LICENSE_KIND, license_id)

    def exception_pattern(self, exception_id: str) -> TokenPattern:
        return self._pattern(EXCEPTION_KIND, exception_id)

    # -------------------------
    # Single-entry questions
    # -------------------------
    def is_text_standard_license(self, license_id: str, text: str) -> MatchResult:
        """Compare ``text`` with license ``license_id`` as a whole.

        Args:
            license_id (str): Corpus license id.
            text (str): Candidate license text.

        Returns:
            MatchResult: ``found`` is True when the text matches; otherwise
            ``message`` and ``location`` describe the first divergence.

        Raises:
            UnknownLicenseError: If the corpus has no such license.
            MatchBudgetExceeded: If matching exceeds ``max_match_states``.
        """
        return self.license_pattern(license_id).match(normalize(text))

    def is_text_standard_exception(self, exception_id: str, text: str) -> MatchResult:
        return self.exception_pattern(exception_id).match(normalize(text))

    def is_standard_license_within_text(self, text: str, license_id: str) -> bool:
        """Return True if some contiguous part of ``text`` is license ``license_id``.

        Empty or whitespace-only text never contains a license.
        """
        tokens = normalize(text)
        if not tokens:
            return False
        return self.license_pattern(license_id).search(tokens)

    def is_standard_exception_within_text(self, text: str, exception_id: str) -> bool:
        tokens = normalize(text)
        if not tokens:
            return False
        return self.exception_pattern(exception_id).search(tokens)

    # -------------------------
    # Corpus scans
    # -------------------------
    def matching_standard_license_ids(self, text: str) -> set[str]:
        """Return every license id whose text ``text`` matches as a whole."""
        tokens = normalize(text)
        return self._scan(LICENSE_KIND, self._license_ids(None), tokens, within=False)

    def matching_standard_license_ids_within_text(
        self,
        text: str,
        *,
        license_ids: Optional[Iterable[str]] = None,
    ) -> set[str]:
        """Return every license id found somewhere in ``text``.

        Args:
            text (str): Candidate text.
            license_ids (Iterable[str] | None): Restrict the scan to these
                ids; defaults to the whole corpus.
        """
        tokens = normalize(text)
        if not tokens:
            return set()
        return self._scan(LICENSE_KIND, self._license_ids(license_ids), tokens, within=True)

    def matching_standard_exception_ids_within_text(
        self,
        text: str,
        *,
        exception_ids: Optional[Iterable[str]] = None,
    ) -> set[str]:
        tokens = normalize(text)
        if not tokens:
            return set()
        ids = list(exception_ids) if exception_ids is not None else self._filter_deprecated(
            EXCEPTION_KIND, self.corpus.exception_ids()
        )
        return self._scan(EXCEPTION_KIND, ids, tokens, within=True)

    def _license_ids(self, license_ids: Optional[Iterable[str]]) -> list[str]:
        if license_ids is not None:
            return list(license_ids)
        return self._filter_deprecated(LICENSE_KIND, self.corpus.license_ids())

    def _filter_deprecated(self, kind: str, ids: Iterable[str]) -> list[str]:
        if self.config.scan.include_deprecated:
            return list(ids)
        lookup: Callable[[str], CorpusEntry] = (
            self.corpus.get_license if kind == LICENSE_KIND else self.corpus.get_exception
        )
        return [entry_id for entry_id in ids if not lookup(entry_id).deprecated]

    def _scan(self, kind: str, ids: Sequence[str], tokens: Sequence[Token], *, within: bool) -> set[str]:
        if not ids:
            return set()

        def check(entry_id: str) -> tuple[str, bool]:
            try:
                pattern = self._pattern(kind, entry_id)
                if not pattern.could_match(tokens):
                    return entry_id, False
                if within:
                    return entry_id, pattern.search(tokens)
                return entry_id, pattern.match(tokens).found
            except LicmatchError as exc:
                log.warning("Skipping %s %s during scan: %s", kind, entry_id, exc)
                return entry_id, False

        found: set[str] = set()

        def on_result(result: tuple[str, bool]) -> None:
            entry_id, matched = result
            if matched:
                log.debug("Scan matched %s %s", kind, entry_id)
                found.add(entry_id)

        def on_error(exc: BaseException) -> None:
            log.warning("%s scan worker failed: %s", kind.capitalize(), exc)

        exec_cfg, fail_fast = resolve_scan_executor_config(self.config.scan, len(ids))
        Executor(exec_cfg).map_unordered(ids, check, on_result, fail_fast=fail_fast, on_error=on_error)
        return found
