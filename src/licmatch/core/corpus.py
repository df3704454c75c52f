# corpus.py
# SPDX-License-Identifier: MIT
"""Read-only access to the standard license and exception corpus.

The engine never loads a corpus itself; callers hand it an object that
satisfies :class:`LicenseCorpus`. :class:`InMemoryCorpus` is the bundled
implementation and accepts records shaped like the SPDX license-list JSON.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from .errors import UnknownLicenseError
from .log import get_logger

log = get_logger(__name__)

__all__ = [
    "StandardLicense",
    "StandardException",
    "LicenseCorpus",
    "InMemoryCorpus",
]


@dataclass(frozen=True, slots=True)
class StandardLicense:
    """One corpus license.

    Attributes:
        license_id (str): Canonical short id, e.g. ``Apache-2.0``.
        text (str): Canonical license text.
        template (str | None): Template source, when the corpus has one.
        deprecated (bool): Whether the id is deprecated.
        name (str | None): Human-readable name.
    """

    license_id: str
    text: str
    template: Optional[str] = None
    deprecated: bool = False
    name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class StandardException:
    license_id: str
    text: str
    template: Optional[str] = None
    deprecated: bool = False
    name: Optional[str] = None


@runtime_checkable
class LicenseCorpus(Protocol):
    """What the matcher needs from a corpus.

    ``version`` identifies the corpus content; compiled matchers are cached
    per version, so a changed corpus must report a new one.
    """

    @property
    def version(self) -> str:
        ...

    def license_ids(self) -> Iterable[str]:
        ...

    def get_license(self, license_id: str) -> StandardLicense:
        """Return the license or raise :class:`UnknownLicenseError`."""
        ...

    def exception_ids(self) -> Iterable[str]:
        ...

    def get_exception(self, exception_id: str) -> StandardException:
        ...


class InMemoryCorpus:
    """Corpus backed by dictionaries built once at construction."""

    def __init__(
        self,
        licenses: Iterable[StandardLicense] = (),
        exceptions: Iterable[StandardException] = (),
        *,
        version: str = "",
    ) -> None:
        self._version = version
        self._licenses: Dict[str, StandardLicense] = {lic.license_id: lic for lic in licenses}
        self._exceptions: Dict[str, StandardException] = {exc.license_id: exc for exc in exceptions}

    def __repr__(self) -> str:
        return (
            f"InMemoryCorpus(version={self._version!r}, licenses={len(self._licenses)}, "
            f"exceptions={len(self._exceptions)})"
        )

    @property
    def version(self) -> str:
        return self._version

    def license_ids(self) -> list[str]:
        return list(self._licenses)

    def get_license(self, license_id: str) -> StandardLicense:
        try:
            return self._licenses[license_id]
        except KeyError:
            raise UnknownLicenseError(license_id) from None

    def exception_ids(self) -> list[str]:
        return list(self._exceptions)

    def get_exception(self, exception_id: str) -> StandardException:
        try:
            return self._exceptions[exception_id]
        except KeyError:
            raise UnknownLicenseError(exception_id, kind="exception") from None

    @classmethod
    def from_records(
        cls,
        licenses: Iterable[Mapping[str, Any]] = (),
        exceptions: Iterable[Mapping[str, Any]] = (),
        *,
        version: str = "",
    ) -> "InMemoryCorpus":
        """Build a corpus from SPDX license-list style mappings.

        License records use ``licenseId``, ``licenseText``,
        ``standardLicenseTemplate``, ``isDeprecatedLicenseId`` and ``name``;
        exception records use ``licenseExceptionId``,
        ``licenseExceptionText``, ``licenseExceptionTemplate`` and
        ``isDeprecatedLicenseId``. Records without an id are skipped.
        """
        lic_objs: list[StandardLicense] = []
        for rec in licenses:
            lid = rec.get("licenseId")
            if not lid:
                log.warning("Skipping license record without licenseId")
                continue
            lic_objs.append(
                StandardLicense(
                    license_id=str(lid),
                    text=rec.get("licenseText") or "",
                    template=rec.get("standardLicenseTemplate") or None,
                    deprecated=bool(rec.get("isDeprecatedLicenseId", False)),
                    name=rec.get("name"),
                )
            )
        exc_objs: list[StandardException] = []
        for rec in exceptions:
            eid = rec.get("licenseExceptionId")
            if not eid:
                log.warning("Skipping exception record without licenseExceptionId")
                continue
            exc_objs.append(
                StandardException(
                    license_id=str(eid),
                    text=rec.get("licenseExceptionText") or "",
                    template=rec.get("licenseExceptionTemplate") or None,
                    deprecated=bool(rec.get("isDeprecatedLicenseId", False)),
                    name=rec.get("name"),
                )
            )
        log.debug("Built in-memory corpus: %d licenses, %d exceptions", len(lic_objs), len(exc_objs))
        return cls(lic_objs, exc_objs, version=version)
