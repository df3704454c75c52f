# config.py
# SPDX-License-Identifier: MIT
"""Configuration models and helpers for licmatch.

This module defines declarative dataclasses for resource limits, corpus
scans and logging, along with helpers for serializing and loading
configurations from JSON and TOML.
"""
from __future__ import annotations

import json
import os
try:  # pragma: no cover - optional dependency
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover
    try:
        import tomli as tomllib  # type: ignore[assignment]
    except Exception:  # pragma: no cover
        tomllib = None  # type: ignore[assignment]
from collections.abc import Sequence as ABCSequence
from dataclasses import dataclass, field, is_dataclass, fields
from pathlib import Path
from types import UnionType
from typing import Any, Dict, Mapping, Optional, Tuple, Type, TypeVar, Union, get_args, get_origin, get_type_hints

from .log import configure_logging, PACKAGE_LOGGER_NAME


# ---------------------------------------------------------------------------
# Sections
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class LimitsConfig:
    """Explicit bounds on recursion and search work.

    Attributes:
        max_template_depth (int): Deepest ``<<beginOptional>>`` nesting a
            template may use before parsing fails.
        max_expression_depth (int): Deepest license-expression nesting the
            parser and the equivalence comparer accept.
        max_variable_chars (int): Longest text a single template variable
            may absorb during matching.
        max_match_states (int): Upper bound on matcher search states
            explored for one comparison.
    """
    max_template_depth: int = 32
    max_expression_depth: int = 64
    max_variable_chars: int = 10_000
    max_match_states: int = 2_000_000

    def validate(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if not isinstance(value, int) or value <= 0:
                raise ValueError(f"limits.{f.name} must be a positive integer; got {value!r}.")


@dataclass(slots=True)
class ScanConfig:
    """Controls whole-corpus scans such as ``matching_standard_license_ids``.

    ``executor_kind`` accepts ``"thread"``, ``"process"`` or ``"auto"``; the
    latter two resolve to threads because compiled matchers and their cache
    live in this process.
    """
    max_workers: int = 0  # 0 -> os.cpu_count()
    submit_window: Optional[int] = None  # None -> 4 * max_workers
    executor_kind: str = "auto"
    include_deprecated: bool = True
    fail_fast: bool = False

    def resolved_workers(self) -> int:
        if self.max_workers and self.max_workers > 0:
            return int(self.max_workers)
        return max(1, os.cpu_count() or 1)

    def validate(self) -> None:
        allowed = {"thread", "process", "auto"}
        kind = (self.executor_kind or "auto").strip().lower()
        if kind not in allowed:
            raise ValueError(
                f"scan.executor_kind must be one of {sorted(allowed)}; got {self.executor_kind!r}."
            )
        self.executor_kind = kind
        if self.max_workers < 0:
            raise ValueError("scan.max_workers must be >= 0.")
        if self.submit_window is not None and self.submit_window <= 0:
            raise ValueError("scan.submit_window must be positive when set.")


@dataclass(slots=True)
class LoggingConfig:
    """Controls the package logger; set propagate=True/logger_name to
    integrate with host apps.
    """
    level: int | str = "INFO"
    propagate: bool = False
    fmt: Optional[str] = "%(asctime)s %(levelname)s %(name)s: %(message)s"
    logger_name: str = PACKAGE_LOGGER_NAME

    def apply(self) -> None:
        """Apply this logging configuration to the package logger."""
        configure_logging(
            level=self.level,
            propagate=self.propagate,
            fmt=self.fmt,
            logger_name=self.logger_name or PACKAGE_LOGGER_NAME,
        )


# ---------------------------------------------------------------------------
# Master config
# ---------------------------------------------------------------------------

T = TypeVar("T")


@dataclass(slots=True)
class LicmatchConfig:
    """Declarative settings for a matcher instance.

    Holds only knobs; corpora, caches and executors are passed to
    :class:`~licmatch.core.matcher.StandardLicenseMatcher` directly.
    """
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        """Validate every section, normalizing ``scan.executor_kind``.

        Raises:
            ValueError: If a limit is not a positive integer or a scan
                setting is out of range.
        """
        self.limits.validate()
        self.scan.validate()

    # -------------------------
    # Serialization helpers
    # -------------------------
    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-serializable representation of this configuration."""
        return _dataclass_to_dict(self)

    def to_json(self, path: Path | str, *, indent: int = 2) -> str:
        """Serialize the configuration to JSON and write it to disk.

        Args:
            path (Path | str): Target file path.
            indent (int): Indentation level passed to ``json.dumps``.

        Returns:
            str: String path to the written file.
        """
        data = self.to_dict()
        target = Path(path)
        target.write_text(json.dumps(data, indent=indent, sort_keys=True), encoding="utf-8")
        return str(target)

    @classmethod
    def from_dict(cls: Type[T], data: Mapping[str, Any]) -> T:
        """Instantiate a LicmatchConfig from a mapping.

        Args:
            data (Mapping[str, Any]): Mapping produced by
                :meth:`to_dict` or loaded from JSON/TOML.

        Returns:
            LicmatchConfig: Parsed configuration instance.
        """
        return _dataclass_from_dict(cls, data)

    @classmethod
    def from_json(cls: Type[T], path: Path | str) -> T:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_dict(payload)

    @classmethod
    def from_toml(cls: Type[T], path: Path | str) -> T:
        """
        Load a LicmatchConfig from a TOML file.

        The TOML layout mirrors the structure of this dataclass: top-level
        tables [limits], [scan] and [logging].
        """
        if tomllib is None:
            raise RuntimeError(
                "TOML support requires Python 3.11+ (tomllib) or installing the 'tomli' package."
            )
        raw = Path(path).read_bytes()
        data = tomllib.loads(raw.decode("utf-8"))

        if not isinstance(data, Mapping):
            raise TypeError(f"Top-level TOML document must be a mapping; got {type(data).__name__}.")

        return cls.from_dict(data)


def load_config_from_path(path: str | Path) -> LicmatchConfig:
    """Load a LicmatchConfig from a JSON or TOML file.

    Args:
        path (Path | str): Path to a ``.toml`` or ``.json`` config
            file.

    Returns:
        LicmatchConfig: Parsed and validated configuration instance.

    Raises:
        ValueError: If the file extension is not ``.toml`` or ``.json``.
    """
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix == ".toml":
        cfg = LicmatchConfig.from_toml(p)
    elif suffix == ".json":
        cfg = LicmatchConfig.from_json(p)
    else:
        raise ValueError(f"Unsupported config extension {p.suffix!r}; expected .toml or .json.")
    cfg.validate()
    return cfg


def _dataclass_to_dict(obj: Any) -> Dict[str, Any]:
    """Serialize dataclasses to JSON-friendly dicts, skipping None fields."""
    result: Dict[str, Any] = {}
    for f in fields(obj):
        value = getattr(obj, f.name)
        if value is None:
            continue
        serialized = _serialize_value(value)
        if serialized is not None:
            result[f.name] = serialized
    return result


def _serialize_value(value: Any) -> Any:
    """Best-effort JSON-friendly coercion; drops values that cannot be serialized."""
    if value is None:
        return None
    if isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_serialize_value(v) for v in value]
    if isinstance(value, dict):
        out: Dict[str, Any] = {}
        for k, v in value.items():
            serialized = _serialize_value(v)
            if serialized is not None:
                out[str(k)] = serialized
        return out
    if is_dataclass(value):
        return _dataclass_to_dict(value)
    return None


def _dataclass_from_dict(cls: Type[T], data: Mapping[str, Any] | None) -> T:
    """Instantiate a dataclass of type `cls` from a mapping.

    Unknown keys are rejected so that typos in config files surface early.

    Args:
        cls (type[T]): Dataclass type to construct.
        data (Mapping[str, Any] | None): Source mapping, or None to use
            the type's default constructor.

    Returns:
        T: New dataclass instance.

    Raises:
        ValueError: If ``data`` holds keys that are not fields of ``cls``.
    """
    if data is None:
        return cls()  # type: ignore[call-arg]
    type_hints = get_type_hints(cls)
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ValueError(f"Unknown keys for {cls.__name__}: {', '.join(unknown)}")

    kwargs: Dict[str, Any] = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        field_type = type_hints.get(f.name, f.type)
        kwargs[f.name] = _coerce_value(field_type, data[f.name])
    return cls(**kwargs)  # type: ignore[arg-type]


def _coerce_value(expected_type: Any, value: Any) -> Any:
    """Coerce `value` into the shape implied by `expected_type`.

    This handles nested dataclasses, container types, unions, and Paths,
    recursing into sequences and mappings when necessary.
    """
    base_type, _ = _strip_optional(expected_type)
    if value is None:
        return None
    if is_dataclass_type(base_type):
        return _dataclass_from_dict(base_type, value)
    origin = get_origin(base_type)
    if origin in (list, tuple, ABCSequence):
        args = get_args(base_type)
        inner = args[0] if args else Any
        items = [_coerce_value(inner, v) for v in value]
        return tuple(items) if origin is tuple else list(items)
    if origin is dict:
        key_type, val_type = get_args(base_type) if get_args(base_type) else (Any, Any)
        return {_coerce_value(key_type, k): _coerce_value(val_type, v) for k, v in value.items()}
    if base_type is Path:
        return Path(value)
    if base_type in {str, int, float, bool}:
        return base_type(value)
    return value


def _strip_optional(typ: Any) -> Tuple[Any, bool]:
    """Strip Optional from a type annotation.

    Args:
        typ (Any): Type annotation that may be a Union including ``None``.

    Returns:
        tuple[Any, bool]: A pair ``(base_type, is_optional)`` where
        ``is_optional`` is True if ``None`` was present in the union.
    """
    origin = get_origin(typ)
    if origin is Union or origin is UnionType:
        args = [arg for arg in get_args(typ) if arg is not type(None)]
        if len(args) == 1:
            base, _ = _strip_optional(args[0])
            return base, True
    return typ, False


def is_dataclass_type(typ: Any) -> bool:
    """Return True if `typ` is a dataclass type (not an instance)."""
    try:
        return isinstance(typ, type) and is_dataclass(typ)
    except Exception:
        return False


__all__ = [
    "LimitsConfig",
    "ScanConfig",
    "LoggingConfig",
    "LicmatchConfig",
    "load_config_from_path",
]
