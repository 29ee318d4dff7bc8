"""Shared building blocks: instruction keys, the entry collection and time helpers."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterator

IDEMPOTENT_OUTPUT = "VERGEN_IDEMPOTENT_OUTPUT"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_INTEGER = re.compile(r"[+-]?[0-9]+")


class VergenError(Exception):
    """Raised when an instruction value cannot be determined."""


class VergenKey(Enum):
    """Every instruction that can be emitted, valued by its variable name."""

    BUILD_DATE = "VERGEN_BUILD_DATE"
    BUILD_TIMESTAMP = "VERGEN_BUILD_TIMESTAMP"
    CARGO_DEBUG = "VERGEN_CARGO_DEBUG"
    CARGO_FEATURES = "VERGEN_CARGO_FEATURES"
    CARGO_OPT_LEVEL = "VERGEN_CARGO_OPT_LEVEL"
    CARGO_TARGET_TRIPLE = "VERGEN_CARGO_TARGET_TRIPLE"
    GIT_BRANCH = "VERGEN_GIT_BRANCH"
    GIT_COMMIT_AUTHOR_EMAIL = "VERGEN_GIT_COMMIT_AUTHOR_EMAIL"
    GIT_COMMIT_AUTHOR_NAME = "VERGEN_GIT_COMMIT_AUTHOR_NAME"
    GIT_COMMIT_COUNT = "VERGEN_GIT_COMMIT_COUNT"
    GIT_COMMIT_DATE = "VERGEN_GIT_COMMIT_DATE"
    GIT_COMMIT_MESSAGE = "VERGEN_GIT_COMMIT_MESSAGE"
    GIT_COMMIT_TIMESTAMP = "VERGEN_GIT_COMMIT_TIMESTAMP"
    GIT_DESCRIBE = "VERGEN_GIT_DESCRIBE"
    GIT_SHA = "VERGEN_GIT_SHA"
    RUSTC_CHANNEL = "VERGEN_RUSTC_CHANNEL"
    RUSTC_COMMIT_DATE = "VERGEN_RUSTC_COMMIT_DATE"
    RUSTC_COMMIT_HASH = "VERGEN_RUSTC_COMMIT_HASH"
    RUSTC_HOST_TRIPLE = "VERGEN_RUSTC_HOST_TRIPLE"
    RUSTC_LLVM_VERSION = "VERGEN_RUSTC_LLVM_VERSION"
    RUSTC_SEMVER = "VERGEN_RUSTC_SEMVER"
    SYSINFO_NAME = "VERGEN_SYSINFO_NAME"
    SYSINFO_OS_VERSION = "VERGEN_SYSINFO_OS_VERSION"
    SYSINFO_USER = "VERGEN_SYSINFO_USER"
    SYSINFO_MEMORY = "VERGEN_SYSINFO_TOTAL_MEMORY"
    SYSINFO_CPU_VENDOR = "VERGEN_SYSINFO_CPU_VENDOR"
    SYSINFO_CPU_CORE_COUNT = "VERGEN_SYSINFO_CPU_CORE_COUNT"
    SYSINFO_CPU_NAME = "VERGEN_SYSINFO_CPU_NAME"
    SYSINFO_CPU_BRAND = "VERGEN_SYSINFO_CPU_BRAND"
    SYSINFO_CPU_FREQUENCY = "VERGEN_SYSINFO_CPU_FREQUENCY"


_KEY_ORDER = {key: index for index, key in enumerate(VergenKey)}


@dataclass
class Entries:
    """Collected instruction values together with warnings and rerun paths."""

    values: dict[VergenKey, str] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)
    rerun_if_changed: list[str] = field(default_factory=list)

    def add(self, key: VergenKey, value: object) -> None:
        """Record a value for a key, replacing any earlier one."""
        self.values[key] = str(value)

    def add_default(self, key: VergenKey) -> None:
        """Record the idempotent placeholder for a key and warn about it."""
        self.values[key] = IDEMPOTENT_OUTPUT
        self.warnings.append(f"{key.value} set to default")

    def count_idempotent(self) -> int:
        """Number of keys holding the idempotent placeholder."""
        return sum(1 for value in self.values.values() if value == IDEMPOTENT_OUTPUT)

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self) -> Iterator[tuple[VergenKey, str]]:
        yield from sorted(self.values.items(), key=lambda item: _KEY_ORDER[item[0]])


def _unicode_env(name: str) -> str | None:
    value = os.environ.get(name)
    if value is None:
        return None
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise VergenError(f"environment variable {name} is not valid unicode") from None
    return value


def env_override(key: VergenKey) -> str | None:
    """Return the user-supplied value for a key, if one is set and readable."""
    try:
        return _unicode_env(key.value)
    except VergenError:
        return None


def source_date_epoch() -> datetime | None:
    """Return the time given by SOURCE_DATE_EPOCH, or None if it is unset."""
    raw = _unicode_env("SOURCE_DATE_EPOCH")
    if raw is None:
        return None
    if not _INTEGER.fullmatch(raw):
        raise VergenError(f"invalid SOURCE_DATE_EPOCH value: {raw!r}")
    try:
        return _EPOCH + timedelta(seconds=int(raw))
    except OverflowError:
        raise VergenError(f"SOURCE_DATE_EPOCH out of range: {raw}") from None


def _aware(ts: datetime) -> datetime:
    return ts if ts.tzinfo is not None else ts.replace(tzinfo=timezone.utc)


def format_date(ts: datetime) -> str:
    """Format as YYYY-MM-DD."""
    ts = _aware(ts)
    return f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d}"


def format_timestamp(ts: datetime) -> str:
    """Format as ISO 8601 with nanosecond precision and a Z or +hh:mm offset."""
    ts = _aware(ts)
    base = (
        f"{format_date(ts)}T{ts.hour:02d}:{ts.minute:02d}:{ts.second:02d}"
        f".{ts.microsecond * 1000:09d}"
    )
    offset = ts.utcoffset()
    total = int(offset.total_seconds()) if offset is not None else 0
    if total == 0:
        return f"{base}Z"
    sign = "-" if total < 0 else "+"
    hours, rest = divmod(abs(total), 3600)
    return f"{base}{sign}{hours:02d}:{rest // 60:02d}"