"""The VERGEN_BUILD_* instructions: build date and timestamp."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from .core import (
    Entries,
    VergenKey,
    env_override,
    format_date,
    format_timestamp,
    source_date_epoch,
)


@dataclass
class BuildConfig:
    """Which build instructions to emit."""

    build_date: bool = False
    build_timestamp: bool = False

    def enable_all(self) -> BuildConfig:
        """Enable every build instruction."""
        self.build_date = True
        self.build_timestamp = True
        return self

    def add_default(self, error: Exception, fail_on_error: bool, entries: Entries) -> None:
        """Re-raise the error, or fill every enabled key with its default."""
        if fail_on_error:
            raise error
        if self.build_date:
            entries.add_default(VergenKey.BUILD_DATE)
        if self.build_timestamp:
            entries.add_default(VergenKey.BUILD_TIMESTAMP)

    def add_entries(self, idempotent: bool, entries: Entries) -> None:
        """Add the enabled build instructions.

        SOURCE_DATE_EPOCH, when set, takes precedence over the idempotent flag.
        """
        epoch = source_date_epoch()
        from_epoch = epoch is not None
        ts = epoch if epoch is not None else datetime.now(timezone.utc)

        if self.build_date:
            self._add(VergenKey.BUILD_DATE, format_date(ts), idempotent, from_epoch, entries)
        if self.build_timestamp:
            self._add(
                VergenKey.BUILD_TIMESTAMP, format_timestamp(ts), idempotent, from_epoch, entries
            )

    @staticmethod
    def _add(
        key: VergenKey, computed: str, idempotent: bool, from_epoch: bool, entries: Entries
    ) -> None:
        override = env_override(key)
        if override is not None:
            entries.add(key, override)
        elif idempotent and not from_epoch:
            entries.add_default(key)
        else:
            entries.add(key, computed)