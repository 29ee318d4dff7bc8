"""The VERGEN_CARGO_* instructions: values cargo hands to a build script."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from .core import Entries, VergenError, VergenKey, env_override

_FEATURE_PREFIX = "CARGO_FEATURE_"


def cargo_features(environ: Mapping[str, str]) -> str:
    """Return the enabled cargo features, lower-cased and comma separated."""
    return ",".join(
        name.replace(_FEATURE_PREFIX, "").lower()
        for name in environ
        if name.startswith(_FEATURE_PREFIX)
    )


def _required_env(name: str) -> str:
    value = os.environ.get(name)
    if value is None:
        raise VergenError(f"environment variable {name} not found")
    try:
        value.encode("utf-8")
    except UnicodeEncodeError:
        raise VergenError(f"environment variable {name} is not valid unicode") from None
    return value


@dataclass
class CargoConfig:
    """Which cargo instructions to emit.

    Every cargo value is deterministic, so the idempotent flag has no effect here.
    """

    cargo_debug: bool = False
    cargo_features: bool = False
    cargo_opt_level: bool = False
    cargo_target_triple: bool = False

    def enable_all(self) -> CargoConfig:
        """Enable every cargo instruction."""
        self.cargo_debug = True
        self.cargo_features = True
        self.cargo_opt_level = True
        self.cargo_target_triple = True
        return self

    def _enabled_keys(self) -> list[VergenKey]:
        flags = (
            (self.cargo_debug, VergenKey.CARGO_DEBUG),
            (self.cargo_features, VergenKey.CARGO_FEATURES),
            (self.cargo_opt_level, VergenKey.CARGO_OPT_LEVEL),
            (self.cargo_target_triple, VergenKey.CARGO_TARGET_TRIPLE),
        )
        return [key for enabled, key in flags if enabled]

    def add_default(self, error: Exception, fail_on_error: bool, entries: Entries) -> None:
        """Re-raise the error, or fill every enabled key with its default."""
        if fail_on_error:
            raise error
        for key in self._enabled_keys():
            entries.add_default(key)

    def add_entries(self, entries: Entries) -> None:
        """Add the enabled cargo instructions.

        Raises VergenError when a variable cargo should have set is missing.
        """
        if self.cargo_debug:
            self._add(VergenKey.CARGO_DEBUG, "DEBUG", entries)

        if self.cargo_features:
            override = env_override(VergenKey.CARGO_FEATURES)
            if override is not None:
                entries.add(VergenKey.CARGO_FEATURES, override)
            else:
                entries.add(VergenKey.CARGO_FEATURES, cargo_features(os.environ))

        if self.cargo_opt_level:
            self._add(VergenKey.CARGO_OPT_LEVEL, "OPT_LEVEL", entries)

        if self.cargo_target_triple:
            self._add(VergenKey.CARGO_TARGET_TRIPLE, "TARGET", entries)

    @staticmethod
    def _add(key: VergenKey, variable: str, entries: Entries) -> None:
        override = env_override(key)
        entries.add(key, override if override is not None else _required_env(variable))