"""The builder that gathers the enabled instructions and writes them out."""

from __future__ import annotations

import os
import sys
from dataclasses import fields
from typing import Callable, TextIO

from .build import BuildConfig
from .cargo import CargoConfig
from .core import Entries, VergenError
from .git import GitConfig
from .rustc import RustcConfig
from .sysinfo import SysinfoConfig, SystemSnapshot

_TRAILER = (
    "cargo:rerun-if-changed=build.rs",
    "cargo:rerun-if-env-changed=VERGEN_IDEMPOTENT",
    "cargo:rerun-if-env-changed=SOURCE_DATE_EPOCH",
)


def _any_flag(config: object) -> bool:
    return any(getattr(config, f.name) for f in fields(config))  # type: ignore[arg-type]


def _merge(target: Entries, part: Entries) -> None:
    target.values.update(part.values)
    target.warnings.extend(part.warnings)
    target.rerun_if_changed.extend(part.rerun_if_changed)


class EmitBuilder:
    """Configure which instructions to emit, then collect or write them."""

    def __init__(self) -> None:
        self.build_config = BuildConfig()
        self.cargo_config = CargoConfig()
        self.git_config = GitConfig()
        self.rustc_config = RustcConfig()
        self.sysinfo_config = SysinfoConfig()
        self.rustc_version_text: str | None = None
        self.system: SystemSnapshot | None = None
        self.is_idempotent = False
        self.fails_on_error = False
        self.is_quiet = False

    def idempotent(self) -> EmitBuilder:
        """Replace non-deterministic values with the idempotent placeholder."""
        self.is_idempotent = True
        return self

    def fail_on_error(self) -> EmitBuilder:
        """Raise instead of falling back to defaults when a value cannot be found."""
        self.fails_on_error = True
        return self

    def quiet(self) -> EmitBuilder:
        """Leave warning lines out of the output."""
        self.is_quiet = True
        return self

    def all_build(self) -> EmitBuilder:
        """Enable every build instruction."""
        self.build_config.enable_all()
        return self

    def all_cargo(self) -> EmitBuilder:
        """Enable every cargo instruction."""
        self.cargo_config.enable_all()
        return self

    def all_git(self) -> EmitBuilder:
        """Enable every git instruction."""
        self.git_config.enable_all()
        return self

    def all_rustc(self) -> EmitBuilder:
        """Enable every compiler instruction."""
        self.rustc_config.enable_all()
        return self

    def all_sysinfo(self) -> EmitBuilder:
        """Enable every system instruction."""
        self.sysinfo_config.enable_all()
        return self

    def collect(self, path: str | os.PathLike[str] | None = None) -> Entries:
        """Gather every enabled instruction, running git from path if given.

        Raises VergenError when a value is missing and fail_on_error is set.
        """
        idempotent = self.is_idempotent or "VERGEN_IDEMPOTENT" in os.environ
        steps: list[tuple[bool, Callable[[Entries], None], Callable[..., None]]] = [
            (
                _any_flag(self.build_config),
                lambda part: self.build_config.add_entries(idempotent, part),
                self.build_config.add_default,
            ),
            (
                _any_flag(self.cargo_config),
                self.cargo_config.add_entries,
                self.cargo_config.add_default,
            ),
            (
                self.git_config.any_enabled(),
                lambda part: self.git_config.add_entries(path, idempotent, part),
                self.git_config.add_default,
            ),
            (
                _any_flag(self.rustc_config),
                lambda part: self.rustc_config.add_entries(part, self.rustc_version_text),
                self.rustc_config.add_default,
            ),
        ]

        result = Entries()
        for enabled, add, fallback in steps:
            if not enabled:
                continue
            part = Entries()
            try:
                add(part)
            except VergenError as err:
                fallback(err, self.fails_on_error, part)
            _merge(result, part)

        if _any_flag(self.sysinfo_config):
            self.sysinfo_config.add_entries(idempotent, result, self.system)
        return result

    def emit_to(self, stream: TextIO) -> Entries:
        """Write the instructions as cargo build-script lines and return them."""
        entries = self.collect()
        lines = [f"cargo:rustc-env={key.value}={value}" for key, value in entries]
        if not self.is_quiet:
            lines.extend(f"cargo:warning={warning}" for warning in entries.warnings)
        lines.extend(f"cargo:rerun-if-changed={path}" for path in entries.rerun_if_changed)
        lines.extend(_TRAILER)
        stream.write("".join(f"{line}\n" for line in lines))
        return entries

    def emit(self) -> Entries:
        """Write the instructions to standard output."""
        return self.emit_to(sys.stdout)