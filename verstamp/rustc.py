"""The VERGEN_RUSTC_* instructions: details of the compiler in use."""

from __future__ import annotations

import os
import re
import subprocess
from dataclasses import dataclass
from enum import Enum

from .core import Entries, VergenError, VergenKey, env_override

_NUMBER = r"(?:0|[1-9][0-9]*)"
_IDENTS = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_SEMVER = re.compile(
    rf"(?P<core>{_NUMBER}\.{_NUMBER}\.{_NUMBER})"
    rf"(?:-(?P<pre>{_IDENTS}))?"
    rf"(?:\+(?P<build>{_IDENTS}))?"
)
_LLVM_PART = re.compile(r"0|[1-9][0-9]*")


class Channel(Enum):
    """The release channel a compiler comes from."""

    DEV = "dev"
    NIGHTLY = "nightly"
    BETA = "beta"
    STABLE = "stable"


@dataclass(frozen=True)
class VersionMeta:
    """What the compiler reports about itself in its verbose version output."""

    semver: str
    commit_hash: str | None
    commit_date: str | None
    build_date: str | None
    channel: Channel
    host: str
    short_version_string: str
    llvm_version: str | None


def _expect(fields: dict[str, str], key: str) -> str:
    try:
        return fields[key]
    except KeyError:
        raise VergenError(f"could not find {key!r} in the compiler version output") from None


def _expect_or_unknown(fields: dict[str, str], key: str) -> str | None:
    value = _expect(fields, key)
    return None if value == "unknown" else value


def _parse_llvm(text: str) -> str:
    parts = text.split(".")
    if len(parts) > 3:
        raise VergenError(f"too many components in LLVM version {text!r}")
    for part in parts:
        if not _LLVM_PART.fullmatch(part):
            raise VergenError(f"invalid LLVM version component {part!r} in {text!r}")
    major = int(parts[0])
    if len(parts) == 1:
        if major < 4:
            raise VergenError(f"LLVM version {text!r} needs a minor version")
        minor = 0
    else:
        minor = int(parts[1])
    return f"{major}.{minor}"


def _channel_for(pre: str) -> Channel:
    tag = pre.split(".", 1)[0]
    channels = {
        "": Channel.STABLE,
        "dev": Channel.DEV,
        "beta": Channel.BETA,
        "nightly": Channel.NIGHTLY,
    }
    try:
        return channels[tag]
    except KeyError:
        raise VergenError(f"unknown pre-release tag {tag!r}") from None


def parse_version_meta(text: str) -> VersionMeta:
    """Parse the output of the compiler's verbose version flag.

    Raises VergenError when a required field is missing or malformed.
    """
    fields: dict[str, str] = {}
    for index, line in enumerate(text.splitlines()):
        if index == 0:
            fields["short"] = line
            continue
        key, sep, value = line.partition(": ")
        if sep:
            fields[key] = value

    short = _expect(fields, "short")
    host = _expect(fields, "host")
    release = _expect(fields, "release")
    match = _SEMVER.fullmatch(release)
    if match is None:
        raise VergenError(f"invalid release version {release!r}")
    channel = _channel_for(match.group("pre") or "")
    commit_hash = _expect_or_unknown(fields, "commit-hash")
    commit_date = _expect_or_unknown(fields, "commit-date")
    build_date = fields.get("build-date")
    if build_date == "unknown":
        build_date = None
    llvm = fields.get("LLVM version")
    return VersionMeta(
        semver=release,
        commit_hash=commit_hash,
        commit_date=commit_date,
        build_date=build_date,
        channel=channel,
        host=host,
        short_version_string=short,
        llvm_version=_parse_llvm(llvm) if llvm is not None else None,
    )


def version_meta() -> VersionMeta:
    """Ask the compiler named by RUSTC (or rustc) about itself."""
    compiler = os.environ.get("RUSTC", "rustc")
    try:
        result = subprocess.run([compiler, "-vV"], capture_output=True, check=False)
    except OSError as exc:
        raise VergenError(f"could not run {compiler!r}: {exc}") from exc
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace")
        raise VergenError(f"{compiler!r} exited with {result.returncode}: {stderr}")
    try:
        stdout = result.stdout.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise VergenError(f"{compiler!r} printed invalid UTF-8") from exc
    return parse_version_meta(stdout)


@dataclass
class RustcConfig:
    """Which compiler instructions to emit.

    Compiler details are deterministic, so the idempotent flag has no effect here.
    """

    rustc_channel: bool = False
    rustc_commit_date: bool = False
    rustc_commit_hash: bool = False
    rustc_host_triple: bool = False
    rustc_llvm_version: bool = False
    rustc_semver: bool = False

    def enable_all(self) -> RustcConfig:
        """Enable every compiler instruction."""
        self.rustc_channel = True
        self.rustc_commit_date = True
        self.rustc_commit_hash = True
        self.rustc_host_triple = True
        self.rustc_llvm_version = True
        self.rustc_semver = True
        return self

    def _enabled_keys(self) -> list[VergenKey]:
        flags = (
            (self.rustc_channel, VergenKey.RUSTC_CHANNEL),
            (self.rustc_commit_date, VergenKey.RUSTC_COMMIT_DATE),
            (self.rustc_commit_hash, VergenKey.RUSTC_COMMIT_HASH),
            (self.rustc_host_triple, VergenKey.RUSTC_HOST_TRIPLE),
            (self.rustc_llvm_version, VergenKey.RUSTC_LLVM_VERSION),
            (self.rustc_semver, VergenKey.RUSTC_SEMVER),
        )
        return [key for enabled, key in flags if enabled]

    def add_default(self, error: Exception, fail_on_error: bool, entries: Entries) -> None:
        """Re-raise the error, or fill every enabled key with its default."""
        if fail_on_error:
            raise error
        for key in self._enabled_keys():
            entries.add_default(key)

    def add_entries(self, entries: Entries, version_text: str | None = None) -> None:
        """Add the enabled compiler instructions.

        The details come from version_text when given, otherwise from running
        the compiler. Raises VergenError when they cannot be determined.
        """
        meta = parse_version_meta(version_text) if version_text is not None else version_meta()

        if self.rustc_channel:
            self._add(VergenKey.RUSTC_CHANNEL, meta.channel.value, entries)
        if self.rustc_commit_date:
            self._add(VergenKey.RUSTC_COMMIT_DATE, meta.commit_date, entries)
        if self.rustc_commit_hash:
            self._add(VergenKey.RUSTC_COMMIT_HASH, meta.commit_hash, entries)
        if self.rustc_host_triple:
            self._add(VergenKey.RUSTC_HOST_TRIPLE, meta.host, entries)
        if self.rustc_llvm_version:
            self._add(VergenKey.RUSTC_LLVM_VERSION, meta.llvm_version, entries)
        if self.rustc_semver:
            self._add(VergenKey.RUSTC_SEMVER, meta.semver, entries)

    @staticmethod
    def _add(key: VergenKey, value: str | None, entries: Entries) -> None:
        override = env_override(key)
        if override is not None:
            entries.add(key, override)
        elif value is not None:
            entries.add(key, value)
        else:
            entries.add_default(key)