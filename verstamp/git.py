"""The VERGEN_GIT_* instructions, gathered by running git through the shell."""

from __future__ import annotations

import os
import re
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterator

from .core import (
    Entries,
    VergenError,
    VergenKey,
    env_override,
    format_date,
    format_timestamp,
    source_date_epoch,
)
from .shell import (
    add_git_cmd_entry,
    add_rerun_if_changed,
    check_git,
    check_inside_git_worktree,
    run_command,
)

DEFAULT_GIT_CMD = "git --version"
BRANCH_CMD = "git rev-parse --abbrev-ref --symbolic-full-name HEAD"
COMMIT_AUTHOR_EMAIL = "git log -1 --pretty=format:'%ae'"
COMMIT_AUTHOR_NAME = "git log -1 --pretty=format:'%an'"
COMMIT_COUNT = "git rev-list --count HEAD"
COMMIT_MESSAGE = "git log -1 --format=%s"
COMMIT_TIMESTAMP = "git log -1 --pretty=format:'%cI'"
DESCRIBE = "git describe --always"
SHA = "git rev-parse"

_RFC3339 = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt ](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})"
)


def _parse_rfc3339(text: str) -> datetime:
    match = _RFC3339.fullmatch(text)
    if match is None:
        raise VergenError(f"invalid RFC 3339 timestamp: {text!r}")
    year, month, day, hour, minute, second = (int(match.group(i)) for i in range(1, 7))
    micros = int((match.group(7) or "").ljust(6, "0")[:6])
    offset_text = match.group(8)
    if offset_text in ("Z", "z"):
        tz = timezone.utc
    else:
        sign = -1 if offset_text[0] == "-" else 1
        hours, minutes = int(offset_text[1:3]), int(offset_text[4:6])
        try:
            tz = timezone(sign * timedelta(hours=hours, minutes=minutes))
        except ValueError as exc:
            raise VergenError(f"invalid offset in timestamp {text!r}") from exc
    try:
        return datetime(year, month, day, hour, minute, second, micros, tzinfo=tz)
    except ValueError as exc:
        raise VergenError(f"invalid RFC 3339 timestamp: {text!r}") from exc


@contextmanager
def _working_directory(path: str | os.PathLike[str] | None) -> Iterator[None]:
    if path is None:
        yield
        return
    previous = os.getcwd()
    try:
        os.chdir(path)
    except OSError as exc:
        raise VergenError(f"cannot change directory to {os.fspath(path)!r}: {exc}") from exc
    try:
        yield
    finally:
        os.chdir(previous)


@dataclass
class GitConfig:
    """Which git instructions to emit, and how to run describe and rev-parse."""

    git_branch: bool = False
    git_commit_author_email: bool = False
    git_commit_author_name: bool = False
    git_commit_count: bool = False
    git_commit_date: bool = False
    git_commit_message: bool = False
    git_commit_timestamp: bool = False
    git_describe: bool = False
    git_describe_dirty: bool = False
    git_describe_tags: bool = False
    git_describe_match_pattern: str | None = None
    git_sha: bool = False
    git_sha_short: bool = False
    git_cmd: str | None = None

    def enable_all(self) -> GitConfig:
        """Enable every git instruction with plain describe and full SHA."""
        self.git_branch = True
        self.git_commit_author_email = True
        self.git_commit_author_name = True
        self.git_commit_count = True
        self.git_commit_date = True
        self.git_commit_message = True
        self.git_commit_timestamp = True
        self.describe(False, False, None)
        self.sha(False)
        self.git_cmd = None
        return self

    def describe(self, dirty: bool, tags: bool, match_pattern: str | None) -> GitConfig:
        """Enable describe output, optionally with --dirty, --tags and --match."""
        self.git_describe = True
        self.git_describe_dirty = dirty
        self.git_describe_tags = tags
        self.git_describe_match_pattern = match_pattern
        return self

    def sha(self, short: bool) -> GitConfig:
        """Enable the commit SHA, optionally in its short form."""
        self.git_sha = True
        self.git_sha_short = short
        return self

    def any_enabled(self) -> bool:
        """Whether any git instruction is enabled."""
        return any(key for key, _ in self._keys())

    def _keys(self) -> list[tuple[bool, VergenKey]]:
        return [
            (self.git_branch, VergenKey.GIT_BRANCH),
            (self.git_commit_author_email, VergenKey.GIT_COMMIT_AUTHOR_EMAIL),
            (self.git_commit_author_name, VergenKey.GIT_COMMIT_AUTHOR_NAME),
            (self.git_commit_count, VergenKey.GIT_COMMIT_COUNT),
            (self.git_commit_date, VergenKey.GIT_COMMIT_DATE),
            (self.git_commit_message, VergenKey.GIT_COMMIT_MESSAGE),
            (self.git_commit_timestamp, VergenKey.GIT_COMMIT_TIMESTAMP),
            (self.git_describe, VergenKey.GIT_DESCRIBE),
            (self.git_sha, VergenKey.GIT_SHA),
        ]

    def add_default(self, error: Exception, fail_on_error: bool, entries: Entries) -> None:
        """Re-raise the error, or replace earlier warnings and fill every enabled key."""
        if fail_on_error:
            raise error
        entries.warnings.clear()
        entries.rerun_if_changed.clear()
        entries.warnings.append(str(error))
        for enabled, key in self._keys():
            if enabled:
                entries.add_default(key)

    def add_entries(
        self, path: str | os.PathLike[str] | None, idempotent: bool, entries: Entries
    ) -> None:
        """Add the enabled git instructions, run from path when one is given.

        Raises VergenError when git is unusable or a git command fails.
        """
        check_git(self.git_cmd or DEFAULT_GIT_CMD)
        check_inside_git_worktree()
        with _working_directory(path):
            self._add_all(idempotent, entries)

    def _add_all(self, idempotent: bool, entries: Entries) -> None:
        if not idempotent and self.any_enabled():
            add_rerun_if_changed(entries)

        leading = (
            (self.git_branch, VergenKey.GIT_BRANCH, BRANCH_CMD),
            (self.git_commit_author_email, VergenKey.GIT_COMMIT_AUTHOR_EMAIL, COMMIT_AUTHOR_EMAIL),
            (self.git_commit_author_name, VergenKey.GIT_COMMIT_AUTHOR_NAME, COMMIT_AUTHOR_NAME),
            (self.git_commit_count, VergenKey.GIT_COMMIT_COUNT, COMMIT_COUNT),
        )
        for enabled, key, command in leading:
            if enabled:
                self._add_cmd(key, command, entries)

        self.add_timestamp_entries(COMMIT_TIMESTAMP, idempotent, entries)

        if self.git_commit_message:
            self._add_cmd(VergenKey.GIT_COMMIT_MESSAGE, COMMIT_MESSAGE, entries)
        if self.git_describe:
            self._add_cmd(VergenKey.GIT_DESCRIBE, self._describe_command(), entries)
        if self.git_sha:
            self._add_cmd(VergenKey.GIT_SHA, self._sha_command(), entries)

    def _describe_command(self) -> str:
        parts = [DESCRIBE]
        if self.git_describe_dirty:
            parts.append("--dirty")
        if self.git_describe_tags:
            parts.append("--tags")
        if self.git_describe_match_pattern is not None:
            parts.append(f'--match "{self.git_describe_match_pattern}"')
        return " ".join(parts)

    def _sha_command(self) -> str:
        return f"{SHA} --short HEAD" if self.git_sha_short else f"{SHA} HEAD"

    @staticmethod
    def _add_cmd(key: VergenKey, command: str, entries: Entries) -> None:
        override = env_override(key)
        if override is not None:
            entries.add(key, override)
        else:
            add_git_cmd_entry(command, key, entries)

    def add_timestamp_entries(self, command: str, idempotent: bool, entries: Entries) -> None:
        """Add the commit date and timestamp from the output of command.

        SOURCE_DATE_EPOCH, when set, takes precedence over both the commit time
        and the idempotent flag. A failing command yields defaults.
        """
        date_override = env_override(VergenKey.GIT_COMMIT_DATE)
        if date_override is not None:
            entries.add(VergenKey.GIT_COMMIT_DATE, date_override)
        timestamp_override = env_override(VergenKey.GIT_COMMIT_TIMESTAMP)
        if timestamp_override is not None:
            entries.add(VergenKey.GIT_COMMIT_TIMESTAMP, timestamp_override)

        want_date = self.git_commit_date and date_override is None
        want_timestamp = self.git_commit_timestamp and timestamp_override is None

        result = run_command(command)
        if result.returncode != 0:
            if want_date:
                entries.add_default(VergenKey.GIT_COMMIT_DATE)
            if want_timestamp:
                entries.add_default(VergenKey.GIT_COMMIT_TIMESTAMP)
            return

        stdout = result.stdout.decode("utf-8", errors="replace").strip().strip("'")
        epoch = source_date_epoch()
        ts = epoch if epoch is not None else _parse_rfc3339(stdout)

        if idempotent and epoch is None:
            if want_date:
                entries.add_default(VergenKey.GIT_COMMIT_DATE)
            if want_timestamp:
                entries.add_default(VergenKey.GIT_COMMIT_TIMESTAMP)
        else:
            if want_date:
                entries.add(VergenKey.GIT_COMMIT_DATE, format_date(ts))
            if want_timestamp:
                entries.add(VergenKey.GIT_COMMIT_TIMESTAMP, format_timestamp(ts))