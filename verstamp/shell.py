"""Running git through the system shell and turning its output into entries."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

from .core import Entries, VergenError, VergenKey

DEFAULT_REF_COMMAND = "git symbolic-ref HEAD"


def _shell_argv(command: str) -> list[str]:
    if os.name == "nt":
        return ["cmd", "/c", command]
    shell = os.environ.get("SHELL") or "sh"
    return [shell, "-c", command]


def run_command(command: str) -> subprocess.CompletedProcess[bytes]:
    """Run a command line through the shell, capturing stdout and stderr.

    Raises VergenError when the shell itself cannot be started.
    """
    argv = _shell_argv(command)
    try:
        return subprocess.run(argv, capture_output=True, check=False)
    except OSError as exc:
        raise VergenError(f"could not start {argv[0]!r}: {exc}") from exc


def _clean_stdout(output: bytes) -> str:
    return output.decode("utf-8", errors="replace").strip().strip("'")


def git_command_exists(command: str) -> bool:
    """Whether the given git probe command runs successfully."""
    try:
        return run_command(command).returncode == 0
    except VergenError:
        return False


def inside_git_worktree() -> bool:
    """Whether the current directory lies inside a git work tree."""
    try:
        result = run_command("git rev-parse --is-inside-work-tree")
    except VergenError:
        return False
    stdout = result.stdout.decode("utf-8", errors="replace")
    return result.returncode == 0 and stdout.strip() == "true"


def check_git(command: str) -> None:
    """Raise VergenError unless the git probe command succeeds."""
    if not git_command_exists(command):
        raise VergenError("no suitable 'git' command found!")


def check_inside_git_worktree() -> None:
    """Raise VergenError unless the current directory is in a git work tree."""
    if not inside_git_worktree():
        raise VergenError("not within a suitable 'git' worktree!")


def add_git_cmd_entry(command: str, key: VergenKey, entries: Entries) -> None:
    """Run a command and record its trimmed output under the key.

    Raises VergenError, carrying the command's stderr, when it fails.
    """
    result = run_command(command)
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace")
        raise VergenError(f"Failed to run '{command}'!  {stderr}")
    entries.add(key, _clean_stdout(result.stdout))


def add_rerun_if_changed(entries: Entries, ref_command: str = DEFAULT_REF_COMMAND) -> None:
    """Record the git HEAD file and the current ref file, where they exist."""
    git_dir = run_command("git rev-parse --git-dir")
    if git_dir.returncode != 0:
        return
    git_path = Path(git_dir.stdout.decode("utf-8", errors="replace").strip())

    head_path = git_path / "HEAD"
    if head_path.exists():
        entries.rerun_if_changed.append(str(head_path))

    ref = run_command(ref_command)
    if ref.returncode == 0:
        ref_name = ref.stdout.decode("utf-8", errors="replace").strip()
        ref_path = git_path / ref_name
        if ref_path.exists():
            entries.rerun_if_changed.append(str(ref_path))