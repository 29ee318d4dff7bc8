"""Collect build, cargo, compiler, git and system details and emit them as build-script instructions."""

__version__ = "0.1.0"

__all__ = ["build", "cargo", "core", "emitter", "git", "rustc", "shell", "sysinfo"]