"""The VERGEN_SYSINFO_* instructions: facts about the machine doing the build."""

from __future__ import annotations

import platform
from dataclasses import dataclass, field
from pathlib import Path

import psutil

from .core import Entries, VergenKey, env_override

_MEMORY_UNITS = ("B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB")
_CPUINFO = Path("/proc/cpuinfo")


@dataclass(frozen=True)
class SystemSnapshot:
    """System facts gathered once per emission; None marks an unknown value."""

    name: str | None = None
    os_version: str | None = None
    user: str | None = None
    total_memory: int = 0
    cpu_vendor: str | None = None
    cpu_core_count: int | None = None
    cpu_names: tuple[str, ...] = field(default_factory=tuple)
    cpu_brand: str | None = None
    cpu_frequency: int | None = None


def suffix(memory: int) -> str:
    """Render a byte count in the largest binary unit that keeps it at least 1."""
    if memory < 0:
        raise ValueError(f"memory cannot be negative: {memory}")
    count = 0
    while memory >= 1024:
        memory //= 1024
        count += 1
    return f"{memory} {_MEMORY_UNITS[min(count, len(_MEMORY_UNITS) - 1)]}"


def add_sysinfo_entry(
    key: VergenKey, idempotent: bool, value: str | None, entries: Entries
) -> None:
    """Add a value, or the default when idempotent or the value is unknown."""
    if idempotent or value is None:
        entries.add_default(key)
    else:
        entries.add(key, value)


def _cpuinfo_field(name: str) -> str | None:
    try:
        text = _CPUINFO.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip() == name:
            return value.strip()
    return None


def _os_release() -> dict[str, str]:
    try:
        return platform.freedesktop_os_release()
    except OSError:
        return {}


def _os_name() -> str | None:
    release = _os_release()
    if "NAME" in release:
        return release["NAME"]
    system = platform.system()
    if system == "Darwin":
        return "Darwin"
    return system or None


def _os_version() -> str | None:
    system = platform.system()
    release = _os_release()
    if system == "Linux" and release:
        parts = ["Linux", release.get("VERSION_ID", ""), release.get("NAME", "")]
        return " ".join(part for part in parts if part)
    if system == "Darwin":
        version = platform.mac_ver()[0]
        return f"MacOS {version}" if version else "MacOS"
    if system == "Windows":
        return f"Windows {platform.release()} {platform.version()}".strip()
    if system:
        return f"{system} {platform.release()}".strip()
    return None


def _current_user() -> str | None:
    try:
        return psutil.Process().username()
    except (psutil.Error, OSError, KeyError):
        return None


def _cpu_frequency() -> int | None:
    try:
        freq = psutil.cpu_freq()
    except (OSError, NotImplementedError, RuntimeError):
        return None
    if freq is None:
        return None
    return int(freq.current)


def _cpu_brand() -> str | None:
    brand = _cpuinfo_field("model name")
    if brand:
        return brand
    return platform.processor() or None


def gather_system() -> SystemSnapshot:
    """Collect the current machine's facts."""
    logical = psutil.cpu_count(logical=True) or 0
    return SystemSnapshot(
        name=_os_name(),
        os_version=_os_version(),
        user=_current_user(),
        total_memory=psutil.virtual_memory().total,
        cpu_vendor=_cpuinfo_field("vendor_id"),
        cpu_core_count=psutil.cpu_count(logical=False),
        cpu_names=tuple(f"cpu{number}" for number in range(logical)),
        cpu_brand=_cpu_brand(),
        cpu_frequency=_cpu_frequency(),
    )


def _text(value: object | None) -> str | None:
    return None if value is None else str(value)


@dataclass
class SysinfoConfig:
    """Which system instructions to emit."""

    name: bool = False
    os_version: bool = False
    user: bool = False
    memory: bool = False
    cpu_vendor: bool = False
    cpu_core_count: bool = False
    cpu_name: bool = False
    cpu_brand: bool = False
    cpu_frequency: bool = False

    def enable_all(self) -> SysinfoConfig:
        """Enable every system instruction."""
        self.name = True
        self.os_version = True
        self.user = True
        self.memory = True
        self.cpu_vendor = True
        self.cpu_core_count = True
        self.cpu_name = True
        self.cpu_brand = True
        self.cpu_frequency = True
        return self

    def add_entries(
        self, idempotent: bool, entries: Entries, system: SystemSnapshot | None = None
    ) -> None:
        """Add the enabled system instructions, gathering facts if none are given."""
        if system is None:
            system = gather_system()
        planned = (
            (self.name, VergenKey.SYSINFO_NAME, system.name),
            (self.os_version, VergenKey.SYSINFO_OS_VERSION, system.os_version),
            (self.user, VergenKey.SYSINFO_USER, system.user),
            (self.memory, VergenKey.SYSINFO_MEMORY, suffix(system.total_memory)),
            (self.cpu_vendor, VergenKey.SYSINFO_CPU_VENDOR, system.cpu_vendor),
            (
                self.cpu_core_count,
                VergenKey.SYSINFO_CPU_CORE_COUNT,
                _text(system.cpu_core_count),
            ),
            (self.cpu_name, VergenKey.SYSINFO_CPU_NAME, ",".join(system.cpu_names)),
            (self.cpu_brand, VergenKey.SYSINFO_CPU_BRAND, system.cpu_brand),
            (
                self.cpu_frequency,
                VergenKey.SYSINFO_CPU_FREQUENCY,
                _text(system.cpu_frequency),
            ),
        )
        for enabled, key, value in planned:
            if not enabled:
                continue
            override = env_override(key)
            if override is not None:
                entries.add(key, override)
            else:
                add_sysinfo_entry(key, idempotent, value, entries)