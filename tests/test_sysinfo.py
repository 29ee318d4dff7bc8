import pytest

from verstamp.core import IDEMPOTENT_OUTPUT, Entries, VergenKey
from verstamp.sysinfo import (
    SysinfoConfig,
    SystemSnapshot,
    add_sysinfo_entry,
    gather_system,
    suffix,
)

SYSINFO_COUNT = 9
SYSINFO_KEYS = [
    VergenKey.SYSINFO_NAME,
    VergenKey.SYSINFO_OS_VERSION,
    VergenKey.SYSINFO_USER,
    VergenKey.SYSINFO_MEMORY,
    VergenKey.SYSINFO_CPU_VENDOR,
    VergenKey.SYSINFO_CPU_CORE_COUNT,
    VergenKey.SYSINFO_CPU_NAME,
    VergenKey.SYSINFO_CPU_BRAND,
    VergenKey.SYSINFO_CPU_FREQUENCY,
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in SYSINFO_KEYS:
        monkeypatch.delenv(key.value, raising=False)


@pytest.fixture
def snapshot():
    return SystemSnapshot(
        name="Example Linux",
        os_version="Linux 1.0 Example Linux",
        user="builder",
        total_memory=34_359_738_368,
        cpu_vendor="AuthenticAMD",
        cpu_core_count=8,
        cpu_names=("cpu0", "cpu1"),
        cpu_brand="Example CPU",
        cpu_frequency=3792,
    )


def test_sysinfo_all_idempotent(snapshot):
    entries = Entries()
    SysinfoConfig().enable_all().add_entries(True, entries, snapshot)
    assert len(entries) == SYSINFO_COUNT
    assert entries.count_idempotent() == SYSINFO_COUNT
    assert len(entries.warnings) == SYSINFO_COUNT


def test_sysinfo_all(snapshot):
    entries = Entries()
    SysinfoConfig().enable_all().add_entries(False, entries, snapshot)
    assert len(entries) == SYSINFO_COUNT
    assert entries.count_idempotent() == 0
    assert entries.warnings == []


def test_sysinfo_values(snapshot):
    entries = Entries()
    SysinfoConfig().enable_all().add_entries(False, entries, snapshot)
    assert entries.values[VergenKey.SYSINFO_NAME] == "Example Linux"
    assert entries.values[VergenKey.SYSINFO_MEMORY] == "32 GiB"
    assert entries.values[VergenKey.SYSINFO_CPU_CORE_COUNT] == "8"
    assert entries.values[VergenKey.SYSINFO_CPU_NAME] == "cpu0,cpu1"
    assert entries.values[VergenKey.SYSINFO_CPU_FREQUENCY] == "3792"
    assert [key for key, _ in entries] == SYSINFO_KEYS


def test_adding_none_defaults():
    entries = Entries()
    add_sysinfo_entry(VergenKey.SYSINFO_CPU_BRAND, False, None, entries)
    assert entries.values == {VergenKey.SYSINFO_CPU_BRAND: IDEMPOTENT_OUTPUT}
    assert entries.warnings == ["VERGEN_SYSINFO_CPU_BRAND set to default"]


def test_adding_value_when_idempotent_defaults():
    entries = Entries()
    add_sysinfo_entry(VergenKey.SYSINFO_CPU_BRAND, True, "Example CPU", entries)
    assert entries.count_idempotent() == 1


@pytest.mark.parametrize(
    "memory, expected",
    [
        (1023, "1023 B"),
        (1024, "1 KiB"),
        (1_048_575, "1023 KiB"),
        (1_048_576, "1 MiB"),
        (1_073_741_823, "1023 MiB"),
        (1_073_741_824, "1 GiB"),
        (1_099_511_627_775, "1023 GiB"),
        (1_099_511_627_776, "1 TiB"),
        (1_125_899_906_842_623, "1023 TiB"),
        (1_125_899_906_842_624, "1 PiB"),
        ((1_125_899_906_842_624 * 1024) - 1, "1023 PiB"),
        (1_125_899_906_842_624 * 1024, "1 EiB"),
        (2**64 - 1, "15 EiB"),
    ],
)
def test_suffix_works(memory, expected):
    assert suffix(memory) == expected


def test_suffix_rejects_negative():
    with pytest.raises(ValueError):
        suffix(-1)


def test_pid_lookup_fails(snapshot):
    no_user = SystemSnapshot(
        name=snapshot.name,
        os_version=snapshot.os_version,
        user=None,
        total_memory=snapshot.total_memory,
        cpu_vendor=snapshot.cpu_vendor,
        cpu_core_count=snapshot.cpu_core_count,
        cpu_names=snapshot.cpu_names,
        cpu_brand=snapshot.cpu_brand,
        cpu_frequency=snapshot.cpu_frequency,
    )
    entries = Entries()
    SysinfoConfig().enable_all().add_entries(False, entries, no_user)
    assert len(entries) == SYSINFO_COUNT
    assert entries.count_idempotent() == 1
    assert entries.warnings == ["VERGEN_SYSINFO_USER set to default"]


@pytest.mark.parametrize("key", SYSINFO_KEYS)
def test_override_works(monkeypatch, snapshot, key):
    monkeypatch.setenv(key.value, "this is a bad date")
    entries = Entries()
    SysinfoConfig().enable_all().add_entries(False, entries, snapshot)
    assert entries.values[key] == "this is a bad date"


def test_override_beats_idempotent(monkeypatch, snapshot):
    monkeypatch.setenv("VERGEN_SYSINFO_NAME", "custom name")
    entries = Entries()
    SysinfoConfig().enable_all().add_entries(True, entries, snapshot)
    assert entries.values[VergenKey.SYSINFO_NAME] == "custom name"
    assert entries.count_idempotent() == SYSINFO_COUNT - 1


def test_only_selected_keys(snapshot):
    config = SysinfoConfig(os_version=True, cpu_core_count=True)
    entries = Entries()
    config.add_entries(False, entries, snapshot)
    assert set(entries.values) == {
        VergenKey.SYSINFO_OS_VERSION,
        VergenKey.SYSINFO_CPU_CORE_COUNT,
    }


def test_enable_all_sets_every_flag():
    config = SysinfoConfig().enable_all()
    assert config == SysinfoConfig(
        name=True,
        os_version=True,
        user=True,
        memory=True,
        cpu_vendor=True,
        cpu_core_count=True,
        cpu_name=True,
        cpu_brand=True,
        cpu_frequency=True,
    )


def test_gather_system_reports_memory_and_cpus():
    system = gather_system()
    assert system.total_memory > 0
    assert len(system.cpu_names) >= 1
    assert system.cpu_names[0] == "cpu0"


def test_add_entries_gathers_when_no_snapshot():
    entries = Entries()
    SysinfoConfig().enable_all().add_entries(False, entries)
    assert len(entries) == SYSINFO_COUNT
    assert entries.values[VergenKey.SYSINFO_MEMORY] != IDEMPOTENT_OUTPUT
    assert entries.values[VergenKey.SYSINFO_MEMORY].split(" ")[1] in {
        "B",
        "KiB",
        "MiB",
        "GiB",
        "TiB",
        "PiB",
        "EiB",
    }