import pytest

from verstamp.core import Entries, VergenError, VergenKey
from verstamp.rustc import Channel, RustcConfig, parse_version_meta, version_meta

NO_LLVM = """rustc 1.68.0-nightly (270c94e48 2022-12-28)
binary: rustc
commit-hash: 270c94e484e19764a2832ef918c95224eb3f17c7
commit-date: 2022-12-28
host: x86_64-unknown-linux-gnu
release: 1.68.0-nightly
"""

DEV_BUILD = """rustc 1.68.0-nightly (270c94e48 2022-12-28)
binary: rustc
commit-hash: 270c94e484e19764a2832ef918c95224eb3f17c7
commit-date: 2022-12-28
host: x86_64-unknown-linux-gnu
release: 1.68.0-dev
LLVM version: 15.0.6
"""

UNKNOWN_BITS = """rustc 1.68.0-nightly (270c94e48 2022-12-28)
binary: rustc
commit-hash: unknown
commit-date: unknown
host: x86_64-unknown-linux-gnu
release: 1.68.0-dev
LLVM version: 15.0.6
"""

STABLE = """rustc 1.68.0 (2c8cc3432 2023-03-06)
binary: rustc
commit-hash: 2c8cc343237b8f7d5a3c3703e3a87f2eb2c54a74
commit-date: 2023-03-06
host: aarch64-apple-darwin
release: 1.68.0
LLVM version: 15.0.6
"""

RUSTC_KEYS = [
    "VERGEN_RUSTC_CHANNEL",
    "VERGEN_RUSTC_COMMIT_DATE",
    "VERGEN_RUSTC_COMMIT_HASH",
    "VERGEN_RUSTC_HOST_TRIPLE",
    "VERGEN_RUSTC_LLVM_VERSION",
    "VERGEN_RUSTC_SEMVER",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in RUSTC_KEYS:
        monkeypatch.delenv(name, raising=False)


def collect(text):
    entries = Entries()
    RustcConfig().enable_all().add_entries(entries, text)
    return entries


def test_no_llvm_in_rustc():
    entries = collect(NO_LLVM)
    assert len(entries) == 6
    assert entries.count_idempotent() == 1
    assert len(entries.warnings) == 1
    assert entries.values[VergenKey.RUSTC_CHANNEL] == "nightly"


def test_rustc_dev_build():
    entries = collect(DEV_BUILD)
    assert len(entries) == 6
    assert entries.count_idempotent() == 0
    assert entries.warnings == []
    assert entries.values[VergenKey.RUSTC_CHANNEL] == "dev"
    assert entries.values[VergenKey.RUSTC_LLVM_VERSION] == "15.0"
    assert entries.values[VergenKey.RUSTC_SEMVER] == "1.68.0-dev"
    assert entries.values[VergenKey.RUSTC_HOST_TRIPLE] == "x86_64-unknown-linux-gnu"
    assert entries.values[VergenKey.RUSTC_COMMIT_DATE] == "2022-12-28"


def test_rustc_unknown_bits():
    entries = collect(UNKNOWN_BITS)
    assert len(entries) == 6
    assert entries.count_idempotent() == 2
    assert len(entries.warnings) == 2


def test_rustc_fails_on_bad_input():
    config = RustcConfig().enable_all()
    entries = Entries()
    with pytest.raises(VergenError):
        config.add_entries(entries, "a_bad_rustcvv_string")
    with pytest.raises(VergenError):
        try:
            config.add_entries(entries, "a_bad_rustcvv_string")
        except VergenError as exc:
            config.add_default(exc, True, entries)


def test_rustc_defaults_on_bad_input():
    config = RustcConfig().enable_all()
    entries = Entries()
    try:
        config.add_entries(entries, "a_bad_rustcvv_string")
    except VergenError as exc:
        config.add_default(exc, False, entries)
    assert len(entries) == 6
    assert entries.count_idempotent() == 6
    assert len(entries.warnings) == 6


@pytest.mark.parametrize("name", RUSTC_KEYS)
def test_override_works(monkeypatch, name):
    monkeypatch.setenv(name, "this is a bad date")
    entries = collect(DEV_BUILD)
    assert entries.values[VergenKey(name)] == "this is a bad date"


def test_only_enabled_keys_are_added():
    entries = Entries()
    RustcConfig(rustc_channel=True, rustc_semver=True).add_entries(entries, STABLE)
    assert dict(entries.values) == {
        VergenKey.RUSTC_CHANNEL: "stable",
        VergenKey.RUSTC_SEMVER: "1.68.0",
    }


def test_parse_stable():
    meta = parse_version_meta(STABLE)
    assert meta.channel is Channel.STABLE
    assert meta.host == "aarch64-apple-darwin"
    assert meta.short_version_string == "rustc 1.68.0 (2c8cc3432 2023-03-06)"
    assert meta.commit_hash == "2c8cc343237b8f7d5a3c3703e3a87f2eb2c54a74"
    assert meta.build_date is None


def test_parse_beta_channel():
    meta = parse_version_meta(STABLE.replace("release: 1.68.0", "release: 1.68.0-beta.2"))
    assert meta.channel is Channel.BETA
    assert meta.semver == "1.68.0-beta.2"


def test_parse_unknown_values():
    meta = parse_version_meta(UNKNOWN_BITS)
    assert meta.commit_hash is None
    assert meta.commit_date is None


def test_unknown_prerelease_tag_fails():
    with pytest.raises(VergenError):
        parse_version_meta(STABLE.replace("release: 1.68.0", "release: 1.68.0-alpha"))


def test_invalid_release_fails():
    with pytest.raises(VergenError):
        parse_version_meta(STABLE.replace("release: 1.68.0", "release: 1.68"))


def test_missing_commit_hash_fails():
    text = "\n".join(line for line in STABLE.splitlines() if not line.startswith("commit-hash"))
    with pytest.raises(VergenError):
        parse_version_meta(text)


@pytest.mark.parametrize(
    ("llvm", "expected"),
    [("15.0.6", "15.0"), ("11.1", "11.1"), ("12", "12.0")],
)
def test_llvm_version_formatting(llvm, expected):
    meta = parse_version_meta(STABLE.replace("15.0.6", llvm))
    assert meta.llvm_version == expected


@pytest.mark.parametrize("llvm", ["3", "15.01", "1.2.3.4", "x.y"])
def test_bad_llvm_version_fails(llvm):
    with pytest.raises(VergenError):
        parse_version_meta(STABLE.replace("15.0.6", llvm))


def test_version_meta_missing_compiler(monkeypatch, tmp_path):
    monkeypatch.setenv("RUSTC", str(tmp_path / "no_such_compiler"))
    with pytest.raises(VergenError):
        version_meta()


def test_add_entries_without_text_uses_compiler(monkeypatch, tmp_path):
    monkeypatch.setenv("RUSTC", str(tmp_path / "no_such_compiler"))
    with pytest.raises(VergenError):
        RustcConfig().enable_all().add_entries(Entries())