# verstamp

`verstamp` collects facts about the build that is running: the build
date, the cargo profile, the compiler version, the state of the git
checkout and details about the machine. It writes them out as cargo
build-script instructions of the form

```text
cargo:rustc-env=VERGEN_BUILD_DATE=2022-12-23
```

so that they can be read back at compile time.

## Usage

Everything is driven through `EmitBuilder` from `verstamp.emitter`.
Pick the groups of values you want, then emit them:

```python
from verstamp.emitter import EmitBuilder

EmitBuilder().all_build().all_git().emit()
```

The groups are:

| Method          | Variables |
| --------------- | --------- |
| `all_build()`   | `VERGEN_BUILD_DATE`, `VERGEN_BUILD_TIMESTAMP` |
| `all_cargo()`   | `VERGEN_CARGO_DEBUG`, `VERGEN_CARGO_FEATURES`, `VERGEN_CARGO_OPT_LEVEL`, `VERGEN_CARGO_TARGET_TRIPLE` |
| `all_rustc()`   | `VERGEN_RUSTC_CHANNEL`, `VERGEN_RUSTC_COMMIT_DATE`, `VERGEN_RUSTC_COMMIT_HASH`, `VERGEN_RUSTC_HOST_TRIPLE`, `VERGEN_RUSTC_LLVM_VERSION`, `VERGEN_RUSTC_SEMVER` |
| `all_git()`     | `VERGEN_GIT_BRANCH`, `VERGEN_GIT_COMMIT_AUTHOR_EMAIL`, `VERGEN_GIT_COMMIT_AUTHOR_NAME`, `VERGEN_GIT_COMMIT_COUNT`, `VERGEN_GIT_COMMIT_DATE`, `VERGEN_GIT_COMMIT_MESSAGE`, `VERGEN_GIT_COMMIT_TIMESTAMP`, `VERGEN_GIT_DESCRIBE`, `VERGEN_GIT_SHA` |
| `all_sysinfo()` | `VERGEN_SYSINFO_NAME`, `VERGEN_SYSINFO_OS_VERSION`, `VERGEN_SYSINFO_USER`, `VERGEN_SYSINFO_TOTAL_MEMORY`, `VERGEN_SYSINFO_CPU_VENDOR`, `VERGEN_SYSINFO_CPU_CORE_COUNT`, `VERGEN_SYSINFO_CPU_NAME`, `VERGEN_SYSINFO_CPU_BRAND`, `VERGEN_SYSINFO_CPU_FREQUENCY` |

To pick single values, set the flags on the builder's configuration
objects (`build_config`, `cargo_config`, `git_config`, `rustc_config`,
`sysinfo_config`). Two of them take options:

```python
from verstamp.emitter import EmitBuilder

builder = EmitBuilder()
builder.build_config.build_timestamp = True
builder.git_config.describe(True, True, "v*")  # --dirty --tags --match "v*"
builder.git_config.sha(True)                   # git rev-parse --short HEAD
builder.emit()
```

`emit()` writes to standard output. To capture the instructions
instead, pass any text stream to `emit_to()`:

```python
import io
from verstamp.emitter import EmitBuilder

buffer = io.StringIO()
EmitBuilder().all_build().emit_to(buffer)
print(buffer.getvalue())
```

The output holds one `cargo:rustc-env=` line per variable, then a
`cargo:warning=` line per warning, `cargo:rerun-if-changed=` lines for
the git `HEAD` and current ref files, and finally:

```text
cargo:rerun-if-changed=build.rs
cargo:rerun-if-env-changed=VERGEN_IDEMPOTENT
cargo:rerun-if-env-changed=SOURCE_DATE_EPOCH
```

Both `emit()` and `emit_to()` return the collected `verstamp.core.Entries`.
`collect(path)` gathers them without writing anything; `path` names the
directory whose git checkout is inspected, or `None` for the current one.

## Where values come from

- Build values use the current UTC time.
- Cargo values are read from `DEBUG`, `OPT_LEVEL`, `TARGET` and the
  `CARGO_FEATURE_*` variables that cargo sets for build scripts.
- Compiler values come from running `$RUSTC -vV` (or `rustc -vV`). Set
  `rustc_version_text` on the builder to parse a given text instead;
  `verstamp.rustc.parse_version_meta()` does the parsing.
- Git values come from running `git` through `$SHELL -c` (`sh` if unset,
  `cmd /c` on Windows).
- System values come from `psutil`, `platform` and `/proc/cpuinfo`.
  Set `system` on the builder to a `verstamp.sysinfo.SystemSnapshot` to
  use fixed facts.

## Overriding values

Any variable that is already set in the environment is passed through
unchanged instead of being computed:

```python
import os
from verstamp.emitter import EmitBuilder

os.environ["VERGEN_BUILD_DATE"] = "this is the date I want output"
EmitBuilder().all_build().emit()
```

## Reproducible output

If `SOURCE_DATE_EPOCH` is set, the build and git dates and timestamps
are derived from it, so repeated builds give identical output:

```text
cargo:rustc-env=VERGEN_BUILD_DATE=2022-12-23
cargo:rustc-env=VERGEN_BUILD_TIMESTAMP=2022-12-23T15:29:20.000000000Z
```

for `SOURCE_DATE_EPOCH=1671809360`.

Calling `idempotent()`, or setting `VERGEN_IDEMPOTENT` in the
environment, replaces values that change from build to build (build and
git dates and timestamps, and all system values) with the placeholder
`VERGEN_IDEMPOTENT_OUTPUT` and adds a warning for each.
`SOURCE_DATE_EPOCH` takes precedence over the idempotent flag for dates
and timestamps. Cargo and compiler values are left as they are.

## Errors and warnings

When a value cannot be determined (git is missing, the directory is
not a git worktree, a git command fails, the compiler version cannot be
parsed, a cargo variable is absent, `SOURCE_DATE_EPOCH` is not an
integer) the variables of that group fall back to
`VERGEN_IDEMPOTENT_OUTPUT` with a warning each. For git, the reason is
added as a warning too. Call `fail_on_error()` to raise
`verstamp.core.VergenError` instead. `quiet()` leaves the warning lines
out of the output.

## What it does not do

There is no command-line program: the package is used from Python code
that produces build-script output. Git details are only obtained by
running the `git` executable; there is no built-in reading of
repositories.