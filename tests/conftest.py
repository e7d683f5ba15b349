"""Shared pytest fixtures for mozcpp tests."""

from __future__ import annotations

import json
import stat
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from mozcpp.context import AppContext
from mozcpp.core.config import Settings
from mozcpp.paths import FilePath
from mozcpp.testing import FakeHost, FakeProcessRunner

# What clang prints on stderr for ``-Wp,-v -E -dD``.
PROBE_INCLUDES = (
    "clang -cc1 version 17.0.6 based upon LLVM 17.0.6 default target x86_64-pc-linux-gnu\n"
    '#include "..." search starts here:\n'
    " /opt/quoted\n"
    "#include <...> search starts here:\n"
    " /usr/lib/clang/17/include\n"
    " /usr/include\n"
    " /System/Library/Frameworks (framework directory)\n"
    "End of search list.\n"
)
# What clang prints on stdout for the same invocation.
PROBE_DEFINES = "#define BAR 1\n#define __clang__ 1\n#define __STDC__ 1\n"


def is_cpp_probe(args: list[str]) -> bool:
    return "-dD" in args and "-xc++" in args


def is_c_probe(args: list[str]) -> bool:
    return "-dD" in args and "-xc" in args


@dataclass
class FakeTree:
    """A source tree and object directory on disk with a scripted runner."""

    root: Path
    srcdir: Path
    objdir: Path
    runner: FakeProcessRunner
    autoconf: dict[str, str] = field(default_factory=dict)

    @property
    def src(self) -> FilePath:
        return FilePath(self.srcdir)

    @property
    def obj(self) -> FilePath:
        return FilePath(self.objdir)

    def environment_json(self, **overrides) -> str:
        data = {
            "topobjdir": str(self.objdir),
            "topsrcdir": str(self.srcdir),
            "mozconfig": {"path": None, "configure_args": [], "make_extra": None},
        }
        data.update(overrides)
        return json.dumps(data)

    def write_autoconf(self, **variables: str) -> None:
        self.autoconf.update(variables)
        path = self.objdir / "config" / "autoconf.mk"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("".join(f"{k} = {v}\n" for k, v in self.autoconf.items()))

    def write_backend(self, directory: str, **variables: str) -> Path:
        target = self.objdir / directory if directory else self.objdir
        target.mkdir(parents=True, exist_ok=True)
        path = target / "backend.mk"
        path.write_text("".join(f"{k} = {v}\n" for k, v in variables.items()))
        return path

    def write_source(self, relpath: str, text: str = "") -> FilePath:
        path = self.srcdir / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return FilePath(path)


@pytest.fixture
def fake_tree(tmp_path: Path) -> FakeTree:
    srcdir = tmp_path / "src"
    objdir = tmp_path / "obj"
    srcdir.mkdir()
    objdir.mkdir()
    (srcdir / "mach").write_text("#!/bin/sh\n")

    runner = FakeProcessRunner()
    tree = FakeTree(root=tmp_path, srcdir=srcdir, objdir=objdir, runner=runner)
    tree.write_autoconf(_CC="/usr/bin/clang", _CXX="/usr/bin/clang++", CC_TYPE="clang")
    runner.add("environment", stdout=tree.environment_json())
    runner.add(is_c_probe, stdout=PROBE_DEFINES, stderr=PROBE_INCLUDES)
    runner.add(is_cpp_probe, stdout=PROBE_DEFINES + "#define __cplusplus 201402L\n", stderr=PROBE_INCLUDES)
    return tree


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def context(fake_tree: FakeTree, host: FakeHost) -> AppContext:
    return AppContext(Settings(), fake_tree.runner, host)


def write_script(path: Path, body: str) -> Path:
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path


@dataclass
class StubTree:
    """A tree whose mach and compiler are real executable shell scripts."""

    srcdir: Path
    objdir: Path
    compiler: Path


@pytest.fixture
def stub_tree(tmp_path: Path) -> StubTree:
    """``mach`` reports /src -> /obj style dirs; the compiler emits a fixed probe dump."""
    srcdir = tmp_path / "src"
    objdir = tmp_path / "obj"
    bindir = tmp_path / "bin"
    for d in (srcdir, objdir / "config", bindir):
        d.mkdir(parents=True)

    environment = json.dumps({"topobjdir": str(objdir), "topsrcdir": str(srcdir)})
    write_script(
        srcdir / "mach",
        f"""if [ "$1" = "environment" ]; then
  cat <<'EOF'
{environment}
EOF
  exit 0
fi
echo "unknown command $1" >&2
exit 2
""",
    )

    compiler = write_script(
        bindir / "fakecc",
        """for arg in "$@"; do
  if [ "$arg" = "-dD" ]; then
    echo '#include <...> search starts here:' >&2
    echo ' /usr/include' >&2
    echo 'End of search list.' >&2
    echo '#define BAR 1'
    exit 0
  fi
  if [ "$arg" = "-fsyntax-only" ]; then
    for a in "$@"; do
      case "$a" in
        *broken*) echo "$a:1:1: error: expected ';'" >&2; exit 1 ;;
      esac
    done
    exit 0
  fi
done
exit 3
""",
    )

    (objdir / "config" / "autoconf.mk").write_text(
        f"_CC = {compiler}\n_CXX = {compiler}\nCC_TYPE = clang\n"
    )
    return StubTree(srcdir=srcdir, objdir=objdir, compiler=compiler)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("MOZILLABUILD", "MOZCPP_LOG_LEVEL", "MOZCPP_LOG_FORMAT"):
        monkeypatch.delenv(key, raising=False)
