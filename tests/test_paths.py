"""Tests for FilePath and command argument helpers."""

from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest

from mozcpp.paths import (
    FilePath,
    FilePathSet,
    render_arg,
    render_args,
    unixy_to_windows,
    windows_to_unixy,
)

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX path semantics")


class TestUnixyConversion:
    def test_unixy_to_windows_drive(self):
        assert unixy_to_windows("/c/mozilla-build/msys") == "C:\\mozilla-build\\msys"

    def test_unixy_to_windows_bare_drive(self):
        assert unixy_to_windows("/d") == "D:\\"

    def test_unixy_to_windows_without_drive(self):
        assert unixy_to_windows("/usr/include") == "\\usr\\include"

    def test_windows_to_unixy_drive(self):
        assert windows_to_unixy("C:\\mozilla-build\\msys") == "/c/mozilla-build/msys"

    def test_windows_to_unixy_forward_slashes(self):
        assert windows_to_unixy("D:/src/gecko") == "/d/src/gecko"

    def test_multi_letter_first_component_is_not_a_drive(self):
        assert unixy_to_windows("/usr") == "\\usr"


@posix_only
class TestFilePath:
    def test_rejects_relative(self):
        with pytest.raises(ValueError):
            FilePath("relative/path")

    def test_normalizes(self):
        assert FilePath("/src/./dom/../widget/").to_path() == "/src/widget"

    def test_join_and_parent(self):
        p = FilePath("/src").join("dom", "base", "Element.cpp")
        assert p.to_path() == "/src/dom/base/Element.cpp"
        assert p.parent() == FilePath("/src/dom/base")
        assert p.name == "Element.cpp"
        assert p.extname() == ".cpp"

    def test_with_suffix(self):
        assert FilePath("/src/a.h").with_suffix(".c") == FilePath("/src/a.c")
        assert FilePath("/src/a.h").with_suffix("cpp") == FilePath("/src/a.cpp")

    def test_is_under(self):
        assert FilePath("/src/dom/a.c").is_under(FilePath("/src"))
        assert FilePath("/src").is_under(FilePath("/src"))
        assert not FilePath("/srcdir/a.c").is_under(FilePath("/src"))

    def test_rebase(self):
        p = FilePath("/src/dom/base/a.c")
        rebased = p.rebase(FilePath("/src"), FilePath("/obj"))
        assert rebased == FilePath("/obj/dom/base/a.c")

    def test_rebase_round_trip(self):
        src, obj = FilePath("/src"), FilePath("/obj/x86_64")
        for raw in ("/src", "/src/a.c", "/src/dom/media/webrtc/b.cpp"):
            p = FilePath(raw)
            assert p.rebase(src, obj).rebase(obj, src) == p

    def test_rebase_outside_raises(self):
        with pytest.raises(ValueError):
            FilePath("/elsewhere/a.c").rebase(FilePath("/src"), FilePath("/obj"))

    def test_from_unixy_on_posix_is_identity(self):
        assert FilePath.from_unixy("/usr/include").to_path() == "/usr/include"
        assert FilePath("/usr/include").to_unixy() == "/usr/include"

    def test_uri_round_trip(self):
        p = FilePath("/src/dom/a file.c")
        uri = p.to_uri()
        assert uri.startswith("file://")
        assert "%20" in uri
        assert FilePath.from_uri(uri) == p

    def test_from_uri_accepts_plain_path(self):
        assert FilePath.from_uri("/src/a.c") == FilePath("/src/a.c")

    def test_from_uri_rejects_other_schemes(self):
        with pytest.raises(ValueError):
            FilePath.from_uri("https://example.com/a.c")

    def test_equality_and_hash(self):
        assert FilePath("/src/a.c") == FilePath("/src//a.c")
        assert len({FilePath("/src/a.c"), FilePath("/src/./a.c")}) == 1
        assert FilePath("/src/a.c") != "/src/a.c"

    def test_ordering(self):
        assert sorted([FilePath("/b"), FilePath("/a")]) == [FilePath("/a"), FilePath("/b")]

    def test_fspath(self, tmp_path: Path):
        p = FilePath(tmp_path)
        assert os.fspath(p) == str(tmp_path)
        assert Path(p) == tmp_path


@posix_only
class TestFilePathAsync:
    @pytest.mark.asyncio
    async def test_is_file_and_is_dir(self, tmp_path: Path):
        (tmp_path / "a.c").write_text("")
        assert await FilePath(tmp_path / "a.c").is_file()
        assert not await FilePath(tmp_path / "a.c").is_dir()
        assert await FilePath(tmp_path).is_dir()
        assert not await FilePath(tmp_path / "missing").is_file()

    @pytest.mark.asyncio
    async def test_stat_missing_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            await FilePath(tmp_path / "missing").stat()


@posix_only
class TestFilePathSet:
    def test_dedup_keeps_first_position(self):
        s = FilePathSet([FilePath("/b"), FilePath("/a")])
        s.add(FilePath("/b"))
        s.update([FilePath("/c"), FilePath("/a")])
        assert s.to_strings() == ["/b", "/a", "/c"]
        assert len(s) == 3
        assert FilePath("/c") in s


@posix_only
class TestRenderArgs:
    def test_render_mixed(self):
        args = ["-I", FilePath("/usr/include"), "-DFOO"]
        assert render_args(args) == ["-I", "/usr/include", "-DFOO"]

    def test_render_with_converter(self):
        assert render_arg(FilePath("/src"), lambda p: "X" + p.to_path()) == "X/src"
        assert render_arg("plain", lambda p: "X") == "plain"
