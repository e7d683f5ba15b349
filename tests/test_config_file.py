"""Tests for the generated make fragment parser."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from mozcpp.build.config_file import ConfigFileCache, parse_config, parse_config_text
from mozcpp.paths import FilePath


class TestParseConfigText:
    def test_assignments(self):
        config = parse_config_text("_CC = /usr/bin/clang\nCC_TYPE=clang\n")
        assert config == {"_CC": "/usr/bin/clang", "CC_TYPE": "clang"}

    def test_last_assignment_wins(self):
        assert parse_config_text("A = 1\nA = 2\n") == {"A": "2"}

    def test_append(self):
        config = parse_config_text("FLAGS = -DA\nFLAGS += -DB\nFLAGS += -DC\n")
        assert config["FLAGS"] == "-DA -DB -DC"

    def test_append_to_missing_key(self):
        assert parse_config_text("FLAGS += -DA\n") == {"FLAGS": "-DA"}

    def test_append_empty_value(self):
        assert parse_config_text("FLAGS = -DA\nFLAGS +=\n") == {"FLAGS": "-DA"}

    def test_assignment_after_append_replaces(self):
        assert parse_config_text("A = 1\nA += 2\nA = 3\n") == {"A": "3"}

    def test_ignores_comments_rules_and_other_operators(self):
        text = (
            "# THIS FILE WAS AUTOMATICALLY GENERATED. DO NOT EDIT.\n"
            "DEPTH := ../..\n"
            "include $(topsrcdir)/config/rules.mk\n"
            "export:: target\n"
            "COMPUTED_CFLAGS = -DFOO\n"
        )
        assert parse_config_text(text) == {"COMPUTED_CFLAGS": "-DFOO"}

    def test_value_keeps_inner_equals(self):
        assert parse_config_text("DEFINES = -DA=1 -DB=2\n") == {"DEFINES": "-DA=1 -DB=2"}

    def test_empty_value(self):
        assert parse_config_text("EMPTY =\n") == {"EMPTY": ""}

    def test_accumulates_into_existing(self):
        config = {"A": "1"}
        parse_config_text("A += 2\nB = 3\n", config)
        assert config == {"A": "1 2", "B": "3"}


class TestParseConfig:
    @pytest.mark.asyncio
    async def test_reads_file(self, tmp_path: Path):
        path = tmp_path / "autoconf.mk"
        path.write_text("CC_TYPE = gcc\n")
        assert await parse_config(FilePath(path)) == {"CC_TYPE": "gcc"}

    @pytest.mark.asyncio
    async def test_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            await parse_config(FilePath(tmp_path / "missing.mk"))


class TestConfigFileCache:
    @pytest.mark.asyncio
    async def test_missing_returns_none(self, tmp_path: Path):
        cache = ConfigFileCache()
        assert await cache.get(FilePath(tmp_path / "backend.mk")) is None

    @pytest.mark.asyncio
    async def test_missing_parent_directory_returns_none(self, tmp_path: Path):
        cache = ConfigFileCache()
        assert await cache.get(FilePath(tmp_path / "no" / "such" / "backend.mk")) is None

    @pytest.mark.asyncio
    async def test_cached_until_mtime_changes(self, tmp_path: Path):
        path = tmp_path / "backend.mk"
        path.write_text("COMPUTED_CFLAGS = -DOLD\n")
        cache = ConfigFileCache()

        first = await cache.get(FilePath(path))
        assert first == {"COMPUTED_CFLAGS": "-DOLD"}
        assert await cache.get(FilePath(path)) is first

        path.write_text("COMPUTED_CFLAGS = -DNEW\n")
        st = path.stat()
        os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + 5_000_000_000))
        assert await cache.get(FilePath(path)) == {"COMPUTED_CFLAGS": "-DNEW"}

    @pytest.mark.asyncio
    async def test_deleted_file_drops_entry(self, tmp_path: Path):
        path = tmp_path / "backend.mk"
        path.write_text("A = 1\n")
        cache = ConfigFileCache()
        assert await cache.get(FilePath(path)) == {"A": "1"}
        path.unlink()
        assert await cache.get(FilePath(path)) is None

    @pytest.mark.asyncio
    async def test_clear(self, tmp_path: Path):
        path = tmp_path / "backend.mk"
        path.write_text("A = 1\n")
        cache = ConfigFileCache()
        first = await cache.get(FilePath(path))
        cache.clear()
        assert await cache.get(FilePath(path)) is not first
