"""Tests for SourceFolder probing and the application context."""

from __future__ import annotations

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

from mozcpp.context import AppContext
from mozcpp.core.config import Settings
from mozcpp.exceptions import BuildNotPerformedYet, MalformedEnvironment
from mozcpp.folders import FolderState, SourceFolder, WorkspaceFolder
from mozcpp.models.compiler import FileType
from mozcpp.paths import FilePath
from mozcpp.process import MozillaBuildRunner, ProcessRunner
from mozcpp.testing import FakeHost, FakeProcessRunner

from conftest import FakeTree

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="POSIX path semantics")


def _folder(path: Path | FilePath, name: str | None = None) -> WorkspaceFolder:
    return WorkspaceFolder.from_path(FilePath(path), name)


class TestWorkspaceFolder:
    def test_from_path(self, tmp_path: Path):
        folder = _folder(tmp_path)
        assert folder.uri.startswith("file://")
        assert folder.path == FilePath(tmp_path)
        assert folder.name == tmp_path.name

    def test_explicit_name(self, tmp_path: Path):
        assert _folder(tmp_path, "gecko").name == "gecko"


@posix_only
class TestProbe:
    @pytest.mark.asyncio
    async def test_recognized(self, context: AppContext, fake_tree: FakeTree):
        source = await SourceFolder.create(context, _folder(fake_tree.srcdir))
        assert source.state is FolderState.RECOGNIZED
        assert source.is_build_tree
        assert source.can_provide_config()
        assert set(source.build.compilers) == {FileType.C, FileType.CPP}
        assert source.error is None

    @pytest.mark.asyncio
    async def test_not_a_build_tree(self, context: AppContext, fake_tree: FakeTree, host: FakeHost):
        other = fake_tree.root / "docs"
        other.mkdir()
        source = await SourceFolder.create(context, _folder(other))
        assert source.state is FolderState.NOT_A_BUILD_TREE
        assert source.build is None
        assert not source.can_provide_config()
        assert host.errors == []
        assert host.infos == []

    @pytest.mark.asyncio
    async def test_malformed_shows_error_once(
        self, context: AppContext, fake_tree: FakeTree, host: FakeHost
    ):
        fake_tree.runner.add("environment", stdout="not json at all")
        first = await SourceFolder.create(context, _folder(fake_tree.srcdir, "gecko"))
        second = await SourceFolder.create(context, _folder(fake_tree.srcdir, "gecko"))

        assert first.state is FolderState.NOT_A_BUILD_TREE
        assert isinstance(first.error, MalformedEnvironment)
        assert second.state is FolderState.NOT_A_BUILD_TREE
        assert len(host.errors) == 1
        assert host.errors[0].startswith("Unable to configure the folder 'gecko':")

    @pytest.mark.asyncio
    async def test_not_built_shows_info(
        self, context: AppContext, fake_tree: FakeTree, host: FakeHost
    ):
        (fake_tree.objdir / "config" / "autoconf.mk").unlink()
        source = await SourceFolder.create(context, _folder(fake_tree.srcdir, "gecko"))
        assert source.state is FolderState.NOT_A_BUILD_TREE
        assert isinstance(source.error, BuildNotPerformedYet)
        assert host.errors == []
        assert len(host.infos) == 1
        assert "'gecko' has not been built yet" in host.infos[0]

    @pytest.mark.asyncio
    async def test_process_failure_is_contained(
        self, context: AppContext, fake_tree: FakeTree, host: FakeHost
    ):
        fake_tree.runner.add("environment", stderr="Traceback", exit_code=1)
        source = await SourceFolder.create(context, _folder(fake_tree.srcdir))
        assert source.state is FolderState.NOT_A_BUILD_TREE
        assert len(host.errors) == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(
        self, context: AppContext, fake_tree: FakeTree, host: FakeHost
    ):
        async def broken_run(args, cwd=None, env=None):
            raise OSError(24, "Too many open files")

        with patch.object(fake_tree.runner, "run", side_effect=broken_run):
            source = await SourceFolder.create(context, _folder(fake_tree.srcdir, "gecko"))

        assert source.state is FolderState.NOT_A_BUILD_TREE
        assert isinstance(source.error, OSError)
        assert source.build is None
        assert len(host.errors) == 1
        assert "Too many open files" in host.errors[0]
        assert (await source.to_state())["error"] == "[Errno 24] Too many open files"

    @pytest.mark.asyncio
    async def test_probe_runs_once(self, context: AppContext, fake_tree: FakeTree):
        source = await SourceFolder.create(context, _folder(fake_tree.srcdir))
        calls = len(fake_tree.runner.calls)
        await source.probe()
        assert len(fake_tree.runner.calls) == calls

    @pytest.mark.asyncio
    async def test_settings_resolved_for_root(self, fake_tree: FakeTree, host: FakeHost):
        settings = Settings.model_validate(
            {"folders": {str(fake_tree.srcdir): {"flags.source": "mach"}}}
        )
        context = AppContext(settings, fake_tree.runner, host)
        source = SourceFolder(context, _folder(fake_tree.srcdir))
        assert source.settings.flags_source == "mach"
        assert source.state is FolderState.UNPROBED


@posix_only
class TestQueries:
    @pytest.mark.asyncio
    async def test_configuration_and_contains(self, context: AppContext, fake_tree: FakeTree):
        fake_tree.write_backend("dom", COMPUTED_CXXFLAGS="-DMOZILLA_INTERNAL_API")
        source_file = fake_tree.write_source("dom/Element.cpp")
        source = await SourceFolder.create(context, _folder(fake_tree.srcdir))

        assert source.contains(source_file)
        assert not source.contains(FilePath(fake_tree.root / "elsewhere.cpp"))
        config = await source.get_source_configuration(source_file)
        assert "MOZILLA_INTERNAL_API=1" in config.defines

    @pytest.mark.asyncio
    async def test_unrecognized_answers_nothing(self, context: AppContext, fake_tree: FakeTree):
        other = fake_tree.root / "docs"
        other.mkdir()
        source = await SourceFolder.create(context, _folder(other))
        assert await source.get_source_configuration(FilePath(other / "a.c")) is None
        assert list(source.get_include_paths()) == []
        assert await source.test_compile(FilePath(other / "a.c")) is None

    @pytest.mark.asyncio
    async def test_to_state(self, context: AppContext, fake_tree: FakeTree):
        source = await SourceFolder.create(context, _folder(fake_tree.srcdir, "gecko"))
        state = await source.to_state()
        assert state["name"] == "gecko"
        assert state["state"] == "recognized"
        assert state["settings"]["flags.source"] == "backend"
        assert state["build"]["objdir"] == str(fake_tree.objdir)


class TestAppContext:
    @pytest.mark.asyncio
    async def test_show_message_once(self):
        host = FakeHost()
        context = AppContext(Settings(), FakeProcessRunner(), host)
        assert await context.show_message_once("k", "first")
        assert not await context.show_message_once("k", "second")
        assert await context.show_message_once("other", "note", error=False)
        assert host.errors == ["first"]
        assert host.infos == ["note"]

    def test_contexts_are_independent(self):
        one = AppContext.create(host=FakeHost())
        two = AppContext.create(host=FakeHost())
        one._shown_messages.add("k")
        assert "k" not in two._shown_messages

    def test_create_defaults(self):
        context = AppContext.create(runner=FakeProcessRunner())
        assert context.settings == Settings()
        assert isinstance(context.runner, FakeProcessRunner)

    @posix_only
    def test_owned_runner_replaced_when_install_root_moves(self):
        with patch("mozcpp.context.create_runner", side_effect=MozillaBuildRunner):
            context = AppContext.create(Settings(mozillabuild="/mozilla-build"), host=FakeHost())
            first = context.runner
            context.update_settings(Settings(mozillabuild="/other-build"))
        assert isinstance(first, MozillaBuildRunner)
        assert context.runner is not first
        assert context.runner.mozillabuild == FilePath("/other-build")

    def test_same_install_root_keeps_runner(self):
        context = AppContext.create(host=FakeHost())
        first = context.runner
        context.update_settings(Settings(defaults={"flags.source": "mach"}))
        assert context.runner is first

    def test_given_runner_kept(self):
        runner = ProcessRunner()
        context = AppContext.create(Settings(), host=FakeHost(), runner=runner)
        context.update_settings(Settings(mozillabuild="/other-build"))
        assert context.runner is runner
