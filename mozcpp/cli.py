"""CLI entry point: mozcpp.

Subcommands:
    mozcpp configure widget/nsWindow.cpp    # Configuration for one file
    mozcpp browse ~/mozilla-central         # Search path for the whole tree
    mozcpp state ~/mozilla-central          # Diagnostic state dump
    mozcpp test-compile dom/base/Element.cpp
"""

from __future__ import annotations

import asyncio
import json
import os
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any, TypeVar

import click

from mozcpp.context import AppContext
from mozcpp.core.config import SETTINGS_FILE, Settings, load_settings
from mozcpp.core.logging import setup_logging
from mozcpp.exceptions import MozCppError, SettingsError
from mozcpp.folders import SourceFolder, WorkspaceFolder
from mozcpp.models.configuration import WorkspaceBrowseConfiguration
from mozcpp.paths import FilePath
from mozcpp.workspace import Workspace

T = TypeVar("T")


def _find_root(path: FilePath) -> FilePath:
    """Nearest ancestor of ``path`` holding a mach script, else the cwd."""
    current = path if os.path.isdir(path) else path.parent()
    while True:
        if os.path.isfile(current.join("mach")):
            return current
        parent = current.parent()
        if parent == current:
            return FilePath(os.getcwd())
        current = parent


def _absolute(path: str) -> FilePath:
    return FilePath(os.path.abspath(path))


def _load(ctx: click.Context, root: FilePath) -> Settings:
    config_path = ctx.obj.get("config") or Path(root.to_path()) / SETTINGS_FILE
    try:
        return load_settings(config_path)
    except SettingsError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _with_folder(
    settings: Settings,
    root: FilePath,
    action: Callable[[Workspace, SourceFolder], Awaitable[T]],
) -> tuple[SourceFolder, T | None]:
    async def run() -> tuple[SourceFolder, T | None]:
        workspace = Workspace(AppContext.create(settings))
        try:
            folder = await workspace.add_folder(WorkspaceFolder.from_path(root))
            if not folder.can_provide_config():
                return folder, None
            return folder, await action(workspace, folder)
        finally:
            workspace.dispose()

    try:
        return asyncio.run(run())
    except MozCppError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


def _require_build(folder: SourceFolder) -> None:
    if folder.can_provide_config():
        return
    reason = f": {folder.error}" if folder.error else "."
    click.echo(f"Error: {folder.root} is not a recognized build tree{reason}", err=True)
    sys.exit(1)


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2))


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Verbose logging")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help=f"Settings file (default: <root>/{SETTINGS_FILE})",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, config_path: str | None) -> None:
    """mozcpp: C/C++ code intelligence configuration for Mozilla source trees."""
    setup_logging(level="DEBUG" if verbose else None)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config_path


@main.command("configure")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--root", type=click.Path(exists=True, file_okay=False), default=None,
              help="Source tree root (default: nearest directory with a mach script)")
@click.pass_context
def configure(ctx: click.Context, file: str, root: str | None) -> None:
    """Print the code intelligence configuration for FILE as JSON."""
    source = _absolute(file)
    root_path = _absolute(root) if root else _find_root(source)
    settings = _load(ctx, root_path)

    async def action(workspace: Workspace, folder: SourceFolder):
        return await folder.get_source_configuration(source)

    folder, configuration = _with_folder(settings, root_path, action)
    _require_build(folder)
    if configuration is None:
        click.echo(f"No configuration available for {source}", err=True)
        sys.exit(1)
    _echo_json(configuration.to_host())


@main.command("browse")
@click.argument("root", type=click.Path(exists=True, file_okay=False))
@click.pass_context
def browse(ctx: click.Context, root: str) -> None:
    """Print the browse search path for the tree at ROOT as JSON."""
    root_path = _absolute(root)
    settings = _load(ctx, root_path)

    async def action(workspace: Workspace, folder: SourceFolder):
        return WorkspaceBrowseConfiguration(browse_path=folder.get_include_paths().to_strings())

    folder, configuration = _with_folder(settings, root_path, action)
    _require_build(folder)
    _echo_json(configuration.to_host())


@main.command("state")
@click.argument("root", type=click.Path(exists=True, file_okay=False))
@click.pass_context
def state(ctx: click.Context, root: str) -> None:
    """Dump the diagnostic state for the folder at ROOT as JSON."""
    root_path = _absolute(root)
    settings = _load(ctx, root_path)

    async def run() -> dict[str, Any]:
        workspace = Workspace(AppContext.create(settings))
        try:
            await workspace.add_folder(WorkspaceFolder.from_path(root_path))
            return await workspace.to_state()
        finally:
            workspace.dispose()

    _echo_json(asyncio.run(run()))


@main.command("test-compile")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--root", type=click.Path(exists=True, file_okay=False), default=None,
              help="Source tree root (default: nearest directory with a mach script)")
@click.pass_context
def test_compile(ctx: click.Context, file: str, root: str | None) -> None:
    """Syntax-check FILE with the flags the build would use."""
    source = _absolute(file)
    root_path = _absolute(root) if root else _find_root(source)
    settings = _load(ctx, root_path)

    async def action(workspace: Workspace, folder: SourceFolder):
        return await folder.test_compile(source)

    folder, report = _with_folder(settings, root_path, action)
    _require_build(folder)
    click.echo(str(report))
    if not report.success:
        sys.exit(1)


if __name__ == "__main__":
    main()
