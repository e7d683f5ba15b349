"""Absolute filesystem path value type and command argument helpers."""

from __future__ import annotations

import asyncio
import os
import re
import sys
from collections.abc import Callable, Iterable, Iterator
from pathlib import PurePath
from typing import Union
from urllib.parse import unquote, urlparse
from urllib.request import pathname2url

_DRIVE_UNIXY_RE = re.compile(r"^/([a-zA-Z])(?=/|$)")
_DRIVE_WINDOWS_RE = re.compile(r"^([a-zA-Z]):[\\/]?")


def unixy_to_windows(path: str) -> str:
    """Convert an msys style path (``/c/foo/bar``) to ``C:\\foo\\bar``."""
    m = _DRIVE_UNIXY_RE.match(path)
    if m:
        path = f"{m.group(1).upper()}:" + (path[m.end() :] or "/")
    return path.replace("/", "\\")


def windows_to_unixy(path: str) -> str:
    """Convert ``C:\\foo\\bar`` to the msys style ``/c/foo/bar``."""
    m = _DRIVE_WINDOWS_RE.match(path)
    if m:
        path = f"/{m.group(1).lower()}/" + path[m.end() :]
    return path.replace("\\", "/")


class FilePath:
    """An immutable, always-absolute filesystem path."""

    __slots__ = ("_path",)

    def __init__(self, path: str | os.PathLike[str]) -> None:
        raw = os.fspath(path)
        if not os.path.isabs(raw):
            raise ValueError(f"FilePath must be absolute: {raw!r}")
        self._path = os.path.normpath(raw)

    # ── construction ────────────────────────────────────────────────────

    @classmethod
    def from_unixy(cls, path: str) -> FilePath:
        """Build from a path as printed by unix-like tools (msys on Windows)."""
        if sys.platform == "win32":
            return cls(unixy_to_windows(path))
        return cls(path)

    @classmethod
    def from_uri(cls, uri: str) -> FilePath:
        """Accept either a ``file://`` URI or a plain absolute path."""
        parsed = urlparse(uri)
        if parsed.scheme == "file":
            path = unquote(parsed.path)
            if sys.platform == "win32" and re.match(r"^/[a-zA-Z]:", path):
                path = path[1:]
            return cls(path)
        if parsed.scheme and len(parsed.scheme) > 1:
            raise ValueError(f"Unsupported URI scheme: {uri!r}")
        return cls(uri)

    # ── conversion ──────────────────────────────────────────────────────

    def to_path(self) -> str:
        return self._path

    def to_unixy(self) -> str:
        if sys.platform == "win32":
            return windows_to_unixy(self._path)
        return self._path

    def to_uri(self) -> str:
        return "file://" + pathname2url(self._path)

    # ── navigation ──────────────────────────────────────────────────────

    def join(self, *parts: str) -> FilePath:
        return FilePath(os.path.join(self._path, *parts))

    def parent(self) -> FilePath:
        return FilePath(os.path.dirname(self._path))

    @property
    def name(self) -> str:
        return os.path.basename(self._path)

    def extname(self) -> str:
        return os.path.splitext(self._path)[1]

    def with_suffix(self, suffix: str) -> FilePath:
        if not suffix.startswith("."):
            suffix = "." + suffix
        return FilePath(os.path.splitext(self._path)[0] + suffix)

    def is_under(self, other: FilePath) -> bool:
        try:
            PurePath(self._path).relative_to(other._path)
        except ValueError:
            return False
        return True

    def rebase(self, from_dir: FilePath, to_dir: FilePath) -> FilePath:
        """Re-root this path from ``from_dir`` to ``to_dir``.

        Raises ValueError if this path is not inside ``from_dir``.
        """
        relative = PurePath(self._path).relative_to(from_dir._path)
        return to_dir.join(*relative.parts)

    # ── filesystem ──────────────────────────────────────────────────────

    async def stat(self) -> os.stat_result:
        return await asyncio.to_thread(os.stat, self._path)

    async def is_file(self) -> bool:
        return await asyncio.to_thread(os.path.isfile, self._path)

    async def is_dir(self) -> bool:
        return await asyncio.to_thread(os.path.isdir, self._path)

    # ── dunder ──────────────────────────────────────────────────────────

    def _key(self) -> str:
        return os.path.normcase(self._path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FilePath):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: FilePath) -> bool:
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __fspath__(self) -> str:
        return self._path

    def __str__(self) -> str:
        return self._path

    def __repr__(self) -> str:
        return f"FilePath({self._path!r})"


class FilePathSet:
    """Insertion-ordered set of FilePath values."""

    def __init__(self, paths: Iterable[FilePath] = ()) -> None:
        self._paths: dict[FilePath, None] = dict.fromkeys(paths)

    def add(self, path: FilePath) -> None:
        self._paths[path] = None

    def update(self, paths: Iterable[FilePath]) -> None:
        for path in paths:
            self.add(path)

    def __contains__(self, path: object) -> bool:
        return path in self._paths

    def __iter__(self) -> Iterator[FilePath]:
        return iter(self._paths)

    def __len__(self) -> int:
        return len(self._paths)

    def to_strings(self) -> list[str]:
        return [p.to_path() for p in self._paths]


CmdArg = Union[str, FilePath]
PathToArg = Callable[[FilePath], str]


def render_arg(arg: CmdArg, path_convert: PathToArg | None = None) -> str:
    """Render a single argument for execution."""
    if isinstance(arg, FilePath):
        return path_convert(arg) if path_convert else arg.to_path()
    return arg


def render_args(args: Iterable[CmdArg], path_convert: PathToArg | None = None) -> list[str]:
    return [render_arg(a, path_convert) for a in args]
