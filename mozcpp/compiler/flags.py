"""Extract includes, defines and forced includes from a compiler command line."""

from __future__ import annotations

import os
from collections import deque
from collections.abc import Sequence

from mozcpp.compiler.dialect import Dialect
from mozcpp.models.compiler import Define, FileConfig
from mozcpp.paths import CmdArg, FilePath

# Flags whose value is the next argument and which add a plain include path.
_INCLUDE_WITH_ARG = {"-isystem", "-iquote", "-idirafter"}
# Flags (plus their argument) naming the SDK root, already captured elsewhere.
_SYSROOT_WITH_ARG = {"-isysroot", "--sysroot"}
_SYSROOT_ATTACHED = ("-isysroot", "--sysroot=")


def parse_define(text: str, splitter: str = "=") -> Define:
    """Split ``KEY<splitter>VALUE``; a missing value means ``1``."""
    key, sep, value = text.partition(splitter)
    if not sep:
        return Define(text)
    return Define(key, value)


def _to_path(arg: CmdArg, cwd: FilePath | None) -> FilePath | None:
    if isinstance(arg, FilePath):
        return arg
    if not arg:
        return None
    if arg.startswith("/"):
        return FilePath.from_unixy(arg)
    if os.path.isabs(arg):
        return FilePath(arg)
    if cwd is not None:
        return cwd.join(arg)
    return None


def add_compiler_arguments(
    args: Sequence[CmdArg],
    dialect: Dialect,
    config: FileConfig,
    cwd: FilePath | None = None,
) -> FileConfig:
    """Fold the flags in ``args`` into ``config``, left to right.

    Relative paths are resolved against ``cwd`` and dropped when it is not
    given. Flags that do not matter for code intelligence are skipped.
    """
    queue: deque[CmdArg] = deque(args)

    def take_value(attached: str) -> CmdArg | None:
        if attached:
            return attached
        return queue.popleft() if queue else None

    def add_path(target, value: CmdArg | None) -> None:
        path = _to_path(value, cwd) if value is not None else None
        if path is not None:
            target.add(path)

    while queue:
        arg = queue.popleft()
        if isinstance(arg, FilePath):
            continue
        flag = dialect.normalize_flag(arg)
        if flag is None:
            continue

        if flag in _SYSROOT_WITH_ARG:
            if queue:
                queue.popleft()
            continue
        if flag.startswith(_SYSROOT_ATTACHED):
            continue

        forced = dialect.forced_include
        if flag == forced or (dialect.forced_include_attached and flag.startswith(forced)):
            add_path(config.forced_includes, take_value(flag[len(forced) :]))
            continue

        if flag in _INCLUDE_WITH_ARG:
            add_path(config.includes, take_value(""))
            continue

        if dialect.supports_frameworks:
            if flag == "-iframework":
                add_path(config.framework_includes, take_value(""))
                continue
            if flag.startswith("-F"):
                add_path(config.framework_includes, take_value(flag[2:]))
                continue

        prefix, rest = flag[:2], flag[2:]
        if prefix == "-D":
            value = take_value(rest)
            if isinstance(value, str) and value:
                config.add_define(parse_define(value))
        elif prefix == "-U":
            value = take_value(rest)
            if isinstance(value, str):
                config.defines.pop(value, None)
        elif prefix == "-I":
            add_path(config.includes, take_value(rest))

    return config
