"""Compiler default prober: discover a compiler's built-in includes and defines.

The compiler is asked to preprocess an empty input while dumping its macro
table and include search list. Output looks like::

    #include "..." search starts here:
    #include <...> search starts here:
     /usr/lib/clang/17/include
     /usr/include
     /System/Library/Frameworks (framework directory)
    End of search list.
    #define __clang__ 1
"""

from __future__ import annotations

import os
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from enum import Enum

import structlog

from mozcpp.compiler.dialect import Dialect
from mozcpp.compiler.flags import parse_define
from mozcpp.exceptions import DiscoveryError
from mozcpp.models.compiler import CompilerDefaults, CompilerSettings, Define, FileType
from mozcpp.paths import CmdArg, FilePath, FilePathSet
from mozcpp.process import ProcessRunner, Stream

logger = structlog.get_logger(__name__)

FRAMEWORK_MARKER = " (framework directory)"
INCLUDE_BANNER = "#include "
DEFINE_BANNER = "#define "

_WINDOWS_SDK_RE = re.compile(
    r"[\\/]Windows Kits[\\/]10[\\/]include[\\/](10\.[0-9.]+)(?:[\\/]|$)", re.IGNORECASE
)


class _Block(Enum):
    USER = "user"
    SYSTEM = "system"


@dataclass
class ProbedDefaults:
    """Accumulator for probe output; frozen into CompilerDefaults when done."""

    includes: FilePathSet = field(default_factory=FilePathSet)
    user_includes: FilePathSet = field(default_factory=FilePathSet)
    framework_includes: FilePathSet = field(default_factory=FilePathSet)
    defines: dict[str, Define] = field(default_factory=dict)

    def freeze(self) -> CompilerDefaults:
        return CompilerDefaults(
            includes=tuple(self.includes),
            user_includes=tuple(self.user_includes),
            framework_includes=tuple(self.framework_includes),
            defines=self.defines,
        )


def _probe_path(entry: str) -> FilePath | None:
    if entry.startswith("/"):
        return FilePath.from_unixy(entry)
    if os.path.isabs(entry):
        return FilePath(entry)
    return None


def windows_sdk_version(paths: Iterable[FilePath]) -> str | None:
    """The Windows 10 SDK version implied by an include search list, if any."""
    for path in paths:
        m = _WINDOWS_SDK_RE.search(path.to_path())
        if m:
            return m.group(1)
    return None


def parse_compiler_defaults(output: str, found: ProbedDefaults | None = None) -> ProbedDefaults:
    """Parse preprocessor dump output into ``found`` (a new accumulator if None)."""
    if found is None:
        found = ProbedDefaults()

    block: _Block | None = None
    for line in output.splitlines():
        if block is not None:
            if line[:1] in (" ", "\t"):
                entry = line.strip()
                if entry.endswith(FRAMEWORK_MARKER):
                    path = _probe_path(entry[: -len(FRAMEWORK_MARKER)])
                    target = found.framework_includes
                else:
                    path = _probe_path(entry)
                    target = found.user_includes if block is _Block.USER else found.includes
                if path is not None:
                    target.add(path)
                continue
            block = None

        if line.startswith(INCLUDE_BANNER):
            opener = line[len(INCLUDE_BANNER) :].lstrip()[:1]
            block = _Block.USER if opener == '"' else _Block.SYSTEM
        elif line.startswith(DEFINE_BANNER):
            define = parse_define(line[len(DEFINE_BANNER) :].strip(), " ")
            found.defines[define.key] = define

    return found


async def probe_compiler(
    runner: ProcessRunner,
    command: Sequence[CmdArg],
    file_type: FileType,
    dialect: Dialect,
    settings: CompilerSettings,
) -> CompilerDefaults:
    """Run the dialect's probe invocation and parse its output.

    Raises:
        ProcessError: the compiler could not be run.
        DiscoveryError: the compiler ran but reported no defines.
    """
    args = dialect.probe_invocation(command, file_type, settings)
    result = await runner.run(args)

    # Streams are parsed separately so interleaved chunks cannot split a block.
    found = ProbedDefaults()
    parse_compiler_defaults(result.text(Stream.STDOUT), found)
    parse_compiler_defaults(result.text(Stream.STDERR), found)

    if not found.defines:
        logger.error(
            "compiler.probe_empty",
            command=result.printable_command,
            output=result.tail(),
        )
        raise DiscoveryError(
            f"Compiler '{result.printable_command}' returned no default defines."
        )

    logger.info(
        "compiler.probed",
        compiler=result.args[0],
        file_type=file_type.value,
        includes=len(found.includes),
        frameworks=len(found.framework_includes),
        defines=len(found.defines),
    )
    return found.freeze()
