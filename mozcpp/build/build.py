"""Build model: one recognized source tree with its object directory and compilers.

A ``Build`` is created once per probe and never mutated afterwards, apart
from the per-directory ``backend.mk`` cache. A settings change creates a
new ``Build`` rather than repairing an old one.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any

import structlog

from mozcpp.build.config_file import ConfigFileCache, parse_config
from mozcpp.build.mach import Mach
from mozcpp.compiler.compiler import Compiler
from mozcpp.core.config import FolderSettings
from mozcpp.exceptions import (
    BuildNotPerformedYet,
    DiscoveryError,
    MalformedEnvironment,
    ProcessError,
)
from mozcpp.models.build import BuildEnvironment, CompileReport, MachEnvironment
from mozcpp.models.compiler import FileType
from mozcpp.models.configuration import SourceFileConfiguration
from mozcpp.paths import CmdArg, FilePath, FilePathSet
from mozcpp.process import ProcessRunner
from mozcpp.shell import shell_parse, unixy_path

logger = structlog.get_logger(__name__)

FileClassifier = Callable[[FilePath], Awaitable[FileType | None]]

BACKEND_FILE = "backend.mk"
AUTOCONF_FILE = ("config", "autoconf.mk")
MACOS_SDK_ARG = "--with-macos-sdk="

# Generated header locations under the object directory.
GENERATED_INCLUDE_DIRS: tuple[tuple[str, ...], ...] = (
    ("dist", "include"),
    ("dist", "include", "nss"),
    ("dist", "include", "nspr"),
    ("ipc", "ipdl", "_ipdlheaders"),
)

COMPILER_VARIABLES = {FileType.C: "_CC", FileType.CPP: "_CXX"}
COMPILER_TYPE_VARIABLES = {FileType.C: "CC_TYPE", FileType.CPP: "CXX_TYPE"}
FLAGS_VARIABLES = {FileType.C: "COMPUTED_CFLAGS", FileType.CPP: "COMPUTED_CXXFLAGS"}

C_EXTENSIONS = frozenset({".c"})
CPP_EXTENSIONS = frozenset({".cpp", ".cc", ".cxx", ".c++", ".C"})
CPP_HEADER_EXTENSIONS = frozenset({".hh", ".hpp", ".hxx", ".h++"})
AMBIGUOUS_HEADER_EXTENSIONS = frozenset({".h"})


async def classify_file(path: FilePath) -> FileType | None:
    """Default language classifier.

    ``.h`` headers are C when a ``.c`` file with the same stem sits next to
    them, C++ otherwise.
    """
    ext = path.extname()
    if ext in C_EXTENSIONS:
        return FileType.C
    if ext in CPP_EXTENSIONS or ext in CPP_HEADER_EXTENSIONS:
        return FileType.CPP
    if ext in AMBIGUOUS_HEADER_EXTENSIONS:
        if await path.with_suffix(".c").is_file():
            return FileType.C
        return FileType.CPP
    return None


def find_macos_sdk(
    configure_args: Sequence[str], variables: Mapping[str, str]
) -> FilePath | None:
    """SDK root from ``--with-macos-sdk=`` or else the ``MACOS_SDK_DIR`` variable."""
    candidate: str | None = None
    for arg in configure_args:
        if arg.startswith(MACOS_SDK_ARG):
            candidate = arg[len(MACOS_SDK_ARG) :]
    if not candidate:
        candidate = variables.get("MACOS_SDK_DIR")
    if not candidate:
        return None
    try:
        return FilePath.from_unixy(candidate)
    except ValueError:
        logger.warning("build.bad_macos_sdk", path=candidate)
        return None


def _checked_dirs(environment: MachEnvironment, root: FilePath) -> tuple[FilePath, FilePath]:
    if not environment.topobjdir:
        raise MalformedEnvironment("mach environment did not include a topobjdir.")
    if not environment.topsrcdir:
        raise MalformedEnvironment("mach environment did not include a topsrcdir.")
    try:
        objdir = FilePath.from_unixy(environment.topobjdir)
        srcdir = FilePath.from_unixy(environment.topsrcdir)
    except ValueError as e:
        raise MalformedEnvironment(str(e)) from e
    if srcdir != root and os.path.realpath(srcdir) != os.path.realpath(root):
        raise MalformedEnvironment(
            f"mach environment reported topsrcdir {srcdir} for the folder {root}."
        )
    return objdir, srcdir


class Build:
    """A recognized tree: its environment, mach client and one compiler per language."""

    def __init__(
        self,
        mach: Mach,
        environment: BuildEnvironment,
        compilers: Mapping[FileType, Compiler],
        settings: FolderSettings,
        classifier: FileClassifier = classify_file,
    ) -> None:
        self.mach = mach
        self.environment = environment
        self.compilers = dict(compilers)
        self.settings = settings
        self._classifier = classifier
        self._backend_cache = ConfigFileCache()

    @classmethod
    async def create(
        cls,
        root: FilePath,
        settings: FolderSettings,
        runner: ProcessRunner,
        classifier: FileClassifier = classify_file,
    ) -> Build | None:
        """Probe ``root``. Returns None if it has no mach entry point.

        Raises:
            MalformedEnvironment: mach's environment is unusable.
            BuildNotPerformedYet: the tree has no configured object directory.
            DiscoveryError: a compiler could not be identified or probed.
            ProcessError: mach or a compiler failed to run.
        """
        mach = await Mach.find(root, settings, runner)
        if mach is None:
            return None

        mach_environment = await mach.get_environment()
        objdir, srcdir = _checked_dirs(mach_environment, root)

        autoconf = objdir.join(*AUTOCONF_FILE)
        try:
            variables = await parse_config(autoconf)
        except FileNotFoundError as e:
            raise BuildNotPerformedYet(
                f"The object directory {objdir} has not been configured yet."
            ) from e
        except OSError as e:
            raise MalformedEnvironment(f"Unable to read {autoconf}: {e}") from e

        environment = BuildEnvironment(
            objdir=objdir,
            srcdir=srcdir,
            macos_sdk=find_macos_sdk(mach_environment.mozconfig.configure_args, variables),
            variables=variables,
        )

        file_types = list(FileType)
        compilers = await asyncio.gather(
            *(cls._create_compiler(runner, ft, environment, settings) for ft in file_types)
        )
        logger.info(
            "build.created",
            srcdir=str(srcdir),
            objdir=str(objdir),
            compilers={ft.value: c.dialect.name for ft, c in zip(file_types, compilers)},
        )
        return cls(mach, environment, dict(zip(file_types, compilers)), settings, classifier)

    @staticmethod
    async def _create_compiler(
        runner: ProcessRunner,
        file_type: FileType,
        environment: BuildEnvironment,
        settings: FolderSettings,
    ) -> Compiler:
        variables = environment.variables
        configured = settings.compiler_for(file_type) or variables.get(
            COMPILER_VARIABLES[file_type]
        )
        if not configured:
            raise DiscoveryError(f"No {file_type.value} compiler is configured for this build.")
        command = shell_parse(configured, unixy_path)
        if not command:
            raise DiscoveryError(f"Empty {file_type.value} compiler command.")

        compiler_type = variables.get(COMPILER_TYPE_VARIABLES[file_type]) or variables.get(
            COMPILER_TYPE_VARIABLES[FileType.C]
        )
        return await Compiler.create(
            runner,
            command,
            file_type,
            compiler_type,
            macos_sdk=environment.macos_sdk,
        )

    @property
    def srcdir(self) -> FilePath:
        return self.environment.srcdir

    @property
    def objdir(self) -> FilePath:
        return self.environment.objdir

    def get_include_paths(self) -> FilePathSet:
        """Union search path for browsing the whole tree."""
        paths = FilePathSet([self.srcdir])
        for parts in GENERATED_INCLUDE_DIRS:
            paths.add(self.objdir.join(*parts))
        for compiler in self.compilers.values():
            paths.update(compiler.get_include_paths())
        return paths

    def object_directory_for(self, source: FilePath) -> FilePath:
        """The object directory that builds ``source``'s directory."""
        directory = source.parent()
        if directory.is_under(self.srcdir):
            return directory.rebase(self.srcdir, self.objdir)
        return self.objdir

    async def get_backend_config(self, source: FilePath) -> dict[str, str] | None:
        if not source.is_under(self.srcdir):
            return None
        return await self._backend_cache.get(self.object_directory_for(source).join(BACKEND_FILE))

    async def get_file_flags(self, source: FilePath, file_type: FileType) -> str | None:
        """Raw compiler flags for ``source``, or None if the build does not know it."""
        if self.settings.flags_source == "mach":
            flags = await self.mach.get_compile_flags(source)
            return flags or None

        backend = await self.get_backend_config(source)
        if backend is None:
            return None
        return backend.get(FLAGS_VARIABLES[file_type]) or None

    async def _resolve(self, source: FilePath) -> tuple[Compiler, list[CmdArg]] | None:
        file_type = await self._classifier(source)
        if file_type is None:
            logger.debug("build.unknown_file_type", path=str(source))
            return None
        flags = await self.get_file_flags(source, file_type)
        if flags is None:
            logger.debug("build.no_flags", path=str(source), file_type=file_type.value)
            return None
        return self.compilers[file_type], shell_parse(flags)

    async def get_source_configuration(self, source: FilePath) -> SourceFileConfiguration | None:
        """Full configuration for one file, or None when none is available."""
        resolved = await self._resolve(source)
        if resolved is None:
            return None
        compiler, args = resolved
        return compiler.get_source_configuration(args, self.object_directory_for(source))

    async def test_compile(self, source: FilePath) -> CompileReport:
        """Syntax-check ``source`` with its own flags and report the outcome.

        Compiler failures are reported, not raised.
        """
        resolved = await self._resolve(source)
        if resolved is None:
            return CompileReport(
                source=source,
                success=False,
                message=f"No compile flags are known for {source}.",
            )

        compiler, args = resolved
        try:
            result = await compiler.compile(source, args, self.object_directory_for(source))
        except ProcessError as e:
            logger.info("build.test_compile_failed", path=str(source), exit_code=e.exit_code)
            return CompileReport(
                source=source,
                success=False,
                message=f"Compiling {source} failed with exit code {e.exit_code}.",
                exit_code=e.exit_code,
                output=e.result.output,
            )

        logger.info("build.test_compile_succeeded", path=str(source))
        return CompileReport(
            source=source,
            success=True,
            message=f"Compiling {source} succeeded.",
            exit_code=result.exit_code,
            output=result.output,
        )

    async def to_state(self) -> dict[str, Any]:
        return {
            "srcdir": str(self.srcdir),
            "objdir": str(self.objdir),
            "macos_sdk": str(self.environment.macos_sdk) if self.environment.macos_sdk else None,
            "flags_source": self.settings.flags_source,
            "mach": await self.mach.to_state(),
            "compilers": {
                ft.value: await compiler.to_state() for ft, compiler in self.compilers.items()
            },
        }

    def dispose(self) -> None:
        self._backend_cache.clear()
