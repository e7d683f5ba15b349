"""Parser for generated make fragments (``autoconf.mk``, ``backend.mk``).

Only plain assignments are understood::

    KEY = VALUE     # replaces any earlier value
    KEY += VALUE    # appends, separated by a space

Other lines (rules, conditionals, ``:=`` assignments, comments) are ignored.
"""

from __future__ import annotations

import asyncio
import re

import structlog

from mozcpp.paths import FilePath

logger = structlog.get_logger(__name__)

_ASSIGNMENT_RE = re.compile(r"^\s*([A-Za-z0-9_.\-]+)\s*(\+?=)\s?(.*)$")


def parse_config_text(text: str, config: dict[str, str] | None = None) -> dict[str, str]:
    """Accumulate the assignments in ``text`` into ``config``."""
    if config is None:
        config = {}
    for line in text.splitlines():
        if line.lstrip().startswith("#"):
            continue
        m = _ASSIGNMENT_RE.match(line)
        if not m:
            continue
        key, op, value = m.group(1), m.group(2), m.group(3).strip()
        previous = config.get(key)
        if op == "+=" and previous:
            value = f"{previous} {value}" if value else previous
        config[key] = value
    return config


async def parse_config(path: FilePath, config: dict[str, str] | None = None) -> dict[str, str]:
    """Read and parse ``path``. Raises OSError if it cannot be read."""
    logger.debug("config_file.parse", path=str(path))
    text = await asyncio.to_thread(_read, path)
    return parse_config_text(text, config)


def _read(path: FilePath) -> str:
    with open(path, encoding="utf-8", errors="replace") as fh:
        return fh.read()


class ConfigFileCache:
    """Parsed fragments keyed by path, reparsed when the file's mtime changes."""

    def __init__(self) -> None:
        self._entries: dict[FilePath, tuple[int, dict[str, str]]] = {}

    async def get(self, path: FilePath) -> dict[str, str] | None:
        """Return the parsed file, or None if it does not exist."""
        try:
            stat = await path.stat()
        except FileNotFoundError:
            self._entries.pop(path, None)
            return None

        cached = self._entries.get(path)
        if cached is not None and cached[0] == stat.st_mtime_ns:
            return cached[1]

        config = await parse_config(path)
        self._entries[path] = (stat.st_mtime_ns, config)
        return config

    def clear(self) -> None:
        self._entries.clear()
