"""Shell-like command line tokenization and quoting.

``shell_parse`` splits a flag string the way a POSIX shell would for the
subset of syntax that build tools emit:

* tokens are separated by unquoted whitespace;
* single and double quoted spans are joined to the surrounding token with
  the quote characters removed, whitespace inside them is preserved;
* inside a span, a backslash-escaped copy of the span's quote character
  does not end the span (``\\\\`` is also unescaped inside double quotes);
* outside quotes a backslash only escapes whitespace, a quote or another
  backslash, so Windows paths such as ``C:\\foo`` survive untouched;
* an unterminated quote runs to the end of the line and the accumulated
  text becomes the final token;
* empty tokens (including ``""``) are dropped.
"""

from __future__ import annotations

import os
import shlex
from collections.abc import Callable, Iterable

from mozcpp.paths import CmdArg, FilePath, PathToArg, render_arg

PathFromArg = Callable[[str], CmdArg]

_QUOTES = "\"'"


def shell_parse(cmdline: str, path_convert: PathFromArg | None = None) -> list[CmdArg]:
    """Split ``cmdline`` into tokens, optionally promoting some to FilePath."""
    results: list[CmdArg] = []
    current: list[str] = []
    quote: str | None = None

    def flush() -> None:
        if current:
            token = "".join(current)
            results.append(path_convert(token) if path_convert else token)
            current.clear()

    i = 0
    length = len(cmdline)
    while i < length:
        ch = cmdline[i]
        nxt = cmdline[i + 1] if i + 1 < length else ""

        if quote is not None:
            if ch == "\\" and (nxt == quote or (quote == '"' and nxt == "\\")):
                current.append(nxt)
                i += 2
            elif ch == quote:
                quote = None
                i += 1
            else:
                current.append(ch)
                i += 1
            continue

        if ch.isspace():
            flush()
        elif ch in _QUOTES:
            quote = ch
        elif ch == "\\" and nxt and (nxt.isspace() or nxt in _QUOTES or nxt == "\\"):
            current.append(nxt)
            i += 1
        else:
            current.append(ch)
        i += 1

    flush()
    return results


def existing_path(arg: str) -> CmdArg:
    """Classifier promoting absolute tokens that exist on disk to FilePath."""
    if os.path.isabs(arg) and os.path.exists(arg):
        return FilePath(arg)
    return arg


def unixy_path(arg: str) -> CmdArg:
    """Classifier promoting any absolute unix-style token to FilePath."""
    if arg.startswith("/"):
        return FilePath.from_unixy(arg)
    return arg


def shell_quote(args: Iterable[CmdArg], path_convert: PathToArg | None = None) -> str:
    """Join arguments into a single string suitable for ``sh -c``."""
    return " ".join(shlex.quote(render_arg(a, path_convert)) for a in args)
