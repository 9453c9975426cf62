"""Umbrella header synthesis.

The binding generator takes a single header as its entry point. This module
writes one that includes every discovered ibverbs header::

    #include <infiniband/ib.h>
    #include <infiniband/verbs.h>
"""

from __future__ import (
    annotations,
)

import os
import tempfile
from collections.abc import (
    Iterable,
)
from pathlib import (
    Path,
)

from ibverbs_build.errors import (
    HeaderWriteError,
)
from ibverbs_build.model import (
    LIBRARY_SUBDIR,
    BuildState,
)


def render_umbrella_header(headers: Iterable[str], subdir: str = LIBRARY_SUBDIR) -> str:
    """Return the umbrella header text for ``headers``.

    One ``#include`` line per header, in the given order. Repeated names are
    emitted once, at their first position.
    """
    lines: list[str] = []
    seen: set[str] = set()
    for header in headers:
        if header in seen:
            continue
        seen.add(header)
        lines.append(f"#include <{subdir}/{header}>\n")
    return "".join(lines)


def atomic_write(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` so readers never see a partial file.

    The text goes to a temporary file in the same directory, which then
    replaces ``path``.

    :raises OSError: If the file cannot be written.
    """
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def write_umbrella_header(state: BuildState) -> Path:
    """Write the umbrella header for ``state.ib_headers`` into the output directory.

    :returns: Path of the written header.
    :raises HeaderWriteError: If the header cannot be written, or a header
        name is not valid UTF-8.
    """
    path = state.umbrella_header
    try:
        atomic_write(path, render_umbrella_header(state.ib_headers))
    except (OSError, UnicodeError) as exc:
        raise HeaderWriteError(f"Cannot write umbrella header {path}: {exc}") from exc
    return path
