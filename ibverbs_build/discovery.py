"""Locate the ibverbs header directory.

Candidates are checked in priority order. A directory qualifies only if it
holds the signature file, so a leftover or partial ``infiniband/`` directory
earlier in the list is skipped in favor of a real installation later on.
The first qualifying directory wins and no further candidates are examined.

Header names are sorted before they are recorded. Directory listing order
depends on the filesystem, and the umbrella header built from these names
must be byte-identical from one build to the next.
"""

from __future__ import (
    annotations,
)

import os
from collections.abc import (
    Iterable,
)
from dataclasses import (
    replace,
)
from pathlib import (
    Path,
)

from ibverbs_build.errors import (
    DiscoveryError,
    HeaderWriteError,
)
from ibverbs_build.model import (
    CANDIDATE_DIRS,
    HEADER_EXTENSION,
    SIGNATURE_FILE,
    BuildState,
)


def find_header_dir(
    candidates: Iterable[str | os.PathLike[str]] = CANDIDATE_DIRS,
    signature: str = SIGNATURE_FILE,
) -> Path:
    """Return the first candidate directory containing ``signature``.

    :param candidates: Directories in priority order.
    :param signature: File name that marks a genuine installation.
    :raises DiscoveryError: If no candidate contains the signature file.
    """
    for candidate in candidates:
        path = Path(candidate)
        if path.is_dir() and (path / signature).is_file():
            return path
    raise DiscoveryError("no candidate directory contains the signature file")


def list_headers(directory: Path, extension: str = HEADER_EXTENSION) -> list[str]:
    """Return the names of the header files in ``directory``, sorted.

    Only regular files whose suffix equals ``extension`` are kept.
    Subdirectories are not descended into.

    :raises HeaderWriteError: If the directory cannot be listed.
    """
    try:
        entries = list(directory.iterdir())
    except OSError as exc:
        raise HeaderWriteError(f"Cannot read header directory {directory}: {exc}") from exc
    return sorted(entry.name for entry in entries if entry.suffix == extension and entry.is_file())


def discover_headers(
    state: BuildState,
    candidates: Iterable[str | os.PathLike[str]] = CANDIDATE_DIRS,
    signature: str = SIGNATURE_FILE,
    extension: str = HEADER_EXTENSION,
) -> BuildState:
    """Select the header directory and record its headers in ``state``.

    :returns: New state with ``header_dir`` and ``ib_headers`` set and the
        directory appended to ``include_path``.
    :raises DiscoveryError: If no candidate qualifies.
    :raises HeaderWriteError: If the selected directory cannot be listed.
    """
    header_dir = find_header_dir(candidates, signature)
    headers = list_headers(header_dir, extension)
    return replace(
        state,
        header_dir=header_dir,
        include_path=(*state.include_path, header_dir),
        ib_headers=tuple(headers),
    )
