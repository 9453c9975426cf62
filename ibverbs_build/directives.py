"""Host build system directives.

Cargo reads instructions from a build script's stdout, one per line, in the
form ``cargo:<key>=<value>``. Lines that do not start with ``cargo:`` are
ignored by cargo, so each directive must be a complete line of its own.
"""

from __future__ import (
    annotations,
)

import sys
from dataclasses import (
    dataclass,
)
from typing import (
    IO,
    Iterable,
)

PREFIX = "cargo:"

RERUN_IF_CHANGED = "rerun-if-changed"
RUSTC_LINK_LIB = "rustc-link-lib"
WARNING = "warning"


@dataclass(frozen=True)
class Directive:
    """One ``cargo:<key>=<value>`` line.

    :param key: Directive kind (e.g., ``"rustc-link-lib"``).
    :param value: Directive argument.
    :raises ValueError: If key or value contains a line break, or the key
        is empty or contains ``=``.
    """

    key: str
    value: str

    def __post_init__(self) -> None:
        if not self.key or "=" in self.key:
            raise ValueError(f"Invalid directive key: {self.key!r}")
        for part in (self.key, self.value):
            if "\n" in part or "\r" in part:
                raise ValueError(f"Directive must fit on one line: {part!r}")

    def __str__(self) -> str:
        return f"{PREFIX}{self.key}={self.value}"


def rerun_if_changed(path: str) -> Directive:
    """Rebuild when ``path`` changes."""
    return Directive(RERUN_IF_CHANGED, path)


def link_lib(name: str) -> Directive:
    """Link the crate dynamically against ``name``."""
    return Directive(RUSTC_LINK_LIB, name)


def warning(message: str) -> Directive:
    """Show ``message`` as a build warning.

    Line breaks are folded into spaces since a directive is a single line.
    """
    return Directive(WARNING, " ".join(message.split()))


def emit(directives: Iterable[Directive], stream: IO[str] | None = None) -> None:
    """Write directives to ``stream`` (stdout by default), one per line."""
    if stream is None:
        stream = sys.stdout
    for directive in directives:
        stream.write(f"{directive}\n")
    stream.flush()
