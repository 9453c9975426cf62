# pylint: disable=cyclic-import
"""Probe returning a caller-supplied include search list."""

from collections.abc import (
    Sequence,
)

from ibverbs_build.probes import (
    register_probe,
)


class StaticProbe:
    """Probe that never runs a compiler.

    :param system_includes: Directories to report, highest priority first.
    """

    OPTIONS = ("system_includes",)

    def __init__(self, system_includes: Sequence[str] = ()) -> None:
        self.system_includes = [str(path) for path in system_includes]

    @property
    def name(self) -> str:
        return "static"

    def probe(self) -> list[str]:
        return list(self.system_includes)


register_probe("static", StaticProbe)
