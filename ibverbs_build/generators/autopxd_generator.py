# pylint: disable=cyclic-import
# Cyclic import is intentional - generators register themselves when loaded
"""Cython declarations through autopxd2.

The umbrella header is translated with autopxd's default settings: the
parser backend is picked automatically (libclang when available) and no
include directories, macros or whitelist are passed. The libclang backend
still adds the system include directories it detects on its own.

The generated ``.pxd`` refers to the umbrella header by file name, so the
output directory has to be on the include path when it is cythonized.
"""

from pathlib import (
    Path,
)

import autopxd

from ibverbs_build.errors import (
    GenerationError,
)
from ibverbs_build.generators import (
    register_generator,
)
from ibverbs_build.synthesis import (
    atomic_write,
)


class AutopxdGenerator:
    """Generator writing a Cython ``.pxd`` with :func:`autopxd.translate`.

    :param debug: Let autopxd print its own debug output to stderr.
    """

    OPTIONS = ("debug",)
    SUFFIX = ".pxd"

    def __init__(self, debug: bool = False) -> None:
        self.debug = debug

    @property
    def name(self) -> str:
        return "autopxd"

    @property
    def suffix(self) -> str:
        return self.SUFFIX

    def generate(self, header: Path, output: Path) -> None:
        try:
            code = header.read_text(encoding="utf-8")
        except OSError as exc:
            raise GenerationError(f"Cannot read {header}: {exc}") from exc

        try:
            pxd = autopxd.translate(code, header.name, debug=self.debug)
        # autopxd surfaces backend failures as RuntimeError, ValueError and
        # parser-specific exception types
        except Exception as exc:  # pylint: disable=broad-except
            raise GenerationError(f"autopxd failed on {header}: {exc}") from exc

        try:
            atomic_write(output, pxd)
        except OSError as exc:
            raise GenerationError(f"Cannot write {output}: {exc}") from exc


register_generator("autopxd", AutopxdGenerator, is_default=True)
