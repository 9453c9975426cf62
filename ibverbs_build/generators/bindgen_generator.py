# pylint: disable=cyclic-import
"""Rust declarations through the ``bindgen`` command-line tool."""

import os
import shutil
import subprocess
import tempfile
from pathlib import (
    Path,
)

from ibverbs_build.errors import (
    GenerationError,
)
from ibverbs_build.generators import (
    register_generator,
)

DEFAULT_BINDGEN = "bindgen"


class BindgenGenerator:
    """Generator running ``bindgen <header> -o <output>`` with default settings.

    :param bindgen: bindgen executable, looked up on ``PATH``.
    """

    OPTIONS = ("bindgen",)
    SUFFIX = ".rs"

    def __init__(self, bindgen: str = DEFAULT_BINDGEN) -> None:
        self.bindgen = bindgen

    @classmethod
    def is_available(cls) -> bool:
        return shutil.which(DEFAULT_BINDGEN) is not None

    @property
    def name(self) -> str:
        return "bindgen"

    @property
    def suffix(self) -> str:
        return self.SUFFIX

    def generate(self, header: Path, output: Path) -> None:
        # bindgen writes the file itself; point it at a temporary name so a
        # failed run never leaves a truncated file at ``output``
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{output.name}.", suffix=".tmp", dir=output.parent)
        except OSError as exc:
            raise GenerationError(f"Cannot write {output}: {exc}") from exc
        os.close(fd)
        try:
            try:
                result = subprocess.run(
                    [self.bindgen, str(header), "-o", tmp_name],
                    capture_output=True,
                    text=True,
                    check=False,
                )
            except OSError as exc:
                raise GenerationError(f"Failed to run {self.bindgen}: {exc}") from exc
            if result.returncode != 0:
                raise GenerationError(f"bindgen failed (exit {result.returncode}): {result.stderr.strip()}")
            try:
                os.replace(tmp_name, output)
            except OSError as exc:
                raise GenerationError(f"Cannot write {output}: {exc}") from exc
        finally:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)


register_generator("bindgen", BindgenGenerator)
