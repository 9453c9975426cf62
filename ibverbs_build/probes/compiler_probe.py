# pylint: disable=cyclic-import
# Cyclic import is intentional - probes register themselves when loaded
"""Compiler-based toolchain probe.

Asks the C compiler for its built-in include search list. With ``-Wp,-v``
the preprocessor prints the list to stderr, for example with GCC::

    #include "..." search starts here:
    #include <...> search starts here:
     /usr/lib/gcc/x86_64-linux-gnu/13/include
     /usr/local/include
     /usr/include
    End of search list.

Only the lines strictly between the ``#include <...>`` line and the
``End of search`` line are directories. Clang on macOS prints the same
markers and tags framework directories with a ``(framework directory)``
suffix, which is removed.

Example
-------
::

    from ibverbs_build.probes.compiler_probe import CompilerProbe

    probe = CompilerProbe(cc="clang", timeout=5)
    dirs = probe.probe()
"""

import shlex
import subprocess

from ibverbs_build.errors import (
    ToolchainError,
)
from ibverbs_build.probes import (
    register_probe,
)

START_MARKER = "#include <...>"
END_MARKER = "End of search"
FRAMEWORK_SUFFIX = "(framework directory)"

#: Arguments after the compiler name: syntax check of C read from stdin.
PROBE_ARGS: tuple[str, ...] = ("-Wp,-v", "-x", "c", "-", "-fsyntax-only")

DEFAULT_CC = "cc"
DEFAULT_TIMEOUT = 10.0


def has_search_list(output: str) -> bool:
    """Check whether ``output`` contains both search list markers in order."""
    start = output.find(START_MARKER)
    return start != -1 and output.find(END_MARKER, start) != -1


def parse_search_paths(output: str) -> list[str]:
    """Extract include directories from compiler diagnostic text.

    :param output: Combined stdout/stderr of the compiler.
    :returns: Directories in the order printed. Empty if the markers are
        missing or the region between them is empty.
    """
    paths: list[str] = []
    in_search_list = False
    for line in output.splitlines():
        if not in_search_list:
            if START_MARKER in line:
                in_search_list = True
            continue
        if END_MARKER in line:
            return paths
        path = line.strip()
        if path.endswith(FRAMEWORK_SUFFIX):
            path = path[: -len(FRAMEWORK_SUFFIX)].rstrip()
        if path:
            paths.append(path)
    # Start marker without an end marker: the list is incomplete
    return []


class CompilerProbe:
    """Probe that scrapes the C compiler's verbose preprocessor output.

    :param cc: Compiler command, looked up on ``PATH``. May carry a wrapper or
        extra flags, as in ``CC="ccache gcc"``.
    :param timeout: Seconds to wait for the compiler before giving up.
    """

    OPTIONS = ("cc", "timeout")

    def __init__(self, cc: str = DEFAULT_CC, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.cc = cc
        self.timeout = timeout
        self.warnings: list[str] = []

    @property
    def name(self) -> str:
        return "compiler"

    @property
    def command(self) -> list[str]:
        return [*shlex.split(self.cc), *PROBE_ARGS]

    def run(self) -> str:
        """Run the compiler on empty input and return its combined output.

        A non-zero exit status is not an error here: some compilers complain
        about the empty translation unit but still print the search list.
        Bytes that are not UTF-8 (localized messages, odd paths) are replaced.

        :raises ToolchainError: If the compiler cannot be started or times out.
        """
        try:
            result = subprocess.run(
                self.command,
                input="",
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ToolchainError(f"C compiler not found: {self.cc}") from exc
        except subprocess.TimeoutExpired as exc:
            raise ToolchainError(f"C compiler {self.cc} did not finish within {self.timeout:g}s") from exc
        except OSError as exc:
            raise ToolchainError(f"Failed to run C compiler {self.cc}: {exc}") from exc
        except UnicodeError as exc:
            raise ToolchainError(f"Cannot decode output of C compiler {self.cc}: {exc}") from exc
        return result.stdout

    def probe(self) -> list[str]:
        self.warnings = []
        output = self.run()
        if not has_search_list(output):
            self.warnings.append(
                f"{self.cc} did not print an include search list; continuing without system include paths"
            )
        return parse_search_paths(output)


register_probe("compiler", CompilerProbe, is_default=True)
