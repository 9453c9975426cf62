"""Data model shared by every pipeline stage.

The pipeline threads a single :class:`BuildState` value through its stages.
The state is frozen: a stage that adds information returns a new state built
with :func:`dataclasses.replace`, so each stage can be tested on its own
with a hand-made state.

Stages
------
Stages run strictly in this order:

* :attr:`Stage.INITIALIZE` - resolve project and output directories
* :attr:`Stage.OS_GUARD` - reject unsupported host platforms
* :attr:`Stage.TOOLCHAIN_PROBE` - recover the compiler's include search paths
* :attr:`Stage.HEADER_DISCOVERY` - find the ibverbs header directory
* :attr:`Stage.HEADER_SYNTHESIS` - write the umbrella header
* :attr:`Stage.BINDING_GENERATION` - run the binding generator, queue link directives

Example
-------
::

    from ibverbs_build.pipeline import run_pipeline

    result = run_pipeline(out_dir="target/out")
    print(result.state.ib_headers)
    for directive in result.directives:
        print(directive)
"""

from __future__ import (
    annotations,
)

import enum
from dataclasses import (
    dataclass,
    field,
)
from pathlib import (
    Path,
)
from typing import (
    Optional,
    Protocol,
)

from ibverbs_build.directives import (
    Directive,
)

# =============================================================================
# Compiled-in constants
# =============================================================================

#: Conventional ibverbs header locations, highest priority first.
CANDIDATE_DIRS: tuple[str, ...] = (
    "/usr/local/include/infiniband",
    "/usr/include/infiniband",
)

#: File that must exist in a candidate for it to count as an installation.
SIGNATURE_FILE = "ib.h"

HEADER_EXTENSION = ".h"

#: Subdirectory used in the umbrella header's include directives.
LIBRARY_SUBDIR = "infiniband"

UMBRELLA_HEADER = "ibverbs.h"

#: Name passed to the linker (``-libverbs``).
LINK_LIBRARY = "ibverbs"

#: Values of :data:`os.name` the pipeline runs on.
SUPPORTED_OS_FAMILIES: tuple[str, ...] = ("posix",)


class Stage(enum.Enum):
    """Pipeline stages, in execution order."""

    INITIALIZE = "initialize"
    OS_GUARD = "os-guard"
    TOOLCHAIN_PROBE = "toolchain-probe"
    HEADER_DISCOVERY = "header-discovery"
    HEADER_SYNTHESIS = "header-synthesis"
    BINDING_GENERATION = "binding-generation"


# =============================================================================
# Build state
# =============================================================================


@dataclass(frozen=True)
class BuildState:
    """Everything the pipeline has learned so far.

    :param project_path: Canonical absolute path of the source root.
    :param out_path: Canonical absolute path of the build output directory.
    :param include_path: Include directories in compiler search priority order.
        Toolchain directories come first, the discovered header directory last.
    :param ib_headers: Header file names found in :attr:`header_dir`, sorted.
    :param header_dir: The selected header directory, or None before discovery.
    """

    project_path: Path
    out_path: Path
    include_path: tuple[Path, ...] = ()
    ib_headers: tuple[str, ...] = ()
    header_dir: Optional[Path] = None

    @property
    def umbrella_header(self) -> Path:
        """Where the synthesized umbrella header is written."""
        return self.out_path / UMBRELLA_HEADER


@dataclass
class BuildResult:
    """Outcome of a successful pipeline run.

    :param state: Final build state.
    :param umbrella_header: Path of the synthesized umbrella header.
    :param declarations: Path of the generated declarations file.
    :param directives: Directives for the host build system, in emission order.
    :param warnings: Non-fatal problems noticed during the run.
    """

    state: BuildState
    umbrella_header: Path
    declarations: Path
    directives: list[Directive] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


# =============================================================================
# Collaborator protocols
# =============================================================================


class ToolchainProbe(Protocol):  # pylint: disable=too-few-public-methods
    """Recovers the include search paths of the active C compiler.

    Implementations live in :mod:`ibverbs_build.probes`. A probe that runs
    but learns nothing returns an empty list; a probe that cannot run raises
    :class:`~ibverbs_build.errors.ToolchainError`.
    """

    # pylint: disable=unnecessary-ellipsis

    @property
    def name(self) -> str:
        """Registry name of this probe (e.g., ``"compiler"``)."""
        ...

    def probe(self) -> list[str]:
        """Return include directories in the compiler's search order."""
        ...


class BindingGenerator(Protocol):  # pylint: disable=too-few-public-methods
    """Turns the umbrella header into foreign-function declarations.

    Implementations live in :mod:`ibverbs_build.generators`. Only the
    input/output contract matters here: a header path goes in and a
    declarations file comes out. Failures raise
    :class:`~ibverbs_build.errors.GenerationError`.
    """

    # pylint: disable=unnecessary-ellipsis

    @property
    def name(self) -> str:
        """Registry name of this generator (e.g., ``"autopxd"``)."""
        ...

    @property
    def suffix(self) -> str:
        """File suffix of the declarations file (e.g., ``".pxd"``)."""
        ...

    def generate(self, header: Path, output: Path) -> None:
        """Generate declarations for ``header`` into ``output``."""
        ...
