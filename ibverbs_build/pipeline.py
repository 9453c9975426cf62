"""The build orchestrator pipeline.

:func:`run_pipeline` runs the six stages in order and stops at the first
failure. Each stage is also exposed as a function taking and returning a
:class:`~ibverbs_build.model.BuildState`, so it can be run on its own.

Failure handling
----------------
Every failure is an :class:`~ibverbs_build.errors.OrchestratorError` tagged
with the stage it happened in. If the pipeline aborts during header
synthesis or binding generation, for any reason including an interrupt,
both output artifacts are removed, so the output directory holds either a
complete pair or neither file. Directives are only returned on success.
"""

from __future__ import (
    annotations,
)

import contextlib
import os
import sys
from collections.abc import (
    Iterable,
    Iterator,
)
from dataclasses import (
    replace,
)
from pathlib import (
    Path,
)

from ibverbs_build import (
    directives,
)
from ibverbs_build.discovery import (
    discover_headers,
)
from ibverbs_build.errors import (
    DiscoveryError,
    EnvironmentSetupError,
    GenerationError,
    OrchestratorError,
    ToolchainError,
)
from ibverbs_build.generators import (
    get_generator,
)
from ibverbs_build.model import (
    CANDIDATE_DIRS,
    LINK_LIBRARY,
    SIGNATURE_FILE,
    SUPPORTED_OS_FAMILIES,
    UMBRELLA_HEADER,
    BindingGenerator,
    BuildResult,
    BuildState,
    Stage,
    ToolchainProbe,
)
from ibverbs_build.probes import (
    get_probe,
)
from ibverbs_build.synthesis import (
    write_umbrella_header,
)


def _debug_print(msg: str) -> None:
    """Print debug message to stderr."""
    print(f"[ibverbs-build] {msg}", file=sys.stderr)


# =============================================================================
# Stages
# =============================================================================


def initialize(out_dir: str | os.PathLike[str] | None, project_dir: str | os.PathLike[str] = ".") -> BuildState:
    """Resolve the project and output directories.

    :param out_dir: Output directory supplied by the build environment.
    :param project_dir: Source root, the current directory by default.
    :raises EnvironmentSetupError: If a directory is missing or the output
        directory is not readable.
    """
    if out_dir is None or str(out_dir) == "":
        raise EnvironmentSetupError("Output directory is not set (OUT_DIR)")

    try:
        project_path = Path(project_dir).resolve(strict=True)
    except OSError as exc:
        raise EnvironmentSetupError(f"Project directory {project_dir} does not exist") from exc

    try:
        out_path = Path(out_dir).resolve(strict=True)
    except OSError as exc:
        raise EnvironmentSetupError(f"Output directory {out_dir} does not exist") from exc

    if not out_path.is_dir():
        raise EnvironmentSetupError(f"Output directory {out_path} is not a directory")
    if not os.access(out_path, os.R_OK):
        raise EnvironmentSetupError(f"Output directory {out_path} is not readable")

    return BuildState(project_path=project_path, out_path=out_path)


def check_os(os_family: str | None = None) -> None:
    """Reject host platforms that are not POSIX-like.

    :param os_family: Value to check, :data:`os.name` by default.
    :raises EnvironmentSetupError: If the platform is not supported.
    """
    family = os.name if os_family is None else os_family
    if family not in SUPPORTED_OS_FAMILIES:
        raise EnvironmentSetupError(
            f"Unsupported operating system family {family!r}; "
            f"supported: {', '.join(SUPPORTED_OS_FAMILIES)}"
        )


def probe_toolchain(state: BuildState, probe: ToolchainProbe) -> BuildState:
    """Append the compiler's include search paths to ``state.include_path``.

    :raises ToolchainError: If the probe cannot run.
    """
    paths = probe.probe()
    return replace(state, include_path=(*state.include_path, *(Path(p) for p in paths)))


def declarations_path(state: BuildState, generator: BindingGenerator) -> Path:
    """Where ``generator`` writes its declarations (``ibverbs.pxd``, ``ibverbs.rs``)."""
    return state.out_path / Path(UMBRELLA_HEADER).with_suffix(generator.suffix).name


def generate_bindings(state: BuildState, generator: BindingGenerator) -> Path:
    """Run ``generator`` on the umbrella header.

    :returns: Path of the declarations file.
    :raises GenerationError: If the generator fails or writes nothing.
    """
    output = declarations_path(state, generator)
    generator.generate(state.umbrella_header, output)
    if not output.is_file():
        raise GenerationError(f"{generator.name} did not write {output}")
    return output


# =============================================================================
# Driver
# =============================================================================


@contextlib.contextmanager
def _stage(stage: Stage, debug: bool) -> Iterator[None]:
    """Tag any orchestrator error raised inside the block with ``stage``."""
    if debug:
        _debug_print(f"Stage: {stage.value}")
    try:
        yield
    except OrchestratorError as exc:
        if exc.stage is None:
            exc.stage = stage
        raise


def _remove_artifacts(paths: Iterable[Path]) -> None:
    for path in paths:
        with contextlib.suppress(FileNotFoundError):
            path.unlink()


def run_pipeline(
    out_dir: str | os.PathLike[str] | None,
    project_dir: str | os.PathLike[str] = ".",
    probe: ToolchainProbe | None = None,
    generator: BindingGenerator | None = None,
    candidates: Iterable[str | os.PathLike[str]] = CANDIDATE_DIRS,
    include_dir: str | os.PathLike[str] | None = None,
    signature: str = SIGNATURE_FILE,
    debug: bool = False,
) -> BuildResult:
    """Run every stage and return the artifacts and directives.

    :param out_dir: Output directory (cargo's ``OUT_DIR``).
    :param project_dir: Source root.
    :param probe: Toolchain probe, the registry default if None.
    :param generator: Binding generator, the registry default if None.
    :param candidates: Header directories to search, highest priority first.
    :param include_dir: Directory to try before ``candidates``.
    :param signature: File that marks a genuine installation.
    :param debug: Print progress to stderr.
    :returns: :class:`~ibverbs_build.model.BuildResult` of the run.
    :raises OrchestratorError: On the first failing stage, with ``stage`` set
        and the warnings collected so far in ``warnings``.
    """
    warnings: list[str] = []
    queued: list[directives.Directive] = []

    try:
        with _stage(Stage.INITIALIZE, debug):
            state = initialize(out_dir, project_dir)
            if debug:
                _debug_print(f"Project: {state.project_path}")
                _debug_print(f"Output: {state.out_path}")

        with _stage(Stage.OS_GUARD, debug):
            check_os()

        with _stage(Stage.TOOLCHAIN_PROBE, debug):
            if probe is None:
                try:
                    probe = get_probe()
                except ValueError as exc:
                    raise ToolchainError(str(exc)) from exc
            state = probe_toolchain(state, probe)
            warnings.extend(getattr(probe, "warnings", ()))
            if not state.include_path and not warnings:
                warnings.append(f"{probe.name} probe found no include search paths")
            if debug:
                for path in state.include_path:
                    _debug_print(f"  include: {path}")

        with _stage(Stage.HEADER_DISCOVERY, debug):
            search = [include_dir, *candidates] if include_dir else list(candidates)
            state = discover_headers(state, search, signature)
            try:
                queued.append(directives.rerun_if_changed(str(state.header_dir)))
            except ValueError as exc:
                raise DiscoveryError(f"Header directory {state.header_dir!r} cannot be passed to cargo") from exc
            if debug:
                _debug_print(f"Headers in {state.header_dir}: {', '.join(state.ib_headers)}")

        try:
            with _stage(Stage.HEADER_SYNTHESIS, debug):
                umbrella = write_umbrella_header(state)

            with _stage(Stage.BINDING_GENERATION, debug):
                if generator is None:
                    try:
                        generator = get_generator()
                    except ValueError as exc:
                        raise GenerationError(str(exc)) from exc
                declarations = generate_bindings(state, generator)
                queued.append(directives.link_lib(LINK_LIBRARY))
        except BaseException:
            # Neither artifact may outlive a failed or interrupted run
            leftovers = [state.umbrella_header]
            if generator is not None:
                leftovers.append(declarations_path(state, generator))
            _remove_artifacts(leftovers)
            raise
    except OrchestratorError as exc:
        exc.warnings = warnings
        raise

    if debug:
        _debug_print(f"Wrote {umbrella} and {declarations}")

    return BuildResult(
        state=state,
        umbrella_header=umbrella,
        declarations=declarations,
        directives=queued,
        warnings=warnings,
    )
