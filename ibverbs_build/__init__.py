import json
import sys
from importlib.metadata import (
    version as get_version,
)

import click

from ibverbs_build import (
    directives,
)
from ibverbs_build.errors import (
    OrchestratorError,
)
from ibverbs_build.generators import (
    get_default_generator,
    get_generator,
    get_generator_info,
    is_generator_available,
)
from ibverbs_build.model import (
    BuildResult,
)
from ibverbs_build.pipeline import (
    run_pipeline,
)
from ibverbs_build.probes import (
    get_probe,
    list_probes,
)
from ibverbs_build.probes.compiler_probe import (
    DEFAULT_CC,
    DEFAULT_TIMEOUT,
)

__version__ = get_version("ibverbs-build")

__all__ = [
    "BuildResult",
    "OrchestratorError",
    "cli",
    "run_pipeline",
]


CONTEXT_SETTINGS: dict[str, list[str]] = dict(help_option_names=["-h", "--help"])


def _print_generators_human() -> None:
    """Print generator info in human-readable format."""
    info = get_generator_info()
    print("Available generators:")
    for generator in info:
        status = "[available]" if generator["available"] else "[not available]"
        default_marker = " (default)" if generator["default"] else ""
        print(f"  {generator['name']:10} {generator['description']} {status}{default_marker}")

    default = next((g["name"] for g in info if g["default"]), "none")
    print(f"\nDefault: {default}")


def _print_generators_json() -> None:
    """Print generator info in JSON format."""
    print(json.dumps({"generators": get_generator_info()}))


def resolve_generator(generator: str) -> str:
    """Resolve which generator to use.

    :param generator: Generator option value (auto, autopxd, bindgen).
    :returns: Resolved generator name.
    :raises SystemExit: If the requested generator is unavailable.
    """
    name = get_default_generator() if generator == "auto" else generator
    if not is_generator_available(name):
        click.echo(f"Error: {name} generator required but not available.", err=True)
        if name == "bindgen":
            click.echo("Install with: cargo install bindgen-cli", err=True)
        raise SystemExit(1)
    return name


def _emit_warnings(warnings: list[str], quiet: bool) -> None:
    if not quiet:
        directives.emit(directives.warning(message) for message in warnings)


@click.command(
    context_settings=CONTEXT_SETTINGS,
    help="""Prepare ibverbs bindings and link directives for a cargo build.

\b
Finds the InfiniBand verbs headers, writes an umbrella header and a
declarations file into OUT_DIR, and prints cargo directives on stdout.
""",
)
# === General options ===
@click.option("--version", "-v", is_flag=True, help="Print version and exit.")
@click.option(
    "--out-dir",
    "-o",
    envvar="OUT_DIR",
    metavar="<dir>",
    help="Build output directory (default: $OUT_DIR).",
)
@click.option(
    "--project-dir",
    envvar="CARGO_MANIFEST_DIR",
    default=".",
    show_default=True,
    metavar="<dir>",
    help="Project source root (default: $CARGO_MANIFEST_DIR).",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    help="Suppress warnings.",
)
@click.option(
    "--debug/--no-debug",
    default=False,
    help="Print debug info to stderr.",
)
# === Toolchain options ===
@click.option(
    "--probe",
    type=click.Choice(["compiler", "static"], case_sensitive=False),
    default="compiler",
    help="How to find the compiler's include paths (default: compiler).",
)
@click.option(
    "--cc",
    envvar="CC",
    default=DEFAULT_CC,
    metavar="<cmd>",
    help="C compiler command (default: $CC or cc).",
)
@click.option(
    "--probe-timeout",
    type=float,
    default=DEFAULT_TIMEOUT,
    metavar="<seconds>",
    help=f"Seconds to wait for the compiler (default: {DEFAULT_TIMEOUT:g}).",
)
@click.option(
    "--system-include",
    "-S",
    multiple=True,
    metavar="<dir>",
    help="[static] Include directory to report. Can be specified multiple times.",
)
# === Discovery options ===
@click.option(
    "--include-dir",
    "-I",
    envvar="IBVERBS_INCLUDE_DIR",
    metavar="<dir>",
    help="ibverbs header directory to try before the standard locations.",
)
# === Generator options ===
@click.option(
    "--generator",
    "-g",
    type=click.Choice(["auto", "autopxd", "bindgen"], case_sensitive=False),
    default="auto",
    help="Binding generator (default: auto, prefers autopxd).",
)
@click.option(
    "--list-generators",
    is_flag=True,
    help="List available generators and exit.",
)
@click.option(
    "--json",
    "json_output",
    is_flag=True,
    help="JSON output (with --list-generators).",
)
def cli(
    version: bool,
    out_dir: str | None,
    project_dir: str,
    quiet: bool,
    debug: bool,
    probe: str,
    cc: str,
    probe_timeout: float,
    system_include: tuple[str, ...],
    include_dir: str | None,
    generator: str,
    list_generators: bool,
    json_output: bool,
) -> None:
    if version:
        print(__version__)
        return

    if json_output and not list_generators:
        click.echo("Error: --json requires --list-generators", err=True)
        raise SystemExit(1)

    if list_generators:
        if json_output:
            _print_generators_json()
        else:
            _print_generators_human()
        return

    if system_include and probe != "static":
        click.echo(
            f"Error: --system-include requires --probe static (got {probe}).",
            err=True,
        )
        raise SystemExit(1)

    if probe_timeout <= 0:
        click.echo("Error: --probe-timeout must be positive.", err=True)
        raise SystemExit(1)

    if debug:
        print(f"[ibverbs-build] Probes: {', '.join(list_probes())}", file=sys.stderr)

    resolved_generator = resolve_generator(generator)

    try:
        result = run_pipeline(
            out_dir=out_dir,
            project_dir=project_dir,
            probe=get_probe(probe, cc=cc, timeout=probe_timeout, system_includes=system_include),
            generator=get_generator(resolved_generator, debug=debug),
            include_dir=include_dir,
            debug=debug,
        )
    except OrchestratorError as exc:
        _emit_warnings(exc.warnings, quiet)
        click.echo(f"error: {exc}", err=True)
        raise SystemExit(1) from exc

    _emit_warnings(result.warnings, quiet)
    directives.emit(result.directives)
