"""Toolchain probes for ibverbs-build.

A probe answers one question: which directories does the active C compiler
search for ``#include <...>``? Scraping compiler diagnostics is fragile, so
the strategy is kept behind the :class:`~ibverbs_build.model.ToolchainProbe`
protocol and selected by name.

Available Probes
----------------
compiler
    Runs the system C compiler with ``-Wp,-v`` and parses the search list it
    prints. Default.

static
    Returns directories given by the caller. Useful for cross builds, or
    when the compiler's output cannot be trusted.

Example
-------
::

    from ibverbs_build.probes import get_probe

    probe = get_probe("compiler", cc="gcc")
    for path in probe.probe():
        print(path)
"""

from typing import (
    Any,
)

from ibverbs_build.model import (
    ToolchainProbe,
)

# Probes register themselves when their module is imported
_PROBE_REGISTRY: dict[str, type[ToolchainProbe]] = {}
_DEFAULT_PROBE: str | None = None
_PROBES_LOADED: bool = False


def register_probe(name: str, probe_class: type[ToolchainProbe], is_default: bool = False) -> None:
    """Register a toolchain probe.

    The first registered probe becomes the default unless ``is_default`` is
    set on a later registration.

    :param name: Unique name for the probe (e.g., ``"compiler"``).
    :param probe_class: Class implementing :class:`~ibverbs_build.model.ToolchainProbe`.
    :param is_default: If True, this becomes the default probe for :func:`get_probe`.
    """
    global _DEFAULT_PROBE  # pylint: disable=global-statement
    _PROBE_REGISTRY[name] = probe_class
    if is_default or _DEFAULT_PROBE is None:
        _DEFAULT_PROBE = name


def list_probes() -> list[str]:
    """List names of all registered probes."""
    _ensure_probes_loaded()
    return list(_PROBE_REGISTRY.keys())


def is_probe_available(name: str) -> bool:
    """Check if a probe is registered under ``name``."""
    _ensure_probes_loaded()
    return name in _PROBE_REGISTRY


def get_probe_info() -> list[dict[str, str | bool]]:
    """Get name, default flag and description of every registered probe."""
    _ensure_probes_loaded()

    descriptions = {
        "compiler": "Parse the C compiler's include search list",
        "static": "Use caller-supplied include directories",
    }

    return [
        {
            "name": name,
            "default": name == _DEFAULT_PROBE,
            "description": descriptions.get(name, ""),
        }
        for name in _PROBE_REGISTRY
    ]


def get_probe(name: str | None = None, **options: Any) -> ToolchainProbe:
    """Get a new probe instance.

    :param name: Probe name, or None for the default probe.
    :param options: Keyword arguments for the probe's constructor. Options the
        probe does not accept are ignored, so callers can pass every setting.
    :returns: New instance of the requested probe.
    :raises ValueError: If no probe is registered under ``name``.
    """
    _ensure_probes_loaded()

    if name is None:
        if _DEFAULT_PROBE is None:
            raise ValueError("No probes available")
        name = _DEFAULT_PROBE

    if name not in _PROBE_REGISTRY:
        available = ", ".join(_PROBE_REGISTRY.keys()) or "(none)"
        raise ValueError(f"Unknown probe: {name!r}. Available: {available}")

    probe_class = _PROBE_REGISTRY[name]
    accepted = getattr(probe_class, "OPTIONS", ())
    return probe_class(**{k: v for k, v in options.items() if k in accepted})


def get_default_probe() -> str:
    """Get the name of the default probe.

    :raises ValueError: If no probes are registered.
    """
    _ensure_probes_loaded()

    if _DEFAULT_PROBE is None:
        raise ValueError("No probes available")
    return _DEFAULT_PROBE


def _ensure_probes_loaded() -> None:
    """Lazily import probe modules to populate the registry."""
    global _PROBES_LOADED  # pylint: disable=global-statement

    if _PROBES_LOADED:
        return

    _PROBES_LOADED = True

    # pylint: disable=import-outside-toplevel
    from ibverbs_build.probes import (  # noqa: F401
        compiler_probe,
        static_probe,
    )
