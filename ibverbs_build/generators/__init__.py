"""Binding generators for ibverbs-build.

A binding generator reads the umbrella header and writes foreign-function
declarations for it. Generators are external collaborators: this package
only hands them a header path and an output path.

Available Generators
--------------------
autopxd
    Cython ``.pxd`` declarations via the autopxd2 library. Default.

bindgen
    Rust FFI declarations via the ``bindgen`` command-line tool. Available
    when ``bindgen`` is on ``PATH``.

Example
-------
::

    from ibverbs_build.generators import get_generator

    generator = get_generator("autopxd")
    generator.generate(Path("out/ibverbs.h"), Path("out/ibverbs.pxd"))
"""

from typing import (
    Any,
)

from ibverbs_build.model import (
    BindingGenerator,
)

_GENERATOR_REGISTRY: dict[str, type[BindingGenerator]] = {}
_DEFAULT_GENERATOR: str | None = None
_GENERATORS_LOADED: bool = False
_IMPORT_ERRORS: dict[str, str] = {}  # Why a generator module failed to load


def register_generator(name: str, generator_class: type[BindingGenerator], is_default: bool = False) -> None:
    """Register a binding generator.

    The first registered generator becomes the default unless ``is_default``
    is set on a later registration.

    :param name: Unique name for the generator (e.g., ``"autopxd"``).
    :param generator_class: Class implementing :class:`~ibverbs_build.model.BindingGenerator`.
        It may define an ``is_available()`` classmethod; generators without
        one are always available.
    :param is_default: If True, this becomes the default generator.
    """
    global _DEFAULT_GENERATOR  # pylint: disable=global-statement
    _GENERATOR_REGISTRY[name] = generator_class
    if is_default or _DEFAULT_GENERATOR is None:
        _DEFAULT_GENERATOR = name


def list_generators() -> list[str]:
    """List names of all registered generators."""
    _ensure_generators_loaded()
    return list(_GENERATOR_REGISTRY.keys())


def is_generator_available(name: str) -> bool:
    """Check if a generator is registered and its tooling is installed."""
    _ensure_generators_loaded()
    generator_class = _GENERATOR_REGISTRY.get(name)
    if generator_class is None:
        return False
    is_available = getattr(generator_class, "is_available", None)
    return True if is_available is None else bool(is_available())


def get_generator_info() -> list[dict[str, str | bool]]:
    """Get information about all known generators.

    :returns: List of dicts with name, available, default, description and suffix.
    """
    _ensure_generators_loaded()

    descriptions = {
        "autopxd": "Cython declarations via autopxd2",
        "bindgen": "Rust declarations via bindgen",
    }

    result: list[dict[str, str | bool]] = []
    for name in ["autopxd", "bindgen"]:  # Fixed order for display
        generator_class = _GENERATOR_REGISTRY.get(name)
        result.append(
            {
                "name": name,
                "available": is_generator_available(name),
                "default": name == _DEFAULT_GENERATOR,
                "description": descriptions.get(name, ""),
                "suffix": getattr(generator_class, "SUFFIX", ""),
            }
        )
    return result


def get_generator(name: str | None = None, **options: Any) -> BindingGenerator:
    """Get a new generator instance.

    :param name: Generator name, or None for the default generator.
    :param options: Keyword arguments for the generator's constructor.
        Options the generator does not accept are ignored.
    :raises ValueError: If the generator is unknown or its tooling is missing.
    """
    _ensure_generators_loaded()

    if name is None:
        name = get_default_generator()

    if name not in _GENERATOR_REGISTRY:
        if name in _IMPORT_ERRORS:
            raise ValueError(_IMPORT_ERRORS[name])
        available = ", ".join(_GENERATOR_REGISTRY.keys()) or "(none)"
        raise ValueError(f"Unknown generator: {name!r}. Available: {available}")

    if not is_generator_available(name):
        raise ValueError(f"Generator {name!r} is not available on this system")

    generator_class = _GENERATOR_REGISTRY[name]
    accepted = getattr(generator_class, "OPTIONS", ())
    return generator_class(**{k: v for k, v in options.items() if k in accepted})


def get_default_generator() -> str:
    """Get the name of the default generator.

    :raises ValueError: If no generators are registered.
    """
    _ensure_generators_loaded()

    if _DEFAULT_GENERATOR is None:
        raise ValueError("No generators available")
    return _DEFAULT_GENERATOR


def _ensure_generators_loaded() -> None:
    """Lazily import generator modules to populate the registry."""
    global _GENERATORS_LOADED  # pylint: disable=global-statement

    if _GENERATORS_LOADED:
        return

    _GENERATORS_LOADED = True

    # pylint: disable=import-outside-toplevel
    # autopxd pulls in pycparser and clang2, so it is only imported when needed
    try:
        from ibverbs_build.generators import (  # noqa: F401
            autopxd_generator,
        )
    except ImportError as e:
        _IMPORT_ERRORS["autopxd"] = (
            f"autopxd generator requires the autopxd2 package ({e}).\n" "Install with: pip install autopxd2"
        )

    from ibverbs_build.generators import (  # noqa: F401
        bindgen_generator,
    )
