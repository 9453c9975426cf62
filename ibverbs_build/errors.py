"""Typed failures raised by the build orchestrator.

Every stage raises a subclass of :class:`OrchestratorError`. The pipeline
tags the error with the stage it aborted in, and the CLI turns it into a
single diagnostic line and a non-zero exit.

Error Types
-----------
* :class:`EnvironmentSetupError` - unsupported OS, missing or unreadable output directory
* :class:`ToolchainError` - the C compiler could not be run or did not finish
* :class:`DiscoveryError` - no candidate header directory qualified
* :class:`HeaderWriteError` - reading the header directory or writing an artifact failed
* :class:`GenerationError` - the binding generator failed

The builtin names ``EnvironmentError`` and ``IOError`` are aliases of
:class:`OSError`, so the classes here use distinct names.
"""

from __future__ import (
    annotations,
)

from typing import (
    TYPE_CHECKING,
)

if TYPE_CHECKING:
    from ibverbs_build.model import (
        Stage,
    )


class OrchestratorError(Exception):
    """Base class for all pipeline failures.

    :param message: Human readable description of the failure.
    :param stage: Stage the pipeline aborted in. Left as None by the code
        raising the error; :func:`ibverbs_build.pipeline.run_pipeline` fills it in.
    """

    def __init__(self, message: str, stage: Stage | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.warnings: list[str] = []

    def __str__(self) -> str:
        if self.stage is None:
            return self.message
        return f"{self.stage.value}: {self.message}"


class EnvironmentSetupError(OrchestratorError):
    """The host or the build environment cannot run the pipeline."""


class ToolchainError(OrchestratorError):
    """The C compiler could not be invoked or did not finish in time."""


class DiscoveryError(OrchestratorError):
    """No candidate directory holds the library headers."""


class HeaderWriteError(OrchestratorError):
    """A directory could not be read or an artifact could not be written."""


class GenerationError(OrchestratorError):
    """The binding generator failed."""
