"""Probe pipeline exceptions.

Decode and execution failures for a single resource kind are recovered into
snapshot warnings by the orchestrator; configuration and target-resolution
failures while setting up a collection are fatal to the request.
"""

from __future__ import annotations

from typing import Optional


class ProbeError(RuntimeError):
    """Base class for every probe pipeline failure."""


class DecodeError(ProbeError, ValueError):
    """OVN table payload is not valid under strict or quote-normalized parsing."""


class RowShapeError(DecodeError):
    """A table row's value count disagrees with the heading count."""

    def __init__(self, row_index: int, value_count: int, heading_count: int) -> None:
        super().__init__(
            f"row {row_index} has {value_count} values but {heading_count} headings"
        )
        self.row_index = row_index
        self.value_count = value_count
        self.heading_count = heading_count


class ConfigurationError(ProbeError):
    """Execution client is unconfigured or the request is invalid."""


class TargetResolutionError(ProbeError):
    """No running pod/container is available to execute probe commands."""


class ExecutionError(ProbeError):
    """Every ordered execution attempt failed.

    Carries the captured stderr and the target of the last attempt.
    """

    def __init__(self, message: str, stderr: str = "", target: Optional[object] = None) -> None:
        super().__init__(message)
        self.stderr = stderr
        self.target = target


class ProbeCancelledError(ProbeError):
    """The request was cancelled or its deadline passed."""
