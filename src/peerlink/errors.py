"""Error hierarchy for peer orchestration.

Every error carries an HTTP-like ``status`` and a stable ``kind`` so the
Control API can place it in the response envelope without inspecting types.
"""

from __future__ import annotations


class PeerlinkError(Exception):
    """Base class for all peerlink errors."""

    status: int = 500
    kind: str = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TopologyError(PeerlinkError):
    """Raised when a topology declaration is invalid."""

    kind = "invalid_topology"


class NodeNotFoundError(PeerlinkError):
    """Node absent from the topology, or no registry value for it."""

    status = 404
    kind = "not_found"


class InvalidInputError(PeerlinkError):
    """Malformed request input."""

    status = 400
    kind = "invalid_input"


class UnsupportedConfigurationError(PeerlinkError):
    """No wiring path exists for the node's type/connection mode."""

    status = 500
    kind = "unsupported_configuration"


class UpstreamTimeout(PeerlinkError):
    """A registry or execution call exceeded its bounded wait."""

    kind = "upstream_timeout"


class RegistryTimeoutError(UpstreamTimeout):
    pass


class RegistryUnavailableError(PeerlinkError):
    """The key-value store could not be reached."""

    kind = "registry_unavailable"


class CommandFailed(PeerlinkError):
    """A command exited non-zero inside the node's runtime."""

    kind = "command_failed"

    def __init__(self, message: str, *, exit_code: int | None = None, output: str = "") -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.output = output


class BootstrapFailure(PeerlinkError):
    """The trusted-peer bootstrap did not produce a valid address."""

    kind = "bootstrap_failure"

    def __init__(self, message: str, *, stage: str | None = None, output: str = "") -> None:
        super().__init__(message)
        self.stage = stage
        self.output = output
