"""Exceptions raised by the git client."""

from __future__ import annotations

from typing import Optional, Sequence

REDACTED = "<redacted>"


class GitClientError(RuntimeError):
    """Base class for every error raised by this package."""


class ConfigurationError(GitClientError):
    """Raised when the source configuration or auth fields are invalid."""


class TokenProviderError(GitClientError):
    """Raised when generating or refreshing a GitHub installation token fails."""


class DecodeError(GitClientError):
    """Raised when a base64 encoded secret cannot be decoded."""


class InvalidURIError(GitClientError):
    """Raised when a repository URI cannot be turned into an endpoint."""


class OperationError(GitClientError):
    """Raised when an external tool exits with a non-zero code.

    ``output`` is ``None`` for credential-bearing operations, whose output is
    discarded instead of captured.
    """

    def __init__(
        self,
        operation: str,
        *,
        command: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        output: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        message = f"{operation} failed"
        if reason:
            message = f"{message}: {reason}"
        elif returncode is not None:
            message = f"{message}: exit status {returncode}"
        if output and output.strip():
            message = f"{message}: {output.strip()}"
        super().__init__(message)
        self.operation = operation
        self.command = list(command) if command is not None else []
        self.returncode = returncode
        self.output = output
