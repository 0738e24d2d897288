"""Authenticated git operations for materialising GitHub pull requests."""

from .errors import (
    ConfigurationError,
    DecodeError,
    GitClientError,
    InvalidURIError,
    OperationError,
    TokenProviderError,
)
from .git import GitClient
from .source import Source
from .token import (
    AuthStrategyKind,
    GitHubApp,
    InstallationTokenManager,
    StaticToken,
    StaticTokenProvider,
    resolve_credentials,
)

__all__ = [
    "AuthStrategyKind",
    "ConfigurationError",
    "DecodeError",
    "GitClient",
    "GitClientError",
    "GitHubApp",
    "InstallationTokenManager",
    "InvalidURIError",
    "OperationError",
    "Source",
    "StaticToken",
    "StaticTokenProvider",
    "TokenProviderError",
    "resolve_credentials",
]
