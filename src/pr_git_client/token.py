"""Credential providers for authenticated git operations."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

import structlog

from .errors import ConfigurationError, TokenProviderError
from .github import GitHubAppClient, GitHubAppError, generate_jwt, load_private_key

logger = structlog.get_logger(__name__)

TokenPayload = Dict[str, Any]


class AuthStrategyKind(enum.Enum):
    """Tag of the active authentication strategy."""

    STATIC_TOKEN = "static_token"
    GITHUB_APP = "github_app"


@dataclass(frozen=True)
class StaticToken:
    """A long-lived access token used as-is."""

    value: str = field(repr=False)

    kind = AuthStrategyKind.STATIC_TOKEN


@dataclass(frozen=True)
class GitHubApp:
    """GitHub App credentials exchanged for short-lived installation tokens."""

    application_id: Union[int, str]
    installation_id: Union[int, str]
    private_key: str = field(repr=False)

    kind = AuthStrategyKind.GITHUB_APP


AuthStrategy = Union[StaticToken, GitHubApp]


def _parse_expiration(timestamp: str) -> datetime:
    """Convert an ISO formatted timestamp from the GitHub API into a datetime."""

    try:
        normalized = timestamp.replace("Z", "+00:00")
        return datetime.fromisoformat(normalized).astimezone(timezone.utc)
    except ValueError as exc:
        raise TokenProviderError("Installation token payload includes invalid expires_at value") from exc


class StaticTokenProvider:
    """Return a static access token without any I/O."""

    kind = AuthStrategyKind.STATIC_TOKEN

    def __init__(self, token: str) -> None:
        self._token = token

    def get_token(self, *, force_refresh: bool = False) -> str:
        return self._token

    def __repr__(self) -> str:
        return "StaticTokenProvider(token=<redacted>)"


class InstallationTokenManager:
    """Generate and cache GitHub App installation tokens.

    The private key is parsed into a signing key when the manager is built, so
    a bad key fails before any git command runs. Tokens are requested lazily on
    the first :meth:`get_token` call and refreshed automatically when they are
    close to expiring, so a long-running session never hands git a stale token.
    """

    kind = AuthStrategyKind.GITHUB_APP

    def __init__(
        self,
        *,
        app_id: Union[int, str],
        installation_id: Union[int, str],
        private_key: str,
        base_url: Optional[str] = None,
        client: Optional[GitHubAppClient] = None,
        jwt_duration: int = 10,
        refresh_slack: timedelta = timedelta(minutes=1),
    ) -> None:
        if not private_key:
            raise ConfigurationError("private_key should be supplied if using GitHub App authentication")
        if not app_id or not installation_id:
            raise ConfigurationError(
                "application_id and installation_id must be set if using GitHub App authentication"
            )

        try:
            self._signing_key = load_private_key(private_key)
        except GitHubAppError as exc:
            raise ConfigurationError(
                f"failed to generate application installation access token using private key: {exc}"
            ) from exc

        self._app_id = app_id
        self._installation_id = installation_id
        self._client = client or GitHubAppClient(base_url)
        self._jwt_duration = jwt_duration
        self._refresh_slack = refresh_slack

        self._cached_token: Optional[str] = None
        self._cached_expiry: Optional[datetime] = None

    def __repr__(self) -> str:
        return f"InstallationTokenManager(app_id={self._app_id!r}, installation_id={self._installation_id!r})"

    @property
    def installation_id(self) -> Union[int, str]:
        return self._installation_id

    def get_token(self, *, force_refresh: bool = False) -> str:
        """Return a valid installation token, refreshing it when required."""

        if not force_refresh and self._cached_token and self._cached_expiry:
            now = datetime.now(timezone.utc)
            if now + self._refresh_slack < self._cached_expiry:
                return self._cached_token

        self._refresh_token()
        assert self._cached_token is not None  # For mypy.
        return self._cached_token

    def _refresh_token(self) -> None:
        """Generate a new installation token and update cached state."""

        logger.debug("Requesting installation token", installation_id=self._installation_id)
        try:
            jwt_token = generate_jwt(self._app_id, self._jwt_duration, self._signing_key)
            payload = self._client.generate_installation_token(jwt_token, self._installation_id)
        except GitHubAppError as exc:
            raise TokenProviderError(str(exc)) from exc

        token_value = payload.get("token")
        expiry_raw = payload.get("expires_at")
        if token_value is None:
            raise TokenProviderError("Installation token payload missing 'token'")
        if expiry_raw is None:
            raise TokenProviderError("Installation token payload missing 'expires_at'")

        self._cached_expiry = _parse_expiration(str(expiry_raw))
        self._cached_token = str(token_value)
        logger.info(
            "Installation token refreshed",
            installation_id=self._installation_id,
            expires_at=self._cached_expiry.isoformat(),
        )


TokenProvider = Union[StaticTokenProvider, InstallationTokenManager]


def resolve_credentials(
    strategy: AuthStrategy,
    *,
    base_url: Optional[str] = None,
    client: Optional[GitHubAppClient] = None,
) -> TokenProvider:
    """Build the token provider for the given authentication strategy."""

    if isinstance(strategy, GitHubApp):
        return InstallationTokenManager(
            app_id=strategy.application_id,
            installation_id=strategy.installation_id,
            private_key=strategy.private_key,
            base_url=base_url,
            client=client,
        )
    if isinstance(strategy, StaticToken):
        return StaticTokenProvider(strategy.value)
    raise ConfigurationError(f"Unsupported authentication strategy: {type(strategy).__name__}")
