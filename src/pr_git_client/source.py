"""Source configuration record consumed by the git client."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Mapping, Optional, Union

from .errors import ConfigurationError
from .token import AuthStrategy, GitHubApp, StaticToken


@dataclass
class Source:
    """Repository and authentication settings for one pipeline stage."""

    repository: str = ""
    access_token: str = field(default="", repr=False)
    v3_endpoint: str = ""
    v4_endpoint: str = ""
    use_github_app: bool = False
    application_id: Union[int, str] = 0
    installation_id: Union[int, str] = 0
    private_key: str = field(default="", repr=False)
    skip_ssl_verification: bool = False
    disable_git_lfs: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Source":
        """Build a source from the resource's JSON ``source`` object, ignoring unknown keys."""

        known = {f.name for f in fields(cls)}
        return cls(**{key: value for key, value in data.items() if key in known})

    def validate(self) -> None:
        """Raise :class:`ConfigurationError` describing the first invalid field."""

        if not self.repository:
            raise ConfigurationError("repository must be set")
        if not self.access_token and not self.use_github_app:
            raise ConfigurationError("access_token must be set if not using GitHub App authentication")
        if self.use_github_app:
            if self.access_token:
                raise ConfigurationError("access_token is not required when using GitHub App authentication")
            if not self.private_key:
                raise ConfigurationError("private_key should be supplied if using GitHub App authentication")
            if not self.application_id or not self.installation_id:
                raise ConfigurationError(
                    "application_id and installation_id must be set if using GitHub App authentication"
                )
        if self.v3_endpoint and not self.v4_endpoint:
            raise ConfigurationError("v4_endpoint must be set together with v3_endpoint")
        if self.v4_endpoint and not self.v3_endpoint:
            raise ConfigurationError("v3_endpoint must be set together with v4_endpoint")

    def auth_strategy(self) -> AuthStrategy:
        """Return the authentication strategy selected by this source."""

        if self.use_github_app:
            return GitHubApp(
                application_id=self.application_id,
                installation_id=self.installation_id,
                private_key=self.private_key,
            )
        return StaticToken(self.access_token)

    @property
    def api_base_url(self) -> Optional[str]:
        return self.v3_endpoint or None
