"""Helper utilities for exchanging GitHub App credentials for installation tokens."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

import jwt
import requests
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

DEFAULT_BASE_URL = "https://api.github.com"
USER_AGENT = "pr-git-client/0.1.0"


class GitHubAppError(RuntimeError):
    """Raised when a GitHub App operation fails."""


def normalize_base_url(base_url: Optional[str]) -> str:
    """Return the REST API root for github.com or a GitHub Enterprise instance.

    Accepts a v3 endpoint as configured for the resource (``https://host/api/v3/``)
    or a bare hostname, in which case the ``/api/v3`` suffix is appended for
    anything other than github.com.
    """

    cleaned = (base_url or DEFAULT_BASE_URL).strip().rstrip("/")
    if not cleaned:
        return DEFAULT_BASE_URL

    if "://" not in cleaned:
        host = cleaned.lower()
        if host == "api.github.com":
            return DEFAULT_BASE_URL
        if "/api/v3" not in host:
            host = f"{host}/api/v3"
        cleaned = f"https://{host}"

    return cleaned


def load_private_key(pem: Union[str, bytes]) -> RSAPrivateKey:
    """Parse a PEM encoded RSA private key into a signing key."""

    data = pem.encode() if isinstance(pem, str) else pem
    try:
        key = serialization.load_pem_private_key(data.strip(), password=None)
    except (ValueError, TypeError) as exc:
        raise GitHubAppError(f"Unable to load private key: {exc}") from exc

    if not isinstance(key, RSAPrivateKey):
        raise GitHubAppError("GitHub App private key must be an RSA key")
    return key


def generate_jwt(app_id: Union[int, str], expiry_minutes: int, private_key: RSAPrivateKey) -> str:
    """Generate a JWT signed with the GitHub App's private key."""

    if not app_id:
        raise GitHubAppError("GitHub App ID must be provided")

    if expiry_minutes < 1 or expiry_minutes > 10:
        expiry_minutes = 10

    now = datetime.now(timezone.utc)
    payload = {
        "iat": now - timedelta(seconds=60),
        "exp": now + timedelta(minutes=expiry_minutes),
        "iss": str(app_id),
    }

    try:
        return jwt.encode(payload, private_key, algorithm="RS256")
    except Exception as exc:  # pragma: no cover - PyJWT wraps multiple errors.
        raise GitHubAppError("Unable to sign JWT") from exc


class GitHubAppClient:
    """HTTP client used to request installation tokens from the GitHub App API."""

    base_url: str
    session: requests.Session

    def __init__(self, base_url: Optional[str] = None, session: Optional[requests.Session] = None) -> None:
        self.base_url = normalize_base_url(base_url)
        self.session = session or requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        *,
        bearer: Optional[str] = None,
    ) -> requests.Response:
        """Perform an HTTP request with the headers required by GitHub."""

        url = f"{self.base_url}{path}"
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": USER_AGENT,
        }
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"

        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                timeout=20,
            )
        except requests.RequestException as exc:
            raise GitHubAppError(f"Request to {url} failed: {exc}") from exc

        return response

    def generate_installation_token(self, jwt_token: str, installation_id: Union[int, str]) -> Dict[str, Any]:
        """Create an installation access token for the given installation ID."""

        response = self._request(
            "POST",
            f"/app/installations/{installation_id}/access_tokens",
            bearer=jwt_token,
        )

        if response.status_code != 201:
            raise GitHubAppError(
                f"Failed generating installation token: unexpected status {response.status_code}"
            )

        try:
            payload = response.json()
        except json.JSONDecodeError as exc:
            raise GitHubAppError("Unable to decode installation token response") from exc

        if not isinstance(payload, dict):
            raise GitHubAppError("Unexpected token response format")

        return payload
