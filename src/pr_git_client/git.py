"""Git operations used to materialise pull requests in a working directory."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, TextIO, Union
from urllib.parse import SplitResult, quote, urlsplit, urlunsplit

import structlog

from . import crypt
from .askpass import GITHUB_APP_PRINCIPAL, OAUTH_PRINCIPAL
from .errors import ConfigurationError, InvalidURIError
from .runner import CommandRunner
from .source import Source
from .token import AuthStrategyKind, TokenProvider, resolve_credentials

logger = structlog.get_logger(__name__)

COMMITTER_NAME = "concourse-ci"
COMMITTER_EMAIL = "concourse@local"


def _parse_uri(uri: str) -> SplitResult:
    try:
        parts = urlsplit(uri)
        parts.port  # Raises ValueError for a malformed port.
    except ValueError as exc:
        raise InvalidURIError(f"failed to parse commit url: {exc}") from exc
    if not parts.scheme or not parts.hostname:
        raise InvalidURIError(f"failed to parse commit url: missing scheme or host in {uri!r}")
    return parts


def _depth_args(depth: int) -> List[str]:
    return ["--depth", str(depth)] if depth > 0 else []


class GitClient:
    """Drive git in one working directory with the session's credentials.

    The client keeps no state of its own between calls; the repository on
    disk is the state. Conflicts from merge or rebase are reported as
    :class:`~pr_git_client.errors.OperationError` and the working directory
    is left as git left it.
    """

    def __init__(
        self,
        directory: Union[str, Path],
        credentials: TokenProvider,
        *,
        output: Optional[TextIO] = None,
        askpass: Optional[str] = None,
        skip_ssl_verification: bool = False,
        disable_git_lfs: bool = False,
        git_crypt: str = "git-crypt",
    ) -> None:
        self._directory = Path(directory)
        if not self._directory.is_dir():
            raise ConfigurationError(f"{self._directory} is not a directory")

        self._credentials = credentials
        self._git_crypt = git_crypt
        self._runner = CommandRunner(
            self._directory,
            credentials,
            output=output,
            askpass=askpass,
            skip_ssl_verification=skip_ssl_verification,
            disable_git_lfs=disable_git_lfs,
        )

    @classmethod
    def from_source(
        cls,
        source: Source,
        directory: Union[str, Path],
        *,
        output: Optional[TextIO] = None,
        **kwargs,
    ) -> "GitClient":
        """Validate ``source``, resolve its credentials and build a client."""

        source.validate()
        credentials = resolve_credentials(source.auth_strategy(), base_url=source.api_base_url)
        logger.debug("Git client created", strategy=credentials.kind.value, directory=str(directory))
        return cls(
            directory,
            credentials,
            output=output,
            skip_ssl_verification=source.skip_ssl_verification,
            disable_git_lfs=source.disable_git_lfs,
            **kwargs,
        )

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def strategy(self) -> AuthStrategyKind:
        return self._credentials.kind

    def _git(self, *args: str, operation: str, discard_output: bool = False, capture: bool = False):
        return self._runner.run("git", *args, operation=operation, discard_output=discard_output, capture=capture)

    def endpoint(self, uri: str) -> str:
        """Return ``uri`` with the session's token embedded as basic-auth credentials."""

        parts = _parse_uri(uri)
        host = parts.netloc.rsplit("@", 1)[-1]
        userinfo = f"{OAUTH_PRINCIPAL}:{quote(self._credentials.get_token(), safe='')}"
        return urlunsplit((parts.scheme, f"{userinfo}@{host}", parts.path, parts.query, parts.fragment))

    def _remote_target(self, uri: str) -> str:
        if self.strategy is AuthStrategyKind.GITHUB_APP:
            # The askpass helper supplies the installation token.
            _parse_uri(uri)
            return uri
        return self.endpoint(uri)

    def init(self, branch: str) -> None:
        """Create an empty repository on ``branch`` with the bot identity and URL rewrites."""

        logger.info("Initialising repository", branch=branch)
        self._git("init", operation="init")
        self._git("checkout", "-b", branch, operation=f"checkout to '{branch}'")
        self._git("config", "user.name", COMMITTER_NAME, operation="configure git user")
        self._git("config", "user.email", COMMITTER_EMAIL, operation="configure git email")

        if self.strategy is AuthStrategyKind.GITHUB_APP:
            self._git(
                "config",
                f"url.https://{GITHUB_APP_PRINCIPAL}@github.com/.insteadOf",
                "git@github.com:",
                operation="configure github url for github app",
            )
        else:
            self._git(
                "config",
                f"url.https://{OAUTH_PRINCIPAL}@github.com/.insteadOf",
                "git@github.com:",
                operation="configure github url for oauth",
            )
        self._git("config", "url.https://.insteadOf", "git://", operation="configure github url")

    def pull(
        self,
        uri: str,
        branch: str,
        depth: int = 0,
        submodules: bool = False,
        fetch_tags: bool = False,
    ) -> None:
        """Add ``origin`` for ``uri`` and pull ``branch`` from it."""

        target = self._remote_target(uri)
        logger.info("Pulling branch", branch=branch, depth=depth, submodules=submodules, fetch_tags=fetch_tags)

        self._git("remote", "add", "origin", target, operation="setting 'origin' remote", discard_output=True)

        args = ["pull", "origin", branch, *_depth_args(depth)]
        if fetch_tags:
            args.append("--tags")
        if submodules:
            args.append("--recurse-submodules")
        self._git(*args, operation="pull", discard_output=True)

        if submodules:
            self._git("submodule", "update", "--init", "--recursive", operation="submodule update")

    def fetch(self, uri: str, pr_number: int, depth: int = 0, submodules: bool = False) -> None:
        """Fetch the head of pull request ``pr_number`` into ``FETCH_HEAD``."""

        target = self._remote_target(uri)
        logger.info("Fetching pull request head", pr_number=pr_number, depth=depth, submodules=submodules)

        args = ["fetch", target, f"pull/{pr_number}/head", *_depth_args(depth)]
        if submodules:
            args.append("--recurse-submodules")
        self._git(*args, operation="fetch", discard_output=True)

        if submodules:
            self._git("submodule", "update", "--init", "--recursive", operation="submodule update")

    def rev_parse(self, branch: str) -> str:
        """Return the commit SHA ``branch`` points at."""

        result = self._git("rev-parse", "--verify", branch, operation=f"rev-parse '{branch}'", capture=True)
        return result.stdout.strip()

    def checkout(self, branch: str, sha: str, submodules: bool = False) -> None:
        """Create ``branch`` at ``sha`` and switch to it."""

        logger.info("Checking out commit", branch=branch, sha=sha, submodules=submodules)
        self._git("checkout", "-b", branch, sha, operation="checkout")
        if submodules:
            self._git("submodule", "update", "--init", "--recursive", "--checkout", operation="submodule update")

    def merge(self, sha: str, submodules: bool = False) -> None:
        """Merge ``sha`` into the current branch."""

        logger.info("Merging commit", sha=sha, submodules=submodules)
        self._git("merge", sha, "--no-stat", operation="merge")
        if submodules:
            self._git("submodule", "update", "--init", "--recursive", "--merge", operation="submodule update")

    def rebase(self, base_ref: str, head_sha: str, submodules: bool = False) -> None:
        """Rebase ``head_sha`` onto ``base_ref``."""

        logger.info("Rebasing commit", base_ref=base_ref, head_sha=head_sha, submodules=submodules)
        self._git("rebase", base_ref, head_sha, operation="rebase")
        if submodules:
            self._git("submodule", "update", "--init", "--recursive", "--rebase", operation="submodule update")

    def git_crypt_unlock(self, encoded_key: str) -> None:
        """Unlock git-crypt protected files with a base64 encoded symmetric key."""

        crypt.unlock(self._runner, encoded_key, executable=self._git_crypt)
