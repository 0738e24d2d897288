"""Subprocess execution with per-invocation credential injection."""

from __future__ import annotations

import os
import re
import subprocess
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, TextIO, Union
from urllib.parse import quote, urlsplit, urlunsplit

import structlog

from .askpass import GITHUB_APP_TOKEN_VARIABLE, OAUTH_TOKEN_VARIABLE
from .errors import REDACTED, OperationError
from .token import AuthStrategyKind, TokenProvider

logger = structlog.get_logger(__name__)

ASKPASS_PATH = "/usr/local/bin/askpass.sh"
GITHUB_APP_ASKPASS_PATH = "/usr/local/bin/askpass_github_app.sh"

DEFAULT_ASKPASS: Mapping[AuthStrategyKind, str] = {
    AuthStrategyKind.STATIC_TOKEN: ASKPASS_PATH,
    AuthStrategyKind.GITHUB_APP: GITHUB_APP_ASKPASS_PATH,
}

TOKEN_VARIABLES: Mapping[AuthStrategyKind, str] = {
    AuthStrategyKind.STATIC_TOKEN: OAUTH_TOKEN_VARIABLE,
    AuthStrategyKind.GITHUB_APP: GITHUB_APP_TOKEN_VARIABLE,
}

_URL_USERINFO = re.compile(r"(?P<scheme>[A-Za-z][A-Za-z0-9+.-]*://)[^/\s@]+@")


def redact_args(args: Sequence[str]) -> List[str]:
    """Return ``args`` with the userinfo of any URL replaced by a placeholder."""

    redacted = []
    for arg in args:
        if "://" in arg and "@" in arg:
            try:
                parts = urlsplit(arg)
            except ValueError:
                redacted.append(REDACTED)
                continue
            host = parts.netloc.rsplit("@", 1)[-1]
            arg = urlunsplit((parts.scheme, f"{REDACTED}@{host}", parts.path, parts.query, parts.fragment))
        redacted.append(arg)
    return redacted


def redact_output(text: str, token: str) -> str:
    """Strip URL userinfo and every occurrence of ``token`` from tool output.

    Remotes persist in the repository, so later commands (submodule updates
    resolving relative URLs against ``origin``) can echo the credential too.
    """

    text = _URL_USERINFO.sub(lambda match: f"{match.group('scheme')}{REDACTED}@", text)
    if token:
        for form in {token, quote(token, safe="")}:
            text = text.replace(form, REDACTED)
    return text


class CommandRunner:
    """Run external tools inside a working directory on behalf of one session.

    Every child process inherits the host environment plus the bearer token
    and the ``GIT_ASKPASS`` helper for the active strategy. The SSL and LFS
    toggles are applied the same way, so they never leak into ``os.environ``
    and sessions with different settings can coexist in one process.
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
    ) -> None:
        self.directory = Path(directory)
        self.output = output
        self._credentials = credentials
        self._askpass = askpass or DEFAULT_ASKPASS[credentials.kind]

        self._toggles: Dict[str, str] = {}
        if skip_ssl_verification:
            self._toggles["GIT_SSL_NO_VERIFY"] = "true"
        if disable_git_lfs:
            self._toggles["GIT_LFS_SKIP_SMUDGE"] = "true"

    @property
    def strategy(self) -> AuthStrategyKind:
        return self._credentials.kind

    def environment(self, token: Optional[str] = None) -> Dict[str, str]:
        """Return the environment for the next child process."""

        env = dict(os.environ)
        env.update(self._toggles)
        env[TOKEN_VARIABLES[self.strategy]] = self._credentials.get_token() if token is None else token
        env["GIT_ASKPASS"] = self._askpass
        return env

    def run(
        self,
        name: str,
        *args: str,
        operation: str,
        discard_output: bool = False,
        capture: bool = False,
    ) -> subprocess.CompletedProcess:
        """Run ``name`` with ``args`` and raise :class:`OperationError` on failure.

        ``discard_output`` sends stdout and stderr to the null device and keeps
        any diagnostics out of the raised error; use it whenever the arguments
        carry credentials. ``capture`` returns stdout and stderr separately
        without echoing them to the output sink. Otherwise the combined output
        is written to the sink and attached to errors. Output that reaches the
        sink or an error always has the session token and URL userinfo removed.
        """

        command = [name, *map(str, args)]
        shown = redact_args(command)
        token = self._credentials.get_token()
        logger.debug("Running command", operation=operation, command=shown[:2])

        if discard_output:
            streams = {"stdout": subprocess.DEVNULL, "stderr": subprocess.DEVNULL}
        elif capture:
            streams = {"stdout": subprocess.PIPE, "stderr": subprocess.PIPE}
        else:
            streams = {"stdout": subprocess.PIPE, "stderr": subprocess.STDOUT}

        try:
            result = subprocess.run(
                command,
                cwd=str(self.directory),
                env=self.environment(token),
                text=True,
                check=False,
                **streams,
            )
        except OSError as exc:
            raise OperationError(operation, command=shown, reason=f"unable to run {name}: {exc.strerror}") from exc

        visible = None
        if not discard_output and not capture and result.stdout:
            visible = redact_output(result.stdout, token)
            if self.output is not None:
                self.output.write(visible)

        if result.returncode != 0:
            if discard_output:
                diagnostics = None
            elif capture:
                combined = "\n".join(part for part in (result.stderr, result.stdout) if part)
                diagnostics = redact_output(combined, token)
            else:
                diagnostics = visible
            logger.debug("Command failed", operation=operation, returncode=result.returncode)
            raise OperationError(operation, command=shown, returncode=result.returncode, output=diagnostics)

        return result
