"""Shared fixtures for the pr_git_client tests."""

import shutil
import subprocess
from pathlib import Path
from typing import Any, Callable, Generator, List, Optional

import pytest
import structlog
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from pr_git_client.token import StaticTokenProvider

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git executable not available")


@pytest.fixture(autouse=True)
def configure_structlog() -> Generator[None, None, None]:
    """Route structlog through the standard library so caplog can see events."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


@pytest.fixture(scope="session")
def rsa_key() -> rsa.RSAPrivateKey:
    """An RSA key for signing GitHub App JWTs."""
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def private_key_pem(rsa_key: rsa.RSAPrivateKey) -> str:
    """The PEM text of ``rsa_key``."""
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()


@pytest.fixture
def static_credentials() -> StaticTokenProvider:
    """Credentials for the static token strategy."""
    return StaticTokenProvider("tok")


class FakeRun:
    """Stand-in for ``subprocess.run`` that records every command."""

    def __init__(self) -> None:
        self.calls: List[dict] = []
        self.failures: List[Callable[[List[str]], bool]] = []
        self.stdout: str = ""
        self.failure_output: str = "error: boom"

    def fail_when(self, predicate: Callable[[List[str]], bool]) -> None:
        self.failures.append(predicate)

    @property
    def commands(self) -> List[List[str]]:
        return [call["command"] for call in self.calls]

    def find(self, *prefix: str) -> Optional[dict]:
        for call in self.calls:
            if call["command"][: len(prefix)] == list(prefix):
                return call
        return None

    def __call__(self, command: List[str], **kwargs: Any) -> subprocess.CompletedProcess:
        self.calls.append({"command": list(command), **kwargs})
        returncode = 1 if any(predicate(command) for predicate in self.failures) else 0
        output = self.failure_output if returncode else self.stdout
        stdout = None if kwargs.get("stdout") is subprocess.DEVNULL else output
        return subprocess.CompletedProcess(command, returncode, stdout=stdout, stderr=None)


@pytest.fixture
def fake_run(monkeypatch: pytest.MonkeyPatch) -> FakeRun:
    """Replace subprocess execution in the runner with a recorder."""
    recorder = FakeRun()
    monkeypatch.setattr("pr_git_client.runner.subprocess.run", recorder)
    return recorder


def git(repo: Path, *args: str) -> str:
    """Run git directly in ``repo`` for test setup."""
    result = subprocess.run(
        ["git", "-c", "commit.gpgsign=false", *args],
        cwd=str(repo),
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


def commit_file(repo: Path, name: str, content: str, message: str) -> str:
    """Write ``content`` to ``name``, commit it and return the new SHA."""
    (repo / name).write_text(content)
    git(repo, "add", name)
    git(repo, "commit", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD")
