"""git-crypt unlock with an ephemeral key file."""

from __future__ import annotations

import base64
import binascii
import os
import shutil
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import structlog

from .errors import DecodeError
from .runner import CommandRunner

logger = structlog.get_logger(__name__)

KEY_FILENAME = "git-crypt-key"


def decode_key(encoded_key: str) -> bytes:
    """Decode a base64 encoded git-crypt key."""

    try:
        return base64.b64decode(encoded_key.strip(), validate=True)
    except (ValueError, binascii.Error) as exc:
        raise DecodeError("failed to decode git-crypt key") from exc


@contextmanager
def key_file(key: bytes) -> Iterator[Path]:
    """Write ``key`` to an owner-only file in a fresh temporary directory.

    The directory is removed when the context exits, whatever the outcome.
    """

    key_dir = tempfile.mkdtemp(prefix="git-crypt-")
    try:
        key_path = Path(key_dir) / KEY_FILENAME
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
        with os.fdopen(fd, "wb") as handle:
            handle.write(key)
        yield key_path
    finally:
        shutil.rmtree(key_dir, ignore_errors=True)


def unlock(runner: CommandRunner, encoded_key: str, *, executable: str = "git-crypt") -> None:
    """Unlock the repository in ``runner``'s directory with a base64 encoded key."""

    key = decode_key(encoded_key)
    with key_file(key) as key_path:
        logger.info("Unlocking repository with git-crypt")
        runner.run(executable, "unlock", str(key_path), operation="git-crypt unlock")
