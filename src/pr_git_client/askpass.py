"""
Credential helper invoked by git through ``GIT_ASKPASS``.

git runs the helper with its prompt as the only argument and reads the answer
from stdout. The helper prints ONLY the requested value: the fixed principal
for username prompts, or the token from the environment for password prompts.
"""

from __future__ import annotations

import os
import sys
from typing import List, Optional

OAUTH_PRINCIPAL = "x-oauth-basic"
GITHUB_APP_PRINCIPAL = "x-access-token"
OAUTH_TOKEN_VARIABLE = "X_OAUTH_BASIC_TOKEN"
GITHUB_APP_TOKEN_VARIABLE = "X_ACCESS_TOKEN"


def answer(prompt: str, *, principal: str, token_variable: str) -> str:
    """Return the value git asked for with ``prompt``."""

    if "username" in prompt.lower():
        return principal
    return os.environ.get(token_variable, "")


def _main(argv: List[str], *, principal: str, token_variable: str) -> int:
    prompt = argv[1] if len(argv) > 1 else ""
    sys.stdout.write(answer(prompt, principal=principal, token_variable=token_variable) + "\n")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Entry-point for static token authentication."""

    raise SystemExit(
        _main(argv or sys.argv, principal=OAUTH_PRINCIPAL, token_variable=OAUTH_TOKEN_VARIABLE)
    )


def main_github_app(argv: Optional[List[str]] = None) -> None:
    """Entry-point for GitHub App installation tokens."""

    raise SystemExit(
        _main(argv or sys.argv, principal=GITHUB_APP_PRINCIPAL, token_variable=GITHUB_APP_TOKEN_VARIABLE)
    )
