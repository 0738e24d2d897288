"""Command line interface mapping to ``pr_git_client.git.GitClient`` operations."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import structlog

from .errors import GitClientError
from .git import GitClient
from .source import Source

try:  # Optional dependency group.
    import click
except ImportError:  # pragma: no cover - exercised only without the CLI extra.
    click = None  # type: ignore[assignment]


def _require_cli_dependencies() -> None:
    if click is None:
        message = (
            "pr-git-client CLI dependencies are not installed. "
            "Install them with 'pip install pr-git-client[cli]'."
        )
        print(message, file=sys.stderr)
        raise SystemExit(1)


def _configure_logging(verbose: bool) -> None:
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(logging.DEBUG if verbose else logging.INFO),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
    )


if click is not None:
    _CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}

    def _source_options(func):
        options = [
            click.option(
                "--repository",
                envvar="PR_GIT_REPOSITORY",
                required=True,
                help="Repository in 'owner/name' form.",
            ),
            click.option(
                "--access-token",
                envvar="GITHUB_TOKEN",
                help="Static access token. Mutually exclusive with --use-github-app.",
            ),
            click.option(
                "--use-github-app/--no-github-app",
                envvar="PR_GIT_USE_GITHUB_APP",
                default=False,
                show_default=True,
                help="Authenticate with GitHub App installation tokens.",
            ),
            click.option("--app-id", "application_id", envvar="GITHUB_APP_ID", default=0, help="GitHub App identifier."),
            click.option(
                "--installation-id",
                envvar="GITHUB_INSTALLATION_ID",
                default=0,
                help="GitHub App installation identifier.",
            ),
            click.option(
                "--key-path",
                type=click.Path(exists=True, file_okay=True, dir_okay=False, readable=True, path_type=Path),
                envvar="GITHUB_APP_KEY_PATH",
                help="Path to the PEM encoded GitHub App private key.",
            ),
            click.option(
                "--v3-endpoint",
                envvar="GITHUB_V3_ENDPOINT",
                default="",
                help="GitHub Enterprise REST endpoint, e.g. https://ghe.example.com/api/v3/.",
            ),
            click.option(
                "--v4-endpoint",
                envvar="GITHUB_V4_ENDPOINT",
                default="",
                help="GitHub Enterprise GraphQL endpoint; required together with --v3-endpoint.",
            ),
            click.option(
                "--askpass",
                envvar="PR_GIT_ASKPASS",
                help="Credential helper git runs through GIT_ASKPASS, e.g. the pr-git-askpass script. "
                "Defaults to the container helper for the selected strategy.",
            ),
            click.option("--skip-ssl-verification", is_flag=True, help="Set GIT_SSL_NO_VERIFY for git."),
            click.option("--disable-git-lfs", is_flag=True, help="Set GIT_LFS_SKIP_SMUDGE for git."),
            click.option(
                "--dir",
                "directory",
                default=Path("."),
                type=click.Path(file_okay=False, path_type=Path),
                show_default=True,
                help="Working directory of the repository.",
            ),
        ]
        for option in reversed(options):
            func = option(func)
        return func

    def _create_client(
        directory: Path,
        *,
        repository: str,
        access_token: Optional[str],
        use_github_app: bool,
        application_id: int,
        installation_id: int,
        key_path: Optional[Path],
        v3_endpoint: str,
        v4_endpoint: str,
        skip_ssl_verification: bool,
        disable_git_lfs: bool,
        askpass: Optional[str],
    ) -> GitClient:
        source = Source(
            repository=repository,
            access_token=access_token or "",
            v3_endpoint=v3_endpoint,
            v4_endpoint=v4_endpoint,
            use_github_app=use_github_app,
            application_id=application_id,
            installation_id=installation_id,
            private_key=key_path.read_text() if key_path else "",
            skip_ssl_verification=skip_ssl_verification,
            disable_git_lfs=disable_git_lfs,
        )
        try:
            return GitClient.from_source(source, directory, output=sys.stderr, askpass=askpass)
        except GitClientError as exc:
            raise click.ClickException(str(exc)) from exc

    @click.group(context_settings=_CONTEXT_SETTINGS)
    @click.option("--verbose", "-v", is_flag=True, help="Log debug events.")
    def _cli(verbose: bool) -> None:
        """Materialise pull requests with authenticated git operations."""

        _configure_logging(verbose)

    @_cli.command(context_settings=_CONTEXT_SETTINGS)
    @_source_options
    @click.option("--branch", default="master", show_default=True, help="Initial branch name.")
    def init(branch: str, directory: Path, **source) -> None:  # type: ignore[misc]
        """Initialise an empty repository with the bot identity and URL rewrites."""

        client = _create_client(directory, **source)
        try:
            client.init(branch)
            click.echo("Init completed successfully.")
        except GitClientError as exc:
            raise click.ClickException(str(exc)) from exc

    @_cli.command(context_settings=_CONTEXT_SETTINGS)
    @_source_options
    @click.argument("uri")
    @click.argument("branch")
    @click.option("--depth", type=int, default=0, show_default=True, help="History depth; 0 means unlimited.")
    @click.option("--submodules", is_flag=True, help="Recurse into submodules.")
    @click.option("--fetch-tags", is_flag=True, help="Fetch tags as well.")
    def pull(  # type: ignore[misc]
        uri: str,
        branch: str,
        depth: int,
        submodules: bool,
        fetch_tags: bool,
        directory: Path,
        **source,
    ) -> None:
        """Add 'origin' for URI and pull BRANCH."""

        client = _create_client(directory, **source)
        try:
            client.pull(uri, branch, depth, submodules, fetch_tags)
            click.echo("Pull completed successfully.")
        except GitClientError as exc:
            raise click.ClickException(str(exc)) from exc

    @_cli.command(context_settings=_CONTEXT_SETTINGS)
    @_source_options
    @click.argument("uri")
    @click.argument("pr_number", type=int)
    @click.option("--depth", type=int, default=0, show_default=True, help="History depth; 0 means unlimited.")
    @click.option("--submodules", is_flag=True, help="Recurse into submodules.")
    def fetch(  # type: ignore[misc]
        uri: str,
        pr_number: int,
        depth: int,
        submodules: bool,
        directory: Path,
        **source,
    ) -> None:
        """Fetch the head of pull request PR_NUMBER from URI."""

        client = _create_client(directory, **source)
        try:
            client.fetch(uri, pr_number, depth, submodules)
            click.echo("Fetch completed successfully.")
        except GitClientError as exc:
            raise click.ClickException(str(exc)) from exc

    @_cli.command("rev-parse", context_settings=_CONTEXT_SETTINGS)
    @_source_options
    @click.argument("ref")
    def rev_parse(ref: str, directory: Path, **source) -> None:  # type: ignore[misc]
        """Print the commit SHA REF points at."""

        client = _create_client(directory, **source)
        try:
            click.echo(client.rev_parse(ref))
        except GitClientError as exc:
            raise click.ClickException(str(exc)) from exc

    @_cli.command(context_settings=_CONTEXT_SETTINGS)
    @_source_options
    @click.argument("branch")
    @click.argument("sha")
    @click.option("--submodules", is_flag=True, help="Update submodules to match.")
    def checkout(branch: str, sha: str, submodules: bool, directory: Path, **source) -> None:  # type: ignore[misc]
        """Create BRANCH at SHA and switch to it."""

        client = _create_client(directory, **source)
        try:
            client.checkout(branch, sha, submodules)
            click.echo("Checkout completed successfully.")
        except GitClientError as exc:
            raise click.ClickException(str(exc)) from exc

    @_cli.command(context_settings=_CONTEXT_SETTINGS)
    @_source_options
    @click.argument("sha")
    @click.option("--submodules", is_flag=True, help="Merge submodule updates as well.")
    def merge(sha: str, submodules: bool, directory: Path, **source) -> None:  # type: ignore[misc]
        """Merge SHA into the current branch."""

        client = _create_client(directory, **source)
        try:
            client.merge(sha, submodules)
            click.echo("Merge completed successfully.")
        except GitClientError as exc:
            raise click.ClickException(str(exc)) from exc

    @_cli.command(context_settings=_CONTEXT_SETTINGS)
    @_source_options
    @click.argument("base_ref")
    @click.argument("head_sha")
    @click.option("--submodules", is_flag=True, help="Rebase submodule updates as well.")
    def rebase(  # type: ignore[misc]
        base_ref: str,
        head_sha: str,
        submodules: bool,
        directory: Path,
        **source,
    ) -> None:
        """Rebase HEAD_SHA onto BASE_REF."""

        client = _create_client(directory, **source)
        try:
            client.rebase(base_ref, head_sha, submodules)
            click.echo("Rebase completed successfully.")
        except GitClientError as exc:
            raise click.ClickException(str(exc)) from exc

    @_cli.command("crypt-unlock", context_settings=_CONTEXT_SETTINGS)
    @_source_options
    @click.option(
        "--key",
        envvar="GIT_CRYPT_KEY",
        required=True,
        help="Base64 encoded git-crypt key.",
    )
    def crypt_unlock(key: str, directory: Path, **source) -> None:  # type: ignore[misc]
        """Unlock git-crypt protected files."""

        client = _create_client(directory, **source)
        try:
            client.git_crypt_unlock(key)
            click.echo("Unlock completed successfully.")
        except GitClientError as exc:
            raise click.ClickException(str(exc)) from exc
else:
    _cli = None


def main() -> None:
    """Entry-point used by console_scripts."""

    _require_cli_dependencies()
    assert _cli is not None  # For type-checkers.
    _cli()


__all__ = ["main"]
