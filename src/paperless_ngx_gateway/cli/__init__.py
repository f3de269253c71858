"""CLI module for paperless-ngx-gateway."""

from __future__ import annotations

import asyncio
import json
import os
import secrets
import string
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import httpx
import typer

from paperless_ngx_gateway import __version__
from paperless_ngx_gateway.config import (
    ApiAuthMethod,
    ConfigurationError,
    load_settings,
)
from paperless_ngx_gateway.observability import LogLevel, configure_logging


if TYPE_CHECKING:
    from paperless_ngx_gateway.config import Settings


app = typer.Typer(
    name="paperless-gateway",
    help="REST gateway and tooling for the Paperless-ngx API.",
    no_args_is_help=True,
)

DEFAULT_BACKUP_FILE = Path.home() / ".config" / "paperless-gateway" / "tokens.txt"
TOKEN_ALPHABET = string.ascii_letters + string.digits
TEST_CONNECTION_PATH = "/api/paperless/test-connection"


def version_callback(value: bool) -> None:  # noqa: FBT001
    """Print version and exit."""
    if value:
        typer.echo(f"paperless-gateway version {__version__}")
        raise typer.Exit


@app.callback()
def main(
    ctx: typer.Context,
    version: bool = typer.Option(  # noqa: FBT001
        False,  # noqa: FBT003
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(  # noqa: FBT001
        False,  # noqa: FBT003
        "--verbose",
        "-V",
        help="Enable verbose (debug) logging.",
    ),
    quiet: bool = typer.Option(  # noqa: FBT001
        False,  # noqa: FBT003
        "--quiet",
        "-q",
        help="Only show warnings and errors.",
    ),
) -> None:
    """paperless-ngx-gateway CLI."""
    del version

    if verbose and quiet:
        typer.echo("Error: --verbose and --quiet are mutually exclusive.", err=True)
        raise typer.Exit(1)

    level: LogLevel | None = None
    if verbose:
        level = LogLevel.DEBUG
    elif quiet:
        level = LogLevel.WARNING

    ctx.obj = {"log_level": level}
    configure_logging(level=level or LogLevel.INFO)


def _load(ctx: typer.Context, config_file: str | None) -> Settings:
    """Load settings and apply their logging section.

    A ``--verbose``/``--quiet`` flag overrides the configured level.
    """
    try:
        settings = load_settings(config_file, require_config_file=bool(config_file))
    except ConfigurationError as exc:
        typer.echo(f"Error: {exc.message}", err=True)
        for line in exc.details:
            typer.echo(f"  {line}", err=True)
        raise typer.Exit(1) from exc

    logging_config = settings.observability.logging
    flag_level = (ctx.obj or {}).get("log_level")
    configure_logging(
        level=flag_level or logging_config.level,
        enabled=logging_config.enabled,
        channel=logging_config.channel,
    )
    return settings


def _mask(token: str) -> str:
    return f"{token[:8]}..."


def _dump(data: Any) -> str:  # noqa: ANN401
    return json.dumps(data, indent=2, default=str)


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@app.command()
def serve(
    ctx: typer.Context,
    host: str | None = typer.Option(None, "--host", "-h", help="Host to bind to."),
    port: int | None = typer.Option(None, "--port", "-p", help="Port to bind to."),
    config_file: str | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file.",
    ),
) -> None:
    """Start the API server."""
    import uvicorn

    from paperless_ngx_gateway.web import create_app

    settings = _load(ctx, config_file)
    application = create_app(settings=settings)

    uvicorn.run(
        application,
        host=host or settings.web.host,
        port=port or settings.web.port,
    )


# ---------------------------------------------------------------------------
# generate-token
# ---------------------------------------------------------------------------


@app.command(name="generate-token")
def generate_token(
    name: str | None = typer.Option(None, "--name", help="Name for the token."),
    length: int = typer.Option(32, "--length", min=8, help="Length of the token."),
    show: bool = typer.Option(  # noqa: FBT001
        False,  # noqa: FBT003
        "--show",
        help="Show the token in the output.",
    ),
    backup_file: Path = typer.Option(  # noqa: B008
        DEFAULT_BACKUP_FILE,
        "--backup-file",
        help="File the token record is appended to.",
    ),
) -> None:
    """Generate a random API token for the ``token`` auth method."""
    now = datetime.now(tz=UTC)
    name = name or f"paperless-api-token-{now:%Y-%m-%d-%H-%M-%S}"
    token = "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))
    shown = token if show else "*" * length

    typer.echo("API token generated successfully!")
    typer.echo("")
    typer.echo(f"  Name:         {name}")
    typer.echo(f"  Token:        {shown}")
    typer.echo(f"  Length:       {length}")
    typer.echo(f"  Generated at: {now:%Y-%m-%d %H:%M:%S} UTC")
    if not show:
        typer.echo("")
        typer.echo("Token is hidden. Use --show to display it.", err=True)

    typer.echo("")
    typer.echo("To use this token:")
    typer.echo("1. Add it to the accepted tokens in config.yaml:")
    typer.echo("     api_auth:")
    typer.echo("       token:")
    typer.echo(f"         tokens: [{shown}]")
    typer.echo("   or in the environment:")
    typer.echo(f"     PAPERLESS_API_AUTH__TOKEN__TOKENS='[\"{shown}\"]'")
    typer.echo("2. Select the token method:")
    typer.echo("     PAPERLESS_API_AUTH__METHOD=token")
    typer.echo("3. Send it with every request:")
    typer.echo(f"     X-Paperless-Token: {shown}")

    backup_file = backup_file.expanduser()
    backup_file.parent.mkdir(parents=True, exist_ok=True)
    is_new = not backup_file.exists()
    with backup_file.open("a", encoding="utf-8") as fh:
        fh.write(
            f"Token: {token}\nName: {name}\n"
            f"Generated: {now:%Y-%m-%d %H:%M:%S} UTC\n\n",
        )
    if is_new:
        os.chmod(backup_file, 0o600)  # noqa: PTH101

    typer.echo("")
    typer.echo(f"Token backed up to: {backup_file}")


# ---------------------------------------------------------------------------
# test-auth
# ---------------------------------------------------------------------------


def _status_of(url: str, **kwargs: Any) -> int | None:  # noqa: ANN401
    """GET ``url`` and return the status, or None on a transport error."""
    try:
        with httpx.Client(timeout=10.0) as client:
            response = client.get(url, **kwargs)
    except httpx.HTTPError as exc:
        typer.echo(f"  x Request error: {exc}", err=True)
        return None
    return response.status_code


@app.command(name="test-auth")
def test_auth(  # noqa: C901, PLR0912, PLR0913
    ctx: typer.Context,
    method: str | None = typer.Option(
        None,
        "--method",
        help="Method to test (session, token, basic, none).",
    ),
    token: str | None = typer.Option(None, "--token", help="Token to test with."),
    username: str | None = typer.Option(None, "--username", help="Basic username."),
    password: str | None = typer.Option(None, "--password", help="Basic password."),
    url: str = typer.Option(
        "http://localhost:8080",
        "--url",
        help="Base URL of a running gateway.",
    ),
    config_file: str | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file.",
    ),
) -> None:
    """Check the gateway's own authentication against a running server."""
    settings = _load(ctx, config_file)
    config = settings.api_auth
    method = method or config.method
    target = f"{url.rstrip('/')}{TEST_CONNECTION_PATH}"

    typer.echo("Testing Paperless-ngx gateway authentication")
    typer.echo("")
    typer.echo("Current configuration:")
    typer.echo(f"  Authentication enabled: {'yes' if config.enabled else 'no'}")
    typer.echo(f"  Method:                 {method}")
    rate_limited = "yes" if config.rate_limit.enabled else "no"
    typer.echo(f"  Rate limiting:          {rate_limited}")
    typer.echo(f"  IP allowlist:           {', '.join(config.ip_allowlist) or 'none'}")
    typer.echo("")

    if not config.enabled:
        typer.echo("Authentication is disabled. The API is open to all requests.")
        return

    match method:
        case ApiAuthMethod.TOKEN:
            tokens = [token] if token else list(config.token.tokens)
            if not tokens:
                typer.echo(
                    "Error: no API tokens configured. Use --token or set "
                    "api_auth.token.tokens.",
                    err=True,
                )
                raise typer.Exit(1)
            for candidate in tokens:
                typer.echo(f"Testing token {_mask(candidate)}")
                headers = {config.token.header_name: candidate}
                status = _status_of(target, headers=headers)
                if status is not None and status < 400:  # noqa: PLR2004
                    typer.echo("  ok Token authentication successful")
                    return
                if status is not None:
                    typer.echo(f"  x Token authentication failed: {status}")
            typer.echo("Error: all token authentication tests failed", err=True)
            raise typer.Exit(1)

        case ApiAuthMethod.BASIC:
            username = username or config.basic.username
            password = password or config.basic.password
            if not username or not password:
                typer.echo(
                    "Error: basic credentials not configured. Use --username and "
                    "--password or set api_auth.basic.",
                    err=True,
                )
                raise typer.Exit(1)
            typer.echo(f"Testing with username: {username}")
            status = _status_of(target, auth=(username, password))

        case ApiAuthMethod.SESSION:
            if not token:
                typer.echo(
                    "Error: session auth needs a Paperless-ngx token. Use --token.",
                    err=True,
                )
                raise typer.Exit(1)
            typer.echo(f"Testing session cookie with token {_mask(token)}")
            from paperless_ngx_gateway.web.auth import AUTH_COOKIE_NAME

            status = _status_of(target, cookies={AUTH_COOKIE_NAME: token})

        case ApiAuthMethod.NONE:
            typer.echo("Testing without authentication")
            status = _status_of(target)

        case _:
            typer.echo(f"Error: unknown authentication method: {method}", err=True)
            raise typer.Exit(1)

    if status is None or status >= 400:  # noqa: PLR2004
        typer.echo(f"  x Authentication failed: {status}", err=True)
        raise typer.Exit(1)
    typer.echo(f"  ok {method} authentication successful")


# ---------------------------------------------------------------------------
# test-connection
# ---------------------------------------------------------------------------


async def _run_connection_test(
    settings: Settings,
    upload: Path | None,
    search: str | None,
) -> int:
    from paperless_ngx_gateway.paperless import PaperlessClient, PaperlessError

    async with PaperlessClient.from_settings(settings) as client:
        typer.echo(f"Testing connection to {client.base_url}...")
        try:
            if not await client.test_connection():
                typer.echo("Failed to connect to Paperless-ngx", err=True)
                return 1
            typer.echo("Successfully connected to Paperless-ngx")

            typer.echo(f"System status: {_dump(await client.get_status())}")
            typer.echo(f"Statistics: {_dump(await client.get_statistics())}")

            documents = await client.get_documents(page=1, page_size=5)
            typer.echo(f"Recent documents: {len(documents.get('results', []))} found")

            if search:
                typer.echo(f"Searching for: {search}")
                results = await client.search_documents(search)
                typer.echo(f"Search results: {_dump(results)}")

            if upload is not None:
                if not upload.is_file():
                    typer.echo(f"File not found: {upload}", err=True)
                    return 1
                typer.echo(f"Uploading file: {upload}")
                result = await client.upload_document(
                    upload,
                    {"title": f"Test Upload - {upload.name}"},
                )
                task_id = result.get("task_id")
                typer.echo(f"File uploaded successfully. Task ID: {task_id}")
                if task_id:
                    task = await client.get_task(str(task_id))
                    typer.echo(f"Upload task: {_dump(task)}")

            tags = await client.get_tags(page=1, page_size=10)
            typer.echo(f"Available tags: {len(tags.get('results', []))} found")
            correspondents = await client.get_correspondents(page=1, page_size=10)
            typer.echo(
                f"Available correspondents: "
                f"{len(correspondents.get('results', []))} found",
            )
            document_types = await client.get_document_types(page=1, page_size=10)
            typer.echo(
                f"Available document types: "
                f"{len(document_types.get('results', []))} found",
            )
        except PaperlessError as exc:
            typer.echo(f"Test failed: {exc.message}", err=True)
            return 1

    typer.echo("All tests completed successfully!")
    return 0


@app.command(name="test-connection")
def test_connection(
    ctx: typer.Context,
    upload: Path | None = typer.Option(  # noqa: B008
        None,
        "--upload",
        help="File to upload as part of the test.",
    ),
    search: str | None = typer.Option(
        None,
        "--search",
        help="Search term to try.",
    ),
    config_file: str | None = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file.",
    ),
) -> None:
    """Exercise the Paperless-ngx API with the configured credentials."""
    settings = _load(ctx, config_file)
    exit_code = asyncio.run(_run_connection_test(settings, upload, search))
    if exit_code:
        raise typer.Exit(exit_code)


__all__ = ["app"]
