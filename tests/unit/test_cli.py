"""Unit tests for the command line interface."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from typer.testing import CliRunner

from paperless_ngx_gateway import __version__
from paperless_ngx_gateway.cli import _status_of, app
from paperless_ngx_gateway.observability import LogLevel
from paperless_ngx_gateway.paperless import PaperlessConnectionError


if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

    import respx


runner = CliRunner()


def _write_config(tmp_path: Path, body: str) -> str:
    config_file = tmp_path / "config.yaml"
    config_file.write_text(body)
    return str(config_file)


@pytest.fixture
def auth_disabled_config(tmp_path: Path) -> str:
    return _write_config(
        tmp_path,
        """
server:
  url: "http://paperless.test:8000"
  token: "server-token"
api_auth:
  enabled: false
""",
    )


@pytest.fixture
def token_auth_config(tmp_path: Path) -> str:
    return _write_config(
        tmp_path,
        """
server:
  url: "http://paperless.test:8000"
  token: "server-token"
api_auth:
  enabled: true
  method: token
  token:
    tokens: ["first-token-aaaa", "second-token-bbbb"]
""",
    )


@pytest.fixture(autouse=True)
def mock_configure_logging() -> Iterator[MagicMock]:
    """Keep CLI runs from binding structlog to CliRunner's captured streams."""
    with patch("paperless_ngx_gateway.cli.configure_logging") as mock:
        yield mock


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


class TestGlobalOptions:
    """Tests for the top-level callback."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"paperless-gateway version {__version__}" in result.output

    def test_verbose_and_quiet_conflict(self, tmp_path: Path) -> None:
        result = runner.invoke(
            app,
            [
                "--verbose",
                "--quiet",
                "generate-token",
                "--backup-file",
                str(tmp_path / "tokens.txt"),
            ],
        )

        assert result.exit_code == 1
        assert "mutually exclusive" in result.output

    def test_missing_config_file(self, tmp_path: Path) -> None:
        """An explicit --config that does not exist is an error."""
        result = runner.invoke(
            app,
            ["test-auth", "--config", str(tmp_path / "missing.yaml")],
        )

        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_invalid_config_lists_settings(self, tmp_path: Path) -> None:
        """Each invalid setting is named under the error line."""
        config_file = _write_config(tmp_path, "web:\n  port: 70000\n")

        result = runner.invoke(app, ["test-auth", "--config", config_file])

        assert result.exit_code == 1
        assert "Error: Failed to load configuration" in result.output
        detail = "  web.port: Input should be less than or equal to 65535"
        assert detail in result.output

    def test_verbose_overrides_configured_level(
        self,
        auth_disabled_config: str,
        mock_configure_logging: MagicMock,
    ) -> None:
        result = runner.invoke(
            app,
            ["--verbose", "test-auth", "--config", auth_disabled_config],
        )

        assert result.exit_code == 0
        assert mock_configure_logging.call_args.kwargs == {
            "level": LogLevel.DEBUG,
            "enabled": True,
            "channel": "paperless",
        }

    def test_logging_section_applied(
        self,
        tmp_path: Path,
        mock_configure_logging: MagicMock,
    ) -> None:
        config_file = _write_config(
            tmp_path,
            """
observability:
  logging:
    level: warning
    enabled: false
    channel: gateway
""",
        )

        result = runner.invoke(app, ["test-auth", "--config", config_file])

        assert result.exit_code == 0
        assert mock_configure_logging.call_args.kwargs == {
            "level": LogLevel.WARNING,
            "enabled": False,
            "channel": "gateway",
        }


# ---------------------------------------------------------------------------
# generate-token
# ---------------------------------------------------------------------------


class TestGenerateToken:
    """Tests for the generate-token command."""

    def test_hidden_by_default(self, tmp_path: Path) -> None:
        backup = tmp_path / "tokens.txt"

        result = runner.invoke(
            app,
            ["generate-token", "--name", "ci", "--backup-file", str(backup)],
        )

        assert result.exit_code == 0
        assert "Name:         ci" in result.output
        assert "*" * 32 in result.output
        assert "Use --show to display it." in result.output

        lines = backup.read_text().splitlines()
        token = lines[0].removeprefix("Token: ")
        assert len(token) == 32
        assert token.isalnum()
        assert token not in result.output
        assert lines[1] == "Name: ci"
        assert lines[2].startswith("Generated: ")

    def test_show_and_length(self, tmp_path: Path) -> None:
        backup = tmp_path / "tokens.txt"

        result = runner.invoke(
            app,
            [
                "generate-token",
                "--show",
                "--length",
                "12",
                "--backup-file",
                str(backup),
            ],
        )

        assert result.exit_code == 0
        token = backup.read_text().splitlines()[0].removeprefix("Token: ")
        assert len(token) == 12
        assert f"X-Paperless-Token: {token}" in result.output

    def test_default_name(self, tmp_path: Path) -> None:
        backup = tmp_path / "tokens.txt"

        result = runner.invoke(app, ["generate-token", "--backup-file", str(backup)])

        assert result.exit_code == 0
        assert "Name: paperless-api-token-" in backup.read_text()

    def test_appends_to_backup(self, tmp_path: Path) -> None:
        backup = tmp_path / "nested" / "tokens.txt"

        for name in ("one", "two"):
            result = runner.invoke(
                app,
                ["generate-token", "--name", name, "--backup-file", str(backup)],
            )
            assert result.exit_code == 0

        content = backup.read_text()
        assert content.count("Token: ") == 2
        assert "Name: one" in content
        assert "Name: two" in content
        assert backup.stat().st_mode & 0o777 == 0o600

    def test_length_too_short(self, tmp_path: Path) -> None:
        backup = tmp_path / "tokens.txt"

        result = runner.invoke(
            app,
            ["generate-token", "--length", "4", "--backup-file", str(backup)],
        )

        assert result.exit_code != 0
        assert not backup.exists()


# ---------------------------------------------------------------------------
# test-auth
# ---------------------------------------------------------------------------


class TestTestAuth:
    """Tests for the test-auth command."""

    def test_auth_disabled(self, auth_disabled_config: str) -> None:
        with patch("paperless_ngx_gateway.cli._status_of") as mock_status_of:
            result = runner.invoke(
                app,
                ["test-auth", "--config", auth_disabled_config],
            )

        assert result.exit_code == 0
        assert "Authentication is disabled" in result.output
        mock_status_of.assert_not_called()

    def test_configured_token_succeeds(self, token_auth_config: str) -> None:
        with patch(
            "paperless_ngx_gateway.cli._status_of", return_value=200
        ) as mock_status_of:
            result = runner.invoke(
                app,
                [
                    "test-auth",
                    "--config",
                    token_auth_config,
                    "--url",
                    "http://gateway.test/",
                ],
            )

        assert result.exit_code == 0
        assert "Token authentication successful" in result.output
        mock_status_of.assert_called_once_with(
            "http://gateway.test/api/paperless/test-connection",
            headers={"X-Paperless-Token": "first-token-aaaa"},
        )

    def test_tries_each_configured_token(self, token_auth_config: str) -> None:
        with patch(
            "paperless_ngx_gateway.cli._status_of",
            side_effect=[401, 200],
        ) as mock_status_of:
            result = runner.invoke(
                app,
                ["test-auth", "--config", token_auth_config],
            )

        assert result.exit_code == 0
        assert "Token authentication failed: 401" in result.output
        assert mock_status_of.call_count == 2
        assert "first-to..." in result.output
        assert "first-token-aaaa" not in result.output

    def test_all_tokens_fail(self, token_auth_config: str) -> None:
        with patch("paperless_ngx_gateway.cli._status_of", return_value=401):
            result = runner.invoke(
                app,
                ["test-auth", "--config", token_auth_config],
            )

        assert result.exit_code == 1
        assert "all token authentication tests failed" in result.output

    def test_basic_requires_credentials(self, token_auth_config: str) -> None:
        result = runner.invoke(
            app,
            ["test-auth", "--config", token_auth_config, "--method", "basic"],
        )

        assert result.exit_code == 1
        assert "basic credentials not configured" in result.output

    def test_basic_with_options(self, token_auth_config: str) -> None:
        with patch(
            "paperless_ngx_gateway.cli._status_of", return_value=200
        ) as mock_status_of:
            result = runner.invoke(
                app,
                [
                    "test-auth",
                    "--config",
                    token_auth_config,
                    "--method",
                    "basic",
                    "--username",
                    "alice",
                    "--password",
                    "secret",
                ],
            )

        assert result.exit_code == 0
        assert "basic authentication successful" in result.output
        assert mock_status_of.call_args.kwargs == {"auth": ("alice", "secret")}

    def test_session_sends_cookie(self, token_auth_config: str) -> None:
        with patch(
            "paperless_ngx_gateway.cli._status_of", return_value=403
        ) as mock_status_of:
            result = runner.invoke(
                app,
                [
                    "test-auth",
                    "--config",
                    token_auth_config,
                    "--method",
                    "session",
                    "--token",
                    "paperless-user-token",
                ],
            )

        assert result.exit_code == 1
        assert "Authentication failed: 403" in result.output
        assert mock_status_of.call_args.kwargs == {
            "cookies": {"paperless_token": "paperless-user-token"},
        }

    def test_unknown_method(self, token_auth_config: str) -> None:
        result = runner.invoke(
            app,
            ["test-auth", "--config", token_auth_config, "--method", "oauth"],
        )

        assert result.exit_code == 1
        assert "unknown authentication method: oauth" in result.output


class TestStatusOf:
    """Tests for the status request used by test-auth."""

    @pytest.mark.respx(base_url="http://gateway.test")
    def test_returns_status(self, respx_mock: respx.MockRouter) -> None:
        route = respx_mock.get("/ping").mock(return_value=httpx.Response(401))

        assert _status_of("http://gateway.test/ping", headers={"X-Test": "1"}) == 401
        assert route.calls.last.request.headers["X-Test"] == "1"

    @pytest.mark.respx(base_url="http://gateway.test")
    def test_transport_error(self, respx_mock: respx.MockRouter) -> None:
        respx_mock.get("/ping").mock(side_effect=httpx.ConnectError("refused"))

        assert _status_of("http://gateway.test/ping") is None


# ---------------------------------------------------------------------------
# test-connection
# ---------------------------------------------------------------------------


def _mock_paperless() -> AsyncMock:
    client = AsyncMock()
    client.__aenter__.return_value = client
    client.base_url = "http://paperless.test:8000"
    client.test_connection.return_value = True
    client.get_status.return_value = {"pngx_version": "2.7.2"}
    client.get_statistics.return_value = {"documents_total": 3}
    client.get_documents.return_value = {"count": 2, "results": [{"id": 1}, {"id": 2}]}
    client.search_documents.return_value = {"count": 0, "results": []}
    client.upload_document.return_value = {"task_id": "abc-123"}
    client.get_task.return_value = {"task_id": "abc-123", "status": "PENDING"}
    client.get_tags.return_value = {"results": [{"id": 1}]}
    client.get_correspondents.return_value = {"results": []}
    client.get_document_types.return_value = {"results": [{"id": 5}]}
    return client


class TestTestConnection:
    """Tests for the test-connection command."""

    def test_success(self, auth_disabled_config: str) -> None:
        client = _mock_paperless()
        with patch("paperless_ngx_gateway.paperless.PaperlessClient") as mock_cls:
            mock_cls.from_settings.return_value = client
            result = runner.invoke(
                app,
                ["test-connection", "--config", auth_disabled_config],
            )

        assert result.exit_code == 0, result.output
        assert "Successfully connected to Paperless-ngx" in result.output
        assert "Recent documents: 2 found" in result.output
        assert "Available document types: 1 found" in result.output
        assert "All tests completed successfully!" in result.output
        client.get_documents.assert_awaited_once_with(page=1, page_size=5)
        client.search_documents.assert_not_awaited()
        client.upload_document.assert_not_awaited()

    def test_search_and_upload(self, auth_disabled_config: str, tmp_path: Path) -> None:
        upload = tmp_path / "scan.pdf"
        upload.write_bytes(b"%PDF-1.4")
        client = _mock_paperless()

        with patch("paperless_ngx_gateway.paperless.PaperlessClient") as mock_cls:
            mock_cls.from_settings.return_value = client
            result = runner.invoke(
                app,
                [
                    "test-connection",
                    "--config",
                    auth_disabled_config,
                    "--search",
                    "invoice",
                    "--upload",
                    str(upload),
                ],
            )

        assert result.exit_code == 0, result.output
        client.search_documents.assert_awaited_once_with("invoice")
        client.upload_document.assert_awaited_once_with(
            upload,
            {"title": "Test Upload - scan.pdf"},
        )
        client.get_task.assert_awaited_once_with("abc-123")
        assert "Task ID: abc-123" in result.output

    def test_missing_upload_file(
        self,
        auth_disabled_config: str,
        tmp_path: Path,
    ) -> None:
        client = _mock_paperless()
        with patch("paperless_ngx_gateway.paperless.PaperlessClient") as mock_cls:
            mock_cls.from_settings.return_value = client
            result = runner.invoke(
                app,
                [
                    "test-connection",
                    "--config",
                    auth_disabled_config,
                    "--upload",
                    str(tmp_path / "missing.pdf"),
                ],
            )

        assert result.exit_code == 1
        assert "File not found" in result.output
        client.upload_document.assert_not_awaited()

    def test_connection_failure(self, auth_disabled_config: str) -> None:
        client = _mock_paperless()
        client.test_connection.return_value = False
        with patch("paperless_ngx_gateway.paperless.PaperlessClient") as mock_cls:
            mock_cls.from_settings.return_value = client
            result = runner.invoke(
                app,
                ["test-connection", "--config", auth_disabled_config],
            )

        assert result.exit_code == 1
        assert "Failed to connect to Paperless-ngx" in result.output
        client.get_status.assert_not_awaited()

    def test_paperless_error(self, auth_disabled_config: str) -> None:
        client = _mock_paperless()
        client.get_statistics.side_effect = PaperlessConnectionError(
            "Failed to connect to Paperless-ngx at http://paperless.test:8000: boom",
            base_url="http://paperless.test:8000",
        )
        with patch("paperless_ngx_gateway.paperless.PaperlessClient") as mock_cls:
            mock_cls.from_settings.return_value = client
            result = runner.invoke(
                app,
                ["test-connection", "--config", auth_disabled_config],
            )

        assert result.exit_code == 1
        assert "Test failed: Failed to connect" in result.output
