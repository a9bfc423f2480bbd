# ABOUTME: Tests for CLI argument parsing and command dispatch.
# ABOUTME: Validates argparse configuration, subcommand routing, and cmd_sync_offline behavior.

import argparse
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from ward_bulletin.__main__ import (
    cmd_init_db,
    cmd_serve,
    cmd_sync_offline,
    create_parser,
    main,
)
from ward_bulletin.config import Settings
from ward_bulletin.drafts import DraftStore, LocalStorage
from ward_bulletin.editor import SyncResult


class TestCreateParser:
    """Tests for argument parser creation."""

    def test_parser_creation(self) -> None:
        parser = create_parser()
        assert isinstance(parser, argparse.ArgumentParser)

    def test_serve_defaults(self) -> None:
        """Serve binds to localhost:8000 without reload."""
        args = create_parser().parse_args(["serve"])
        assert args.command == "serve"
        assert args.host == "127.0.0.1"
        assert args.port == 8000
        assert args.reload is False

    def test_serve_options(self) -> None:
        args = create_parser().parse_args(["serve", "--host", "0.0.0.0", "--port", "9000", "--reload"])
        assert args.port == 9000
        assert args.reload is True

    def test_init_db_command(self) -> None:
        args = create_parser().parse_args(["init-db"])
        assert args.command == "init-db"

    def test_sync_offline_owner(self) -> None:
        args = create_parser().parse_args(["sync-offline", "--owner", "owner-7"])
        assert args.command == "sync-offline"
        assert args.owner == "owner-7"

    def test_no_command(self) -> None:
        args = create_parser().parse_args([])
        assert args.command is None


class TestMain:
    @patch("ward_bulletin.__main__.configure_logging")
    def test_no_command_prints_help(
        self, _mock_logging: MagicMock, capsys: pytest.CaptureFixture[str]
    ) -> None:
        with patch("sys.argv", ["ward_bulletin"]):
            assert main() == 1
        assert "sync-offline" in capsys.readouterr().out

    @patch("ward_bulletin.__main__.configure_logging")
    def test_dispatches_to_command(self, _mock_logging: MagicMock) -> None:
        handler = MagicMock(return_value=0)
        with (
            patch("sys.argv", ["ward_bulletin", "init-db"]),
            patch.dict("ward_bulletin.__main__.COMMANDS", {"init-db": handler}),
        ):
            assert main() == 0
        handler.assert_called_once()


class TestCmdServe:
    @patch("uvicorn.run")
    def test_trusts_only_configured_proxies(
        self, mock_run: MagicMock, mock_settings: Settings
    ) -> None:
        settings = mock_settings.model_copy(update={"forwarded_allow_ips": "10.0.0.1"})
        args = create_parser().parse_args(["serve"])

        with patch("ward_bulletin.__main__.get_settings", return_value=settings):
            assert cmd_serve(args) == 0

        kwargs = mock_run.call_args.kwargs
        assert kwargs["proxy_headers"] is True
        assert kwargs["forwarded_allow_ips"] == "10.0.0.1"


class TestCmdInitDb:
    def test_unconfigured_database(self, tmp_path: Path) -> None:
        settings = Settings(_env_file=None, db_host="", data_dir=tmp_path)
        with patch("ward_bulletin.__main__.get_settings", return_value=settings):
            assert cmd_init_db(argparse.Namespace()) == 1

    def test_creates_tables(self, mock_settings: Settings) -> None:
        with patch("ward_bulletin.__main__.get_settings", return_value=mock_settings):
            assert cmd_init_db(argparse.Namespace()) == 0


class TestCmdSyncOffline:
    """Tests for sync-offline command."""

    def test_requires_owner(self, mock_settings: Settings) -> None:
        with patch("ward_bulletin.__main__.get_settings", return_value=mock_settings):
            assert cmd_sync_offline(argparse.Namespace(owner=None)) == 1

    @patch("ward_bulletin.editor.BulletinEditor")
    def test_uses_last_owner_and_reports(
        self,
        mock_editor_class: MagicMock,
        mock_settings: Settings,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        DraftStore(LocalStorage.from_settings(mock_settings)).set_last_owner_id("owner-7")
        editor = mock_editor_class.return_value
        editor.sync_offline = AsyncMock(
            return_value=SyncResult(synced={"local-1": "remote-1"}, failed=["local-2"])
        )

        with patch("ward_bulletin.__main__.get_settings", return_value=mock_settings):
            code = cmd_sync_offline(argparse.Namespace(owner=None))

        assert code == 1
        editor.sync_offline.assert_awaited_once_with("owner-7")
        out = capsys.readouterr().out
        assert "synced local-1 -> remote-1" in out
        assert "failed local-2" in out

    @patch("ward_bulletin.editor.BulletinEditor")
    def test_all_synced(self, mock_editor_class: MagicMock, mock_settings: Settings) -> None:
        mock_editor_class.return_value.sync_offline = AsyncMock(return_value=SyncResult())

        with patch("ward_bulletin.__main__.get_settings", return_value=mock_settings):
            assert cmd_sync_offline(argparse.Namespace(owner="owner-7")) == 0
