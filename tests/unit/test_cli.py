"""Unit tests for the livekb.cli.ingest command-line tool."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest

from livekb.cli.ingest import _build_parser, main
from livekb.config.settings import Settings
from livekb.dependencies import build_components
from livekb.utils.errors import ConfigurationError
from tests.conftest import InMemoryIndexProvider, MockEmbeddingProvider

_BUILD_PATH = "livekb.cli.ingest.build_components"


@pytest.fixture
def components(tmp_path: Path) -> dict[str, Any]:
    settings = Settings(
        _env_file=None,
        session_root_dir=str(tmp_path / "sessions"),
        embedding_batch_delay=0.0,
    )
    return build_components(
        settings,
        config={},
        embedding_provider=MockEmbeddingProvider(),
        index_provider=InMemoryIndexProvider(),
    )


def _run(argv: list[str], components: dict[str, Any]) -> int:
    with patch(_BUILD_PATH, return_value=components):
        with pytest.raises(SystemExit) as exc_info:
            main(argv)
    return exc_info.value.code


class TestParser:
    def test_process_flags(self) -> None:
        args = _build_parser().parse_args(["process", "--session", "s1", "--file", "a.md", "--no-embed"])
        assert (args.command, args.session, args.file, args.no_embed) == ("process", "s1", "a.md", True)

    def test_cleanup_flags(self) -> None:
        args = _build_parser().parse_args(["cleanup", "--session", "s1", "--purge-vectors"])
        assert args.purge_vectors is True

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1
        assert "usage" in capsys.readouterr().out


class TestCommands:
    def test_process_then_list_then_context(
        self, components: dict[str, Any], capsys: pytest.CaptureFixture[str]
    ) -> None:
        workspace = components["workspace"]
        text = "The x402 protocol enables machine payments. It settles in 200ms."
        workspace.save_upload("s1", "x402.md", text.encode("utf-8"))

        assert _run(["process", "--session", "s1"], components) == 0
        out = capsys.readouterr().out
        assert "Files processed:  1" in out
        assert "Vectors indexed:  1" in out

        assert _run(["list", "--session", "s1"], components) == 0
        assert "x402.md" in capsys.readouterr().out

        assert _run(["context", "--session", "s1", "--topic", text], components) == 0
        assert "[Source: x402.md]" in capsys.readouterr().out

    def test_process_reports_failures(
        self, components: dict[str, Any], capsys: pytest.CaptureFixture[str]
    ) -> None:
        components["workspace"].save_upload("s1", "blank.txt", b"   \n")

        assert _run(["process", "--session", "s1", "--no-embed"], components) == 1
        assert "FAILED blank.txt" in capsys.readouterr().out

    def test_list_status(self, components: dict[str, Any], capsys: pytest.CaptureFixture[str]) -> None:
        components["workspace"].save_upload("s1", "pending.txt", b"not yet processed")

        assert _run(["list", "--session", "s1", "--status"], components) == 0
        assert "pending" in capsys.readouterr().out

    def test_cleanup(self, components: dict[str, Any], capsys: pytest.CaptureFixture[str]) -> None:
        components["workspace"].create("s1")

        assert _run(["cleanup", "--session", "s1", "--purge-vectors"], components) == 0
        assert "removed" in capsys.readouterr().out
        assert components["workspace"].exists("s1") is False

    def test_missing_file_is_an_error(
        self, components: dict[str, Any], capsys: pytest.CaptureFixture[str]
    ) -> None:
        components["workspace"].create("s1")

        assert _run(["process", "--session", "s1", "--file", "ghost.txt"], components) == 1
        assert "File not found" in capsys.readouterr().err

    def test_configuration_error(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch(_BUILD_PATH, side_effect=ConfigurationError("no embedding provider")):
            with pytest.raises(SystemExit) as exc_info:
                main(["list", "--session", "s1"])

        assert exc_info.value.code == 1
        assert "no embedding provider" in capsys.readouterr().err
