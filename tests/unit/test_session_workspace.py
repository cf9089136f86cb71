"""Unit tests for SessionWorkspace and session id validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from livekb.services.session_workspace import (
    PROCESSED,
    UPLOADS,
    SessionWorkspace,
    validate_session_id,
)
from livekb.utils.errors import InvalidSessionIdError, UploadRejectedError


class TestValidateSessionId:
    @pytest.mark.parametrize("session_id", ["sessA", "a", "demo-2026_01", "9" * 128])
    def test_valid(self, session_id: str) -> None:
        assert validate_session_id(session_id) == session_id

    @pytest.mark.parametrize("session_id", ["", "../etc", "a/b", "-lead", "_lead", "has space", "x" * 129])
    def test_invalid(self, session_id: str) -> None:
        with pytest.raises(InvalidSessionIdError):
            validate_session_id(session_id)


class TestFolders:
    def test_create_is_idempotent(self, workspace: SessionWorkspace) -> None:
        first = workspace.create("sessA")
        second = workspace.create("sessA")

        assert first == second
        assert (first / UPLOADS).is_dir()
        assert (first / PROCESSED).is_dir()
        assert workspace.exists("sessA")

    def test_cleanup(self, workspace: SessionWorkspace) -> None:
        workspace.create("sessA")

        assert workspace.cleanup("sessA") is True
        assert workspace.exists("sessA") is False
        assert workspace.cleanup("sessA") is False

    def test_list_files_sorted_and_files_only(self, workspace: SessionWorkspace) -> None:
        workspace.save_upload("sessA", "b.txt", b"b")
        workspace.save_upload("sessA", "a.txt", b"a")
        (workspace.uploads_dir("sessA") / "subdir").mkdir()

        assert workspace.list_files("sessA") == ["a.txt", "b.txt"]
        assert workspace.list_files("sessA", PROCESSED) == []

    def test_list_files_unknown_area(self, workspace: SessionWorkspace) -> None:
        with pytest.raises(ValueError):
            workspace.list_files("sessA", "elsewhere")

    def test_list_files_missing_session(self, workspace: SessionWorkspace) -> None:
        assert workspace.list_files("never-created") == []


class TestSaveUpload:
    def test_saves_under_uploads(self, workspace: SessionWorkspace) -> None:
        path = workspace.save_upload("sessA", "notes.md", b"# hi")

        assert path == workspace.uploads_dir("sessA") / "notes.md"
        assert path.read_bytes() == b"# hi"

    def test_strips_directory_components(self, workspace: SessionWorkspace) -> None:
        path = workspace.save_upload("sessA", "../../escape.txt", b"x")

        assert path.parent == workspace.uploads_dir("sessA")
        assert path.name == "escape.txt"

    @pytest.mark.parametrize("name", ["", ".", "..", "/"])
    def test_rejects_unusable_names(self, workspace: SessionWorkspace, name: str) -> None:
        with pytest.raises(UploadRejectedError):
            workspace.save_upload("sessA", name, b"x")

    def test_rejects_oversized_upload(self, tmp_path: Path) -> None:
        workspace = SessionWorkspace(base_dir=tmp_path, max_upload_bytes=4)
        with pytest.raises(UploadRejectedError, match="limit"):
            workspace.save_upload("sessA", "big.txt", b"12345")

    def test_invalid_session_id(self, workspace: SessionWorkspace) -> None:
        with pytest.raises(InvalidSessionIdError):
            workspace.save_upload("../sessA", "a.txt", b"x")
