"""Per-session file area on local disk.

Layout::

    <base_dir>/<session_id>/
        uploads/     <- raw files as uploaded
        processed/   <- manifests written by the ingestion service

Folder creation is idempotent (``mkdir -p``).  Session ids are validated
before they touch the filesystem, and uploaded file names are reduced to
their base name.
"""

from __future__ import annotations

import re
import shutil
from pathlib import Path

import structlog

from livekb.utils.errors import InvalidSessionIdError, UploadRejectedError

logger = structlog.get_logger(logger_name=__name__)

UPLOADS = "uploads"
PROCESSED = "processed"
_AREAS = (UPLOADS, PROCESSED)

_SESSION_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,127}$")


def validate_session_id(session_id: str) -> str:
    """Return *session_id* unchanged, or raise :class:`InvalidSessionIdError`."""
    if not _SESSION_ID_RE.match(session_id or ""):
        raise InvalidSessionIdError(
            f"Invalid session id {session_id!r}: use letters, digits, '-' or '_' (max 128)"
        )
    return session_id


class SessionWorkspace:
    """Creates, lists and removes session folders under *base_dir*."""

    def __init__(self, base_dir: Path | str = "temp", max_upload_bytes: int | None = None) -> None:
        self._base_dir = Path(base_dir)
        self._max_upload_bytes = max_upload_bytes

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def session_dir(self, session_id: str) -> Path:
        return self._base_dir / validate_session_id(session_id)

    def uploads_dir(self, session_id: str) -> Path:
        return self.session_dir(session_id) / UPLOADS

    def processed_dir(self, session_id: str) -> Path:
        return self.session_dir(session_id) / PROCESSED

    def create(self, session_id: str) -> Path:
        """Create the session folder with both areas; safe to call repeatedly."""
        root = self.session_dir(session_id)
        for area in _AREAS:
            (root / area).mkdir(parents=True, exist_ok=True)
        logger.info("session_folder_ready", session_id=session_id, path=str(root))
        return root

    def exists(self, session_id: str) -> bool:
        return self.session_dir(session_id).is_dir()

    def list_files(self, session_id: str, area: str = UPLOADS) -> list[str]:
        if area not in _AREAS:
            raise ValueError(f"Unknown session area: {area}")
        folder = self.session_dir(session_id) / area
        if not folder.is_dir():
            return []
        return sorted(p.name for p in folder.iterdir() if p.is_file())

    def save_upload(self, session_id: str, file_name: str, data: bytes) -> Path:
        """Write *data* to the session's uploads area and return the path."""
        safe_name = Path(file_name).name
        if not safe_name or safe_name in {".", ".."}:
            raise UploadRejectedError(f"Invalid upload file name: {file_name!r}")
        if self._max_upload_bytes is not None and len(data) > self._max_upload_bytes:
            raise UploadRejectedError(
                f"Upload {safe_name} is {len(data)} bytes; limit is {self._max_upload_bytes}"
            )

        self.create(session_id)
        target = self.uploads_dir(session_id) / safe_name
        target.write_bytes(data)
        logger.info("upload_saved", session_id=session_id, file_name=safe_name, size=len(data))
        return target

    def cleanup(self, session_id: str) -> bool:
        """Remove the whole session folder; returns ``False`` if it did not exist."""
        root = self.session_dir(session_id)
        if not root.exists():
            return False
        shutil.rmtree(root)
        logger.info("session_folder_removed", session_id=session_id)
        return True
