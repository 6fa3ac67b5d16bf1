"""
Artifact store for final signed documents.
Local filesystem (volume mount); public URLs are built from ARTIFACT_BASE_URL.
"""

import shutil
from pathlib import Path
from typing import Optional

import structlog

from fiscal_review.config import settings
from fiscal_review.storage.paths import ensure_parent_dirs, report_artifact_dir

logger = structlog.get_logger(__name__)


class ArtifactStore:
    """
    Save and load report artifacts.
    All paths are relative to the store root.
    """

    def __init__(self, root: Optional[str] = None, base_url: Optional[str] = None):
        self.root = Path(root or settings.ARTIFACT_ROOT)
        self.root.mkdir(parents=True, exist_ok=True)
        self.base_url = (base_url if base_url is not None else settings.ARTIFACT_BASE_URL).rstrip("/")

    def save_bytes(self, relative_path: str, data: bytes) -> str:
        """Save raw bytes, overwriting any previous content. Returns the relative path."""
        full_path = ensure_parent_dirs(str(self.root), relative_path)
        full_path.write_bytes(data)
        logger.info("artifact_saved", path=relative_path, size_bytes=len(data))
        return relative_path

    def load_bytes(self, relative_path: str) -> bytes:
        """Load raw bytes from storage."""
        full_path = self.root / relative_path
        if not full_path.exists():
            raise FileNotFoundError(f"Artifact not found: {relative_path}")
        return full_path.read_bytes()

    def public_url(self, relative_path: str) -> str:
        """URL under which an artifact is served."""
        return f"{self.base_url}/{relative_path}"

    def delete(self, relative_path: str) -> bool:
        """Delete an artifact. Returns True if it existed."""
        full_path = self.root / relative_path
        if full_path.exists():
            full_path.unlink()
            logger.info("artifact_deleted", path=relative_path)
            return True
        return False

    def delete_report_artifacts(self, report_id: str) -> int:
        """Delete all artifacts for a report. Returns count deleted."""
        report_dir = self.root / report_artifact_dir(report_id)
        if not report_dir.exists():
            return 0
        count = sum(1 for _ in report_dir.rglob("*") if _.is_file())
        shutil.rmtree(report_dir)
        logger.info("report_artifacts_deleted", report_id=report_id, count=count)
        return count

    def list_artifacts(self, report_id: str) -> list[str]:
        """List all artifact paths for a report."""
        report_dir = self.root / report_artifact_dir(report_id)
        if not report_dir.exists():
            return []
        return sorted(
            str(p.relative_to(self.root))
            for p in report_dir.rglob("*")
            if p.is_file()
        )
