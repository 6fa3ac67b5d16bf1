"""
Path generation for artifact storage.
All paths are relative to ARTIFACT_ROOT and grouped per report.
"""

import hashlib
import re
from datetime import datetime
from pathlib import Path


def content_hash(data: bytes) -> str:
    """SHA-256 hash of artifact content."""
    return hashlib.sha256(data).hexdigest()


def _slug(value: str) -> str:
    return re.sub(r"[^A-Za-z0-9_-]+", "-", value).strip("-") or "report"


def final_report_path(report_id: str, competence_period: str, stamp: datetime, extension: str = "json") -> str:
    """Path for a report's final signed document."""
    return f"final-reports/{report_id}/final_{_slug(competence_period)}_{stamp:%Y%m%dT%H%M%S}.{extension}"


def report_artifact_dir(report_id: str) -> str:
    """Directory holding every artifact of one report."""
    return f"final-reports/{report_id}"


def ensure_parent_dirs(artifact_root: str, relative_path: str) -> Path:
    """Create parent directories and return the full absolute path."""
    full_path = Path(artifact_root) / relative_path
    full_path.parent.mkdir(parents=True, exist_ok=True)
    return full_path
