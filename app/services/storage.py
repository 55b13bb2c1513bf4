"""Stored attachment files under UPLOADS_DIR: path confinement and removal."""

import logging
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


def resolve_stored_path(file_path: str, uploads_dir: str) -> Path | None:
    """Absolute path of a stored file, or None when it would escape uploads_dir."""
    root = Path(uploads_dir).resolve()
    path = Path(file_path)
    if not path.is_absolute():
        path = root / path
    path = path.resolve()
    if not path.is_relative_to(root):
        return None
    return path


def remove_stored_files(file_paths: Iterable[str], uploads_dir: str) -> int:
    """
    Unlink stored files after their records were deleted. Missing files are ignored;
    files that cannot be removed are logged and skipped. Returns the number removed.
    """
    removed = 0
    for file_path in file_paths:
        path = resolve_stored_path(file_path, uploads_dir)
        if path is None:
            logger.warning("Stored file outside uploads directory not removed", extra={"file_path": file_path})
            continue
        try:
            if path.is_file():
                path.unlink()
                removed += 1
        except OSError as e:
            logger.warning(
                "Stored file could not be removed",
                extra={"file_path": file_path, "error": str(e)},
            )
    return removed
