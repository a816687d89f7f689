"""
Data Directory Layout for okyimages

All local state lives under DATA_ROOT (~/.okyimages by default):

    .okyimages/
    ├── config.json               # User configuration (optional)
    ├── logs/                     # Rotating plain-text and JSON logs
    └── cache/
        └── scratch/              # Clipboard captures awaiting upload

Scratch files are owned by the capture pipeline and removed after every
upload attempt. Nothing else under DATA_ROOT is written by the pipeline.
"""

import logging
import os
import uuid
from pathlib import Path

from src.core.errors import FilesystemError

logger = logging.getLogger(__name__)

# Allow override via environment variable for testing
_data_root_override = os.environ.get("OKYIMAGES_DATA_ROOT")
DATA_ROOT: Path = Path(_data_root_override) if _data_root_override else Path.home() / ".okyimages"

CONFIG_PATH: Path = DATA_ROOT / "config.json"
LOG_DIR: Path = DATA_ROOT / "logs"
CACHE_DIR: Path = DATA_ROOT / "cache"
SCRATCH_DIR: Path = CACHE_DIR / "scratch"

_REQUIRED_DIRS: tuple[Path, ...] = (
    LOG_DIR,
    CACHE_DIR,
    SCRATCH_DIR,
)


def ensure_data_directories() -> dict[str, bool]:
    """
    Ensure all required data directories exist.

    Idempotent; safe to call on every start.

    Returns:
        Dictionary mapping directory names (relative to DATA_ROOT) to whether
        they were created (True) or already existed (False).
    """
    results: dict[str, bool] = {}

    for dir_path in _REQUIRED_DIRS:
        try:
            created = not dir_path.exists()
            dir_path.mkdir(parents=True, exist_ok=True)
            results[str(dir_path.relative_to(DATA_ROOT))] = created
            if created:
                logger.info(f"Created directory: {dir_path}")
        except OSError as e:
            logger.error(f"Failed to create directory {dir_path}: {e}")
            raise

    return results


def ensure_scratch_directory(scratch_dir: Path | str | None = None) -> Path:
    """
    Create the scratch directory if needed and prove it is writable.

    The probe writes a throwaway file and removes it again.

    Args:
        scratch_dir: Directory to check (defaults to SCRATCH_DIR)

    Returns:
        The verified scratch directory

    Raises:
        FilesystemError: If the directory cannot be created or written to
    """
    directory = Path(scratch_dir) if scratch_dir else SCRATCH_DIR
    probe = directory / f".probe-{uuid.uuid4().hex[:8]}"

    try:
        if not directory.exists():
            directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created scratch directory: {directory}")
        probe.write_bytes(b"probe")
    except OSError as e:
        raise FilesystemError(f"scratch directory {directory} is not writable: {e}") from e
    finally:
        try:
            probe.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove scratch probe {probe}: {e}")

    return directory


if __name__ == "__main__":
    import fire

    def init():
        """Initialize all data directories."""
        results = ensure_data_directories()
        return {
            "data_root": str(DATA_ROOT),
            "directories": results,
            "created": sum(1 for created in results.values() if created),
        }

    def show():
        """Show all data paths."""
        return {
            "data_root": str(DATA_ROOT),
            "config": str(CONFIG_PATH),
            "logs": str(LOG_DIR),
            "cache": str(CACHE_DIR),
            "scratch": str(SCRATCH_DIR),
        }

    fire.Fire(
        {
            "init": init,
            "show": show,
        }
    )
