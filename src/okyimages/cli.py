"""Command-line interface for okyimages."""

import asyncio
import logging
import sys
from pathlib import Path

import fire
from dotenv import load_dotenv

from src.capture.addressing import fingerprint_file
from src.capture.clipboard import select_capture_strategy
from src.capture.normalize import RASTER_EXTENSIONS, is_supported_image
from src.capture.orchestrator import CaptureOrchestrator, CaptureOutcome
from src.core.config import AppConfig, load_config
from src.core.errors import FilesystemError
from src.core.logging import setup_logging
from src.core.paths import DATA_ROOT, ensure_data_directories
from src.platform.notifications import notify_outcome
from src.upload.client import UploadClient

logger = logging.getLogger(__name__)


def render_markdown_image(name: str, url: str) -> str:
    """Markdown image reference with the name as alt text and title."""
    return f'![{name}]({url} "{name}")'


class OkyImagesCLI:
    """Upload images from the clipboard or disk and print a markdown link."""

    def __init__(self, verbose: bool = False, notify: bool | None = None):
        """
        Args:
            verbose: Log progress to stderr
            notify: Force desktop notifications on or off (defaults to config)
        """
        load_dotenv(Path.cwd() / ".env")
        setup_logging(console_level=logging.DEBUG if verbose else logging.WARNING)
        self._config: AppConfig = load_config()
        self._notify = self._config.notifications.enabled if notify is None else notify

    def _orchestrator(self) -> CaptureOrchestrator:
        return CaptureOrchestrator(
            strategy=select_capture_strategy(config=self._config.capture),
            uploader=UploadClient(self._config.upload),
        )

    def _finish(self, outcome: CaptureOutcome) -> str:
        if self._notify:
            notify_outcome(outcome)
        if not outcome.success:
            print(outcome.message, file=sys.stderr)
            sys.exit(1)
        return render_markdown_image(outcome.display_name or "", outcome.url or "")

    def paste(self) -> str:
        """Upload the image on the clipboard."""
        outcome = asyncio.run(self._orchestrator().capture_from_clipboard())
        return self._finish(outcome)

    def upload(self, path: str) -> str:
        """Upload an image file.

        Args:
            path: Image file (png, jpg, jpeg, gif or webp)
        """
        if not is_supported_image(path):
            allowed = ", ".join(sorted(ext.lstrip(".") for ext in RASTER_EXTENSIONS))
            print(f"Unsupported image type: {path} (expected one of {allowed})", file=sys.stderr)
            sys.exit(2)
        outcome = asyncio.run(self._orchestrator().capture_from_file(path))
        return self._finish(outcome)

    def name(self, path: str) -> dict:
        """Show the remote filename an image would be uploaded as."""
        try:
            fingerprint = fingerprint_file(path)
        except OSError as e:
            print(FilesystemError(f"cannot read {path}: {e.strerror or e}").message, file=sys.stderr)
            sys.exit(1)
        return {"path": path, "filename": fingerprint.filename, "digest": fingerprint.digest8}

    def config(self) -> dict:
        """Show the effective configuration."""
        return {"data_root": str(DATA_ROOT), **self._config.model_dump()}

    def init(self) -> dict:
        """Create the data directories."""
        return ensure_data_directories()


def main() -> None:
    """Main entry point for the okyimages CLI."""
    fire.Fire(OkyImagesCLI)


if __name__ == "__main__":
    main()
