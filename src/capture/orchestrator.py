"""
Capture Orchestrator for okyimages

Coordinates one user-triggered upload from start to finish:

    capture_from_clipboard:
        scratch dir check -> clipboard capture -> normalize -> name
        -> upload -> delete scratch file (always)

    capture_from_file:
        normalize -> name -> upload (source file is never touched)

Each step waits for the previous one. Classified failures end the
pipeline and come back as a failed CaptureOutcome; nothing is retried.
The orchestrator does no UI work: callers hand the outcome to whatever
inserts text or shows notifications.
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from src.capture.addressing import generate_filename
from src.capture.clipboard import (
    CapturedImage,
    ClipboardCaptureStrategy,
    select_capture_strategy,
)
from src.core.errors import CaptureError, FailureKind, FilesystemError
from src.core.logging import OperationTimer
from src.core.paths import SCRATCH_DIR, ensure_scratch_directory
from src.upload.client import UploadClient, UploadResult

logger = logging.getLogger(__name__)


@dataclass
class CaptureOutcome:
    """Terminal state of one capture invocation."""

    success: bool
    display_name: str | None = None
    result: UploadResult | None = None
    error: CaptureError | None = None

    @property
    def url(self) -> str | None:
        return self.result.url if self.result else None

    @property
    def kind(self) -> FailureKind | None:
        return self.error.kind if self.error else None

    @property
    def message(self) -> str:
        """Single human-readable line for the notification collaborator."""
        if self.error is not None:
            return self.error.message
        return f"Image uploaded: {self.url}"

    @classmethod
    def succeeded(cls, display_name: str, result: UploadResult) -> "CaptureOutcome":
        return cls(success=True, display_name=display_name, result=result)

    @classmethod
    def failed(cls, error: CaptureError, display_name: str | None = None) -> "CaptureOutcome":
        return cls(success=False, display_name=display_name, error=error)


def _scratch_name(now_ms: int) -> str:
    return f"image-{now_ms}.png"


class CaptureOrchestrator:
    """Runs the capture, addressing and upload steps for one command."""

    def __init__(
        self,
        strategy: ClipboardCaptureStrategy | None = None,
        uploader: UploadClient | None = None,
        scratch_dir: Path | str | None = None,
        clock: Callable[[], float] | None = None,
    ):
        """
        Args:
            strategy: Clipboard capture strategy (defaults to the platform's)
            uploader: Upload client (defaults to UploadClient())
            scratch_dir: Where clipboard captures are written
            clock: Returns seconds since the epoch, used in scratch names
        """
        self.strategy = strategy or select_capture_strategy()
        self.uploader = uploader or UploadClient()
        self.scratch_dir = Path(scratch_dir) if scratch_dir else SCRATCH_DIR
        self.clock = clock or time.time
        self._scratch_verified = False

    async def capture_from_clipboard(self) -> CaptureOutcome:
        """
        Upload the image currently on the clipboard.

        Returns:
            CaptureOutcome; on failure no scratch file is left behind
        """
        try:
            scratch_dir = await self._prepare_scratch_dir()
        except CaptureError as e:
            return self._fail(e)

        target = scratch_dir / _scratch_name(int(self.clock() * 1000))
        display_name = target.name

        captured: CapturedImage | None = None
        try:
            captured = await self.strategy.capture(target)
        except CaptureError as e:
            return self._fail(e, display_name)
        finally:
            if captured is None:
                await self._discard(CapturedImage(path=target, owned=True))

        try:
            result = await self._upload(captured)
        except CaptureError as e:
            return self._fail(e, display_name)
        finally:
            await self._discard(captured)

        return CaptureOutcome.succeeded(display_name, result)

    async def capture_from_file(self, path: Path | str) -> CaptureOutcome:
        """
        Upload a user-selected image file.

        Args:
            path: Existing image file; it is never modified or deleted

        Returns:
            CaptureOutcome
        """
        source = Path(path).expanduser()
        display_name = source.name

        if not source.is_file():
            return self._fail(FilesystemError(f"{source} is not a readable file"), display_name)

        selected = CapturedImage(
            path=source.resolve(),
            created_at=datetime.fromtimestamp(self.clock()),
            owned=False,
        )
        try:
            result = await self._upload(selected)
        except CaptureError as e:
            return self._fail(e, display_name)

        return CaptureOutcome.succeeded(display_name, result)

    async def _prepare_scratch_dir(self) -> Path:
        if not self._scratch_verified:
            await asyncio.to_thread(ensure_scratch_directory, self.scratch_dir)
            self._scratch_verified = True
        elif not self.scratch_dir.is_dir():
            await asyncio.to_thread(ensure_scratch_directory, self.scratch_dir)
        return self.scratch_dir

    async def _upload(self, image: CapturedImage) -> UploadResult:
        try:
            with OperationTimer(logger, "normalize_and_name", path=str(image.path)):
                filename = await asyncio.to_thread(generate_filename, image.path)
            data = await asyncio.to_thread(image.path.read_bytes)
        except OSError as e:
            raise FilesystemError(f"cannot read {image.path}: {e}") from e

        logger.info(f"Uploading {image.display_name} as {filename}")
        return await self.uploader.upload(data, filename)

    async def _discard(self, image: CapturedImage) -> None:
        if not image.owned:
            return
        try:
            await asyncio.to_thread(image.path.unlink, missing_ok=True)
            logger.debug(f"Removed scratch file {image.path}")
        except OSError as e:
            logger.warning(f"Could not remove scratch file {image.path}: {e}")

    def _fail(self, error: CaptureError, display_name: str | None = None) -> CaptureOutcome:
        logger.warning(f"Capture failed ({error.kind.value}): {error.message}")
        return CaptureOutcome.failed(error, display_name)


if __name__ == "__main__":
    import fire

    def paste():
        """Upload the clipboard image and print the URL."""
        outcome = asyncio.run(CaptureOrchestrator().capture_from_clipboard())
        return {"success": outcome.success, "url": outcome.url, "message": outcome.message}

    def upload(path: str):
        """Upload an image file and print the URL."""
        outcome = asyncio.run(CaptureOrchestrator().capture_from_file(path))
        return {"success": outcome.success, "url": outcome.url, "message": outcome.message}

    fire.Fire(
        {
            "paste": paste,
            "upload": upload,
        }
    )
