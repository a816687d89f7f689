"""
Content-addressed naming for uploads.

Remote filenames have the form YYYY-MM-<8 hex chars><ext>: the UTC
year and month at naming time, the first eight hex digits of the MD5 of
the normalized image bytes, and the original extension as given.

The same normalized content named within the same calendar month always
gets the same filename; the remote store relies on that to overwrite or
skip duplicates. Eight hex digits is a deliberate, best-effort width.
"""

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from src.capture.normalize import NormalizedContent, normalize_content

logger = logging.getLogger(__name__)

DIGEST_LENGTH = 8


@dataclass(frozen=True)
class ContentFingerprint:
    """Truncated digest of normalized content, scoped to a month."""

    digest8: str
    year: int
    month: int
    extension: str

    @property
    def filename(self) -> str:
        """Remote filename for this fingerprint."""
        return f"{self.year:04d}-{self.month:02d}-{self.digest8}{self.extension}"


def _utc(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def fingerprint_content(content: NormalizedContent, now: datetime | None = None) -> ContentFingerprint:
    """
    Fingerprint already-normalized content.

    Args:
        content: Normalized bytes and original extension
        now: Naming time (defaults to the current UTC time; naive values are UTC)

    Returns:
        ContentFingerprint
    """
    stamp = _utc(now)
    digest = hashlib.md5(content.data).hexdigest()[:DIGEST_LENGTH]
    return ContentFingerprint(
        digest8=digest,
        year=stamp.year,
        month=stamp.month,
        extension=content.extension,
    )


def fingerprint_file(path: Path | str, now: datetime | None = None) -> ContentFingerprint:
    """Normalize a file and fingerprint the result."""
    content = normalize_content(path)
    fingerprint = fingerprint_content(content, now)
    logger.debug(
        f"Fingerprinted {Path(path).name} -> {fingerprint.filename} "
        f"(normalized={content.normalized})"
    )
    return fingerprint


def generate_filename(path: Path | str, now: datetime | None = None) -> str:
    """
    Derive the remote filename for an image file.

    Args:
        path: Image file on disk
        now: Naming time (defaults to the current UTC time)

    Returns:
        Filename like "2024-03-1a2b3c4d.png"
    """
    return fingerprint_file(path, now).filename


if __name__ == "__main__":
    import fire

    def name(path: str):
        """Show the remote filename for an image."""
        fingerprint = fingerprint_file(path)
        return {
            "path": path,
            "filename": fingerprint.filename,
            "digest": fingerprint.digest8,
        }

    fire.Fire({"name": name})
