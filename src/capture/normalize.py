"""
Image Content Normalization for okyimages

Re-encodes raster images so that the same pixels always produce the same
bytes, whatever tool put them on disk. Container metadata (EXIF, ICC
profiles, text chunks, timestamps) is dropped; keys that change how the
pixels render (transparency, frame timing) are kept.

Normalization never fails: anything Pillow cannot round-trip, and any file
outside the raster set, is returned as its raw bytes.
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path

from PIL import Image

logger = logging.getLogger(__name__)

RASTER_EXTENSIONS: frozenset[str] = frozenset({".png", ".jpg", ".jpeg", ".gif", ".webp"})

# info keys that affect rendered pixels; everything else is metadata
_RENDER_INFO_KEYS = ("transparency", "duration", "loop", "disposal", "background", "blend")


@dataclass(frozen=True)
class NormalizedContent:
    """Canonical bytes of an image plus the extension it came with."""

    data: bytes
    extension: str
    normalized: bool


def is_supported_image(path: Path | str) -> bool:
    """Check whether a path has one of the supported raster extensions."""
    return Path(path).suffix.lower() in RASTER_EXTENSIONS


def _save_options(image: Image.Image, image_format: str) -> dict:
    options: dict = {key: image.info[key] for key in _RENDER_INFO_KEYS if key in image.info}

    if getattr(image, "n_frames", 1) > 1:
        options["save_all"] = True

    if image_format == "JPEG":
        # Reuse the source quantization tables so pixels survive the round trip
        options["quality"] = "keep"
    elif image_format == "WEBP":
        options["lossless"] = True
        options["quality"] = 100
        options["method"] = 4
    elif image_format == "PNG":
        options["optimize"] = False

    return options


def reencode_image(raw: bytes) -> bytes:
    """
    Decode image bytes and encode them again in the same format.

    Args:
        raw: Encoded image bytes

    Returns:
        Re-encoded bytes without container metadata

    Raises:
        Exception: Whatever Pillow raises for undecodable or unsupported input
    """
    with Image.open(io.BytesIO(raw)) as image:
        image_format = image.format
        if image_format is None:
            raise ValueError("could not determine image format")
        image.load()

        options = _save_options(image, image_format)
        image.info = {}

        buffer = io.BytesIO()
        image.save(buffer, format=image_format, **options)
        return buffer.getvalue()


def normalize_content(path: Path | str, extension: str | None = None) -> NormalizedContent:
    """
    Produce the canonical byte sequence for an image file.

    Args:
        path: File to read
        extension: Extension to classify the file by (defaults to the path's suffix)

    Returns:
        NormalizedContent; `normalized` is False when the raw bytes were kept

    Raises:
        OSError: If the file itself cannot be read
    """
    path = Path(path)
    if extension is None:
        extension = path.suffix
    raw = path.read_bytes()

    if extension.lower() not in RASTER_EXTENSIONS:
        return NormalizedContent(data=raw, extension=extension, normalized=False)

    try:
        data = reencode_image(raw)
    except Exception as e:
        logger.debug(f"Normalization failed for {path.name}, hashing raw bytes: {e}")
        return NormalizedContent(data=raw, extension=extension, normalized=False)

    return NormalizedContent(data=data, extension=extension, normalized=True)


if __name__ == "__main__":
    import fire

    def inspect(path: str):
        """Show how a file normalizes."""
        content = normalize_content(path)
        return {
            "path": path,
            "extension": content.extension,
            "normalized": content.normalized,
            "raw_size": Path(path).stat().st_size,
            "normalized_size": len(content.data),
        }

    fire.Fire({"inspect": inspect})
