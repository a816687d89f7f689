"""
Image store upload client.

POSTs a single multipart file field to the upload endpoint and turns the
reply into a public URL:

- 200 with {"imageUrl": "<relative path>"}: URL is retrieval_prefix + path,
  concatenated as-is
- 200 without imageUrl: rejected, the server must always return it
- any other status: rejected with the server's "details" field, or
  "unknown error"
- connection, DNS, TLS and timeout failures: NetworkError

No retries; the first failure is final.
"""

import logging
from dataclasses import dataclass
from typing import Any, BinaryIO

import httpx

from src.core.config import UploadConfig
from src.core.errors import NetworkError, RemoteRejectedError
from src.core.logging import OperationTimer

logger = logging.getLogger(__name__)

MISSING_URL_DETAIL = "upload succeeded but no URL returned"
UNKNOWN_ERROR_DETAIL = "unknown error"


@dataclass(frozen=True)
class UploadResult:
    """Public location of an uploaded image."""

    url: str
    image_path: str
    filename: str


def _json_body(response: httpx.Response) -> dict[str, Any]:
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


class UploadClient:
    """Uploads named byte streams to the image store."""

    def __init__(
        self,
        config: UploadConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Args:
            config: Endpoint settings (defaults to UploadConfig())
            transport: Custom httpx transport, mainly for tests
        """
        self.config = config or UploadConfig()
        self._transport = transport

    def build_url(self, image_path: str) -> str:
        """Join the retrieval prefix and a server-returned path without escaping."""
        return f"{self.config.retrieval_prefix}{image_path}"

    async def upload(self, data: bytes | BinaryIO, filename: str) -> UploadResult:
        """
        Upload one file.

        Args:
            data: File content, as bytes or a binary file object
            filename: Name sent in the multipart part

        Returns:
            UploadResult with the public URL

        Raises:
            NetworkError: The request did not complete
            RemoteRejectedError: The server refused or answered without a URL
        """
        files = {self.config.field_name: (filename, data)}

        try:
            async with httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            ) as client:
                with OperationTimer(logger, "upload", remote_name=filename):
                    response = await client.post(self.config.endpoint, files=files)
        except httpx.RequestError as e:
            logger.error(f"Upload of {filename} failed: {type(e).__name__}: {e}")
            raise NetworkError(str(e) or type(e).__name__) from e

        body = _json_body(response)

        if response.status_code != 200:
            detail = body.get("details") or UNKNOWN_ERROR_DETAIL
            logger.error(f"Upload of {filename} rejected ({response.status_code}): {detail}")
            raise RemoteRejectedError(str(detail))

        image_path = body.get("imageUrl")
        if not image_path:
            logger.error(f"Upload of {filename} returned no imageUrl")
            raise RemoteRejectedError(MISSING_URL_DETAIL)

        url = self.build_url(str(image_path))
        logger.info(f"Uploaded {filename} -> {url}")
        return UploadResult(url=url, image_path=str(image_path), filename=filename)


if __name__ == "__main__":
    import asyncio
    from pathlib import Path

    import fire

    def send(path: str, filename: str | None = None):
        """Upload a file as-is under the given remote filename."""
        file_path = Path(path)
        result = asyncio.run(UploadClient().upload(file_path.read_bytes(), filename or file_path.name))
        return {"url": result.url, "image_path": result.image_path}

    fire.Fire({"send": send})
