"""Upload client for the remote image store."""

from src.upload.client import UploadClient, UploadResult

__all__ = ["UploadClient", "UploadResult"]
