"""
Capture Module for okyimages

- Content normalization and content-addressed naming
- Per-platform clipboard capture strategies
- The orchestrator that runs capture, naming and upload
"""

from src.capture.addressing import ContentFingerprint, generate_filename
from src.capture.clipboard import (
    CapturedImage,
    ClipboardCaptureStrategy,
    LinuxClipboardCapture,
    MacClipboardCapture,
    WindowsClipboardCapture,
    select_capture_strategy,
)
from src.capture.normalize import NormalizedContent, normalize_content
from src.capture.orchestrator import CaptureOrchestrator, CaptureOutcome

__all__ = [
    "CaptureOrchestrator",
    "CaptureOutcome",
    "CapturedImage",
    "ClipboardCaptureStrategy",
    "WindowsClipboardCapture",
    "MacClipboardCapture",
    "LinuxClipboardCapture",
    "select_capture_strategy",
    "ContentFingerprint",
    "generate_filename",
    "NormalizedContent",
    "normalize_content",
]
