"""
okyimages Core Module

Paths, configuration, logging and the failure taxonomy shared by the
capture and upload code.
"""

from .errors import CaptureError, FailureKind
from .paths import (
    CACHE_DIR,
    CONFIG_PATH,
    DATA_ROOT,
    LOG_DIR,
    SCRATCH_DIR,
    ensure_data_directories,
    ensure_scratch_directory,
)

__all__ = [
    # Directory paths
    "DATA_ROOT",
    "CONFIG_PATH",
    "LOG_DIR",
    "CACHE_DIR",
    "SCRATCH_DIR",
    # Functions
    "ensure_data_directories",
    "ensure_scratch_directory",
    # Errors
    "CaptureError",
    "FailureKind",
]
