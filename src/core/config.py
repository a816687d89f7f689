"""
Configuration for okyimages.

Settings are stored as JSON in DATA_ROOT/config.json and validated with
pydantic. A missing file means defaults; a broken file is logged and
ignored. Selected values can be overridden from the environment (the CLI
loads a .env file first):

    OKYIMAGES_UPLOAD_URL        -> upload.endpoint
    OKYIMAGES_RETRIEVAL_PREFIX  -> upload.retrieval_prefix
"""

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from src.core.paths import CONFIG_PATH

logger = logging.getLogger(__name__)

UPLOAD_ENDPOINT = "https://images.oky.ac.cn/api/upload"
RETRIEVAL_PREFIX = "https://images.oky.ac.cn/.netlify/images?url="

_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "OKYIMAGES_UPLOAD_URL": ("upload", "endpoint"),
    "OKYIMAGES_RETRIEVAL_PREFIX": ("upload", "retrieval_prefix"),
}


class UploadConfig(BaseModel):
    """Remote image store settings."""

    endpoint: str = Field(default=UPLOAD_ENDPOINT, description="Multipart upload URL")
    retrieval_prefix: str = Field(
        default=RETRIEVAL_PREFIX, description="Prefix joined with the returned image path"
    )
    field_name: str = Field(default="file", min_length=1, description="Multipart file field")
    timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP request timeout")


class CaptureConfig(BaseModel):
    """Clipboard capture settings."""

    initial_timeout_seconds: float = Field(
        default=15.0, gt=0, description="Inactivity window before the helper first speaks"
    )
    settle_timeout_seconds: float = Field(
        default=2.0, gt=0, description="Inactivity window after each chunk of helper output"
    )
    helpers_dir: str | None = Field(
        default=None, description="Directory holding capture helper scripts"
    )


class NotificationsConfig(BaseModel):
    """Desktop notification settings."""

    enabled: bool = True


class AppConfig(BaseModel):
    """Complete application configuration."""

    upload: UploadConfig = Field(default_factory=UploadConfig)
    capture: CaptureConfig = Field(default_factory=CaptureConfig)
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)


DEFAULT_CONFIG: dict[str, Any] = AppConfig().model_dump()


def validate_config(data: dict[str, Any]) -> list[str]:
    """
    Validate a raw configuration dictionary.

    Args:
        data: Parsed config.json content

    Returns:
        List of human-readable errors (empty when valid)
    """
    try:
        AppConfig.model_validate(data)
    except ValidationError as e:
        return [
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
    return []


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    for env_var, (section, key) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            data.setdefault(section, {})[key] = value
            logger.debug(f"{section}.{key} overridden by {env_var}")
    return data


def load_config(path: Path | str | None = None) -> AppConfig:
    """
    Load configuration from disk, falling back to defaults.

    Args:
        path: Config file to read (defaults to DATA_ROOT/config.json)

    Returns:
        Validated AppConfig
    """
    config_path = Path(path) if path else CONFIG_PATH
    data: dict[str, Any] = {}

    if config_path.exists():
        try:
            loaded = json.loads(config_path.read_text(encoding="utf-8"))
            if isinstance(loaded, dict):
                data = loaded
            else:
                logger.warning(f"Ignoring {config_path}: top level must be an object")
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable config {config_path}: {e}")

    errors = validate_config(data)
    if errors:
        logger.warning(f"Ignoring invalid config {config_path}: {'; '.join(errors)}")
        data = {}

    return AppConfig.model_validate(_apply_env_overrides(data))


def save_config(config: AppConfig, path: Path | str | None = None) -> bool:
    """
    Write configuration to disk.

    Args:
        config: Configuration to persist
        path: Destination (defaults to DATA_ROOT/config.json)

    Returns:
        True if the file was written
    """
    config_path = Path(path) if path else CONFIG_PATH
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(json.dumps(config.model_dump(), indent=2) + "\n", encoding="utf-8")
        logger.info(f"Saved config to {config_path}")
        return True
    except OSError as e:
        logger.error(f"Failed to save config {config_path}: {e}")
        return False


if __name__ == "__main__":
    import fire

    def show():
        """Show the effective configuration."""
        return load_config().model_dump()

    def defaults():
        """Show the default configuration."""
        return DEFAULT_CONFIG

    def validate(path: str | None = None):
        """Validate a config file."""
        config_path = Path(path) if path else CONFIG_PATH
        data = json.loads(config_path.read_text(encoding="utf-8"))
        errors = validate_config(data)
        return {"valid": not errors, "errors": errors}

    fire.Fire(
        {
            "show": show,
            "defaults": defaults,
            "validate": validate,
        }
    )
