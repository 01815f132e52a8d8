"""Configuration loading and Pydantic models for asto."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field


class CredentialsConfig(BaseModel):
    """S3 credentials. Only the ``basic`` type is supported."""

    model_config = ConfigDict(populate_by_name=True)

    type: str = "basic"
    access_key_id: str = Field(default="", alias="accessKeyId")
    secret_access_key: str = Field(default="", alias="secretAccessKey")


class StorageConfig(BaseModel):
    """Storage backend configuration.

    ``type`` selects the backend; the remaining fields are read by the
    backend's factory (``path`` for fs, the rest for s3).
    """

    type: str = "fs"
    path: str = ""
    bucket: str = ""
    region: str | None = None
    endpoint: str | None = None
    multipart: bool = True
    credentials: CredentialsConfig | None = None


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = "text"


class AstoConfig(BaseModel):
    """Top-level asto configuration."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def _parse_multipart(value: Any) -> bool:
    """Only an explicit ``false`` disables multipart uploads."""
    if value is None:
        return True
    return str(value).strip().lower() != "false"


def parse_storage(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse a storage block from YAML data into a dict for Pydantic.

    Accepts the block as written in YAML: camelCase credential names and
    ``multipart`` given as a bool or a string.
    """
    if data is None:
        return {}

    result: dict[str, Any] = {"type": str(data.get("type", "fs"))}
    for name in ("path", "bucket", "region", "endpoint"):
        if data.get(name) is not None:
            result[name] = str(data[name])
    result["multipart"] = _parse_multipart(data.get("multipart"))

    cred_section = data.get("credentials")
    if isinstance(cred_section, dict):
        result["credentials"] = {
            "type": str(cred_section.get("type", "")),
            "access_key_id": str(cred_section.get("accessKeyId", "")),
            "secret_access_key": str(cred_section.get("secretAccessKey", "")),
        }
    return result


def _parse_logging(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the logging section from YAML data."""
    if data is None:
        return {}
    return {
        "level": data.get("level", "INFO"),
        "format": data.get("format", "text"),
    }


def load_config(path: Path) -> AstoConfig:
    """Load an AstoConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.

    Returns:
        A fully populated AstoConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        yaml.YAMLError: If the file is not valid YAML.
    """
    with open(path, "r") as fh:
        raw: dict[str, Any] = yaml.safe_load(fh) or {}

    return AstoConfig(
        storage=StorageConfig(**parse_storage(raw.get("storage"))),
        logging=LoggingConfig(**_parse_logging(raw.get("logging"))),
    )
