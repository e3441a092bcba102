from __future__ import annotations

import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from staticdeploy.exceptions import ConfigError

DEFAULT_GROUP = "aws"


class ConfigGroup(BaseModel):
    """One named deploy target: a bucket, an optional key prefix and client settings."""
    model_config = ConfigDict(extra='ignore', populate_by_name=True, frozen=True)

    bucket: str = Field(..., alias="Bucket", description="Target bucket name.")
    path: Optional[str] = Field(None, description="Key prefix prepended to every uploaded key.")
    region: Optional[str] = Field(None, description="Region used to build the S3 client.")
    endpoint: Optional[str] = Field(None, description="Custom endpoint, e.g. MinIO or another S3-compatible store.")
    access_key: Optional[str] = Field(None, alias="accessKeyId", description="Static access key id.")
    secret_key: Optional[str] = Field(None, alias="secretAccessKey", description="Static secret access key.")

    @field_validator("bucket")
    @classmethod
    def _bucket_not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("Bucket must be a non-empty string.")
        return value

    @model_validator(mode="after")
    def _credentials_all_or_nothing(self) -> "ConfigGroup":
        has_access = bool(self.access_key and self.access_key.strip())
        has_secret = bool(self.secret_key and self.secret_key.strip())
        if has_access != has_secret:
            raise ValueError(
                "ConfigGroup requires all-or-nothing credentials: "
                "set both access key and secret key, or neither (for IAM role/default chain)."
            )
        return self


@dataclass(frozen=True)
class UploadOptions:
    dry_run: bool = False


def config_group(config: Mapping[str, Any], name: str) -> ConfigGroup:
    """Resolve the group called ``name`` from a mapping of group name to record."""
    raw = config.get(name)
    if raw is None:
        raise ConfigError(f"Configuration group {name!r} not found; available: {sorted(config)}")
    if isinstance(raw, ConfigGroup):
        return raw
    try:
        return ConfigGroup.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Configuration group {name!r} is invalid: {exc}") from exc


def load_config(path: str | Path) -> dict[str, Any]:
    config_path = Path(path)
    if not config_path.exists():
        raise ConfigError(f"Config file not found at '{config_path}'")
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise ConfigError(f"Config file '{config_path}' is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file '{config_path}' must contain an object of named groups")
    return raw


def config_from_env(name: str = DEFAULT_GROUP) -> dict[str, Any]:
    bucket = os.getenv('STATIC_DEPLOY_BUCKET')
    if bucket is None:
        raise ConfigError("Environment variable 'STATIC_DEPLOY_BUCKET' is required but not set.")
    return {
        name: {
            "Bucket": bucket,
            "path": os.getenv('STATIC_DEPLOY_PATH') or None,
            "endpoint": os.getenv('AWS_S3_ENDPOINT') or None,
            "accessKeyId": os.getenv('AWS_S3_ACCESS_KEY') or None,
            "secretAccessKey": os.getenv('AWS_S3_SECRET_KEY') or None,
            "region": os.getenv('AWS_REGION') or os.getenv('AWS_DEFAULT_REGION') or None,
        }
    }
