"""Environment configuration.

All settings come from environment variables (a local ``.env`` file is
loaded first when present) and are validated once at startup. A missing or
invalid required value raises :class:`ConfigurationError` carrying every
offending field, so the worker can report them all and exit before any run
starts.

SFTP settings are only required when ``OFFLINE_MODE`` is off; in offline
mode files are read from ``LOCAL_VOICE_INBOX`` instead.
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, ValidationError, field_validator

SFTP_REQUIRED = ("SFTP_HOST", "SFTP_USER", "SFTP_PASS", "SFTP_REMOTE_PATH")
DEFAULT_SFTP_PORT = 22


class ConfigurationError(ValueError):
    def __init__(self, field_errors: Dict[str, List[str]]):
        self.field_errors = field_errors
        fields = ", ".join(sorted(field_errors))
        super().__init__(f"Invalid environment configuration: {fields}")


def resolve_limit(value: Any) -> Optional[int]:
    """Positive int, or None (unlimited) for unset, non-numeric or non-positive values."""
    if value is None or f"{value}".strip() == "":
        return None
    try:
        parsed = int(f"{value}".strip())
    except ValueError:
        return None
    return parsed if parsed > 0 else None


def _truthy(value: Any) -> bool:
    return f"{value or ''}".strip().lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    log_level: str = Field(default="info", alias="DAPR_LOG_LEVEL")

    openai_api_key: str = Field(alias="OPENAI_API_KEY", min_length=1)
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    transcribe_model: str = Field(default="gpt-4o-transcribe", alias="OPENAI_TRANSCRIBE_MODEL")
    format_model: str = Field(default="gpt-4o-mini", alias="OPENAI_FORMAT_MODEL")

    offline_mode: bool = Field(default=False, alias="OFFLINE_MODE")
    local_inbox: str = Field(default="./local_voice_inbox", alias="LOCAL_VOICE_INBOX")

    sftp_host: Optional[str] = Field(default=None, alias="SFTP_HOST")
    sftp_port: int = Field(default=DEFAULT_SFTP_PORT, alias="SFTP_PORT", gt=0)
    sftp_user: Optional[str] = Field(default=None, alias="SFTP_USER")
    sftp_pass: Optional[str] = Field(default=None, alias="SFTP_PASS")
    sftp_remote_path: Optional[str] = Field(default=None, alias="SFTP_REMOTE_PATH")
    sftp_max_files: Optional[int] = Field(default=None, alias="SFTP_MAX_FILES")
    sftp_known_hosts: Optional[str] = Field(default=None, alias="SFTP_KNOWN_HOSTS")

    spaces_key: str = Field(alias="SPACES_KEY", min_length=1)
    spaces_secret: str = Field(alias="SPACES_SECRET", min_length=1)
    spaces_region: str = Field(alias="SPACES_REGION", min_length=1)
    spaces_bucket: str = Field(alias="SPACES_BUCKET", min_length=1)
    spaces_endpoint: Optional[AnyHttpUrl] = Field(default=None, alias="SPACES_ENDPOINT")
    spaces_prefix: str = Field(default="", alias="SPACES_PREFIX")

    metadata_store_uri: Optional[str] = Field(default=None, alias="METADATA_STORE_URI")
    state_store_name: str = Field(default="statestore", alias="STATE_STORE_NAME", min_length=1)
    collection_name: str = Field(default="calls", alias="COLLECTION_NAME", min_length=1)

    pipeline_max_files: Optional[int] = Field(default=None, alias="PIPELINE_MAX_FILES")
    pipeline_concurrency: int = Field(default=1, alias="PIPELINE_CONCURRENCY", ge=1)
    retry_attempts: int = Field(default=3, alias="RETRY_ATTEMPTS", ge=1)
    staging_dir: str = Field(default="./.work/pipeline", alias="STAGING_DIR")
    poll_interval: int = Field(default=0, alias="POLL_INTERVAL", ge=0)

    @field_validator("sftp_port", mode="before")
    @classmethod
    def _default_port(cls, value: Any) -> Any:
        if value is None or f"{value}".strip() == "":
            return DEFAULT_SFTP_PORT
        try:
            return int(f"{value}".strip())
        except ValueError:
            return DEFAULT_SFTP_PORT

    @field_validator("sftp_max_files", "pipeline_max_files", mode="before")
    @classmethod
    def _limit(cls, value: Any) -> Optional[int]:
        return resolve_limit(value)

    @field_validator("offline_mode", mode="before")
    @classmethod
    def _flag(cls, value: Any) -> bool:
        return _truthy(value)

    @field_validator("spaces_endpoint", "metadata_store_uri", "sftp_known_hosts", mode="before")
    @classmethod
    def _blank_is_none(cls, value: Any) -> Any:
        if value is None or f"{value}".strip() == "":
            return None
        return value

    @property
    def remote_root(self) -> str:
        return "/" if self.offline_mode else (self.sftp_remote_path or "/")

    @property
    def endpoint(self) -> Optional[str]:
        return str(self.spaces_endpoint).rstrip("/") if self.spaces_endpoint else None


def _missing_remote_fields(env: Mapping[str, str]) -> Dict[str, List[str]]:
    if _truthy(env.get("OFFLINE_MODE")):
        return {}
    return {name: [f"{name} is required"] for name in SFTP_REQUIRED if not (env.get(name) or "").strip()}


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    if environ is None:
        load_dotenv()
        environ = os.environ
    env = dict(environ)

    field_errors = _missing_remote_fields(env)
    try:
        settings = Settings.model_validate(env)
    except ValidationError as e:
        for err in e.errors():
            name = str(err["loc"][0]) if err["loc"] else "settings"
            message = f"{name} is required" if err["type"] == "missing" else err["msg"]
            field_errors.setdefault(name, []).append(message)
        raise ConfigurationError(field_errors) from e

    if field_errors:
        raise ConfigurationError(field_errors)
    return settings
