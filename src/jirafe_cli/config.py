"""Configuration for the Jirafe CLI.

Two layers live here:

- `JirafeSettings`: runtime settings loaded from environment variables and a
  local `.env` file (base URL, timeout, log level, store location, optional
  credential overrides).
- `SettingsStore`: the persisted credential file written by `jirafe config set`.

Credentials are re-read from these sources on every CLI invocation and handed to
the transport client as an explicit `Credentials` value.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://event.jirafe.com/v2"

SITE_ID_KEY = "siteId"
API_TOKEN_KEY = "apiToken"


def _default_config_path() -> Path:
    return Path.home() / ".config" / "jirafe-cli" / "config.json"


class JirafeSettings(BaseSettings):
    """Runtime settings for the CLI.

    Environment variables:
    - JIRAFE_BASE_URL         (optional)
    - JIRAFE_CONFIG_PATH      (optional)
    - JIRAFE_TIMEOUT_SECONDS  (optional)
    - JIRAFE_LOG_LEVEL        (optional)
    - JIRAFE_SITE_ID          (optional, overrides the stored site ID)
    - JIRAFE_API_TOKEN        (optional, overrides the stored token)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `JirafeSettings(_env_file=path_to_env)`.
    """

    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        validation_alias="JIRAFE_BASE_URL",
        description="Event ingestion API base URL",
    )

    config_path: Path = Field(
        default_factory=_default_config_path,
        validation_alias="JIRAFE_CONFIG_PATH",
        description="JSON file where `jirafe config set` persists credentials",
    )

    timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias="JIRAFE_TIMEOUT_SECONDS",
        description="Per-request HTTP timeout",
    )

    log_level: str = Field(
        default="WARNING",
        validation_alias="JIRAFE_LOG_LEVEL",
        description="Root logging level",
    )

    site_id: str | None = Field(
        default=None,
        validation_alias="JIRAFE_SITE_ID",
        description="Site ID override; takes precedence over the stored value",
    )
    api_token: str | None = Field(
        default=None,
        validation_alias="JIRAFE_API_TOKEN",
        description="API token override; takes precedence over the stored value",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value!r}")
        return level


@dataclass(frozen=True, slots=True)
class Credentials:
    """Site ID and API token required for every network call."""

    site_id: str
    api_token: str

    @property
    def is_complete(self) -> bool:
        return bool(self.site_id.strip()) and bool(self.api_token.strip())


class StoredConfig(BaseModel):
    """On-disk representation of the credential file."""

    site_id: str = Field(default="", alias=SITE_ID_KEY)
    api_token: str = Field(default="", alias=API_TOKEN_KEY)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


_FIELDS_BY_KEY: dict[str, str] = {
    SITE_ID_KEY: "site_id",
    API_TOKEN_KEY: "api_token",
}


class SettingsStore:
    """JSON-file backed store for the two credential values."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> StoredConfig:
        if not self._path.exists():
            return StoredConfig()

        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning(
                "Config file is not valid JSON; treating as empty",
                extra={"path": str(self._path)},
            )
            return StoredConfig()

        if not isinstance(raw, dict):
            logger.warning(
                "Config file does not contain an object; treating as empty",
                extra={"path": str(self._path)},
            )
            return StoredConfig()

        return StoredConfig.model_validate(raw)

    def save(self, stored: StoredConfig) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(stored.model_dump(by_alias=True), indent=2) + "\n",
            encoding="utf-8",
        )
        self._path.chmod(0o600)
        logger.debug("Config saved", extra={"path": str(self._path)})

    def get(self, key: str) -> str:
        field = self._field_for(key)
        value: str = getattr(self.load(), field)
        return value

    def set(self, key: str, value: str) -> None:  # noqa: A003 (store API)
        field = self._field_for(key)
        stored = self.load()
        self.save(stored.model_copy(update={field: value}))

    def all(self) -> dict[str, str]:  # noqa: A003 (store API)
        return self.load().model_dump(by_alias=True)

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()
            logger.info("Config cleared", extra={"path": str(self._path)})

    def is_configured(self) -> bool:
        return self.credentials().is_complete

    def credentials(self) -> Credentials:
        stored = self.load()
        return Credentials(site_id=stored.site_id, api_token=stored.api_token)

    @staticmethod
    def _field_for(key: str) -> str:
        try:
            return _FIELDS_BY_KEY[key]
        except KeyError:
            raise KeyError(f"Unknown config key: {key!r}") from None


def resolve_credentials(settings: JirafeSettings, store: SettingsStore) -> Credentials:
    """Combine stored credentials with environment overrides."""

    stored = store.credentials()
    site_id = (settings.site_id or "").strip() or stored.site_id
    api_token = (settings.api_token or "").strip() or stored.api_token
    return Credentials(site_id=site_id, api_token=api_token)
