"""
Configuration — typed, validated settings loaded from environment/env file.

Uses pydantic-settings to:
  - Load from environment variables
  - Fall back to an env file (``--config PATH`` on the command line)
  - Validate types and constraints before anything touches the CA files

Only AppSettings is a BaseSettings instance. Sub-settings are plain BaseModel
classes populated via env_nested_delimiter="__", so CA__CACRL maps to
ca.cacrl and SERVER__STATUS_URL maps to server.status_url.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CA_DIRECTORY = Path("/etc/puppetlabs/puppetserver/ca")
_DEFAULT_FILENAMES = {"cacert": "ca_crt.pem", "cakey": "ca_key.pem", "cacrl": "ca_crl.pem"}


class CaSettings(BaseModel):
    """
    Locations of the CA material.

    ``cacert``, ``cakey`` and ``cacrl`` default to ca_crt.pem, ca_key.pem and
    ca_crl.pem inside ``directory`` when not set explicitly.
    """

    directory: Path = Field(default=DEFAULT_CA_DIRECTORY, description="CA directory")
    cacert: Path = Field(description="CA certificate (PEM or DER)")
    cakey: Path = Field(description="CA private key (PEM or DER)")
    cacrl: Path = Field(description="CRL file to prune")

    @model_validator(mode="before")
    @classmethod
    def resolve_paths(cls, data: Any) -> Any:
        """Fill unset file paths from ``directory``."""
        if not isinstance(data, dict):
            return data
        directory = Path(data.get("directory") or DEFAULT_CA_DIRECTORY)
        resolved = dict(data)
        for name, filename in _DEFAULT_FILENAMES.items():
            if resolved.get(name) is None:
                resolved[name] = directory / filename
        return resolved

    def paths(self) -> tuple[Path, Path, Path]:
        """Return (cacert, cakey, cacrl)."""
        return self.cacert, self.cakey, self.cacrl


class ServerSettings(BaseModel):
    """CA service status endpoint used for the "is the CA offline" precondition."""

    status_url: str = Field(
        default="https://localhost:8140/status/v1/simple/ca",
        description="URL that answers whenever the CA service is running",
    )
    verify_tls: bool = Field(
        default=False,
        description="Verify the service certificate (the CA cert is often not in the trust store)",
    )

    @field_validator("status_url")
    @classmethod
    def validate_scheme(cls, value: str) -> str:
        if not value.startswith(("http://", "https://")):
            raise ValueError(f"status_url must be an http(s) URL, got {value!r}")
        return value


class AppSettings(BaseSettings):
    """
    Root application settings — aggregates all sub-settings.

    Load order (highest priority first):
      1. Environment variables
      2. Env file passed as ``_env_file`` (the --config option)
      3. Default values
    """

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    ca: CaSettings = Field(default_factory=lambda: CaSettings.model_validate({}))
    server: ServerSettings = Field(default_factory=lambda: ServerSettings())

    http_timeout_seconds: int = Field(default=5, ge=1)
    crl_file_mode: int = Field(default=0o644, ge=0, le=0o777)
    log_level: str = Field(default="INFO")

    @field_validator("crl_file_mode", mode="before")
    @classmethod
    def parse_octal_mode(cls, value: object) -> object:
        """Accept modes written the usual way, e.g. "0644" or "0o644"."""
        if isinstance(value, str):
            return int(value, 8)
        return value
