"""Configuration management for the document extraction service.

Loads and validates YAML configuration for AI providers, pipeline
timeouts, and template storage.
"""

import logging
import os
from enum import StrEnum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr

logger = logging.getLogger(__name__)


class ProviderKind(StrEnum):
    """Kinds of AI provider the pipeline knows how to call."""

    VISION_OCR = "vision-ocr"
    LANGUAGE_MODEL = "language-model"


class ProviderConfig(BaseModel):
    """Credentials and options for one AI provider.

    Instances are frozen so a run can hold a snapshot that later
    configuration edits cannot touch.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: ProviderKind
    enabled: bool = True
    credential: SecretStr | None = None
    model_hint: str | None = None

    @property
    def has_credential(self) -> bool:
        return bool(self.credential and self.credential.get_secret_value())


class PipelineConfig(BaseModel):
    """Configuration for the extraction orchestrator."""

    provider_timeout_s: float = Field(default=30.0, gt=0)
    fallback_confidence: float = Field(default=0.5, ge=0.0, le=1.0)


class ServerConfig(BaseModel):
    """Configuration for the HTTP API server."""

    host: str = "127.0.0.1"
    port: int = 8000


class AppConfig(BaseModel):
    """Top-level application configuration."""

    providers: list[ProviderConfig] = Field(default_factory=list)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    templates_path: str = "configs/templates.yaml"
    log_level: str = "INFO"

    def enabled_providers(self) -> list[ProviderConfig]:
        """Return enabled providers that carry a credential, in declared order."""
        return [p for p in self.providers if p.enabled and p.has_credential]


def credential_env_var(provider_id: str) -> str:
    """Name of the environment variable holding a provider's credential."""
    return f"DOCFILL_{provider_id.upper().replace('-', '_')}_CREDENTIAL"


def _apply_env_credentials(raw: dict) -> dict:
    """Fill missing provider credentials from the environment.

    Args:
        raw: Parsed YAML configuration.

    Returns:
        The same mapping with credentials populated where available.
    """
    for provider in raw.get("providers") or []:
        if provider.get("credential") or "id" not in provider:
            continue
        value = os.environ.get(credential_env_var(provider["id"]))
        if value:
            provider["credential"] = value
    return raw


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**_apply_env_credentials(raw))

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
