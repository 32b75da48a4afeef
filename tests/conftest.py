"""Shared test fixtures for the document extraction test suite."""

from pathlib import Path

import pytest

from docfill.utils.config import ProviderConfig, ProviderKind


@pytest.fixture
def vision_config() -> ProviderConfig:
    """An enabled Vision provider with a dummy key."""
    return ProviderConfig(
        id="google-vision",
        kind=ProviderKind.VISION_OCR,
        credential="vision-key",
    )


@pytest.fixture
def llm_config() -> ProviderConfig:
    """An enabled OpenAI provider with a dummy key."""
    return ProviderConfig(
        id="openai",
        kind=ProviderKind.LANGUAGE_MODEL,
        credential="sk-test",
    )


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"
