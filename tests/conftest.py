"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for azure_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from azfw.security import FORBIDDEN_CREDENTIAL_ENV_VARS  # noqa: E402

# Environment variables read by the CLI
CLI_ENV_VARS = (
    "RG",
    "FW",
    "VNET_RG",
    "VNET_NAME",
    "FW_SUBNET_NAME",
    "CONFIG_FILE",
    "UDR_CSV_FILE",
    "STORAGE_MODE",
    "STORAGE_ACCOUNT",
    "STORAGE_CONTAINER",
    "AZURE_SUBSCRIPTION_ID",
    "AZURE_CLIENT_ID",
    "AZFW_API_BACKEND",
    "AZFW_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's shell configuration out of every test."""
    for env_var in (*CLI_ENV_VARS, *FORBIDDEN_CREDENTIAL_ENV_VARS):
        monkeypatch.delenv(env_var, raising=False)
