"""Configuration management with validation.

All settings are collected once at startup into an immutable Config and
passed explicitly to every component. Nothing below the CLI layer reads the
environment.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class StorageMode(str, Enum):
    """Where the saved IP configuration lives."""

    LOCAL = "local"
    AZURE = "azure"


class ApiBackend(str, Enum):
    """How the Azure management API is reached."""

    SDK = "sdk"
    CLI = "cli"


class LogFormat(str, Enum):
    """Log output format."""

    TEXT = "text"
    JSON = "json"


class ConfigurationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Defaults
DEFAULT_SUBNET_NAME = "AzureFirewallSubnet"
DEFAULT_CONFIG_FILE = "firewall_config.json"
DEFAULT_STORAGE_CONTAINER = "firewall-config"

# Poll policies (seconds)
DEALLOCATE_POLL_INTERVAL_SECONDS = 15
DEALLOCATE_MAX_WAIT_SECONDS = 600
ALLOCATE_SETTLE_SECONDS = 30
ALLOCATE_POLL_INTERVAL_SECONDS = 15
ALLOCATE_MAX_WAIT_SECONDS = 300  # includes the settle delay

# az CLI subprocess timeout
AZ_CLI_TIMEOUT_SECONDS = 300

MAX_RESOURCE_GROUP_NAME_LENGTH = 90
MAX_FIREWALL_NAME_LENGTH = 80

# Input validation patterns
VALID_SUBSCRIPTION_ID_PATTERN = r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$"
VALID_STORAGE_ACCOUNT_PATTERN = r"^[a-z0-9]{3,24}$"
VALID_STORAGE_CONTAINER_PATTERN = r"^[a-z0-9](?!.*--)[a-z0-9-]{1,61}[a-z0-9]$"


@dataclass(frozen=True)
class Config:
    """Firewall pause/resume configuration.

    All fields are validated at construction time. Invalid configurations
    raise ConfigurationError before any Azure API is touched.
    """

    # Required fields
    resource_group: str
    firewall_name: str
    vnet_name: str

    # Network placement
    vnet_resource_group: str | None = None
    subnet_name: str = DEFAULT_SUBNET_NAME

    # Saved configuration storage
    storage_mode: StorageMode = StorageMode.LOCAL
    config_file: Path = field(default_factory=lambda: Path(DEFAULT_CONFIG_FILE))
    storage_account: str | None = None
    storage_container: str = DEFAULT_STORAGE_CONTAINER

    # Route reconciliation input
    udr_csv: Path | None = None

    # Azure access
    api_backend: ApiBackend = ApiBackend.SDK
    subscription_id: str | None = None
    identity_client_id: str | None = None

    # Behavior
    dry_run: bool = False
    verbose: bool = False
    log_format: LogFormat = LogFormat.TEXT

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        errors: list[str] = []

        if not self.resource_group:
            errors.append("RG (--rg) is required")
        elif len(self.resource_group) > MAX_RESOURCE_GROUP_NAME_LENGTH:
            errors.append(
                f"RG exceeds maximum length of {MAX_RESOURCE_GROUP_NAME_LENGTH}"
            )

        if not self.firewall_name:
            errors.append("FW (--fw) is required")
        elif len(self.firewall_name) > MAX_FIREWALL_NAME_LENGTH:
            errors.append(f"FW exceeds maximum length of {MAX_FIREWALL_NAME_LENGTH}")

        if not self.vnet_name:
            errors.append("VNET_NAME (--vnet) is required")

        if not self.subnet_name:
            errors.append("FW_SUBNET_NAME (--subnet) cannot be empty")

        if self.subscription_id and not re.match(
            VALID_SUBSCRIPTION_ID_PATTERN, self.subscription_id.lower()
        ):
            errors.append(f"AZURE_SUBSCRIPTION_ID must be a valid GUID: {self.subscription_id}")

        # Storage validation
        if self.storage_mode == StorageMode.AZURE:
            if not self.storage_account:
                errors.append(
                    "Azure storage mode requires --storage-account or STORAGE_ACCOUNT env var"
                )
            elif not re.match(VALID_STORAGE_ACCOUNT_PATTERN, self.storage_account):
                errors.append(
                    f"STORAGE_ACCOUNT must match pattern {VALID_STORAGE_ACCOUNT_PATTERN}: "
                    f"{self.storage_account}"
                )
            if not re.match(VALID_STORAGE_CONTAINER_PATTERN, self.storage_container):
                errors.append(
                    f"STORAGE_CONTAINER is not a valid container name: {self.storage_container}"
                )
        elif not str(self.config_file):
            errors.append("CONFIG_FILE (--config) cannot be empty")

        # Path validation
        if self.udr_csv is not None and not self.udr_csv.is_file():
            errors.append(f"UDR CSV file not found: {self.udr_csv}")

        if errors:
            error_msg = "Configuration validation failed:\n  - " + "\n  - ".join(errors)
            raise ConfigurationError(error_msg)

    @property
    def effective_vnet_resource_group(self) -> str:
        """VNet resource group, defaulting to the firewall's resource group."""
        return self.vnet_resource_group or self.resource_group
