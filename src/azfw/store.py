"""Persistence of the saved firewall IP configuration.

Two interchangeable backends expose the same save/load contract:
- LocalFileStore: a JSON file on disk
- BlobConfigStore: a blob in Azure Storage, accessed with Entra ID only

No locking: a single writer per firewall is assumed. Each pause overwrites
the previous snapshot.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from azure.core.credentials import TokenCredential
from azure.core.exceptions import AzureError, ResourceExistsError, ResourceNotFoundError
from azure.storage.blob import BlobServiceClient
from pydantic import ValidationError

from .config import Config, StorageMode
from .errors import ConfigNotFoundError, StoreError
from .models import SavedFirewallConfig

logger = logging.getLogger(__name__)

BLOB_ACCOUNT_URL_TEMPLATE = "https://{account}.blob.core.windows.net"


def parse_saved_config(raw: str | bytes, source: str) -> SavedFirewallConfig:
    """Decode a saved configuration document.

    Raises:
        StoreError: If the document is not valid JSON or fails validation.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise StoreError(
            f"Saved configuration at {source} is not valid JSON: {e}",
            hints=("Please check the configuration file format",),
        ) from e
    try:
        return SavedFirewallConfig.model_validate(data)
    except ValidationError as e:
        raise StoreError(
            f"Saved configuration at {source} is invalid: {e}",
            hints=("Please check the configuration file format",),
        ) from e


def blob_name_for(resource_group: str, firewall_name: str) -> str:
    """Blob path of the saved configuration for a firewall."""
    return f"{resource_group}/{firewall_name}/config.json"


def serialize_saved_config(saved: SavedFirewallConfig) -> str:
    return json.dumps(saved.to_document(), indent=2) + "\n"


class ConfigStore(ABC):
    """Save/load contract shared by every backend."""

    def __init__(self, resource_group: str, firewall_name: str, *, dry_run: bool = False) -> None:
        self._resource_group = resource_group
        self._firewall_name = firewall_name
        self._dry_run = dry_run

    @property
    @abstractmethod
    def location(self) -> str:
        """Human-readable location of the saved configuration."""

    @abstractmethod
    def save(self, saved: SavedFirewallConfig) -> None:
        """Persist the configuration, overwriting any previous snapshot."""

    @abstractmethod
    def load(self) -> SavedFirewallConfig:
        """Load the saved configuration.

        Raises:
            ConfigNotFoundError: Nothing has been saved yet.
            StoreError: The saved document is unreadable.
        """

    @abstractmethod
    def exists(self) -> bool:
        """Whether a saved configuration is present. Read-only."""

    def _placeholder(self) -> SavedFirewallConfig:
        logger.info("[DRY-RUN] Would load configuration", extra={"location": self.location})
        return SavedFirewallConfig.dry_run_placeholder(self._resource_group, self._firewall_name)


class LocalFileStore(ConfigStore):
    """Saved configuration in a local JSON file."""

    def __init__(
        self,
        path: Path,
        resource_group: str,
        firewall_name: str,
        *,
        dry_run: bool = False,
    ) -> None:
        super().__init__(resource_group, firewall_name, dry_run=dry_run)
        self._path = path

    @property
    def location(self) -> str:
        return str(self._path)

    def save(self, saved: SavedFirewallConfig) -> None:
        content = serialize_saved_config(saved)
        if self._dry_run:
            logger.info("[DRY-RUN] Would save IP configuration", extra={"path": str(self._path)})
            logger.debug("Configuration content", extra={"content": content})
            return

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Failed to write configuration to {self._path}: {e}") from e
        logger.info("IP configuration saved", extra={"path": str(self._path)})

    def load(self) -> SavedFirewallConfig:
        if self._dry_run:
            return self._placeholder()

        if not self._path.is_file():
            raise ConfigNotFoundError(
                f"Configuration file not found: {self._path}",
                hints=(
                    "Please run 'pause' first to save the configuration, or check the file path",
                ),
            )
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreError(f"Failed to read configuration from {self._path}: {e}") from e
        return parse_saved_config(raw, str(self._path))

    def exists(self) -> bool:
        return self._path.is_file()


class BlobConfigStore(ConfigStore):
    """Saved configuration in Azure Blob Storage.

    SECURITY: Authenticates with the ambient Entra ID credential only.
    Account keys and connection strings are never used.
    """

    def __init__(
        self,
        account_name: str,
        container_name: str,
        resource_group: str,
        firewall_name: str,
        credential: TokenCredential | None,
        *,
        dry_run: bool = False,
        service_client: BlobServiceClient | None = None,
    ) -> None:
        super().__init__(resource_group, firewall_name, dry_run=dry_run)
        self._account_name = account_name
        self._container_name = container_name
        self._blob_name = blob_name_for(resource_group, firewall_name)
        self._service_client = service_client or BlobServiceClient(
            account_url=BLOB_ACCOUNT_URL_TEMPLATE.format(account=account_name),
            credential=credential,
        )

    @property
    def location(self) -> str:
        return f"{self._account_name}/{self._container_name}/{self._blob_name}"

    def save(self, saved: SavedFirewallConfig) -> None:
        if self._dry_run:
            logger.info(
                "[DRY-RUN] Would ensure storage container exists",
                extra={"account": self._account_name, "container": self._container_name},
            )
            logger.info(
                "[DRY-RUN] Would upload configuration",
                extra={"container": self._container_name, "blob": self._blob_name},
            )
            return

        container = self._service_client.get_container_client(self._container_name)
        try:
            self._ensure_container(container)
            logger.info("Uploading configuration to Azure Blob Storage...")
            logger.debug("Blob path", extra={"location": self.location})
            container.upload_blob(
                name=self._blob_name,
                data=serialize_saved_config(saved).encode("utf-8"),
                overwrite=True,
            )
        except AzureError as e:
            raise StoreError(
                f"Failed to upload configuration to {self.location}: {e}",
                hints=(
                    f"Storage account '{self._account_name}' exists",
                    "Your identity has 'Storage Blob Data Contributor' on the account",
                ),
            ) from e
        logger.info("Configuration uploaded to Azure Blob Storage")

    def load(self) -> SavedFirewallConfig:
        if self._dry_run:
            return self._placeholder()

        logger.info("Downloading configuration from Azure Blob Storage...")
        logger.debug("Blob path", extra={"location": self.location})
        container = self._service_client.get_container_client(self._container_name)
        try:
            raw = container.download_blob(self._blob_name).readall()
        except ResourceNotFoundError as e:
            raise ConfigNotFoundError(
                f"Blob '{self._blob_name}' not found in container '{self._container_name}'",
                hints=("Please run 'pause' first to save the configuration",),
            ) from e
        except AzureError as e:
            raise StoreError(
                f"Failed to download configuration from {self.location}: {e}",
                hints=("Your identity has 'Storage Blob Data Reader' on the account",),
            ) from e
        return parse_saved_config(raw, self.location)

    def exists(self) -> bool:
        try:
            blob = self._service_client.get_blob_client(self._container_name, self._blob_name)
            return bool(blob.exists())
        except AzureError as e:
            logger.warning(
                "Could not check for saved configuration",
                extra={"location": self.location, "error": str(e)},
            )
            return False

    def _ensure_container(self, container) -> None:
        if container.exists():
            return
        logger.info("Creating storage container...", extra={"container": self._container_name})
        try:
            container.create_container()
        except ResourceExistsError:
            logger.debug(
                "Container created concurrently", extra={"container": self._container_name}
            )


def create_config_store(config: Config, credential: TokenCredential | None) -> ConfigStore:
    """Build the store selected by the configuration."""
    if config.storage_mode == StorageMode.AZURE:
        assert config.storage_account is not None  # enforced by Config validation
        logger.debug(
            "Using Azure Blob Storage",
            extra={"account": config.storage_account, "container": config.storage_container},
        )
        return BlobConfigStore(
            account_name=config.storage_account,
            container_name=config.storage_container,
            resource_group=config.resource_group,
            firewall_name=config.firewall_name,
            credential=credential,
            dry_run=config.dry_run,
        )

    logger.debug("Using local file storage", extra={"path": str(config.config_file)})
    return LocalFileStore(
        config.config_file,
        config.resource_group,
        config.firewall_name,
        dry_run=config.dry_run,
    )
