"""Pydantic models for firewall observations and saved IP configurations.

These models provide:
1. Tolerant parsing of the several JSON shapes Azure returns (az CLI camelCase,
   ARM REST `properties.*`, SDK `as_dict()` snake_case)
2. Validation at the boundary (fail fast, fail loudly)
3. A stable on-disk document for saved configurations

Field names drift between API versions and tools. Each logical field is
resolved through an ordered alias list; the first alias yielding a non-empty
value wins. Supporting a new spelling is a one-line change to the list.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, Field, field_validator, model_validator

AliasPath = tuple[str, ...]

# =============================================================================
# Field aliases (tried in order)
# =============================================================================

NAME_ALIASES: tuple[AliasPath, ...] = (("name",),)

PRIVATE_IP_ALIASES: tuple[AliasPath, ...] = (
    ("privateIPAddress",),
    ("privateIpAddress",),
    ("private_ip_address",),
    ("properties", "privateIPAddress"),
    ("private_address",),
)

PUBLIC_IP_ALIASES: tuple[AliasPath, ...] = (
    ("publicIPAddress", "id"),
    ("publicIpAddress", "id"),
    ("publicIPAddressId",),
    ("public_ip_address", "id"),
    ("properties", "publicIPAddress", "id"),
    ("public_address_reference",),
)

SUBNET_ALIASES: tuple[AliasPath, ...] = (
    ("subnet", "id"),
    ("subnetId",),
    ("properties", "subnet", "id"),
    ("subnet_reference",),
)

IP_CONFIGURATIONS_ALIASES: tuple[AliasPath, ...] = (
    ("ipConfigurations",),
    ("ip_configurations",),
    ("properties", "ipConfigurations"),
)

MANAGEMENT_IP_CONFIGURATION_ALIASES: tuple[AliasPath, ...] = (
    ("managementIpConfiguration",),
    ("managementIPConfiguration",),
    ("management_ip_configuration",),
    ("properties", "managementIpConfiguration"),
)

PROVISIONING_STATE_ALIASES: tuple[AliasPath, ...] = (
    ("provisioningState",),
    ("provisioning_state",),
    ("properties", "provisioningState"),
)


def resolve_alias(data: Mapping[str, Any], aliases: tuple[AliasPath, ...]) -> Any:
    """Return the first non-empty value found along the given alias paths."""
    for path in aliases:
        value: Any = data
        for key in path:
            if not isinstance(value, Mapping):
                value = None
                break
            value = value.get(key)
        if value is not None and value != "":
            return value
    return None


def resource_name_from_id(resource_id: str | None) -> str | None:
    """Extract the trailing name segment of an ARM resource ID."""
    if not resource_id:
        return None
    name = resource_id.rstrip("/").rsplit("/", 1)[-1]
    return name or None


def is_resource_id(value: str | None) -> bool:
    """Whether the value is a full ARM resource ID rather than a bare name."""
    return value is not None and value.lower().startswith("/subscriptions/")


# =============================================================================
# IP configurations
# =============================================================================


class IPConfigurationSnapshot(BaseModel):
    """One firewall IP configuration as observed or saved."""

    model_config = {"extra": "ignore", "frozen": True}

    name: Annotated[str, Field(min_length=1)]
    private_address: str | None = None
    public_address_reference: str | None = None
    subnet_reference: str | None = None

    @model_validator(mode="before")
    @classmethod
    def resolve_field_aliases(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        return {
            "name": resolve_alias(data, NAME_ALIASES),
            "private_address": resolve_alias(data, PRIVATE_IP_ALIASES),
            "public_address_reference": resolve_alias(data, PUBLIC_IP_ALIASES),
            "subnet_reference": resolve_alias(data, SUBNET_ALIASES),
        }

    @property
    def public_ip_name(self) -> str | None:
        """Short name of the public IP resource."""
        return resource_name_from_id(self.public_address_reference)

    def to_document(self) -> dict[str, Any]:
        """Serialize in the canonical camelCase shape."""
        return {
            "name": self.name,
            "privateIPAddress": self.private_address,
            "publicIPAddress": (
                {"id": self.public_address_reference} if self.public_address_reference else None
            ),
            "subnet": {"id": self.subnet_reference} if self.subnet_reference else None,
        }


# =============================================================================
# Live observation
# =============================================================================


class FirewallState(str, Enum):
    """Firewall state derived from a live observation."""

    PAUSED = "paused"
    RUNNING = "running"


class FirewallObservation(BaseModel):
    """Point-in-time view of the firewall. Never cached across operations."""

    model_config = {"extra": "ignore", "frozen": True}

    name: str | None = None
    provisioning_state: str | None = None
    ip_configurations: list[IPConfigurationSnapshot] = Field(default_factory=list)
    management_ip_configuration: IPConfigurationSnapshot | None = None

    @model_validator(mode="before")
    @classmethod
    def resolve_field_aliases(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        return {
            "name": resolve_alias(data, NAME_ALIASES),
            "provisioning_state": resolve_alias(data, PROVISIONING_STATE_ALIASES),
            "ip_configurations": resolve_alias(data, IP_CONFIGURATIONS_ALIASES) or [],
            "management_ip_configuration": resolve_alias(
                data, MANAGEMENT_IP_CONFIGURATION_ALIASES
            ),
        }

    @property
    def ip_configuration_count(self) -> int:
        return len(self.ip_configurations)

    @property
    def state(self) -> FirewallState:
        if self.ip_configuration_count == 0:
            return FirewallState.PAUSED
        return FirewallState.RUNNING

    @property
    def primary_private_address(self) -> str | None:
        """Private IP of the first IP configuration, if one is assigned yet."""
        if not self.ip_configurations:
            return None
        return self.ip_configurations[0].private_address


# =============================================================================
# Saved configuration document
# =============================================================================


class SavedFirewallConfig(BaseModel):
    """IP configuration snapshot persisted by pause and consumed by resume."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    ip_configurations: list[IPConfigurationSnapshot] = Field(
        default_factory=list, alias="ipConfigurations"
    )
    management_ip_configuration: IPConfigurationSnapshot | None = Field(
        None, alias="managementIpConfiguration"
    )
    firewall_name: str | None = Field(None, alias="firewallName")
    resource_group: str | None = Field(None, alias="resourceGroup")
    saved_at: datetime | None = Field(None, alias="savedAt")

    # Set on the synthetic document returned by a dry-run load
    placeholder: bool = Field(False, exclude=True)

    @field_validator("ip_configurations", mode="before")
    @classmethod
    def none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @classmethod
    def capture(
        cls,
        observation: FirewallObservation,
        resource_group: str,
        firewall_name: str,
        saved_at: datetime | None = None,
    ) -> SavedFirewallConfig:
        """Build the document to persist from a live observation.

        Raises:
            ValueError: If the observation has no IP configurations. An empty
                snapshot must never replace a usable saved configuration.
        """
        if not observation.ip_configurations:
            raise ValueError("Refusing to capture a firewall with no IP configurations")
        return cls(
            ip_configurations=list(observation.ip_configurations),
            management_ip_configuration=observation.management_ip_configuration,
            firewall_name=observation.name or firewall_name,
            resource_group=resource_group,
            saved_at=saved_at or datetime.now(UTC),
        )

    @classmethod
    def dry_run_placeholder(cls, resource_group: str, firewall_name: str) -> SavedFirewallConfig:
        return cls(
            firewall_name=firewall_name,
            resource_group=resource_group,
            placeholder=True,
        )

    @property
    def primary(self) -> IPConfigurationSnapshot | None:
        """The configuration restored on resume (only the first is supported)."""
        return self.ip_configurations[0] if self.ip_configurations else None

    def to_document(self) -> dict[str, Any]:
        """Serialize in the persisted JSON shape."""
        saved_at = None
        if self.saved_at is not None:
            saved_at = self.saved_at.isoformat().replace("+00:00", "Z")
        return {
            "ipConfigurations": [c.to_document() for c in self.ip_configurations],
            "managementIpConfiguration": (
                self.management_ip_configuration.to_document()
                if self.management_ip_configuration
                else None
            ),
            "firewallName": self.firewall_name,
            "resourceGroup": self.resource_group,
            "savedAt": saved_at,
        }


# =============================================================================
# Route reconciliation
# =============================================================================


@dataclass(frozen=True)
class RouteUpdateRequest:
    """One route whose next hop should point at the firewall."""

    resource_group: str
    route_table_name: str
    route_name: str

    def __str__(self) -> str:
        return f"{self.route_table_name}/{self.route_name} in {self.resource_group}"
