"""Azure management API collaborator.

The pause/resume logic needs exactly four operations from Azure. They are
expressed as the NetworkApi protocol so the orchestration code is independent
of how Azure is reached. SdkNetworkApi implements them with azure-mgmt-network;
az_cli.AzCliNetworkApi implements them by shelling out to the az CLI.

Firewall IP configurations are not separate ARM resources: they are edited
read-modify-write on the AzureFirewall resource, the same way the az CLI
`ip-config` commands do it. Long-running operations are awaited.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

from azure.core.credentials import TokenCredential
from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    HttpResponseError,
    ResourceNotFoundError,
)
from azure.mgmt.network import NetworkManagementClient
from azure.mgmt.network.models import AzureFirewall, AzureFirewallIPConfiguration, SubResource
from azure.mgmt.resource import SubscriptionClient

from .errors import (
    FirewallNotFoundError,
    FirewallReadError,
    NetworkApiError,
    PermissionDeniedError,
    SubscriptionResolutionError,
    read_error_hints,
)
from .models import is_resource_id

logger = logging.getLogger(__name__)

# HTTP status codes that mean the caller lacks access
PERMISSION_DENIED_STATUS_CODES = (401, 403)


class NetworkApi(Protocol):
    """The four Azure operations firewall pause/resume depends on."""

    def get_firewall(self, resource_group: str, firewall_name: str) -> dict[str, Any]:
        """Return the firewall resource as a JSON-like dict.

        Raises:
            FirewallNotFoundError: Firewall or resource group does not exist.
            PermissionDeniedError: Caller may not read the firewall.
            FirewallReadError: Any other read failure.
        """
        ...

    def delete_ip_configuration(
        self, resource_group: str, firewall_name: str, config_name: str
    ) -> None: ...

    def create_ip_configuration(
        self,
        resource_group: str,
        firewall_name: str,
        config_name: str,
        vnet_resource_group: str,
        vnet_name: str,
        subnet_name: str,
        public_ip_name: str,
        *,
        public_ip_id: str | None = None,
    ) -> None:
        """Attach a new IP configuration to the firewall.

        `public_ip_id` is the full resource ID recorded at pause time. When it
        is absent the public IP is looked up by name in the firewall's
        resource group.
        """
        ...

    def set_route_next_hop(
        self,
        resource_group: str,
        route_table_name: str,
        route_name: str,
        next_hop_ip: str,
    ) -> None: ...


def subnet_resource_id(
    subscription_id: str, resource_group: str, vnet_name: str, subnet_name: str
) -> str:
    return (
        f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
        f"/providers/Microsoft.Network/virtualNetworks/{vnet_name}/subnets/{subnet_name}"
    )


def public_ip_resource_id(subscription_id: str, resource_group: str, public_ip_name: str) -> str:
    return (
        f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
        f"/providers/Microsoft.Network/publicIPAddresses/{public_ip_name}"
    )


def discover_subscription_id(credential: TokenCredential) -> str:
    """Select the subscription to manage when none was configured.

    Mirrors the az CLI default account: the identity must see exactly one
    enabled subscription, otherwise the choice is left to the operator.

    Raises:
        SubscriptionResolutionError: Zero or several subscriptions are visible,
            or listing them failed.
    """
    hints = (
        "Pass --subscription or set AZURE_SUBSCRIPTION_ID",
        "Run 'az account list' to see the subscriptions available to your identity",
    )
    try:
        subscriptions = [
            s
            for s in SubscriptionClient(credential).subscriptions.list()
            if s.state is None or s.state == "Enabled"
        ]
    except AzureError as e:
        raise SubscriptionResolutionError(f"Failed to list subscriptions: {e}", hints) from e

    if len(subscriptions) != 1:
        raise SubscriptionResolutionError(
            f"Cannot select a subscription automatically: {len(subscriptions)} enabled "
            "subscriptions are visible to the signed-in identity",
            hints,
        )

    subscription_id = subscriptions[0].subscription_id
    logger.info("Using the only visible subscription", extra={"subscription_id": subscription_id})
    return subscription_id


class SdkNetworkApi:
    """NetworkApi backed by azure-mgmt-network."""

    def __init__(
        self,
        credential: TokenCredential,
        subscription_id: str,
        client: NetworkManagementClient | None = None,
    ) -> None:
        self._subscription_id = subscription_id
        self._client = client or NetworkManagementClient(
            credential=credential,
            subscription_id=subscription_id,
        )

    def get_firewall(self, resource_group: str, firewall_name: str) -> dict[str, Any]:
        return self._get(resource_group, firewall_name).as_dict()

    def delete_ip_configuration(
        self, resource_group: str, firewall_name: str, config_name: str
    ) -> None:
        firewall = self._get(resource_group, firewall_name)
        current = list(firewall.ip_configurations or [])
        remaining = [c for c in current if c.name != config_name]
        if len(remaining) == len(current):
            logger.warning(
                "IP configuration not present on firewall",
                extra={"config_name": config_name, "firewall": firewall_name},
            )
            return

        firewall.ip_configurations = remaining
        self._put(resource_group, firewall_name, firewall, f"remove IP configuration {config_name}")

    def create_ip_configuration(
        self,
        resource_group: str,
        firewall_name: str,
        config_name: str,
        vnet_resource_group: str,
        vnet_name: str,
        subnet_name: str,
        public_ip_name: str,
        *,
        public_ip_id: str | None = None,
    ) -> None:
        if not is_resource_id(public_ip_id):
            public_ip_id = public_ip_resource_id(
                self._subscription_id, resource_group, public_ip_name
            )
        firewall = self._get(resource_group, firewall_name)
        ip_configuration = AzureFirewallIPConfiguration(
            name=config_name,
            subnet=SubResource(
                id=subnet_resource_id(
                    self._subscription_id, vnet_resource_group, vnet_name, subnet_name
                )
            ),
            public_ip_address=SubResource(id=public_ip_id),
        )
        firewall.ip_configurations = [*(firewall.ip_configurations or []), ip_configuration]
        self._put(resource_group, firewall_name, firewall, f"add IP configuration {config_name}")

    def set_route_next_hop(
        self,
        resource_group: str,
        route_table_name: str,
        route_name: str,
        next_hop_ip: str,
    ) -> None:
        try:
            route = self._client.routes.get(resource_group, route_table_name, route_name)
            route.next_hop_ip_address = next_hop_ip
            self._client.routes.begin_create_or_update(
                resource_group, route_table_name, route_name, route
            ).result()
        except AzureError as e:
            raise NetworkApiError(
                f"Failed to update route {route_name} in {route_table_name}: {e}"
            ) from e

    def _get(self, resource_group: str, firewall_name: str) -> AzureFirewall:
        hints = read_error_hints(resource_group, firewall_name)
        try:
            return self._client.azure_firewalls.get(resource_group, firewall_name)
        except ResourceNotFoundError as e:
            raise FirewallNotFoundError(
                f"Firewall '{firewall_name}' not found in resource group '{resource_group}'",
                hints,
            ) from e
        except ClientAuthenticationError as e:
            raise PermissionDeniedError(f"Authentication failed: {e}", hints) from e
        except HttpResponseError as e:
            if e.status_code in PERMISSION_DENIED_STATUS_CODES:
                raise PermissionDeniedError(
                    f"Not authorized to read firewall '{firewall_name}': {e.message}", hints
                ) from e
            raise FirewallReadError(
                f"Azure API error ({e.status_code}) reading firewall: {e.message}", hints
            ) from e
        except AzureError as e:
            raise FirewallReadError(f"Azure error reading firewall: {e}", hints) from e

    def _put(
        self, resource_group: str, firewall_name: str, firewall: AzureFirewall, action: str
    ) -> None:
        try:
            poller = self._client.azure_firewalls.begin_create_or_update(
                resource_group, firewall_name, firewall
            )
            poller.result()
        except HttpResponseError as e:
            error_code = e.error.code if e.error else None
            logger.error(
                "Azure rejected firewall update",
                extra={
                    "action": action,
                    "error": e.message,
                    "status_code": e.status_code,
                    "error_code": error_code,
                },
            )
            raise NetworkApiError(f"Azure API error ({e.status_code}): {e.message}") from e
        except AzureError as e:
            raise NetworkApiError(f"Azure error: {e}") from e
