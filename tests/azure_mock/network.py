"""Mock Azure network state and NetworkManagementClient.

Provides in-memory firewalls and route tables built from the real
azure-mgmt-network models, so `as_dict()` output matches what the SDK
returns. Private IPs are handed out deterministically when an IP
configuration is added.
"""

from __future__ import annotations

import copy
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from azure.core.exceptions import HttpResponseError, ResourceNotFoundError
from azure.mgmt.network.models import (
    AzureFirewall,
    AzureFirewallIPConfiguration,
    Route,
    SubResource,
)

DEFAULT_SUBSCRIPTION_ID = "00000000-0000-0000-0000-000000000000"
DEFAULT_LOCATION = "westeurope"

# Fallback allocator: first usable address of the firewall subnet
DEFAULT_PRIVATE_IP_PREFIX = "10.0.1."
DEFAULT_PRIVATE_IP_START = 4


def firewall_id(subscription_id: str, resource_group: str, name: str) -> str:
    return (
        f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
        f"/providers/Microsoft.Network/azureFirewalls/{name}"
    )


def public_ip_id(subscription_id: str, resource_group: str, name: str) -> str:
    return (
        f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
        f"/providers/Microsoft.Network/publicIPAddresses/{name}"
    )


def subnet_id(subscription_id: str, resource_group: str, vnet: str, subnet: str) -> str:
    return (
        f"/subscriptions/{subscription_id}/resourceGroups/{resource_group}"
        f"/providers/Microsoft.Network/virtualNetworks/{vnet}/subnets/{subnet}"
    )


def http_error(message: str, status_code: int) -> HttpResponseError:
    """HttpResponseError carrying a status code without a transport response."""
    error = HttpResponseError(message=message)
    error.status_code = status_code
    return error


@dataclass
class MockNetworkState:
    """In-memory firewall and route state shared by mock clients.

    Attributes:
        subscription_id: Subscription used to build resource IDs.
        next_private_ips: Addresses handed to new IP configurations, in order.
            When exhausted, addresses count up from 10.0.1.4.
        pending_reads: Firewall reads after an IP configuration is added
            during which its private IP is still unassigned.
    """

    subscription_id: str = DEFAULT_SUBSCRIPTION_ID
    next_private_ips: deque[str] = field(default_factory=deque)
    pending_reads: int = 0

    # Failure injection
    read_error: Exception | None = None
    fail_firewall_updates: bool = False
    failing_routes: set[str] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.next_private_ips = deque(self.next_private_ips)
        self._firewalls: dict[tuple[str, str], AzureFirewall] = {}
        self._routes: dict[tuple[str, str, str], Route] = {}
        self._allocated = 0
        self._unassigned: dict[tuple[str, str, str], str] = {}
        self._reads_until_assigned: dict[tuple[str, str, str], int] = {}
        self.firewall_updates: list[tuple[str, str, list[str]]] = []
        self.route_updates: list[tuple[str, str, str, str]] = []
        self.firewall_reads = 0

    # =========================================================================
    # Seeding
    # =========================================================================

    def add_firewall(
        self,
        resource_group: str,
        name: str,
        ip_configurations: list[tuple[str, str, str]] | None = None,
        *,
        vnet_name: str = "hub-vnet",
        provisioning_state: str = "Succeeded",
    ) -> AzureFirewall:
        """Create a firewall with (config name, private IP, public IP name) entries."""
        firewall = AzureFirewall(
            id=firewall_id(self.subscription_id, resource_group, name),
            location=DEFAULT_LOCATION,
            ip_configurations=[
                self._ip_configuration(
                    config_name,
                    subnet_id(self.subscription_id, resource_group, vnet_name, "AzureFirewallSubnet"),
                    public_ip_id(self.subscription_id, resource_group, public_ip_name),
                    private_ip,
                )
                for config_name, private_ip, public_ip_name in (ip_configurations or [])
            ],
        )
        firewall.name = name
        firewall.provisioning_state = provisioning_state
        self._firewalls[(resource_group, name)] = firewall
        return firewall

    def add_route(
        self,
        resource_group: str,
        route_table_name: str,
        route_name: str,
        next_hop_ip: str,
        address_prefix: str = "0.0.0.0/0",
    ) -> Route:
        route = Route(
            name=route_name,
            address_prefix=address_prefix,
            next_hop_type="VirtualAppliance",
            next_hop_ip_address=next_hop_ip,
        )
        self._routes[(resource_group, route_table_name, route_name)] = route
        return route

    # =========================================================================
    # Inspection
    # =========================================================================

    def firewall(self, resource_group: str, name: str) -> AzureFirewall:
        return self._firewalls[(resource_group, name)]

    def ip_configuration_names(self, resource_group: str, name: str) -> list[str]:
        return [c.name for c in self.firewall(resource_group, name).ip_configurations or []]

    def route_next_hop(self, resource_group: str, route_table_name: str, route_name: str) -> str:
        return self._routes[(resource_group, route_table_name, route_name)].next_hop_ip_address

    # =========================================================================
    # Operations used by the mock client
    # =========================================================================

    def get_firewall(self, resource_group: str, name: str) -> AzureFirewall:
        self.firewall_reads += 1
        if self.read_error is not None:
            raise self.read_error
        key = (resource_group, name)
        if key not in self._firewalls:
            raise ResourceNotFoundError(
                message=f"The Resource 'Microsoft.Network/azureFirewalls/{name}' "
                f"under resource group '{resource_group}' was not found."
            )
        self._advance_pending(resource_group, name)
        return copy.deepcopy(self._firewalls[key])

    def put_firewall(self, resource_group: str, name: str, firewall: AzureFirewall) -> AzureFirewall:
        if self.fail_firewall_updates:
            raise http_error("Simulated firewall update failure", 400)

        stored = copy.deepcopy(firewall)
        previous = {c.name for c in self._firewalls[(resource_group, name)].ip_configurations or []}
        for ip_configuration in stored.ip_configurations or []:
            if ip_configuration.name in previous:
                continue
            address = self._allocate_private_ip()
            key = (resource_group, name, ip_configuration.name)
            if self.pending_reads > 0:
                self._unassigned[key] = address
                self._reads_until_assigned[key] = self.pending_reads
                ip_configuration.private_ip_address = None
            else:
                ip_configuration.private_ip_address = address

        self._firewalls[(resource_group, name)] = stored
        self.firewall_updates.append(
            (resource_group, name, [c.name for c in stored.ip_configurations or []])
        )
        return copy.deepcopy(stored)

    def get_route(self, resource_group: str, route_table_name: str, route_name: str) -> Route:
        key = (resource_group, route_table_name, route_name)
        if key not in self._routes:
            raise ResourceNotFoundError(
                message=f"Route '{route_name}' not found in route table '{route_table_name}'"
            )
        return copy.deepcopy(self._routes[key])

    def put_route(
        self, resource_group: str, route_table_name: str, route_name: str, route: Route
    ) -> Route:
        if route_name in self.failing_routes:
            raise http_error(f"Simulated failure updating route {route_name}", 500)
        self._routes[(resource_group, route_table_name, route_name)] = copy.deepcopy(route)
        self.route_updates.append(
            (resource_group, route_table_name, route_name, route.next_hop_ip_address)
        )
        return route

    def _ip_configuration(
        self,
        name: str,
        subnet_reference: str,
        public_ip_reference: str,
        private_ip: str | None,
    ) -> AzureFirewallIPConfiguration:
        ip_configuration = AzureFirewallIPConfiguration(
            name=name,
            subnet=SubResource(id=subnet_reference),
            public_ip_address=SubResource(id=public_ip_reference),
        )
        ip_configuration.private_ip_address = private_ip
        return ip_configuration

    def _allocate_private_ip(self) -> str:
        if self.next_private_ips:
            return self.next_private_ips.popleft()
        address = f"{DEFAULT_PRIVATE_IP_PREFIX}{DEFAULT_PRIVATE_IP_START + self._allocated}"
        self._allocated += 1
        return address

    def _advance_pending(self, resource_group: str, name: str) -> None:
        firewall = self._firewalls[(resource_group, name)]
        for ip_configuration in firewall.ip_configurations or []:
            key = (resource_group, name, ip_configuration.name)
            if key not in self._reads_until_assigned:
                continue
            self._reads_until_assigned[key] -= 1
            if self._reads_until_assigned[key] < 0:
                ip_configuration.private_ip_address = self._unassigned.pop(key)
                del self._reads_until_assigned[key]


class MockNetworkClient:
    """Mock implementation of azure-mgmt-network NetworkManagementClient.

    Provides the operation groups used by firewall pause/resume:
    - azure_firewalls.get() / begin_create_or_update()
    - routes.get() / begin_create_or_update()
    """

    def __init__(self, state: MockNetworkState, subscription_id: str | None = None) -> None:
        self._state = state
        self._subscription_id = subscription_id or state.subscription_id
        self.azure_firewalls = _MockAzureFirewallsOperations(state)
        self.routes = _MockRoutesOperations(state)

    @property
    def subscription_id(self) -> str:
        return self._subscription_id


class _MockAzureFirewallsOperations:
    def __init__(self, state: MockNetworkState) -> None:
        self._state = state

    def get(self, resource_group_name: str, azure_firewall_name: str, **_kwargs: Any) -> AzureFirewall:
        return self._state.get_firewall(resource_group_name, azure_firewall_name)

    def begin_create_or_update(
        self,
        resource_group_name: str,
        azure_firewall_name: str,
        parameters: AzureFirewall,
        **_kwargs: Any,
    ) -> MockLROPoller:
        try:
            result = self._state.put_firewall(resource_group_name, azure_firewall_name, parameters)
        except HttpResponseError as e:
            return MockLROPoller(None, error=e)
        return MockLROPoller(result)


class _MockRoutesOperations:
    def __init__(self, state: MockNetworkState) -> None:
        self._state = state

    def get(
        self, resource_group_name: str, route_table_name: str, route_name: str, **_kwargs: Any
    ) -> Route:
        return self._state.get_route(resource_group_name, route_table_name, route_name)

    def begin_create_or_update(
        self,
        resource_group_name: str,
        route_table_name: str,
        route_name: str,
        route_parameters: Route,
        **_kwargs: Any,
    ) -> MockLROPoller:
        try:
            result = self._state.put_route(
                resource_group_name, route_table_name, route_name, route_parameters
            )
        except HttpResponseError as e:
            return MockLROPoller(None, error=e)
        return MockLROPoller(result)


class MockLROPoller:
    """Mock Long-Running Operation poller.

    Immediately returns results (no actual polling needed in tests).
    Raises the configured error on result().
    """

    def __init__(self, result: Any, error: Exception | None = None) -> None:
        self._result = result
        self._error = error

    def result(self, _timeout: int | None = None) -> Any:
        if self._error is not None:
            raise self._error
        return self._result

    def done(self) -> bool:
        return True

    def status(self) -> str:
        return "Failed" if self._error else "Succeeded"
