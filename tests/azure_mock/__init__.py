"""Azure API Mock for Integration Testing.

In-memory stand-ins for the Azure services azfw talks to, so pause/resume
can be exercised end to end without Azure connectivity.

Key Features:
- Firewalls and routes backed by real azure-mgmt-network models
- Deterministic private IP allocation, optionally delayed by N reads
- Subscription listing for the default-subscription lookup
- Blob Storage containers for the saved configuration
- Error injection for reads, firewall updates, routes and uploads
- A scripted NetworkApi for exact observation and call-order assertions

Usage:
    from azure_mock import MockAzureContext

    with MockAzureContext() as ctx:
        ctx.network.add_firewall("rg1", "fw1", [("ipcfg1", "10.1.2.4", "fw-pip")])
        execute(config, "pause")
        assert ctx.network.ip_configuration_names("rg1", "fw1") == []
"""

from .blob import MockBlobServiceClient, MockBlobState
from .context import MockAzureContext, mock_azure_context
from .credential import MockCredential, create_mock_credential
from .network import MockNetworkClient, MockNetworkState
from .subscription import MockSubscription, MockSubscriptionClient
from .scripted import (
    RecordingSleep,
    ScriptedNetworkApi,
    firewall_payload,
    ip_configuration_payload,
    network_failure,
    paused_payload,
    running_payload,
)

__all__ = [
    "MockAzureContext",
    "MockBlobServiceClient",
    "MockBlobState",
    "MockCredential",
    "MockNetworkClient",
    "MockNetworkState",
    "MockSubscription",
    "MockSubscriptionClient",
    "RecordingSleep",
    "ScriptedNetworkApi",
    "create_mock_credential",
    "firewall_payload",
    "ip_configuration_payload",
    "mock_azure_context",
    "network_failure",
    "paused_payload",
    "running_payload",
]
