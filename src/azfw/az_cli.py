"""NetworkApi backed by the Azure CLI.

Useful where the Python SDK cannot authenticate but an `az login` session
exists (jump hosts, Cloud Shell). Commands run with a timeout; failures are
classified from stderr.

The az CLI may print warnings ahead of the JSON document on stdout, so JSON
output is located by the first line that opens an object and everything
before it is discarded.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
from collections.abc import Callable
from typing import Any

from .config import AZ_CLI_TIMEOUT_SECONDS
from .errors import (
    FirewallNotFoundError,
    FirewallReadError,
    NetworkApiError,
    ObservationParseError,
    PermissionDeniedError,
    read_error_hints,
)
from .models import is_resource_id

logger = logging.getLogger(__name__)

NOT_FOUND_MARKERS: tuple[str, ...] = (
    "ResourceNotFound",
    "ResourceGroupNotFound",
    "was not found",
    "could not be found",
)
PERMISSION_DENIED_MARKERS: tuple[str, ...] = (
    "AuthorizationFailed",
    "does not have authorization",
    "Forbidden",
    "az login",
)

# Keep stderr excerpts in errors short
MAX_STDERR_CHARS = 500


def extract_json_document(output: str) -> Any:
    """Parse the JSON object in az output, skipping any leading noise.

    Raises:
        ObservationParseError: If no object is found or it is not valid JSON.
    """
    lines = output.splitlines()
    for index, line in enumerate(lines):
        if line.lstrip().startswith("{"):
            document = "\n".join(lines[index:])
            break
    else:
        raise ObservationParseError("No JSON object found in Azure CLI output")

    if index > 0:
        logger.debug("Discarded non-JSON output before payload", extra={"discarded_lines": index})

    try:
        return json.loads(document)
    except json.JSONDecodeError as e:
        raise ObservationParseError(f"Failed to parse firewall status as JSON: {e}") from e


class AzCliNetworkApi:
    """NetworkApi that shells out to `az network ...`."""

    def __init__(
        self,
        subscription_id: str | None = None,
        *,
        timeout: int = AZ_CLI_TIMEOUT_SECONDS,
        runner: Callable[..., subprocess.CompletedProcess[str]] = subprocess.run,
    ) -> None:
        self._subscription_id = subscription_id
        self._timeout = timeout
        self._runner = runner

    def get_firewall(self, resource_group: str, firewall_name: str) -> dict[str, Any]:
        hints = read_error_hints(resource_group, firewall_name)
        result = self._run(
            [
                "network", "firewall", "show",
                "--resource-group", resource_group,
                "--name", firewall_name,
                "--output", "json",
            ]
        )
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            logger.debug("az network firewall show failed", extra={"stderr": stderr})
            if any(marker in stderr for marker in NOT_FOUND_MARKERS):
                raise FirewallNotFoundError(
                    f"Firewall '{firewall_name}' not found in resource group '{resource_group}'",
                    hints,
                )
            if any(marker in stderr for marker in PERMISSION_DENIED_MARKERS):
                raise PermissionDeniedError(
                    f"Not authorized to read firewall '{firewall_name}'", hints
                )
            raise FirewallReadError(
                f"Failed to get firewall information: {stderr[:MAX_STDERR_CHARS]}", hints
            )

        if not (result.stdout or "").strip():
            raise FirewallReadError("Azure CLI returned no firewall information", hints)

        payload = extract_json_document(result.stdout)
        if not isinstance(payload, dict):
            raise ObservationParseError("Firewall payload is not a JSON object")
        return payload

    def delete_ip_configuration(
        self, resource_group: str, firewall_name: str, config_name: str
    ) -> None:
        self._run_checked(
            [
                "network", "firewall", "ip-config", "delete",
                "--resource-group", resource_group,
                "--firewall-name", firewall_name,
                "--name", config_name,
                "--output", "none",
            ],
            f"remove IP configuration {config_name}",
        )

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
        # az resolves --vnet-name in the firewall's resource group and always
        # attaches to AzureFirewallSubnet
        if vnet_resource_group != resource_group:
            logger.warning(
                "az CLI backend resolves the VNet in the firewall resource group",
                extra={
                    "vnet": vnet_name,
                    "resource_group": resource_group,
                    "vnet_resource_group": vnet_resource_group,
                },
            )
        logger.debug("Subnet is selected implicitly by the az CLI", extra={"subnet": subnet_name})
        # --public-ip-address accepts a name or a full resource ID
        public_ip = public_ip_id if is_resource_id(public_ip_id) else public_ip_name
        self._run_checked(
            [
                "network", "firewall", "ip-config", "create",
                "--resource-group", resource_group,
                "--firewall-name", firewall_name,
                "--name", config_name,
                "--vnet-name", vnet_name,
                "--public-ip-address", public_ip,
                "--output", "none",
            ],
            f"add IP configuration {config_name}",
        )

    def set_route_next_hop(
        self,
        resource_group: str,
        route_table_name: str,
        route_name: str,
        next_hop_ip: str,
    ) -> None:
        self._run_checked(
            [
                "network", "route-table", "route", "update",
                "--resource-group", resource_group,
                "--route-table-name", route_table_name,
                "--name", route_name,
                "--next-hop-ip-address", next_hop_ip,
                "--output", "none",
            ],
            f"update route {route_name} in {route_table_name}",
        )

    def _run_checked(self, args: list[str], action: str) -> None:
        result = self._run(args)
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise NetworkApiError(f"Failed to {action}: {stderr[:MAX_STDERR_CHARS]}")

    def _run(self, args: list[str]) -> subprocess.CompletedProcess[str]:
        cmd = ["az", *args]
        if self._subscription_id:
            cmd += ["--subscription", self._subscription_id]

        # Suppress Python deprecation warnings printed by the az CLI itself
        env = os.environ.copy()
        env["PYTHONWARNINGS"] = "ignore::UserWarning"

        logger.debug("Running az", extra={"command": " ".join(cmd)})
        try:
            return self._runner(
                cmd,
                env=env,
                timeout=self._timeout,
                capture_output=True,
                text=True,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise NetworkApiError(
                f"Azure CLI timed out after {self._timeout}s: {' '.join(args[:3])}"
            ) from e
        except FileNotFoundError as e:
            raise NetworkApiError(
                "Azure CLI (az) not found",
                hints=("Install from https://aka.ms/installazurecli or use --api-backend sdk",),
            ) from e
