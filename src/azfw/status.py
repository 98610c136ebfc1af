"""Firewall status reader.

Every state decision is made from a fresh observation. Nothing here caches:
the firewall is re-read after every mutating call because its IP
configurations are the only signal that an operation has completed.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from .errors import ObservationParseError, read_error_hints
from .models import FirewallObservation
from .network_api import NetworkApi

logger = logging.getLogger(__name__)


class FirewallStatusReader:
    """Fetches and parses the current firewall state."""

    def __init__(self, api: NetworkApi) -> None:
        self._api = api

    def fetch(self, resource_group: str, firewall_name: str) -> FirewallObservation:
        """Observe the firewall.

        Raises:
            FirewallNotFoundError: Firewall or resource group does not exist.
            PermissionDeniedError: Caller may not read the firewall.
            ObservationParseError: The payload is not a firewall document.
        """
        logger.debug("Getting firewall status...")
        payload = self._api.get_firewall(resource_group, firewall_name)
        try:
            observation = FirewallObservation.model_validate(payload)
        except ValidationError as e:
            raise ObservationParseError(
                f"Unexpected firewall payload: {e}",
                read_error_hints(resource_group, firewall_name),
            ) from e

        logger.debug(
            "Firewall observed",
            extra={
                "provisioning_state": observation.provisioning_state,
                "ip_configuration_count": observation.ip_configuration_count,
            },
        )
        return observation
