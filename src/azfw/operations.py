"""Deallocate and allocate operations.

Deallocation removes every IP configuration one at a time and waits for the
firewall to report none. Removal is not transactional: a failure part way
through leaves the earlier configurations removed. Waiting too long is only
a warning.

Allocation recreates the first saved IP configuration and waits for a
private IP to appear. Timing out here is fatal because route reconciliation
needs the new address.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from .config import (
    ALLOCATE_MAX_WAIT_SECONDS,
    ALLOCATE_POLL_INTERVAL_SECONDS,
    ALLOCATE_SETTLE_SECONDS,
    DEALLOCATE_MAX_WAIT_SECONDS,
    DEALLOCATE_POLL_INTERVAL_SECONDS,
)
from .errors import (
    AllocationTimeoutError,
    DeallocationError,
    FirewallNotFoundError,
    FirewallReadError,
    IPConfigurationCreateError,
    MissingPublicIPError,
    NetworkApiError,
    ObservationParseError,
    PermissionDeniedError,
)
from .models import FirewallObservation, SavedFirewallConfig
from .network_api import NetworkApi
from .polling import RetryPolicy, poll_until
from .status import FirewallStatusReader

logger = logging.getLogger(__name__)

DEALLOCATE_POLICY = RetryPolicy(
    interval_seconds=DEALLOCATE_POLL_INTERVAL_SECONDS,
    max_elapsed_seconds=DEALLOCATE_MAX_WAIT_SECONDS,
)

ALLOCATE_POLICY = RetryPolicy(
    interval_seconds=ALLOCATE_POLL_INTERVAL_SECONDS,
    max_elapsed_seconds=ALLOCATE_MAX_WAIT_SECONDS,
    initial_delay_seconds=ALLOCATE_SETTLE_SECONDS,
)

CONFIG_FORMAT_HINT = "Please check the configuration file format"


@dataclass
class DeallocateResult:
    """Outcome of a deallocation.

    Attributes:
        removed: IP configuration names removed, in order.
        completed: Whether the firewall was observed with no IP configurations.
            False after a poll timeout: the firewall may still be deallocating.
        observations: Status reads made while waiting.
        dry_run: Whether removals were only described.
    """

    removed: list[str] = field(default_factory=list)
    completed: bool = False
    observations: int = 0
    dry_run: bool = False


class FirewallOperations:
    """Mutating firewall operations with their completion waits."""

    def __init__(
        self,
        api: NetworkApi,
        reader: FirewallStatusReader,
        *,
        dry_run: bool = False,
        sleep: Callable[[float], None] = time.sleep,
        deallocate_policy: RetryPolicy = DEALLOCATE_POLICY,
        allocate_policy: RetryPolicy = ALLOCATE_POLICY,
    ) -> None:
        self._api = api
        self._reader = reader
        self._dry_run = dry_run
        self._sleep = sleep
        self._deallocate_policy = deallocate_policy
        self._allocate_policy = allocate_policy

    # =========================================================================
    # Deallocate
    # =========================================================================

    def deallocate(self, resource_group: str, firewall_name: str) -> DeallocateResult:
        """Remove all IP configurations and wait for the firewall to report none.

        Raises:
            DeallocationError: A removal failed. Earlier removals are not undone.
            ObservationParseError: Azure returned a firewall payload that cannot be read.
        """
        context = {"firewall": firewall_name, "resource_group": resource_group}
        logger.info("Deallocating firewall...", extra=context)
        result = DeallocateResult(dry_run=self._dry_run)

        names = [c.name for c in self._reader.fetch(resource_group, firewall_name).ip_configurations]
        if not names:
            logger.warning("No IP configurations found to remove", extra=context)
            result.completed = True
            return result

        if self._dry_run:
            for name in names:
                logger.info("[DRY-RUN] Would remove IP configuration", extra={"config_name": name})
            logger.info("[DRY-RUN] Would deallocate firewall", extra=context)
            return result

        for name in names:
            logger.info("Removing IP configuration", extra={"config_name": name})
            try:
                self._api.delete_ip_configuration(resource_group, firewall_name, name)
            except NetworkApiError as e:
                raise DeallocationError(
                    f"Failed to remove IP configuration '{name}': {e.message}",
                    removed=result.removed,
                    failed=name,
                    hints=(
                        f"Already removed: {', '.join(result.removed) or 'none'}",
                        "Check the saved configuration before running 'pause' again; "
                        "it would be overwritten with the remaining IP configurations",
                    ),
                ) from e
            result.removed.append(name)

        logger.info("Firewall deallocation initiated, waiting for completion...")
        outcome = poll_until(
            lambda: self._observe(resource_group, firewall_name),
            lambda o: o is not None and o.ip_configuration_count == 0,
            self._deallocate_policy,
            sleep=self._sleep,
            description="deallocation",
        )
        result.observations = outcome.observations
        result.completed = outcome.satisfied

        if outcome.satisfied:
            logger.info("Firewall deallocated successfully", extra=context)
        else:
            logger.warning(
                "Deallocation is taking longer than expected. "
                "The firewall may still be deallocating.",
                extra={**context, "elapsed_seconds": outcome.elapsed_seconds},
            )
        return result

    # =========================================================================
    # Allocate
    # =========================================================================

    def allocate(
        self,
        resource_group: str,
        firewall_name: str,
        saved: SavedFirewallConfig,
        vnet_name: str,
        vnet_resource_group: str,
        subnet_name: str,
    ) -> str | None:
        """Recreate the saved IP configuration and wait for a private IP.

        Returns:
            The new private IP when it differs from the saved one, otherwise
            None (preserved, or no previous address was recorded).

        Raises:
            MissingPublicIPError: No public IP can be recovered from the snapshot.
            IPConfigurationCreateError: Azure rejected the new IP configuration.
            AllocationTimeoutError: No private IP appeared before the deadline.
            ObservationParseError: Azure returned a firewall payload that cannot be read.
        """
        logger.info(
            "Allocating firewall...",
            extra={"firewall": firewall_name, "resource_group": resource_group},
        )

        primary = saved.primary
        if primary is None:
            if self._dry_run:
                logger.info(
                    "[DRY-RUN] Would recreate the first IP configuration "
                    "from the saved configuration"
                )
                return None
            raise MissingPublicIPError(
                "Saved configuration contains no IP configurations", hints=(CONFIG_FORMAT_HINT,)
            )

        if len(saved.ip_configurations) > 1:
            logger.warning(
                "Saved configuration has several IP configurations; only the first is restored",
                extra={
                    "saved_count": len(saved.ip_configurations),
                    "config_name": primary.name,
                },
            )

        public_ip_name = primary.public_ip_name
        public_ip_id = primary.public_address_reference
        original_private_ip = primary.private_address

        logger.debug(
            "Primary IP configuration",
            extra={
                "config_name": primary.name,
                "public_ip_id": public_ip_id,
                "original_private_ip": original_private_ip,
            },
        )

        if self._dry_run:
            if not public_ip_name:
                logger.warning("Saved configuration has no public IP reference; resume would fail")
            logger.info(
                "[DRY-RUN] Would allocate firewall",
                extra={
                    "config_name": primary.name,
                    "vnet": vnet_name,
                    "vnet_resource_group": vnet_resource_group,
                    "subnet": subnet_name,
                    "public_ip_id": public_ip_id,
                },
            )
            return None

        if not public_ip_name:
            raise MissingPublicIPError(
                "Could not extract public IP address ID from saved configuration",
                hints=(CONFIG_FORMAT_HINT,),
            )

        logger.info("Adding IP configuration to firewall...", extra={"config_name": primary.name})
        try:
            self._api.create_ip_configuration(
                resource_group,
                firewall_name,
                primary.name,
                vnet_resource_group,
                vnet_name,
                subnet_name,
                public_ip_name,
                public_ip_id=public_ip_id,
            )
        except NetworkApiError as e:
            raise IPConfigurationCreateError(
                f"Failed to add firewall IP configuration: {e.message}",
                hints=(
                    f"VNet '{vnet_name}' exists in resource group '{vnet_resource_group}'",
                    f"Public IP '{public_ip_name}' exists",
                    f"{subnet_name} exists in the VNet",
                    "You have proper permissions",
                ),
            ) from e

        logger.info("Firewall allocation initiated, waiting for completion...")
        outcome = poll_until(
            lambda: self._observe(resource_group, firewall_name),
            lambda o: o is not None and bool(o.primary_private_address),
            self._allocate_policy,
            sleep=self._sleep,
            description="allocation",
        )
        if not outcome.satisfied or outcome.value is None:
            raise AllocationTimeoutError(
                f"Failed to get new private IP after allocation "
                f"({outcome.elapsed_seconds:g}s elapsed)",
                hints=("Check the firewall provisioning state with 'status'",),
            )

        new_private_ip = outcome.value.primary_private_address
        logger.info("Firewall allocated successfully", extra={"private_ip": new_private_ip})

        if original_private_ip and original_private_ip != new_private_ip:
            logger.warning(
                "Private IP changed",
                extra={"previous_ip": original_private_ip, "private_ip": new_private_ip},
            )
            return new_private_ip

        logger.info("Private IP preserved", extra={"private_ip": new_private_ip})
        return None

    def _observe(self, resource_group: str, firewall_name: str) -> FirewallObservation | None:
        """Observe during a wait, treating transient read failures as no news."""
        try:
            return self._reader.fetch(resource_group, firewall_name)
        except (FirewallNotFoundError, PermissionDeniedError, ObservationParseError):
            raise
        except FirewallReadError as e:
            logger.warning(
                "Transient error reading firewall status",
                extra={"error_type": type(e).__name__, "error": e.message},
            )
            return None
