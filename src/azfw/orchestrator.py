"""Pause / resume / status state machine.

The firewall state is never persisted: it is derived from a live observation
on every command (no IP configurations = paused, otherwise running). Pause
and resume on a firewall already in the target state are successful no-ops.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from .config import Config
from .models import FirewallObservation, FirewallState, SavedFirewallConfig
from .network_api import NetworkApi
from .operations import DeallocateResult, FirewallOperations
from .routes import ReconcileReport, RouteReconciler
from .status import FirewallStatusReader
from .store import ConfigStore

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """How a command ended."""

    COMPLETED = "completed"
    NO_OP = "no_op"


@dataclass
class StatusReport:
    observation: FirewallObservation
    store_location: str
    saved_config_present: bool

    @property
    def state(self) -> FirewallState:
        return self.observation.state


@dataclass
class PauseResult:
    outcome: Outcome
    observation: FirewallObservation
    saved: SavedFirewallConfig | None = None
    deallocation: DeallocateResult | None = None


@dataclass
class ResumeResult:
    outcome: Outcome
    observation: FirewallObservation
    saved: SavedFirewallConfig | None = None
    new_private_ip: str | None = None
    routes: ReconcileReport | None = None


class FirewallOrchestrator:
    """Sequences observation, storage, operations and route reconciliation."""

    def __init__(
        self,
        config: Config,
        api: NetworkApi,
        store: ConfigStore,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._store = store
        self._reader = FirewallStatusReader(api)
        self._operations = FirewallOperations(
            api, self._reader, dry_run=config.dry_run, sleep=sleep
        )
        self._routes = RouteReconciler(api, dry_run=config.dry_run)

    def observe(self) -> FirewallObservation:
        return self._reader.fetch(self._config.resource_group, self._config.firewall_name)

    def status(self) -> StatusReport:
        """Read-only view of the firewall and the saved configuration."""
        observation = self.observe()
        return StatusReport(
            observation=observation,
            store_location=self._store.location,
            saved_config_present=self._store.exists(),
        )

    def pause(self) -> PauseResult:
        """Save the IP configuration, then deallocate the firewall.

        Deallocation is never attempted unless the snapshot was saved.
        """
        config = self._config
        observation = self.observe()

        if observation.state == FirewallState.PAUSED:
            logger.warning("Firewall is already deallocated (no IP configurations)")
            return PauseResult(outcome=Outcome.NO_OP, observation=observation)

        logger.info(
            "Current IP configurations",
            extra={"ip_configuration_count": observation.ip_configuration_count},
        )

        logger.info("Extracting IP configuration...")
        saved = SavedFirewallConfig.capture(
            observation, config.resource_group, config.firewall_name
        )
        self._store.save(saved)
        logger.info("Snapshot captured", extra={"saved_count": len(saved.ip_configurations)})
        for ip_configuration in saved.ip_configurations:
            logger.info(
                "IP configuration",
                extra={
                    "config_name": ip_configuration.name,
                    "private_ip": ip_configuration.private_address or "N/A",
                },
            )

        deallocation = self._operations.deallocate(config.resource_group, config.firewall_name)
        return PauseResult(
            outcome=Outcome.COMPLETED,
            observation=observation,
            saved=saved,
            deallocation=deallocation,
        )

    def resume(self) -> ResumeResult:
        """Recreate the saved IP configuration and repair routes if the IP moved."""
        config = self._config
        observation = self.observe()

        if observation.state == FirewallState.RUNNING:
            logger.warning(
                "Firewall already has IP configurations",
                extra={"ip_configuration_count": observation.ip_configuration_count},
            )
            logger.warning("It appears to be already allocated")
            return ResumeResult(outcome=Outcome.NO_OP, observation=observation)

        saved = self._store.load()
        if not saved.placeholder:
            logger.info("Loaded saved configuration:")
            for ip_configuration in saved.ip_configurations:
                logger.info(
                    "IP configuration",
                    extra={
                        "config_name": ip_configuration.name,
                        "private_ip": ip_configuration.private_address or "N/A",
                    },
                )

        new_private_ip = self._operations.allocate(
            config.resource_group,
            config.firewall_name,
            saved,
            config.vnet_name,
            config.effective_vnet_resource_group,
            config.subnet_name,
        )

        routes = None
        if new_private_ip:
            routes = self._routes.reconcile(config.udr_csv, new_private_ip)

        return ResumeResult(
            outcome=Outcome.COMPLETED,
            observation=observation,
            saved=saved,
            new_private_ip=new_private_ip,
            routes=routes,
        )
