"""Error taxonomy for firewall pause/resume.

Every fatal error carries remediation hints that the CLI prints before
exiting with status 1. Non-fatal conditions (deallocation poll timeout,
single route update failures) are logged and never raised.
"""

from __future__ import annotations

from collections.abc import Iterable


class AzfwError(Exception):
    """Base class for fatal errors of the current command."""

    def __init__(self, message: str, hints: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.hints: tuple[str, ...] = tuple(hints)


# =============================================================================
# Collaborator errors
# =============================================================================


class NetworkApiError(AzfwError):
    """A call to the Azure management API failed."""

    pass


class FirewallReadError(NetworkApiError):
    """Reading the firewall resource failed."""

    pass


class FirewallNotFoundError(FirewallReadError):
    """The firewall or its resource group does not exist."""

    pass


class PermissionDeniedError(FirewallReadError):
    """The caller is not authorized to read the firewall."""

    pass


class ObservationParseError(FirewallReadError):
    """The firewall payload could not be parsed."""

    pass


class SubscriptionResolutionError(NetworkApiError):
    """No single subscription could be selected from the signed-in identity."""

    pass


def read_error_hints(resource_group: str, firewall_name: str) -> tuple[str, ...]:
    """Remediation hints shared by every firewall read failure."""
    return (
        f"Resource group '{resource_group}' exists",
        f"Firewall '{firewall_name}' exists",
        "You have proper permissions",
    )


# =============================================================================
# Config store errors
# =============================================================================


class StoreError(AzfwError):
    """Saving or loading the IP configuration snapshot failed."""

    pass


class ConfigNotFoundError(StoreError):
    """No saved configuration exists for this firewall."""

    pass


# =============================================================================
# Operation errors
# =============================================================================


class OperationError(AzfwError):
    """A deallocate or allocate operation failed."""

    pass


class MissingPublicIPError(OperationError):
    """The saved configuration does not reference a public IP."""

    pass


class AllocationTimeoutError(OperationError):
    """No private IP became observable before the allocation deadline."""

    pass


class IPConfigurationCreateError(OperationError):
    """Creating the firewall IP configuration failed."""

    pass


class DeallocationError(OperationError):
    """Removing an IP configuration failed part way through deallocation."""

    def __init__(
        self,
        message: str,
        removed: Iterable[str] = (),
        failed: str | None = None,
        hints: Iterable[str] = (),
    ) -> None:
        super().__init__(message, hints)
        self.removed: tuple[str, ...] = tuple(removed)
        self.failed = failed


# =============================================================================
# Route reconciliation errors
# =============================================================================


class RouteSourceError(AzfwError):
    """The configured route CSV could not be read."""

    pass
