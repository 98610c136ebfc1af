"""Command execution for Azure Firewall pause/resume.

SECRETLESS ARCHITECTURE:
Azure is only ever reached with an ambient Entra ID identity (az login,
managed identity or workload identity). No keys or secrets are accepted.

Builds the collaborators for one invocation from the validated Config, runs
the requested action and maps the outcome to a process exit code.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from collections.abc import Callable
from datetime import UTC, datetime

import click
from azure.core.credentials import TokenCredential

from .az_cli import AzCliNetworkApi
from .config import ApiBackend, Config, LogFormat, StorageMode
from .errors import AzfwError
from .models import FirewallState
from .network_api import NetworkApi, SdkNetworkApi, discover_subscription_id
from .orchestrator import FirewallOrchestrator, Outcome, StatusReport
from .security import SecretlessViolationError, get_credential
from .store import create_config_store

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1

# LogRecord attributes that are not user-supplied `extra` fields
_RESERVED_RECORD_KEYS = frozenset(
    (
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    )
)


class JsonFormatter(logging.Formatter):
    """Format logs as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        # Add extra fields from the record
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Plain `[LEVEL] message key=value` lines for interactive use."""

    def __init__(self) -> None:
        super().__init__("[%(levelname)s] %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = [
            f"{key}={value}"
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_KEYS
        ]
        if not fields:
            return line
        # Keep any formatted traceback below the key=value suffix
        first, sep, rest = line.partition("\n")
        return f"{first} ({', '.join(fields)}){sep}{rest}"


def setup_logging(verbose: bool = False, log_format: LogFormat = LogFormat.TEXT) -> None:
    """Configure logging to stderr so stdout stays free for status output."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if log_format == LogFormat.JSON else TextFormatter())

    root_logger = logging.getLogger()
    for existing in list(root_logger.handlers):
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Reduce noise from Azure SDK
    logging.getLogger("azure").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def create_network_api(config: Config, credential: TokenCredential | None) -> NetworkApi:
    """Build the NetworkApi selected by the configuration."""
    if config.api_backend == ApiBackend.CLI:
        logger.debug("Using Azure CLI backend")
        return AzCliNetworkApi(config.subscription_id)

    assert credential is not None
    subscription_id = config.subscription_id or discover_subscription_id(credential)
    return SdkNetworkApi(credential, subscription_id)


def _needs_credential(config: Config) -> bool:
    return config.api_backend == ApiBackend.SDK or config.storage_mode == StorageMode.AZURE


def render_status(report: StatusReport, config: Config) -> None:
    """Print the firewall status to stdout."""
    observation = report.observation
    click.echo(f"Provisioning State: {observation.provisioning_state or 'Unknown'}")
    click.echo(f"IP Configurations: {observation.ip_configuration_count}")
    click.echo("")

    if observation.ip_configurations:
        click.echo("IP Configuration Details:")
        for ip_configuration in observation.ip_configurations:
            click.echo(f"  - {ip_configuration.name}:")
            click.echo(f"      Private IP: {ip_configuration.private_address or 'N/A'}")
            click.echo(f"      Public IP: {ip_configuration.public_ip_name or 'N/A'}")
        click.echo("")

    if report.state == FirewallState.RUNNING:
        logger.info("Firewall Status: ALLOCATED (Running)")
    else:
        logger.info("Firewall Status: DEALLOCATED (Paused)")

    if config.storage_mode == StorageMode.AZURE:
        logger.info(
            "Storage Mode: Azure Blob Storage",
            extra={"account": config.storage_account, "container": config.storage_container},
        )

    if report.saved_config_present:
        logger.info("Saved configuration found", extra={"location": report.store_location})
    else:
        logger.info("No saved configuration found", extra={"location": report.store_location})


def execute(
    config: Config,
    action: str,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Run one action against the configured firewall.

    Returns:
        Exit code (0 for success or a benign no-op, 1 for any fatal error).
    """
    titles = {
        "pause": "=== Pausing Azure Firewall ===",
        "resume": "=== Resuming Azure Firewall ===",
        "status": "=== Azure Firewall Status ===",
    }
    context = {"firewall": config.firewall_name, "resource_group": config.resource_group}
    if action != "status":
        context["storage_mode"] = config.storage_mode.value
        if config.storage_mode == StorageMode.AZURE:
            context["account"] = config.storage_account
    logger.info(titles[action], extra=context)

    if config.dry_run:
        logger.warning("DRY-RUN MODE - No changes will be made")

    try:
        credential = (
            get_credential(config.identity_client_id) if _needs_credential(config) else None
        )
        api = create_network_api(config, credential)
        store = create_config_store(config, credential)
        orchestrator = FirewallOrchestrator(config, api, store, sleep=sleep)

        if action == "status":
            render_status(orchestrator.status(), config)
            return EXIT_SUCCESS

        if action == "pause":
            pause_result = orchestrator.pause()
            if pause_result.outcome == Outcome.COMPLETED:
                logger.info("=== Firewall Paused Successfully ===")
            return EXIT_SUCCESS

        resume_result = orchestrator.resume()
        if resume_result.outcome == Outcome.COMPLETED:
            logger.info("=== Firewall Resumed Successfully ===")
        return EXIT_SUCCESS

    except AzfwError as e:
        logger.error(e.message, extra={"error_type": type(e).__name__})
        if e.hints:
            logger.error("Please check:")
            for hint in e.hints:
                logger.error("  - %s", hint)
        return EXIT_FAILURE

    except SecretlessViolationError as e:
        # SECURITY: Credential detected in environment - fatal security error
        logger.critical(str(e))
        return EXIT_FAILURE
