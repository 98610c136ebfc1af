"""Azure Firewall pause/resume CLI (azfw).

Usage:
    azfw status --rg my-rg --fw my-fw --vnet my-vnet
    azfw pause  --rg my-rg --fw my-fw --vnet my-vnet
    azfw resume --rg my-rg --fw my-fw --vnet my-vnet --udr-csv routes.csv
    azfw pause  --rg my-rg --fw my-fw --vnet my-vnet \\
        --storage-mode azure --storage-account mystorageacct

Every option can also be supplied through the environment variable listed in
its help text. This module is the only place that reads them.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from .config import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_STORAGE_CONTAINER,
    DEFAULT_SUBNET_NAME,
    ApiBackend,
    Config,
    ConfigurationError,
    LogFormat,
    StorageMode,
)
from .main import EXIT_FAILURE, EXIT_SUCCESS, execute, setup_logging

logger = logging.getLogger(__name__)

VERSION = "1.0.0"
ACTIONS = ("pause", "resume", "status", "help")

EPILOG = """\b
Actions:
  pause   Save the IP configuration, then deallocate the firewall
  resume  Restore the IP configuration and update UDRs if the IP changed
  status  Show the current firewall status

\b
UDR CSV format (header optional):
  resource_group,route_table_name,route_name
  rg-spoke1,rt-spoke1,default-route
"""


def _choice_values(enum_cls: type) -> list[str]:
    return [member.value for member in enum_cls]


@click.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=EPILOG,
)
@click.argument("action", required=False, type=click.Choice(ACTIONS, case_sensitive=False))
@click.option("--rg", "resource_group", envvar="RG", default="", help="Firewall resource group [RG]")
@click.option("--fw", "firewall_name", envvar="FW", default="", help="Firewall name [FW]")
@click.option(
    "--vnet-rg",
    "vnet_resource_group",
    envvar="VNET_RG",
    default=None,
    help="VNet resource group, defaults to --rg [VNET_RG]",
)
@click.option("--vnet", "vnet_name", envvar="VNET_NAME", default="", help="VNet name [VNET_NAME]")
@click.option(
    "--subnet",
    "subnet_name",
    envvar="FW_SUBNET_NAME",
    default=DEFAULT_SUBNET_NAME,
    show_default=True,
    help="Firewall subnet name [FW_SUBNET_NAME]",
)
@click.option(
    "--config",
    "config_file",
    envvar="CONFIG_FILE",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_FILE,
    show_default=True,
    help="Local file for the saved configuration [CONFIG_FILE]",
)
@click.option(
    "--udr-csv",
    "udr_csv",
    envvar="UDR_CSV_FILE",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="CSV of routes to update when the private IP changes [UDR_CSV_FILE]",
)
@click.option(
    "--storage-mode",
    envvar="STORAGE_MODE",
    type=click.Choice(_choice_values(StorageMode), case_sensitive=False),
    default=StorageMode.LOCAL.value,
    show_default=True,
    help="Where to keep the saved configuration [STORAGE_MODE]",
)
@click.option(
    "--storage-account",
    envvar="STORAGE_ACCOUNT",
    default=None,
    help="Storage account for azure storage mode [STORAGE_ACCOUNT]",
)
@click.option(
    "--storage-container",
    envvar="STORAGE_CONTAINER",
    default=DEFAULT_STORAGE_CONTAINER,
    show_default=True,
    help="Blob container for azure storage mode [STORAGE_CONTAINER]",
)
@click.option(
    "--subscription",
    "subscription_id",
    envvar="AZURE_SUBSCRIPTION_ID",
    default=None,
    help=(
        "Azure subscription ID; defaults to the only one visible to the "
        "signed-in identity [AZURE_SUBSCRIPTION_ID]"
    ),
)
@click.option(
    "--identity-client-id",
    envvar="AZURE_CLIENT_ID",
    default=None,
    help="Client ID of a user-assigned managed identity [AZURE_CLIENT_ID]",
)
@click.option(
    "--api-backend",
    envvar="AZFW_API_BACKEND",
    type=click.Choice(_choice_values(ApiBackend), case_sensitive=False),
    default=ApiBackend.SDK.value,
    show_default=True,
    help="Reach Azure through the Python SDK or the az CLI [AZFW_API_BACKEND]",
)
@click.option(
    "--log-format",
    envvar="AZFW_LOG_FORMAT",
    type=click.Choice(_choice_values(LogFormat), case_sensitive=False),
    default=LogFormat.TEXT.value,
    show_default=True,
    help="Log output format [AZFW_LOG_FORMAT]",
)
@click.option("--dry-run", is_flag=True, help="Show what would be done without making changes")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.version_option(VERSION, prog_name="azfw")
@click.pass_context
def cli(
    ctx: click.Context,
    action: str | None,
    resource_group: str,
    firewall_name: str,
    vnet_resource_group: str | None,
    vnet_name: str,
    subnet_name: str,
    config_file: Path,
    udr_csv: Path | None,
    storage_mode: str,
    storage_account: str | None,
    storage_container: str,
    subscription_id: str | None,
    identity_client_id: str | None,
    api_backend: str,
    log_format: str,
    dry_run: bool,
    verbose: bool,
) -> None:
    """Pause and resume an Azure Firewall while preserving its private IP."""
    if action is None or action.lower() == "help":
        click.echo(ctx.get_help())
        ctx.exit(EXIT_SUCCESS)

    setup_logging(verbose=verbose, log_format=LogFormat(log_format.lower()))

    try:
        config = Config(
            resource_group=resource_group,
            firewall_name=firewall_name,
            vnet_name=vnet_name,
            vnet_resource_group=vnet_resource_group or None,
            subnet_name=subnet_name,
            storage_mode=StorageMode(storage_mode.lower()),
            config_file=config_file,
            storage_account=storage_account or None,
            storage_container=storage_container,
            udr_csv=udr_csv,
            api_backend=ApiBackend(api_backend.lower()),
            subscription_id=subscription_id or None,
            identity_client_id=identity_client_id or None,
            dry_run=dry_run,
            verbose=verbose,
            log_format=LogFormat(log_format.lower()),
        )
    except ConfigurationError as e:
        logger.error(str(e))
        logger.error("Use 'azfw help' for usage information")
        ctx.exit(EXIT_FAILURE)

    ctx.exit(execute(config, action.lower()))


def main(argv: list[str] | None = None) -> None:
    """Console entry point. Usage errors exit with 1 rather than click's 2."""
    try:
        exit_code = cli.main(args=argv, prog_name="azfw", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(EXIT_FAILURE)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(EXIT_FAILURE)
    sys.exit(exit_code or EXIT_SUCCESS)


if __name__ == "__main__":
    main()
