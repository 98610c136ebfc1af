"""Route (UDR) reconciliation after the firewall private IP changes.

Routes are updated one at a time in CSV order with best-effort semantics:
a failing route is logged and recorded, and the remaining routes are still
attempted. The overall command does not fail because of a single route.
"""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .errors import NetworkApiError, RouteSourceError
from .models import RouteUpdateRequest
from .network_api import NetworkApi

logger = logging.getLogger(__name__)

CSV_HEADER: tuple[str, ...] = ("resource_group", "route_table_name", "route_name")


@dataclass
class RouteRow:
    """A parsed CSV row: either a request or the reason it is unusable."""

    line_number: int
    request: RouteUpdateRequest | None = None
    error: str | None = None


@dataclass
class RouteUpdateResult:
    """Outcome of updating one route."""

    line_number: int
    request: RouteUpdateRequest | None
    success: bool
    error: str | None = None


@dataclass
class ReconcileReport:
    """Per-route results of a reconciliation run."""

    next_hop_ip: str | None = None
    results: list[RouteUpdateResult] = field(default_factory=list)
    skipped: bool = False

    @property
    def succeeded(self) -> list[RouteUpdateResult]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[RouteUpdateResult]:
        return [r for r in self.results if not r.success]


def read_route_rows(path: Path) -> list[RouteRow]:
    """Parse the route CSV in file order.

    A header row on the first line and blank rows are skipped. Fields are
    trimmed of surrounding whitespace.

    Raises:
        RouteSourceError: If the file cannot be read.
    """
    try:
        with path.open(newline="", encoding="utf-8-sig") as f:
            raw_rows = list(csv.reader(f))
    except OSError as e:
        raise RouteSourceError(f"UDR CSV file not found: {path}") from e

    rows: list[RouteRow] = []
    for line_number, raw in enumerate(raw_rows, start=1):
        cells = [cell.strip() for cell in raw]
        if not any(cells):
            continue
        if line_number == 1 and tuple(cells[: len(CSV_HEADER)]) == CSV_HEADER:
            continue
        if len(cells) < len(CSV_HEADER) or not all(cells[: len(CSV_HEADER)]):
            rows.append(
                RouteRow(line_number, error=f"expected {len(CSV_HEADER)} fields: {','.join(raw)}")
            )
            continue
        rows.append(
            RouteRow(
                line_number,
                request=RouteUpdateRequest(
                    resource_group=cells[0],
                    route_table_name=cells[1],
                    route_name=cells[2],
                ),
            )
        )
    return rows


def read_route_requests(path: Path) -> list[RouteUpdateRequest]:
    """Valid route update requests from the CSV, in file order."""
    return [row.request for row in read_route_rows(path) if row.request is not None]


class RouteReconciler:
    """Points the listed routes at the firewall's new private IP."""

    def __init__(self, api: NetworkApi, *, dry_run: bool = False) -> None:
        self._api = api
        self._dry_run = dry_run

    def reconcile(self, csv_path: Path | None, next_hop_ip: str) -> ReconcileReport:
        """Update every route listed in the CSV to use next_hop_ip.

        Raises:
            RouteSourceError: The CSV is configured but cannot be read.
        """
        report = ReconcileReport(next_hop_ip=next_hop_ip)

        if csv_path is None:
            logger.warning("No UDR CSV file specified. Skipping UDR updates.")
            logger.warning("You may need to manually update routes pointing to the firewall.")
            report.skipped = True
            return report

        rows = read_route_rows(csv_path)
        logger.info("Updating UDRs with new private IP", extra={"private_ip": next_hop_ip})

        for row in rows:
            if row.request is None:
                logger.warning(
                    "Skipping malformed UDR CSV line",
                    extra={"line_number": row.line_number, "error": row.error},
                )
                report.results.append(
                    RouteUpdateResult(row.line_number, None, success=False, error=row.error)
                )
                continue

            request = row.request
            logger.info("Updating route", extra={"route": str(request)})

            if self._dry_run:
                logger.info(
                    "[DRY-RUN] Would update route next hop",
                    extra={"route": str(request), "private_ip": next_hop_ip},
                )
                report.results.append(RouteUpdateResult(row.line_number, request, success=True))
                continue

            try:
                self._api.set_route_next_hop(
                    request.resource_group,
                    request.route_table_name,
                    request.route_name,
                    next_hop_ip,
                )
            except NetworkApiError as e:
                logger.warning(
                    "Failed to update route",
                    extra={"route": str(request), "error": e.message},
                )
                report.results.append(
                    RouteUpdateResult(row.line_number, request, success=False, error=e.message)
                )
                continue

            report.results.append(RouteUpdateResult(row.line_number, request, success=True))

        logger.info(
            "UDR updates completed",
            extra={"succeeded": len(report.succeeded), "failed": len(report.failed)},
        )
        return report
