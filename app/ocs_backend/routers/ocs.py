"""
OCS proxy and report router.

Proxies the subscriber list and weekly package report from the OCS API, and
serves the derived per-subscriber profit report (JSON or CSV).

Handlers are plain ``def`` functions so FastAPI runs them in its threadpool
while they wait on the upstream call.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import Any, NoReturn

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from ocs_backend.models import (
    ReportRecord,
    ReportRequest,
    ReportResponse,
    SubscriberKPIs,
    SubscriberListRequest,
)
from ocs_backend.services.report_builder import build_report_from_response
from ocs_backend.services.subscribers import summarize_subscribers
from ocs_backend.utils.ocs_client import (
    OcsTimeoutError,
    OcsTransportError,
    fetch_report,
    fetch_subscriber_list,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ocs", tags=["ocs"])

# (header, record field) in report-table order
_CSV_COLUMNS: list[tuple[str, str]] = [
    ("Subscriber ID", "subscriber_id"),
    ("ICCID", "iccid"),
    ("Last Usage", "last_usage_date"),
    ("Template Name", "template_name"),
    ("Activated", "activation_date"),
    ("Expires", "expiry_date"),
    ("Used (Package) Bytes", "used_data_byte"),
    ("Package Size Bytes", "pck_data_byte"),
    ("Used (Weekly Tot.) Bytes", "used_data_weekly_total_bytes"),
    ("Subscriber Cost", "subscriber_cost"),
    ("Reseller Cost", "reseller_cost"),
    ("Reseller Cost (Weekly)", "reseller_cost_weekly_total"),
    ("Profit/Loss", "profit"),
    ("Margin (%)", "margin"),
]


def _raise_upstream_error(exc: Exception, what: str) -> NoReturn:
    """Translate an upstream failure into an HTTP error."""
    if isinstance(exc, OcsTimeoutError):
        raise HTTPException(status_code=504, detail=str(exc)) from exc
    if isinstance(exc, OcsTransportError):
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    logger.exception("Failed to %s", what)
    raise HTTPException(status_code=500, detail=str(exc)) from exc


def _load_report(request: ReportRequest) -> Any:
    start_date = request.start_date.isoformat() if request.start_date else None
    return fetch_report(request.account_id, start_date)


# ---------------------------------------------------------------------------
# POST /list-subscribers
# ---------------------------------------------------------------------------
@router.post(
    "/list-subscribers",
    summary="Proxy the OCS subscriber list",
)
def list_subscribers(request: SubscriberListRequest) -> Any:
    """Return the upstream ``listSubscriber`` response unchanged."""
    try:
        return fetch_subscriber_list(request.account_id)
    except Exception as exc:
        _raise_upstream_error(exc, f"list subscribers for account {request.account_id}")


# ---------------------------------------------------------------------------
# POST /subscribers/kpis
# ---------------------------------------------------------------------------
@router.post(
    "/subscribers/kpis",
    response_model=SubscriberKPIs,
    summary="Total / active / inactive subscriber counts",
)
def subscriber_kpis(request: SubscriberListRequest) -> SubscriberKPIs:
    try:
        payload = fetch_subscriber_list(request.account_id)
    except Exception as exc:
        _raise_upstream_error(exc, f"load KPIs for account {request.account_id}")
    return summarize_subscribers(payload)


# ---------------------------------------------------------------------------
# POST /report
# ---------------------------------------------------------------------------
@router.post(
    "/report",
    summary="Proxy the OCS weekly package report",
)
def report(request: ReportRequest) -> Any:
    """Return the upstream ``reportByPackageWeekly`` response unchanged.

    Answers 504 when the OCS API does not respond in time, so the dashboard
    can show a timeout distinctly from other failures.
    """
    try:
        return _load_report(request)
    except Exception as exc:
        _raise_upstream_error(exc, f"fetch report for account {request.account_id}")


# ---------------------------------------------------------------------------
# POST /report/summary
# ---------------------------------------------------------------------------
@router.post(
    "/report/summary",
    response_model=ReportResponse,
    summary="Derived per-subscriber profit report with totals",
)
def report_summary(request: ReportRequest) -> ReportResponse:
    """Fetch the weekly report and return one aggregated record per row.

    Weekly ``resellerCost_*`` and ``usedData_*`` columns are summed per row;
    profit, margin and the totals row are derived from those sums.
    """
    try:
        payload = _load_report(request)
    except Exception as exc:
        _raise_upstream_error(exc, f"fetch report for account {request.account_id}")
    return build_report_from_response(payload)


# ---------------------------------------------------------------------------
# POST /report/export
# ---------------------------------------------------------------------------
def _record_values(record: ReportRecord) -> list[Any]:
    return [getattr(record, field) for _, field in _CSV_COLUMNS]


def report_to_csv(result: ReportResponse) -> str:
    """Render the derived report as CSV with a trailing ``TOTAL`` row."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([header for header, _ in _CSV_COLUMNS])
    for record in result.rows:
        writer.writerow(_record_values(record))

    totals = result.totals
    writer.writerow(
        ["TOTAL"]
        + [""] * 8
        + [totals.subscriber_cost, "", totals.reseller_cost_weekly_total,
           totals.profit, totals.margin]
    )
    return output.getvalue()


@router.post(
    "/report/export",
    summary="Export the derived report as CSV",
)
def export_report_csv(request: ReportRequest) -> StreamingResponse:
    """Stream a CSV download of the derived report."""
    try:
        payload = _load_report(request)
    except Exception as exc:
        _raise_upstream_error(exc, f"export report for account {request.account_id}")

    result = build_report_from_response(payload)
    filename = f"ocs_report_{request.account_id}.csv"
    return StreamingResponse(
        iter([report_to_csv(result)]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
