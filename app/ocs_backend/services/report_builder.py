"""
Report derivation service.

Turns the untyped ``reportByPackageWeekly`` rows returned by the OCS API into
``ReportRecord`` objects: weekly cost / usage columns are detected by name,
summed per row, and profit and margin are derived from the totals.  Nothing
here performs I/O; every function depends only on its arguments.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ocs_backend.models import (
    ReportRecord,
    ReportResponse,
    ReportTotals,
    WeeklyColumns,
)
from ocs_backend.services.numeric import to_number, to_text
from ocs_backend.utils.ocs_client import RAW_RESPONSE_KEY

logger = logging.getLogger(__name__)

RawRow = Mapping[str, Any]

WEEKLY_COST_PREFIX = "resellerCost_"
WEEKLY_USAGE_PREFIX = "usedData_"


# ---------------------------------------------------------------------------
# Weekly column detection
# ---------------------------------------------------------------------------
def detect_weekly_columns(columns: Iterable[Any]) -> WeeklyColumns:
    """Split *columns* into weekly cost and weekly usage columns.

    Matching is by case-sensitive prefix and keeps the upstream order.
    """
    cost_columns: list[str] = []
    usage_columns: list[str] = []
    for column in columns:
        if not isinstance(column, str):
            continue
        if column.startswith(WEEKLY_COST_PREFIX):
            cost_columns.append(column)
        elif column.startswith(WEEKLY_USAGE_PREFIX):
            usage_columns.append(column)
    return WeeklyColumns(cost_columns=cost_columns, usage_columns=usage_columns)


# ---------------------------------------------------------------------------
# Row aggregation
# ---------------------------------------------------------------------------
def _sum_columns(row: RawRow, columns: Sequence[str]) -> float:
    return sum((to_number(row.get(column)) for column in columns), 0.0)


def build_record(
    row: RawRow,
    cost_columns: Sequence[str],
    usage_columns: Sequence[str],
) -> ReportRecord:
    """Normalise a single upstream row into a ``ReportRecord``."""
    if not isinstance(row, Mapping):
        row = {}

    return ReportRecord(
        subscriber_id=to_text(row.get("subscriberId")),
        iccid=to_text(row.get("iccid")),
        last_usage_date=to_text(row.get("lastUsageDate") or ""),
        template_name=to_text(row.get("templateName") or ""),
        activation_date=to_text(
            row.get("activationDate") or row.get("tstartactivationutc") or ""
        ),
        expiry_date=to_text(row.get("expiryDate") or row.get("tsexpirationutc") or ""),
        used_data_byte=to_number(row.get("usedDataByte")),
        pck_data_byte=to_number(row.get("pckDataByte")),
        used_data_weekly_total_bytes=_sum_columns(row, usage_columns),
        subscriber_cost=to_number(row.get("subscriberCost")),
        reseller_cost=to_number(row.get("resellerCost")),
        reseller_cost_weekly_total=_sum_columns(row, cost_columns),
    )


def build_report(
    raw_rows: Iterable[RawRow],
    cost_columns: Sequence[str],
    usage_columns: Sequence[str],
) -> list[ReportRecord]:
    """Build one ``ReportRecord`` per upstream row, in input order.

    Rows are not sorted or de-duplicated: a subscriber holding several
    packages legitimately appears once per package.
    """
    return [build_record(row, cost_columns, usage_columns) for row in raw_rows]


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------
def compute_totals(records: Sequence[ReportRecord]) -> ReportTotals:
    """Sum costs and profit over *records*.

    The margin is the plain average of the per-row margins, not
    ``profit / subscriber_cost`` over the sums.
    """
    count = len(records)
    if not count:
        return ReportTotals()

    return ReportTotals(
        subscriber_cost=sum(r.subscriber_cost for r in records),
        reseller_cost_weekly_total=sum(r.reseller_cost_weekly_total for r in records),
        profit=sum(r.profit for r in records),
        margin=sum(r.margin for r in records) / count,
        row_count=count,
    )


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------
def build_report_from_response(payload: Any) -> ReportResponse:
    """Run detection, aggregation and totals over an OCS report body.

    A non-JSON upstream body (``{"raw": ...}``) yields an empty report that
    carries the raw text, so the caller can tell it apart from a failed
    request.
    """
    if not isinstance(payload, Mapping):
        logger.warning("Unexpected report payload type %s", type(payload).__name__)
        payload = {}

    raw_text = payload.get(RAW_RESPONSE_KEY)
    if isinstance(raw_text, str) and "rows" not in payload:
        return ReportResponse(raw=raw_text)

    columns = payload.get("columns")
    columns = [c for c in columns if isinstance(c, str)] if isinstance(columns, list) else []
    raw_rows = payload.get("rows")
    raw_rows = raw_rows if isinstance(raw_rows, list) else []

    weekly = detect_weekly_columns(columns)
    records = build_report(raw_rows, weekly.cost_columns, weekly.usage_columns)
    logger.debug(
        "Built report: %d rows, %d weekly cost columns, %d weekly usage columns",
        len(records),
        len(weekly.cost_columns),
        len(weekly.usage_columns),
    )

    return ReportResponse(
        columns=columns,
        weekly_columns=weekly,
        rows=records,
        totals=compute_totals(records),
    )
