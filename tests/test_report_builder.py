"""
Tests for the report derivation pipeline.

Covers numeric coercion, weekly column detection, per-row aggregation,
profit / margin derivation, and the totals row.  These functions are pure,
so no upstream mocking is needed.
"""

from __future__ import annotations

import math
import os
import sys

import pytest

# Ensure the app package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "app"))

from ocs_backend.models import ReportRecord  # noqa: E402
from ocs_backend.services.numeric import to_number, to_text  # noqa: E402
from ocs_backend.services.report_builder import (  # noqa: E402
    build_record,
    build_report,
    build_report_from_response,
    compute_totals,
    detect_weekly_columns,
)


# ---------------------------------------------------------------------------
# Mock data helpers
# ---------------------------------------------------------------------------
def _mock_report_payload() -> dict:
    return {
        "columns": [
            "subscriberId",
            "iccid",
            "templateName",
            "subscriberCost",
            "resellerCost",
            "resellerCost_2025-06-02",
            "resellerCost_2025-06-09",
            "usedData_2025-06-02",
            "usedData_2025-06-09",
        ],
        "rows": [
            {
                "subscriberId": 1001,
                "iccid": "8944500000000000001",
                "templateName": "EU 10GB",
                "tstartactivationutc": "2025-06-01 10:00:00",
                "tsexpirationutc": "2025-07-01 10:00:00",
                "usedDataByte": "1073741824",
                "pckDataByte": 10737418240,
                "subscriberCost": "20",
                "resellerCost": 4,
                "resellerCost_2025-06-02": "3.5",
                "resellerCost_2025-06-09": 1.5,
                "usedData_2025-06-02": 500,
                "usedData_2025-06-09": "250",
            },
            {
                "subscriberId": 1002,
                "iccid": None,
                "templateName": "World 1GB",
                "activationDate": "2025-06-05",
                "expiryDate": "2025-06-12",
                "subscriberCost": 5,
                "resellerCost_2025-06-02": 4,
                "resellerCost_2025-06-09": 3,
                "usedData_2025-06-02": None,
                "usedData_2025-06-09": "n/a",
            },
        ],
    }


# ===========================================================================
# Numeric coercion
# ===========================================================================
class TestToNumber:
    """Tests for ``to_number``."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (12, 12.0),
            (-3.25, -3.25),
            ("42", 42.0),
            (" 7.5 ", 7.5),
            ("1e3", 1000.0),
            (True, 1.0),
            (False, 0.0),
        ],
    )
    def test_numeric_input(self, value, expected):
        """Numbers and numeric strings are returned as floats."""
        assert to_number(value) == expected

    @pytest.mark.parametrize(
        "value",
        [None, "", "   ", "abc", "12abc", float("nan"), float("inf"),
         "-Infinity", "1e400", 10**400, {}, [], [1], {"a": 1}, object()],
    )
    def test_non_numeric_input_is_zero(self, value):
        """Anything that is not a finite number coerces to exactly 0."""
        result = to_number(value)
        assert result == 0
        assert math.isfinite(result)

    @pytest.mark.parametrize(
        "value, expected",
        [("0x10", 16.0), ("0X1f", 31.0), ("0b11", 3.0), ("0o17", 15.0), ("1_000", 0.0),
         ("0x", 0.0), ("-0x10", 0.0), ("１２", 0.0), (".5", 0.5), ("+5", 5.0)],
    )
    def test_string_parsing_follows_dashboard_rules(self, value, expected):
        """Radix literals are read; digit separators and non-ASCII digits are not."""
        assert to_number(value) == expected

    def test_to_text(self):
        """``None`` becomes an empty string; everything else is stringified."""
        assert to_text(None) == ""
        assert to_text(1001) == "1001"
        assert to_text("abc") == "abc"


# ===========================================================================
# Weekly column detection
# ===========================================================================
class TestDetectWeeklyColumns:
    """Tests for ``detect_weekly_columns``."""

    def test_classifies_by_prefix_in_order(self):
        """Cost and usage columns are split out, preserving upstream order."""
        weekly = detect_weekly_columns(
            ["resellerCost_w1", "resellerCost_w2", "usedData_w1", "foo"]
        )
        assert weekly.cost_columns == ["resellerCost_w1", "resellerCost_w2"]
        assert weekly.usage_columns == ["usedData_w1"]

    def test_order_follows_input_not_name(self):
        weekly = detect_weekly_columns(
            ["usedData_w3", "resellerCost_w2", "usedData_w1", "resellerCost_w1"]
        )
        assert weekly.cost_columns == ["resellerCost_w2", "resellerCost_w1"]
        assert weekly.usage_columns == ["usedData_w3", "usedData_w1"]

    def test_matching_is_case_sensitive_prefix(self):
        """Only the exact prefixes count; base columns are not weekly."""
        weekly = detect_weekly_columns(
            [
                "resellerCost",
                "ResellerCost_w1",
                "usedDataByte",
                "usedata_w1",
                "x_resellerCost_w1",
                "usedData_",
            ]
        )
        assert weekly.cost_columns == []
        assert weekly.usage_columns == ["usedData_"]

    def test_non_string_columns_are_ignored(self):
        weekly = detect_weekly_columns([None, 3, "resellerCost_w1"])
        assert weekly.cost_columns == ["resellerCost_w1"]
        assert weekly.usage_columns == []


# ===========================================================================
# Row aggregation
# ===========================================================================
class TestBuildRecord:
    """Tests for per-row aggregation and derived fields."""

    def test_weekly_totals_profit_and_margin(self):
        """10 - (3 + 2) gives profit 5 and a 50% margin."""
        record = build_record(
            {"subscriberCost": 10, "resellerCost_w1": 3, "resellerCost_w2": 2},
            ["resellerCost_w1", "resellerCost_w2"],
            [],
        )
        assert record.reseller_cost_weekly_total == 5
        assert record.profit == 5
        assert record.margin == pytest.approx(50.0)

    def test_zero_subscriber_cost_has_zero_margin(self):
        """No division by zero: the margin is 0 whatever the weekly cost."""
        record = build_record(
            {"subscriberCost": 0, "resellerCost_w1": 7},
            ["resellerCost_w1"],
            [],
        )
        assert record.profit == -7
        assert record.margin == 0

    def test_negative_subscriber_cost_has_zero_margin(self):
        record = build_record({"subscriberCost": -4}, [], [])
        assert record.margin == 0

    def test_loss_is_not_clamped(self):
        """Weekly cost above subscriber cost yields a negative profit."""
        record = build_record(
            {"subscriberCost": 5, "resellerCost_w1": 4, "resellerCost_w2": 3},
            ["resellerCost_w1", "resellerCost_w2"],
            [],
        )
        assert record.profit == -2
        assert record.margin == pytest.approx(-40.0)

    def test_usage_columns_are_summed(self):
        record = build_record(
            {"usedData_w1": "1024", "usedData_w2": 2048, "usedData_w3": None},
            [],
            ["usedData_w1", "usedData_w2", "usedData_w3"],
        )
        assert record.used_data_weekly_total_bytes == 3072

    def test_missing_weekly_column_counts_as_zero(self):
        """A detected column absent from a row contributes nothing."""
        record = build_record(
            {"subscriberCost": 8, "resellerCost_w1": 2},
            ["resellerCost_w1", "resellerCost_w2"],
            [],
        )
        assert record.reseller_cost_weekly_total == 2

    def test_base_reseller_cost_is_informational(self):
        """``resellerCost`` is copied through but not used for profit."""
        record = build_record(
            {"subscriberCost": 10, "resellerCost": 9, "resellerCost_w1": 1},
            ["resellerCost_w1"],
            [],
        )
        assert record.reseller_cost == 9
        assert record.profit == 9

    def test_date_fallback_fields(self):
        record = build_record(
            {"tstartactivationutc": "2025-06-01", "tsexpirationutc": "2025-07-01"},
            [],
            [],
        )
        assert record.activation_date == "2025-06-01"
        assert record.expiry_date == "2025-07-01"

    def test_primary_date_fields_win(self):
        record = build_record(
            {
                "activationDate": "2025-06-05",
                "tstartactivationutc": "2025-06-01",
                "expiryDate": "2025-06-12",
                "tsexpirationutc": "2025-07-01",
            },
            [],
            [],
        )
        assert record.activation_date == "2025-06-05"
        assert record.expiry_date == "2025-06-12"

    def test_empty_row_yields_defaults(self):
        """Every field missing still produces a complete record."""
        record = build_record({}, ["resellerCost_w1"], ["usedData_w1"])
        assert record.subscriber_id == ""
        assert record.iccid == ""
        assert record.template_name == ""
        assert record.subscriber_cost == 0
        assert record.profit == 0
        assert record.margin == 0

    def test_non_mapping_row_is_treated_as_empty(self):
        record = build_record(None, ["resellerCost_w1"], [])
        assert record.model_dump() == ReportRecord().model_dump()

    def test_record_is_frozen(self):
        record = build_record({"subscriberCost": 10}, [], [])
        with pytest.raises(Exception):
            record.subscriber_cost = 20

    def test_serialises_with_camel_case_keys(self):
        record = build_record(
            {"subscriberId": 7, "subscriberCost": 10, "resellerCost_w1": 3},
            ["resellerCost_w1"],
            [],
        )
        data = record.model_dump(by_alias=True)
        assert data["subscriberId"] == "7"
        assert data["resellerCostWeeklyTotal"] == 3
        assert data["profit"] == 7
        assert data["margin"] == pytest.approx(70.0)


class TestBuildReport:
    """Tests for ``build_report``."""

    def test_preserves_row_order_and_duplicates(self):
        """Output order equals input order; repeated subscribers are kept."""
        ids = ["S-9", "S-2", "S-7", "S-2", "S-1"]
        records = build_report([{"subscriberId": i} for i in ids], [], [])
        assert [r.subscriber_id for r in records] == ids

    def test_empty_input(self):
        assert build_report([], ["resellerCost_w1"], []) == []


# ===========================================================================
# Totals
# ===========================================================================
class TestComputeTotals:
    """Tests for the totals row."""

    def test_margin_is_unweighted_average(self):
        """The totals margin averages row margins instead of re-deriving it."""
        records = build_report(
            [
                {"subscriberCost": 10, "resellerCost_w1": 5},   # margin 50
                {"subscriberCost": 100, "resellerCost_w1": 90},  # margin 10
            ],
            ["resellerCost_w1"],
            [],
        )
        totals = compute_totals(records)
        assert totals.subscriber_cost == 110
        assert totals.reseller_cost_weekly_total == 95
        assert totals.profit == 15
        assert totals.margin == pytest.approx(30.0)
        assert totals.row_count == 2

    def test_zero_cost_rows_count_towards_average(self):
        records = build_report(
            [{"subscriberCost": 10, "resellerCost_w1": 5}, {"subscriberCost": 0}],
            ["resellerCost_w1"],
            [],
        )
        assert compute_totals(records).margin == pytest.approx(25.0)

    def test_no_rows(self):
        totals = compute_totals([])
        assert totals.profit == 0
        assert totals.margin == 0
        assert totals.row_count == 0


# ===========================================================================
# Pipeline
# ===========================================================================
class TestBuildReportFromResponse:
    """Tests for ``build_report_from_response``."""

    def test_full_payload(self):
        result = build_report_from_response(_mock_report_payload())

        assert result.weekly_columns.cost_columns == [
            "resellerCost_2025-06-02",
            "resellerCost_2025-06-09",
        ]
        assert result.weekly_columns.usage_columns == [
            "usedData_2025-06-02",
            "usedData_2025-06-09",
        ]
        assert len(result.rows) == 2

        first, second = result.rows
        assert first.subscriber_id == "1001"
        assert first.activation_date == "2025-06-01 10:00:00"
        assert first.used_data_byte == 1073741824
        assert first.used_data_weekly_total_bytes == 750
        assert first.reseller_cost_weekly_total == 5
        assert first.profit == 15
        assert first.margin == pytest.approx(75.0)

        assert second.iccid == ""
        assert second.used_data_weekly_total_bytes == 0
        assert second.profit == -2
        assert second.margin == pytest.approx(-40.0)

        assert result.totals.profit == 13
        assert result.totals.margin == pytest.approx(17.5)
        assert result.raw is None

    def test_raw_fallback_payload(self):
        """A non-JSON upstream body yields an empty report carrying the text."""
        result = build_report_from_response({"raw": "<html>Bad Gateway</html>"})
        assert result.rows == []
        assert result.raw == "<html>Bad Gateway</html>"
        assert result.totals.row_count == 0

    @pytest.mark.parametrize(
        "payload",
        [None, [], "text", {}, {"columns": "x", "rows": {"a": 1}}],
    )
    def test_malformed_payload_yields_empty_report(self, payload):
        result = build_report_from_response(payload)
        assert result.rows == []
        assert result.columns == []
