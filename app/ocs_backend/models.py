"""
Pydantic data models for the OCS dashboard API.

All request / response schemas are defined here so they can be shared across
routers, services, and tests.  Field names are snake_case in Python and
camelCase on the wire, matching the upstream OCS API and the dashboard.
"""

from __future__ import annotations

from datetime import date

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


class _WireModel(BaseModel):
    """Base for models exchanged with the dashboard (camelCase aliases)."""

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
class SubscriberListRequest(_WireModel):
    """Payload sent by the dashboard to load an account's subscribers."""

    account_id: int = Field(
        ..., alias="accountId", gt=0, description="OCS reseller account id"
    )


class ReportRequest(SubscriberListRequest):
    """Payload sent by the dashboard to build the weekly package report."""

    start_date: date | None = Field(
        None,
        alias="startDate",
        description="First day of the report (YYYY-MM-DD); server default if omitted",
    )

    @field_validator("start_date", mode="before")
    @classmethod
    def _blank_start_date(cls, value: object) -> object:
        # A cleared date input arrives as ""; treat it like an omitted date
        if isinstance(value, str) and not value.strip():
            return None
        return value


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------
class WeeklyColumns(_WireModel):
    """Upstream columns that carry one value per week."""

    cost_columns: list[str] = Field(default_factory=list, alias="costColumns")
    usage_columns: list[str] = Field(default_factory=list, alias="usageColumns")


class ReportRecord(_WireModel):
    """One normalised report row, derived from exactly one upstream row.

    ``profit`` and ``margin`` are always derived from ``subscriber_cost`` and
    ``reseller_cost_weekly_total``; the model is frozen so they cannot drift.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    # Subscriber
    subscriber_id: str = Field("", alias="subscriberId")
    iccid: str = ""
    last_usage_date: str = Field("", alias="lastUsageDate")

    # Package
    template_name: str = Field("", alias="templateName")
    activation_date: str = Field("", alias="activationDate")
    expiry_date: str = Field("", alias="expiryDate")

    # Usage (bytes)
    used_data_byte: float = Field(0.0, alias="usedDataByte")
    pck_data_byte: float = Field(0.0, alias="pckDataByte")
    used_data_weekly_total_bytes: float = Field(0.0, alias="usedDataWeeklyTotalBytes")

    # Costs (EUR)
    subscriber_cost: float = Field(0.0, alias="subscriberCost")
    reseller_cost: float = Field(
        0.0, alias="resellerCost", description="Base reseller cost, informational"
    )
    reseller_cost_weekly_total: float = Field(0.0, alias="resellerCostWeeklyTotal")

    @computed_field
    @property
    def profit(self) -> float:
        """Subscriber cost minus weekly reseller cost; negative is a loss."""
        return self.subscriber_cost - self.reseller_cost_weekly_total

    @computed_field
    @property
    def margin(self) -> float:
        """Profit as a percentage of subscriber cost, 0 when there is no cost."""
        if self.subscriber_cost > 0:
            return self.profit / self.subscriber_cost * 100
        return 0.0


class ReportTotals(_WireModel):
    """Totals row shown under the report table."""

    subscriber_cost: float = Field(0.0, alias="subscriberCost")
    reseller_cost_weekly_total: float = Field(0.0, alias="resellerCostWeeklyTotal")
    profit: float = 0.0
    margin: float = Field(
        0.0, description="Simple average of the per-row margins (not weighted)"
    )
    row_count: int = Field(0, alias="rowCount")


class ReportResponse(_WireModel):
    """Derived report returned by ``POST /api/ocs/report/summary``."""

    columns: list[str] = Field(default_factory=list)
    weekly_columns: WeeklyColumns = Field(
        default_factory=WeeklyColumns, alias="weeklyColumns"
    )
    rows: list[ReportRecord] = Field(default_factory=list)
    totals: ReportTotals = Field(default_factory=ReportTotals)
    raw: str | None = Field(
        None, description="Upstream body when it was not JSON"
    )


# ---------------------------------------------------------------------------
# Subscribers
# ---------------------------------------------------------------------------
class SubscriberKPIs(BaseModel):
    """Headline subscriber counts shown above the report."""

    total: int
    active: int
    inactive: int
