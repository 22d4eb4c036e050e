"""
OCS API client.

Every call to the upstream billing/telemetry API goes through ``post_ocs`` so
that all outbound requests share the same timeout, token handling, and
response decoding.  The API speaks a single endpoint: the operation is
selected by the top-level key of the JSON body.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import requests

from ocs_backend.utils.config import (
    OCS_API_TOKEN,
    OCS_API_URL,
    OCS_DEFAULT_START_DATE,
    OCS_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)

# Key under which a non-JSON upstream body is returned
RAW_RESPONSE_KEY = "raw"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
class OcsClientError(RuntimeError):
    """Base class for failures talking to the OCS API."""


class OcsTimeoutError(OcsClientError):
    """The OCS API did not answer within ``OCS_TIMEOUT_SECONDS``."""


class OcsTransportError(OcsClientError):
    """The request to the OCS API could not be completed."""


# ---------------------------------------------------------------------------
# Shared request helper
# ---------------------------------------------------------------------------
def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def decode_body(text: str) -> Any:
    """Parse *text* as JSON, or wrap it as ``{"raw": text}`` if it is not.

    ``NaN`` / ``Infinity`` are not JSON and count as a non-JSON body.
    """
    try:
        return json.loads(text, parse_constant=_reject_constant)
    except ValueError:
        logger.warning("OCS API returned a non-JSON body (%d chars)", len(text))
        return {RAW_RESPONSE_KEY: text}


def post_ocs(body: dict[str, Any]) -> Any:
    """POST *body* to the OCS API and return the decoded response.

    ``OCS_TIMEOUT_SECONDS`` bounds the connect and every socket read, not the
    total transfer: an upstream that keeps trickling bytes can take longer.

    Parameters
    ----------
    body:
        JSON-serialisable request body, e.g.
        ``{"listSubscriber": {"accountId": 3771}}``.

    Returns
    -------
    Any
        The parsed JSON body, or ``{"raw": <text>}`` when the upstream
        answered with something that is not JSON.

    Raises
    ------
    OcsTimeoutError
        No response arrived within the timeout.
    OcsTransportError
        Any other failure to complete the request.
    """
    operation = next(iter(body), "?")
    wait = OCS_TIMEOUT_SECONDS

    try:
        response = requests.post(
            OCS_API_URL,
            params={"token": OCS_API_TOKEN},
            json=body,
            headers={"Content-Type": "application/json"},
            timeout=wait,
        )
    except requests.Timeout as exc:
        logger.warning(
            "OCS %s timed out after %.1fs (%s)", operation, wait, OCS_API_URL
        )
        raise OcsTimeoutError(
            f"OCS API did not respond within {wait:g} seconds"
        ) from exc
    except requests.RequestException as exc:
        # requests' messages can embed the full URL (and token); log the type only
        logger.error(
            "OCS %s request failed (%s): %s",
            operation,
            OCS_API_URL,
            type(exc).__name__,
        )
        raise OcsTransportError(
            f"OCS API request failed: {type(exc).__name__}"
        ) from exc

    if not response.ok:
        # The upstream reports errors in its body; pass it through.
        logger.warning("OCS %s answered HTTP %s", operation, response.status_code)

    return decode_body(response.text)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------
def fetch_report(account_id: int, start_date: str | None = None) -> Any:
    """Fetch the weekly per-package report for an account.

    The upstream answer carries a ``columns`` list and a ``rows`` list whose
    keys include one ``resellerCost_<week>`` / ``usedData_<week>`` pair per
    week since *start_date*.
    """
    body = {
        "reportByPackageWeekly": {
            "accountId": int(account_id),
            "startDate": start_date or OCS_DEFAULT_START_DATE,
        }
    }
    return post_ocs(body)


def fetch_subscriber_list(account_id: int) -> Any:
    """Fetch the subscriber list (``listSubscriber.subscriberList``)."""
    return post_ocs({"listSubscriber": {"accountId": int(account_id)}})
