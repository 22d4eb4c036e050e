"""
Subscriber list KPIs.

Counts total, active and inactive subscribers from a ``listSubscriber``
response.  A subscriber is active when any entry of its ``status`` history
has status ``ACTIVE``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ocs_backend.models import SubscriberKPIs


def extract_subscribers(payload: Any) -> list[Any]:
    """Return ``listSubscriber.subscriberList``, or ``[]`` if it is missing."""
    if not isinstance(payload, Mapping):
        return []
    block = payload.get("listSubscriber")
    subscribers = block.get("subscriberList") if isinstance(block, Mapping) else None
    return subscribers if isinstance(subscribers, list) else []


def is_active(subscriber: Any) -> bool:
    if not isinstance(subscriber, Mapping):
        return False
    statuses = subscriber.get("status")
    if not isinstance(statuses, list):
        return False
    return any(
        isinstance(entry, Mapping) and str(entry.get("status")).upper() == "ACTIVE"
        for entry in statuses
    )


def summarize_subscribers(payload: Any) -> SubscriberKPIs:
    """Compute the headline subscriber counts for a ``listSubscriber`` body."""
    subscribers = extract_subscribers(payload)
    total = len(subscribers)
    active = sum(1 for s in subscribers if is_active(s))
    return SubscriberKPIs(total=total, active=active, inactive=total - active)
