"""
Expected dwell time per status and overdue detection.
"""

from datetime import datetime, timedelta
from typing import Mapping, Optional

from django.utils import timezone

from ..statuses import EntityKind, PackageStatus, ShipmentStatus, coerce_kind, find_status

# Hours an entity is expected to stay in a status; None means indefinite or final
PACKAGE_DURATIONS = {
    PackageStatus.PENDING_ARRIVAL: 72,
    PackageStatus.ARRIVED: 24,
    PackageStatus.INSPECTED: 48,
    PackageStatus.READY_FOR_REVIEW: 120,  # customer review
    PackageStatus.PENDING_ACTION: 72,
    PackageStatus.APPROVED: 24,
    PackageStatus.CONSOLIDATED: 48,
    PackageStatus.READY_FOR_SHIPMENT: 24,
    PackageStatus.SHIPPED: 168,
    PackageStatus.IN_TRANSIT: 240,
    PackageStatus.CUSTOMS_CLEARANCE: 72,
    PackageStatus.OUT_FOR_DELIVERY: 24,
    PackageStatus.ON_HOLD: None,
    PackageStatus.DELIVERED: None,
    PackageStatus.RETURNED: None,
    PackageStatus.LOST: None,
    PackageStatus.DAMAGED: None,
}

SHIPMENT_DURATIONS = {
    ShipmentStatus.AWAITING_QUOTE: 24,
    ShipmentStatus.QUOTE_READY: 120,  # customer review
    ShipmentStatus.PAYMENT_PENDING: 72,
    ShipmentStatus.PROCESSING: 48,
    ShipmentStatus.SHIPPED: 168,
    ShipmentStatus.ARRIVED: 24,
    ShipmentStatus.IN_TRANSIT: 240,
    ShipmentStatus.CUSTOMS_CLEARANCE: 72,
    ShipmentStatus.OUT_FOR_DELIVERY: 24,
    ShipmentStatus.DELIVERED: None,
    ShipmentStatus.CANCELLED: None,
    ShipmentStatus.PENDING: 48,
    ShipmentStatus.RECEIVED: 24,
    ShipmentStatus.TRANSIT: 168,
}

DEFAULT_DURATIONS = {
    EntityKind.PACKAGE: PACKAGE_DURATIONS,
    EntityKind.SHIPMENT: SHIPMENT_DURATIONS,
}


class DurationPolicy:
    """Expected duration table with overdue checks."""

    def __init__(self, durations: Mapping[str, Mapping[str, Optional[float]]] = None):
        if durations is None:
            durations = DEFAULT_DURATIONS
        self._durations = {
            coerce_kind(kind): {
                status: timedelta(hours=hours) if hours is not None else None
                for status, hours in table.items()
            }
            for kind, table in durations.items()
        }

    def expected_duration(self, kind, status) -> Optional[timedelta]:
        """Expected time in status, or None when the status is indefinite or final."""
        kind = coerce_kind(kind)
        status_value = find_status(kind, status)
        if status_value is None:
            return None
        return self._durations.get(kind, {}).get(status_value)

    def expected_hours(self, kind, status) -> Optional[float]:
        expected = self.expected_duration(kind, status)
        if expected is None:
            return None
        return expected.total_seconds() / 3600

    def overdue_since(self, kind, status, now: datetime = None) -> Optional[datetime]:
        """Entities that entered status before this instant are overdue at now."""
        expected = self.expected_duration(kind, status)
        if expected is None:
            return None
        return (now or timezone.now()) - expected

    def is_overdue(self, kind, status, status_changed_at: datetime, now: datetime = None) -> bool:
        """
        Check whether an entity has been held in status longer than expected.

        Args:
            kind: Entity kind
            status: Current status
            status_changed_at: When the entity entered the status; naive values are
                read in the current time zone
            now: Reference instant, defaults to the current time

        Returns:
            True if the elapsed time strictly exceeds the expected duration
        """
        expected = self.expected_duration(kind, status)
        if expected is None or status_changed_at is None:
            return False

        if timezone.is_naive(status_changed_at):
            status_changed_at = timezone.make_aware(status_changed_at)
        now = now or timezone.now()
        if timezone.is_naive(now):
            now = timezone.make_aware(now)
        return now - status_changed_at > expected


default_policy = DurationPolicy()


def expected_duration(kind, status) -> Optional[timedelta]:
    return default_policy.expected_duration(kind, status)


def is_overdue(kind, status, status_changed_at: datetime, now: datetime = None) -> bool:
    return default_policy.is_overdue(kind, status, status_changed_at, now)
