"""
Status registry for packages and shipments.

Canonical enumeration of the statuses of each entity kind together with
their display metadata. Display metadata never affects validation.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from django.db import models

from .exceptions import UnknownEntityKindError, UnknownStatusError


class EntityKind(models.TextChoices):
    """Entity kinds whose status lifecycle is governed by the engine."""
    PACKAGE = 'package', 'Package'
    SHIPMENT = 'shipment', 'Shipment'


class ActorRole(models.TextChoices):
    """Roles an actor can hold when requesting a status change."""
    CLIENT = 'client', 'Client'
    WAREHOUSE_ADMIN = 'warehouse_admin', 'Warehouse Admin'
    ADMIN = 'admin', 'Admin'
    SUPERADMIN = 'superadmin', 'Super Admin'


class PackageStatus(models.TextChoices):
    """Package status enumeration following the intake-to-delivery lifecycle."""
    # Arrival and processing
    PENDING_ARRIVAL = 'pending_arrival', 'Pending Arrival'
    ARRIVED = 'arrived', 'Arrived'
    INSPECTED = 'inspected', 'Inspected'

    # Review and preparation
    READY_FOR_REVIEW = 'ready_for_review', 'Ready for Review'
    PENDING_ACTION = 'pending_action', 'Pending Action'
    APPROVED = 'approved', 'Approved'
    CONSOLIDATED = 'consolidated', 'Consolidated'
    ON_HOLD = 'on_hold', 'On Hold'

    # Shipping and transit
    READY_FOR_SHIPMENT = 'ready_for_shipment', 'Ready for Shipment'
    SHIPPED = 'shipped', 'Shipped'
    IN_TRANSIT = 'in_transit', 'In Transit'
    CUSTOMS_CLEARANCE = 'customs_clearance', 'Customs Clearance'

    # Delivery
    OUT_FOR_DELIVERY = 'out_for_delivery', 'Out for Delivery'
    DELIVERED = 'delivered', 'Delivered'

    # Exceptions
    RETURNED = 'returned', 'Returned'
    LOST = 'lost', 'Lost'
    DAMAGED = 'damaged', 'Damaged'


class ShipmentStatus(models.TextChoices):
    """Shipment status enumeration following the quote-to-delivery lifecycle."""
    # Pre-shipping
    AWAITING_QUOTE = 'awaiting_quote', 'Awaiting Quote'
    QUOTE_READY = 'quote_ready', 'Quote Ready'
    PAYMENT_PENDING = 'payment_pending', 'Payment Pending'
    PROCESSING = 'processing', 'Processing'

    # Transit
    SHIPPED = 'shipped', 'Shipped'
    ARRIVED = 'arrived', 'Arrived'
    IN_TRANSIT = 'in_transit', 'In Transit'
    CUSTOMS_CLEARANCE = 'customs_clearance', 'Customs Clearance'
    OUT_FOR_DELIVERY = 'out_for_delivery', 'Out for Delivery'

    # Final
    DELIVERED = 'delivered', 'Delivered'
    CANCELLED = 'cancelled', 'Cancelled'

    # Legacy aliases kept for older records
    PENDING = 'pending', 'Pending'
    RECEIVED = 'received', 'Received'
    TRANSIT = 'transit', 'Transit'


StatusValue = Union[PackageStatus, ShipmentStatus]

STATUS_ENUMS = {
    EntityKind.PACKAGE: PackageStatus,
    EntityKind.SHIPMENT: ShipmentStatus,
}

LEGACY_SHIPMENT_STATUSES = frozenset({
    ShipmentStatus.PENDING,
    ShipmentStatus.RECEIVED,
    ShipmentStatus.TRANSIT,
})


@dataclass(frozen=True)
class StatusInfo:
    """Display information for a single status."""
    value: StatusValue
    label: str
    color: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'value': str(self.value),
            'label': self.label,
            'color': self.color,
            'description': self.description,
        }


_PACKAGE_STATUS_INFO = [
    StatusInfo(PackageStatus.PENDING_ARRIVAL, 'Pending Arrival', 'gray', 'Package is expected but not yet received'),
    StatusInfo(PackageStatus.ARRIVED, 'Arrived', 'blue', 'Package has arrived at warehouse'),
    StatusInfo(PackageStatus.INSPECTED, 'Inspected', 'yellow', 'Package has been inspected and catalogued'),
    StatusInfo(PackageStatus.READY_FOR_REVIEW, 'Ready for Review', 'orange', 'Package is ready for customer review'),
    StatusInfo(PackageStatus.PENDING_ACTION, 'Pending Action', 'yellow', 'Awaiting customer or staff action'),
    StatusInfo(PackageStatus.APPROVED, 'Approved', 'green', 'Package approved for shipment'),
    StatusInfo(PackageStatus.CONSOLIDATED, 'Consolidated', 'purple', 'Package grouped with others for shipping'),
    StatusInfo(PackageStatus.ON_HOLD, 'On Hold', 'red', 'Package temporarily held'),
    StatusInfo(PackageStatus.READY_FOR_SHIPMENT, 'Ready for Shipment', 'green', 'Package prepared for shipping'),
    StatusInfo(PackageStatus.SHIPPED, 'Shipped', 'indigo', 'Package has been shipped out'),
    StatusInfo(PackageStatus.IN_TRANSIT, 'In Transit', 'blue', 'Package is in transit to destination'),
    StatusInfo(PackageStatus.CUSTOMS_CLEARANCE, 'Customs Clearance', 'orange', 'Package undergoing customs processing'),
    StatusInfo(PackageStatus.OUT_FOR_DELIVERY, 'Out for Delivery', 'green', 'Package is out for final delivery'),
    StatusInfo(PackageStatus.DELIVERED, 'Delivered', 'green', 'Package successfully delivered'),
    StatusInfo(PackageStatus.RETURNED, 'Returned', 'red', 'Package returned to sender'),
    StatusInfo(PackageStatus.LOST, 'Lost', 'red', 'Package is lost in transit'),
    StatusInfo(PackageStatus.DAMAGED, 'Damaged', 'red', 'Package has been damaged'),
]

_SHIPMENT_STATUS_INFO = [
    StatusInfo(ShipmentStatus.AWAITING_QUOTE, 'Awaiting Quote', 'gray', 'Shipment awaiting cost calculation'),
    StatusInfo(ShipmentStatus.QUOTE_READY, 'Quote Ready', 'blue', 'Quote prepared and ready for customer'),
    StatusInfo(ShipmentStatus.PAYMENT_PENDING, 'Payment Pending', 'yellow', 'Awaiting payment confirmation'),
    StatusInfo(ShipmentStatus.PROCESSING, 'Processing', 'blue', 'Shipment being prepared'),
    StatusInfo(ShipmentStatus.SHIPPED, 'Shipped', 'indigo', 'Shipment dispatched'),
    StatusInfo(ShipmentStatus.ARRIVED, 'Arrived', 'green', 'Shipment arrived at intermediate location'),
    StatusInfo(ShipmentStatus.IN_TRANSIT, 'In Transit', 'blue', 'Shipment in transit'),
    StatusInfo(ShipmentStatus.CUSTOMS_CLEARANCE, 'Customs Clearance', 'orange', 'Undergoing customs processing'),
    StatusInfo(ShipmentStatus.OUT_FOR_DELIVERY, 'Out for Delivery', 'green', 'Out for final delivery'),
    StatusInfo(ShipmentStatus.DELIVERED, 'Delivered', 'green', 'Successfully delivered'),
    StatusInfo(ShipmentStatus.CANCELLED, 'Cancelled', 'red', 'Shipment cancelled'),
    StatusInfo(ShipmentStatus.PENDING, 'Pending', 'gray', 'Generic pending status'),
    StatusInfo(ShipmentStatus.RECEIVED, 'Received', 'blue', 'Received at destination'),
    StatusInfo(ShipmentStatus.TRANSIT, 'Transit', 'blue', 'Generic transit status'),
]

_STATUS_INFO = {
    EntityKind.PACKAGE: _PACKAGE_STATUS_INFO,
    EntityKind.SHIPMENT: _SHIPMENT_STATUS_INFO,
}

_STATUS_INFO_INDEX = {
    kind: {info.value: info for info in infos}
    for kind, infos in _STATUS_INFO.items()
}

# Statuses that should be surfaced to staff as soon as they are set
URGENT_STATUSES = {
    EntityKind.PACKAGE: frozenset({PackageStatus.DAMAGED, PackageStatus.LOST, PackageStatus.ON_HOLD}),
    EntityKind.SHIPMENT: frozenset({ShipmentStatus.CANCELLED, ShipmentStatus.CUSTOMS_CLEARANCE}),
}

TRACKABLE_STATUSES = {
    EntityKind.PACKAGE: frozenset({
        PackageStatus.SHIPPED, PackageStatus.IN_TRANSIT, PackageStatus.CUSTOMS_CLEARANCE,
        PackageStatus.OUT_FOR_DELIVERY, PackageStatus.DELIVERED,
    }),
    EntityKind.SHIPMENT: frozenset({
        ShipmentStatus.SHIPPED, ShipmentStatus.ARRIVED, ShipmentStatus.IN_TRANSIT,
        ShipmentStatus.CUSTOMS_CLEARANCE, ShipmentStatus.OUT_FOR_DELIVERY, ShipmentStatus.DELIVERED,
    }),
}


def coerce_kind(kind) -> EntityKind:
    """
    Parse an entity kind.

    Raises:
        UnknownEntityKindError: If the value names no known entity kind
    """
    try:
        return EntityKind(kind)
    except ValueError:
        raise UnknownEntityKindError(kind) from None


def coerce_status(kind, value) -> StatusValue:
    """
    Parse a status value within the namespace of an entity kind.

    Raises:
        UnknownEntityKindError: If the kind is unknown
        UnknownStatusError: If the value is not a status of that kind
    """
    kind = coerce_kind(kind)
    try:
        return STATUS_ENUMS[kind](value)
    except ValueError:
        raise UnknownStatusError(kind, value) from None


def find_status(kind, value) -> Optional[StatusValue]:
    """
    Return the status member for value, or None when it is not registered.

    Raises:
        UnknownEntityKindError: If the kind is unknown
    """
    kind = coerce_kind(kind)
    try:
        return STATUS_ENUMS[kind](value)
    except ValueError:
        return None


def all_statuses(kind) -> List[StatusInfo]:
    """All statuses of an entity kind in lifecycle order."""
    return list(_STATUS_INFO[coerce_kind(kind)])


def info(kind, value) -> Optional[StatusInfo]:
    """Display information for a status, or None for unknown statuses."""
    status = find_status(kind, value)
    if status is None:
        return None
    return _STATUS_INFO_INDEX[EntityKind(kind)].get(status)


def requires_immediate_attention(kind, value) -> bool:
    """True for statuses that staff should look at right away."""
    status = find_status(kind, value)
    return status is not None and status in URGENT_STATUSES[EntityKind(kind)]


def is_trackable_by_customer(kind, value) -> bool:
    """True once the entity has left the warehouse and carries carrier tracking."""
    status = find_status(kind, value)
    return status is not None and status in TRACKABLE_STATUSES[EntityKind(kind)]
