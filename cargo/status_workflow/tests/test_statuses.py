"""
Tests for the status registry.
"""

from django.test import SimpleTestCase

from ..exceptions import UnknownEntityKindError, UnknownStatusError
from ..statuses import (
    EntityKind, PackageStatus, ShipmentStatus, all_statuses, coerce_kind, coerce_status,
    find_status, info, is_trackable_by_customer, requires_immediate_attention
)


class StatusRegistryTest(SimpleTestCase):
    """Test status enumeration and display metadata."""

    def test_all_statuses_in_lifecycle_order(self):
        package_values = [status_info.value for status_info in all_statuses(EntityKind.PACKAGE)]
        self.assertEqual(len(package_values), 17)
        self.assertEqual(package_values[0], PackageStatus.PENDING_ARRIVAL)
        self.assertEqual(set(package_values), set(PackageStatus))

        shipment_values = [status_info.value for status_info in all_statuses('shipment')]
        self.assertEqual(len(shipment_values), 14)
        self.assertEqual(shipment_values[0], ShipmentStatus.AWAITING_QUOTE)
        self.assertEqual(set(shipment_values), set(ShipmentStatus))

    def test_info_returns_display_metadata(self):
        status_info = info(EntityKind.PACKAGE, 'arrived')
        self.assertEqual(status_info.label, 'Arrived')
        self.assertEqual(status_info.color, 'blue')
        self.assertEqual(status_info.to_dict()['value'], 'arrived')

    def test_same_name_differs_per_kind(self):
        self.assertEqual(info(EntityKind.PACKAGE, 'arrived').description, 'Package has arrived at warehouse')
        self.assertEqual(info(EntityKind.SHIPMENT, 'arrived').description, 'Shipment arrived at intermediate location')

    def test_info_unknown_status_is_none(self):
        self.assertIsNone(info(EntityKind.PACKAGE, 'teleported'))
        self.assertIsNone(info(EntityKind.PACKAGE, 'awaiting_quote'))

    def test_lookups_with_unknown_kind_raise(self):
        with self.assertRaises(UnknownEntityKindError):
            info('pallet', 'arrived')
        with self.assertRaises(UnknownEntityKindError):
            find_status('pallet', 'arrived')
        with self.assertRaises(UnknownEntityKindError):
            requires_immediate_attention('pallet', 'damaged')
        with self.assertRaises(UnknownEntityKindError):
            is_trackable_by_customer('pallet', 'shipped')

    def test_coerce_rejects_unknown_values(self):
        self.assertEqual(coerce_kind('shipment'), EntityKind.SHIPMENT)
        self.assertEqual(coerce_status('package', 'on_hold'), PackageStatus.ON_HOLD)

        with self.assertRaises(UnknownEntityKindError):
            coerce_kind('pallet')
        with self.assertRaises(UnknownStatusError):
            coerce_status(EntityKind.SHIPMENT, 'inspected')
        self.assertIsNone(find_status(EntityKind.SHIPMENT, 'inspected'))

    def test_urgent_statuses(self):
        for status in ['damaged', 'lost', 'on_hold']:
            self.assertTrue(requires_immediate_attention(EntityKind.PACKAGE, status))
        self.assertTrue(requires_immediate_attention(EntityKind.SHIPMENT, 'cancelled'))
        self.assertTrue(requires_immediate_attention(EntityKind.SHIPMENT, 'customs_clearance'))
        self.assertFalse(requires_immediate_attention(EntityKind.PACKAGE, 'customs_clearance'))
        self.assertFalse(requires_immediate_attention(EntityKind.PACKAGE, 'unknown'))

    def test_trackable_statuses(self):
        self.assertTrue(is_trackable_by_customer(EntityKind.SHIPMENT, 'in_transit'))
        self.assertTrue(is_trackable_by_customer(EntityKind.PACKAGE, 'delivered'))
        self.assertFalse(is_trackable_by_customer(EntityKind.SHIPMENT, 'processing'))
        self.assertFalse(is_trackable_by_customer(EntityKind.PACKAGE, 'arrived'))
