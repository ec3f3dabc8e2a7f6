"""
Tests for applying status transitions to stored packages and shipments.
"""

import uuid
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db import connection, transaction
from django.test import TestCase, TransactionTestCase
from django.utils import timezone

from ..adapters.action_adapter import (
    LoggingActionDispatcher, get_action_dispatcher, switch_to_dispatcher, switch_to_mock_dispatcher
)
from ..exceptions import ConcurrentTransitionException, EntityNotFoundException
from ..models import Package, Shipment, StatusAuditLog
from ..services.automation import AutomationEngine
from ..services.transition_service import StatusTransitionService, transition_package, transition_shipment
from ..services.validator import TransitionValidator
from ..statuses import ActorRole, EntityKind, PackageStatus, ShipmentStatus


class InterleavingValidator(TransitionValidator):
    """Validator that lets another writer change the row right after validating."""

    def __init__(self, interleave, times=1):
        super().__init__()
        self.interleave = interleave
        self.times = times
        self.calls = 0

    def validate(self, context):
        result = super().validate(context)
        self.calls += 1
        if self.calls <= self.times:
            self.interleave(self.calls)
        return result


class StatusTransitionServiceTest(TestCase):
    """Test the read-validate-write cycle."""

    def setUp(self):
        """Set up test data."""
        User = get_user_model()
        self.client_user = User.objects.create_user(
            username='customer', email='customer@example.com', password='testpass123', role=ActorRole.CLIENT
        )
        self.warehouse_user = User.objects.create_user(
            username='warehouse', email='warehouse@example.com', password='testpass123',
            role=ActorRole.WAREHOUSE_ADMIN
        )
        self.admin_user = User.objects.create_user(
            username='admin', email='admin@example.com', password='testpass123', role=ActorRole.ADMIN
        )

        self.package = Package.objects.create(user=self.client_user, tracking_number='PKG-0001')
        self.shipment = Shipment.objects.create(
            user=self.client_user, tracking_number='SHP-0001', status=ShipmentStatus.PAYMENT_PENDING
        )

        self.previous_dispatcher = get_action_dispatcher()
        self.dispatcher = switch_to_mock_dispatcher()

    def tearDown(self):
        switch_to_dispatcher(self.previous_dispatcher)

    def test_accepted_transition_is_stored_and_audited(self):
        before = timezone.now()

        outcome = transition_package(self.package.id, 'arrived', self.warehouse_user, notes='Scanned at dock 3')

        self.assertTrue(outcome.applied)
        self.assertEqual(outcome.previous_status, PackageStatus.PENDING_ARRIVAL)
        self.assertEqual(outcome.attempts, 1)

        self.package.refresh_from_db()
        self.assertEqual(self.package.status, PackageStatus.ARRIVED)
        self.assertGreaterEqual(self.package.status_changed_at, before)

        log = StatusAuditLog.history_for(self.package).get()
        self.assertEqual(log.old_values, {'status': 'pending_arrival'})
        self.assertEqual(log.new_values, {'status': 'arrived'})
        self.assertEqual(log.user, self.warehouse_user)
        self.assertEqual(log.actor_role, 'warehouse_admin')
        self.assertEqual(log.notes, 'Scanned at dock 3')
        self.assertTrue(log.rule.startswith('Package has been physically received'))

    def test_automation_runs_after_commit(self):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            outcome = transition_package(self.package.id, 'arrived', self.warehouse_user)
            self.assertIsNone(outcome.automation)
            self.assertEqual(self.dispatcher.dispatched, [])

        self.assertEqual(len(callbacks), 1)
        self.assertEqual(outcome.automation.executed, ['update_inventory', 'log_arrival_time'])
        self.assertEqual(outcome.automation.notifications, ['warehouse_team'])
        self.assertEqual(sorted(self.dispatcher.dispatched_actions), ['log_arrival_time', 'update_inventory'])

        log = StatusAuditLog.history_for(self.package).get()
        self.assertEqual(log.metadata['automation']['executed'], ['update_inventory', 'log_arrival_time'])

    def test_failed_automation_keeps_transition(self):
        self.dispatcher.failing_actions.add('update_inventory')

        with self.assertLogs('status_workflow.services.automation', level='ERROR'):
            with self.captureOnCommitCallbacks(execute=True):
                outcome = transition_package(self.package.id, 'arrived', self.warehouse_user)

        self.assertTrue(outcome.applied)
        self.assertEqual(outcome.automation.failed, ['update_inventory'])
        self.package.refresh_from_db()
        self.assertEqual(self.package.status, PackageStatus.ARRIVED)

    def test_rejected_transition_leaves_entity_untouched(self):
        Package.objects.filter(id=self.package.id).update(status=PackageStatus.ARRIVED)

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            outcome = transition_package(self.package.id, 'shipped', self.warehouse_user)

        self.assertEqual(callbacks, [])
        self.assertFalse(outcome.applied)
        self.assertEqual(outcome.validation.code, 'PRECONDITION_NOT_MET')
        self.assertIsNone(outcome.automation)
        self.package.refresh_from_db()
        self.assertEqual(self.package.status, PackageStatus.ARRIVED)
        self.assertFalse(StatusAuditLog.history_for(self.package).exists())
        self.assertEqual(self.dispatcher.dispatched, [])

    def test_client_cannot_change_shipment(self):
        outcome = transition_shipment(self.shipment.id, 'processing', self.client_user)

        self.assertEqual(outcome.validation.code, 'UNAUTHORIZED')
        self.shipment.refresh_from_db()
        self.assertEqual(self.shipment.status, ShipmentStatus.PAYMENT_PENDING)

    def test_shipment_processing(self):
        with self.captureOnCommitCallbacks(execute=True):
            outcome = transition_shipment(self.shipment.id, 'processing', self.warehouse_user)

        self.assertTrue(outcome.applied)
        self.assertEqual(outcome.entity.status, ShipmentStatus.PROCESSING)
        self.assertEqual(outcome.automation.executed, [])

    def test_unknown_entity(self):
        with self.assertRaises(EntityNotFoundException) as ctx:
            transition_package(uuid.uuid4(), 'arrived', self.warehouse_user)
        self.assertEqual(ctx.exception.code, 'NOT_FOUND')

        with self.assertRaises(EntityNotFoundException):
            StatusTransitionService().get_entity(EntityKind.SHIPMENT, 'not-a-uuid')

    def test_concurrent_change_is_revalidated(self):
        Package.objects.filter(id=self.package.id).update(status=PackageStatus.ARRIVED)

        def inspect_concurrently(call):
            Package.objects.filter(id=self.package.id).update(status=PackageStatus.INSPECTED)

        service = StatusTransitionService(validator=InterleavingValidator(inspect_concurrently))
        with self.assertLogs('status_workflow.services.transition_service', level='WARNING'):
            outcome = service.transition(EntityKind.PACKAGE, self.package.id, 'on_hold', self.warehouse_user)

        self.assertTrue(outcome.applied)
        self.assertEqual(outcome.attempts, 2)
        self.assertEqual(outcome.previous_status, PackageStatus.INSPECTED)
        self.assertTrue(outcome.validation.rule.startswith('Inspection raised an issue'))

        log = StatusAuditLog.history_for(self.package).get()
        self.assertEqual(log.old_values, {'status': 'inspected'})

    def test_concurrent_change_to_final_status_rejects(self):
        Package.objects.filter(id=self.package.id).update(status=PackageStatus.ARRIVED)

        def damage_concurrently(call):
            Package.objects.filter(id=self.package.id).update(status=PackageStatus.DAMAGED)

        service = StatusTransitionService(validator=InterleavingValidator(damage_concurrently))
        outcome = service.transition(EntityKind.PACKAGE, self.package.id, 'on_hold', self.warehouse_user)

        self.assertFalse(outcome.applied)
        self.assertEqual(outcome.attempts, 2)
        self.assertEqual(outcome.validation.code, 'INVALID_TRANSITION')
        self.package.refresh_from_db()
        self.assertEqual(self.package.status, PackageStatus.DAMAGED)

    def test_gives_up_after_max_attempts(self):
        Package.objects.filter(id=self.package.id).update(status=PackageStatus.ARRIVED)

        def keep_changing(call):
            status = PackageStatus.INSPECTED if call % 2 else PackageStatus.ARRIVED
            Package.objects.filter(id=self.package.id).update(status=status)

        service = StatusTransitionService(validator=InterleavingValidator(keep_changing, times=10), max_attempts=3)
        with self.assertRaises(ConcurrentTransitionException) as ctx:
            service.transition(EntityKind.PACKAGE, self.package.id, 'on_hold', self.warehouse_user)

        self.assertEqual(ctx.exception.code, 'CONCURRENT_UPDATE')
        self.assertEqual(ctx.exception.details['attempts'], 3)
        self.assertFalse(StatusAuditLog.history_for(self.package).exists())

    def test_validate_without_applying(self):
        result = StatusTransitionService().validate(EntityKind.PACKAGE, self.package.id, 'arrived', self.admin_user)

        self.assertTrue(result.is_valid)
        self.package.refresh_from_db()
        self.assertEqual(self.package.status, PackageStatus.PENDING_ARRIVAL)


class OverdueQueryTest(TestCase):
    """Test overdue lookups against stored entities."""

    def setUp(self):
        self.user = get_user_model().objects.create_user(username='customer', password='testpass123')
        self.now = timezone.now()

    def create_package(self, tracking_number, status, hours_ago):
        return Package.objects.create(
            user=self.user,
            tracking_number=tracking_number,
            status=status,
            status_changed_at=self.now - timedelta(hours=hours_ago),
        )

    def test_find_overdue(self):
        late = self.create_package('PKG-LATE', PackageStatus.ARRIVED, 25)
        self.create_package('PKG-ONTIME', PackageStatus.ARRIVED, 23)
        self.create_package('PKG-BOUNDARY', PackageStatus.ARRIVED, 24)
        self.create_package('PKG-HELD', PackageStatus.ON_HOLD, 1000)
        self.create_package('PKG-DONE', PackageStatus.DELIVERED, 1000)

        overdue = StatusTransitionService().find_overdue(EntityKind.PACKAGE, now=self.now)

        self.assertEqual(list(overdue), [late])

    def test_model_properties(self):
        late = self.create_package('PKG-LATE', PackageStatus.ARRIVED, 25)
        held = self.create_package('PKG-HELD', PackageStatus.ON_HOLD, 1000)
        damaged = self.create_package('PKG-DAMAGED', PackageStatus.DAMAGED, 1)

        self.assertTrue(late.is_overdue)
        self.assertFalse(held.is_overdue)
        self.assertTrue(held.requires_immediate_attention)
        self.assertTrue(damaged.is_final)
        self.assertEqual(damaged.valid_next_statuses, [])
        self.assertEqual(late.valid_next_statuses, ['damaged', 'inspected', 'on_hold'])
        self.assertEqual(late.status_info.label, 'Arrived')
        self.assertEqual(str(late), 'Package PKG-LATE (arrived)')

    def test_no_overdue_shipments(self):
        Shipment.objects.create(user=self.user, tracking_number='SHP-NEW')
        self.assertFalse(StatusTransitionService().find_overdue('shipment', now=self.now).exists())


class OuterTransactionTest(TransactionTestCase):
    """Test that automation waits for the caller's transaction to commit."""

    def setUp(self):
        User = get_user_model()
        customer = User.objects.create_user(username='customer', password='testpass123')
        self.warehouse_user = User.objects.create_user(
            username='warehouse', password='testpass123', role=ActorRole.WAREHOUSE_ADMIN
        )
        self.package = Package.objects.create(user=customer, tracking_number='PKG-0001')

        self.seen_statuses = []
        dispatcher = LoggingActionDispatcher({'update_inventory': self.read_package_status})
        self.service = StatusTransitionService(automation=AutomationEngine(dispatcher=dispatcher))

    def read_package_status(self, context):
        try:
            self.seen_statuses.append(Package.objects.get(id=context.entity_id).status)
        finally:
            connection.close()

    def test_automation_waits_for_outer_commit(self):
        with transaction.atomic():
            outcome = self.service.transition(EntityKind.PACKAGE, self.package.id, 'arrived', self.warehouse_user)
            self.assertTrue(outcome.applied)
            self.assertIsNone(outcome.automation)
            self.assertEqual(self.seen_statuses, [])

        self.assertEqual(outcome.automation.executed, ['update_inventory', 'log_arrival_time'])
        self.assertEqual(outcome.automation.failed, [])
        self.assertEqual(self.seen_statuses, [PackageStatus.ARRIVED])

        log = StatusAuditLog.history_for(self.package).get()
        self.assertEqual(log.metadata['automation']['executed'], ['update_inventory', 'log_arrival_time'])

    def test_rolled_back_transition_runs_no_automation(self):
        with self.assertRaises(RuntimeError):
            with transaction.atomic():
                outcome = self.service.transition(
                    EntityKind.PACKAGE, self.package.id, 'arrived', self.warehouse_user
                )
                raise RuntimeError('batch aborted')

        self.assertIsNone(outcome.automation)
        self.assertEqual(self.seen_statuses, [])
        self.package.refresh_from_db()
        self.assertEqual(self.package.status, PackageStatus.PENDING_ARRIVAL)
        self.assertFalse(StatusAuditLog.history_for(self.package).exists())

    def test_automation_runs_before_return_without_outer_transaction(self):
        outcome = self.service.transition(EntityKind.PACKAGE, self.package.id, 'arrived', self.warehouse_user)

        self.assertEqual(outcome.automation.executed, ['update_inventory', 'log_arrival_time'])
        self.assertEqual(self.seen_statuses, [PackageStatus.ARRIVED])
