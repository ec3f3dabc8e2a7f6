"""
Tests for the status workflow API.
"""

import uuid
from datetime import timedelta
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from ..adapters.action_adapter import get_action_dispatcher, switch_to_dispatcher, switch_to_mock_dispatcher
from ..exceptions import ConcurrentTransitionException
from ..models import Package, Shipment, StatusAuditLog
from ..statuses import ActorRole, EntityKind, PackageStatus, ShipmentStatus


class WorkflowAPITestCase(TestCase):
    """Shared users and fixtures for API tests."""

    def setUp(self):
        User = get_user_model()
        self.customer = User.objects.create_user(username='customer', password='testpass123')
        self.other_customer = User.objects.create_user(username='other', password='testpass123')
        self.warehouse_user = User.objects.create_user(
            username='warehouse', password='testpass123', role=ActorRole.WAREHOUSE_ADMIN
        )

        self.package = Package.objects.create(user=self.customer, tracking_number='PKG-0001')
        self.other_package = Package.objects.create(
            user=self.other_customer, tracking_number='PKG-0002', status=PackageStatus.ARRIVED
        )

        self.api = APIClient()
        self.previous_dispatcher = get_action_dispatcher()
        self.dispatcher = switch_to_mock_dispatcher()

    def tearDown(self):
        switch_to_dispatcher(self.previous_dispatcher)

    def package_url(self, package, action):
        return f'/api/workflow/packages/{package.id}/{action}/'


class StatusCatalogAPITest(WorkflowAPITestCase):
    """Test the status catalog endpoint."""

    def test_requires_authentication(self):
        response = self.api.get('/api/workflow/statuses/package/')
        self.assertEqual(response.status_code, 401)

    def test_package_catalog(self):
        self.api.force_authenticate(self.customer)
        response = self.api.get('/api/workflow/statuses/package/')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['success'])
        catalog = response.data['data']
        self.assertEqual(len(catalog), 17)
        self.assertEqual(catalog[0]['value'], 'pending_arrival')
        self.assertEqual(catalog[0]['valid_next_statuses'], ['arrived', 'lost'])
        self.assertEqual(catalog[0]['expected_duration_hours'], 72)

        delivered = next(entry for entry in catalog if entry['value'] == 'delivered')
        self.assertTrue(delivered['is_final'])
        self.assertIsNone(delivered['expected_duration_hours'])

    def test_unknown_kind(self):
        self.api.force_authenticate(self.customer)
        response = self.api.get('/api/workflow/statuses/pallet/')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['error']['code'], 'UNKNOWN_ENTITY_KIND')


class ValidateTransitionAPITest(WorkflowAPITestCase):
    """Test dry-run validation."""

    def test_client_role_rejected(self):
        self.api.force_authenticate(self.warehouse_user)
        response = self.api.post('/api/workflow/validate/', {
            'entity_kind': 'shipment',
            'current_status': 'payment_pending',
            'new_status': 'processing',
            'actor_role': 'client',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.data['data']['is_valid'])
        self.assertEqual(response.data['data']['code'], 'UNAUTHORIZED')

    def test_defaults_to_request_user_role(self):
        self.api.force_authenticate(self.warehouse_user)
        response = self.api.post('/api/workflow/validate/', {
            'entity_kind': 'package',
            'current_status': 'pending_arrival',
            'new_status': 'arrived',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['data']['is_valid'])
        self.assertTrue(response.data['data']['rule'].startswith('Package has been physically received'))

    def test_unknown_status_is_bad_request(self):
        self.api.force_authenticate(self.warehouse_user)
        response = self.api.post('/api/workflow/validate/', {
            'entity_kind': 'package',
            'current_status': 'pending_arrival',
            'new_status': 'teleported',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('new_status', response.data)


class PackageAPITest(WorkflowAPITestCase):
    """Test package listing and transitions."""

    def test_client_sees_own_packages(self):
        self.api.force_authenticate(self.customer)
        response = self.api.get('/api/workflow/packages/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual([item['tracking_number'] for item in response.data['results']], ['PKG-0001'])

    def test_staff_sees_all_and_filters_by_status(self):
        self.api.force_authenticate(self.warehouse_user)

        response = self.api.get('/api/workflow/packages/')
        self.assertEqual(response.data['count'], 2)

        response = self.api.get('/api/workflow/packages/', {'status': 'arrived'})
        self.assertEqual([item['tracking_number'] for item in response.data['results']], ['PKG-0002'])
        self.assertEqual(response.data['results'][0]['valid_next_statuses'], ['damaged', 'inspected', 'on_hold'])

    def test_transition_applied(self):
        self.api.force_authenticate(self.warehouse_user)
        with self.captureOnCommitCallbacks(execute=True):
            response = self.api.post(self.package_url(self.package, 'transition'), {
                'status': 'arrived',
                'notes': 'Scanned at dock 3',
            }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data['success'])
        self.assertEqual(response.data['data']['package']['status'], 'arrived')
        self.assertEqual(response.data['data']['transition']['previous_status'], 'pending_arrival')
        self.assertEqual(sorted(self.dispatcher.dispatched_actions), ['log_arrival_time', 'update_inventory'])
        log = StatusAuditLog.history_for(self.package).get()
        self.assertEqual(log.metadata['automation']['executed'], ['update_inventory', 'log_arrival_time'])

        history = self.api.get(self.package_url(self.package, 'history'))
        self.assertEqual(history.status_code, 200)
        self.assertEqual(len(history.data['data']), 1)
        self.assertEqual(history.data['data'][0]['new_status'], 'arrived')
        self.assertEqual(history.data['data'][0]['username'], 'warehouse')

    def test_precondition_not_met(self):
        self.api.force_authenticate(self.warehouse_user)
        response = self.api.post(self.package_url(self.other_package, 'transition'), {
            'status': 'shipped',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.data['success'])
        self.assertEqual(response.data['error']['code'], 'PRECONDITION_NOT_MET')
        self.assertEqual(response.data['error']['suggested_actions'], ['Prepare package for shipment first'])

    def test_invalid_transition(self):
        self.api.force_authenticate(self.warehouse_user)
        response = self.api.post(self.package_url(self.package, 'transition'), {
            'status': 'damaged',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data['error']['code'], 'INVALID_TRANSITION')

    def test_client_unauthorized(self):
        self.api.force_authenticate(self.customer)
        response = self.api.post(self.package_url(self.package, 'transition'), {
            'status': 'arrived',
        }, format='json')

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['error']['code'], 'UNAUTHORIZED')
        self.package.refresh_from_db()
        self.assertEqual(self.package.status, PackageStatus.PENDING_ARRIVAL)

    def test_unknown_status_value(self):
        self.api.force_authenticate(self.warehouse_user)
        response = self.api.post(self.package_url(self.package, 'transition'), {
            'status': 'awaiting_quote',
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertIn('status', response.data)

    def test_not_found(self):
        self.api.force_authenticate(self.warehouse_user)
        response = self.api.post(f'/api/workflow/packages/{uuid.uuid4()}/transition/', {
            'status': 'arrived',
        }, format='json')

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.data['error']['code'], 'NOT_FOUND')

    def test_other_customers_package_is_hidden(self):
        self.api.force_authenticate(self.customer)
        response = self.api.get(self.package_url(self.other_package, 'valid_next'))

        self.assertEqual(response.status_code, 404)

    def test_concurrent_update_conflict(self):
        self.api.force_authenticate(self.warehouse_user)
        conflict = ConcurrentTransitionException(EntityKind.PACKAGE, self.package.id, 'arrived', 3)

        with mock.patch(
            'status_workflow.views.entity_views.StatusTransitionService.transition', side_effect=conflict
        ):
            response = self.api.post(self.package_url(self.package, 'transition'), {
                'status': 'arrived',
            }, format='json')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.data['error']['code'], 'CONCURRENT_UPDATE')

    def test_valid_next(self):
        self.api.force_authenticate(self.warehouse_user)
        response = self.api.get(self.package_url(self.other_package, 'valid_next'))

        self.assertEqual(response.status_code, 200)
        next_statuses = {item['status']: item for item in response.data['data']['valid_next_statuses']}
        self.assertEqual(set(next_statuses), {'damaged', 'inspected', 'on_hold'})
        self.assertTrue(next_statuses['inspected']['authorized'])
        self.assertEqual(next_statuses['on_hold']['actor'], 'admin')
        self.assertFalse(response.data['data']['is_final'])

    def test_overdue_requires_staff(self):
        self.api.force_authenticate(self.customer)
        self.assertEqual(self.api.get('/api/workflow/packages/overdue/').status_code, 403)

    def test_overdue(self):
        Package.objects.filter(id=self.other_package.id).update(
            status_changed_at=timezone.now() - timedelta(hours=30)
        )
        self.api.force_authenticate(self.warehouse_user)
        response = self.api.get('/api/workflow/packages/overdue/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual([item['tracking_number'] for item in response.data['data']], ['PKG-0002'])
        self.assertTrue(response.data['data'][0]['is_overdue'])


class ShipmentAPITest(WorkflowAPITestCase):
    """Test shipment transitions."""

    def setUp(self):
        super().setUp()
        self.shipment = Shipment.objects.create(
            user=self.customer, tracking_number='SHP-0001', status=ShipmentStatus.PAYMENT_PENDING
        )
        self.shipment.packages.add(self.package)

    def test_shipment_detail(self):
        self.api.force_authenticate(self.customer)
        response = self.api.get(f'/api/workflow/shipments/{self.shipment.id}/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['package_tracking_numbers'], ['PKG-0001'])
        self.assertEqual(response.data['status_label'], 'Payment Pending')

    def test_client_cannot_process(self):
        self.api.force_authenticate(self.customer)
        response = self.api.post(f'/api/workflow/shipments/{self.shipment.id}/transition/', {
            'status': 'processing',
        }, format='json')

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.data['error']['details']['actor_role'], 'client')

    def test_warehouse_processes(self):
        self.api.force_authenticate(self.warehouse_user)
        response = self.api.post(f'/api/workflow/shipments/{self.shipment.id}/transition/', {
            'status': 'processing',
        }, format='json')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data['data']['shipment']['status'], 'processing')
