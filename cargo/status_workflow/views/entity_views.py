"""
Package and shipment views for the status workflow.
"""

from django.core.exceptions import ObjectDoesNotExist, ValidationError
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response

from users.permissions import IsStaffRole

from ..exceptions import (
    BusinessException, ConcurrentTransitionException, EntityNotFoundException
)
from ..models import Package, Shipment, StatusAuditLog
from ..permissions import IsOwnerOrStaffRole
from ..serializers.entity_serializers import PackageSerializer, ShipmentSerializer, StatusAuditLogSerializer
from ..serializers.transition_serializers import TransitionRequestSerializer
from ..services import default_graph, default_permissions
from ..services.transition_service import StatusTransitionService
from ..statuses import EntityKind, info

REJECTION_STATUS_CODES = {
    'INVALID_TRANSITION': status.HTTP_400_BAD_REQUEST,
    'PRECONDITION_NOT_MET': status.HTTP_400_BAD_REQUEST,
    'UNAUTHORIZED': status.HTTP_403_FORBIDDEN,
}


def error_response(exc: BusinessException, http_status):
    return Response({
        'success': False,
        'error': exc.to_dict()
    }, status=http_status)


class StatusLifecycleViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Read-only ViewSet for entities with a governed status lifecycle.

    Status changes go through the transition action only.
    """

    entity_kind = None
    permission_classes = [IsOwnerOrStaffRole]
    filterset_fields = ['status']

    def get_queryset(self):
        """Filter queryset based on user role."""
        user = self.request.user
        model = self.queryset.model

        if not user.is_authenticated:
            return model.objects.none()

        if IsStaffRole().has_permission(self.request, self):
            return self.queryset.all()

        # Clients only see their own records
        return self.queryset.filter(user=user)

    def get_entity(self, pk):
        try:
            entity = self.get_queryset().get(pk=pk)
        except (ObjectDoesNotExist, ValueError, ValidationError):
            raise EntityNotFoundException(self.entity_kind, pk) from None
        self.check_object_permissions(self.request, entity)
        return entity

    @action(detail=True, methods=['post'])
    def transition(self, request, pk=None):
        """Move the entity to a new status."""
        serializer = TransitionRequestSerializer(data=request.data, context={'entity_kind': self.entity_kind})
        serializer.is_valid(raise_exception=True)

        try:
            entity = self.get_entity(pk)
            outcome = StatusTransitionService().transition(
                self.entity_kind, entity.id, serializer.validated_data['status'],
                actor=request.user, notes=serializer.validated_data['notes']
            )
        except EntityNotFoundException as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)
        except ConcurrentTransitionException as e:
            return error_response(e, status.HTTP_409_CONFLICT)

        validation = outcome.validation
        if not validation.is_valid:
            return Response({
                'success': False,
                'error': {
                    'code': validation.code,
                    'message': validation.error,
                    'details': validation.details,
                    'suggested_actions': validation.suggested_actions
                }
            }, status=REJECTION_STATUS_CODES.get(validation.code, status.HTTP_400_BAD_REQUEST))

        entity_serializer = self.get_serializer(outcome.entity)
        return Response({
            'success': True,
            'data': {
                self.entity_kind.value: entity_serializer.data,
                'transition': outcome.to_dict()
            }
        })

    @action(detail=True, methods=['get'])
    def valid_next(self, request, pk=None):
        """List the statuses reachable from the current one."""
        try:
            entity = self.get_entity(pk)
        except EntityNotFoundException as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)

        role = getattr(request.user, 'role', None)
        next_statuses = []
        for next_status in sorted(default_graph.valid_next(self.entity_kind, entity.status)):
            transition_edge = default_graph.edge(self.entity_kind, entity.status, next_status)
            next_statuses.append({
                'status': next_status,
                'label': info(self.entity_kind, next_status).label,
                'rule': transition_edge.rule,
                'actor': transition_edge.actor,
                'authorized': default_permissions.is_authorized(role, self.entity_kind, next_status),
            })

        return Response({
            'success': True,
            'data': {
                'current_status': entity.status,
                'is_final': not next_statuses,
                'valid_next_statuses': next_statuses
            }
        })

    @action(detail=True, methods=['get'])
    def history(self, request, pk=None):
        """Status change history, newest first."""
        try:
            entity = self.get_entity(pk)
        except EntityNotFoundException as e:
            return error_response(e, status.HTTP_404_NOT_FOUND)

        serializer = StatusAuditLogSerializer(StatusAuditLog.history_for(entity), many=True)
        return Response({
            'success': True,
            'data': serializer.data
        })

    @action(detail=False, methods=['get'], permission_classes=[IsStaffRole])
    def overdue(self, request):
        """Entities held in their current status longer than expected."""
        queryset = self.filter_queryset(StatusTransitionService().find_overdue(self.entity_kind))
        serializer = self.get_serializer(queryset, many=True)
        return Response({
            'success': True,
            'data': serializer.data
        })


class PackageViewSet(StatusLifecycleViewSet):
    """ViewSet for packages."""

    entity_kind = EntityKind.PACKAGE
    queryset = Package.objects.select_related('user')
    serializer_class = PackageSerializer


class ShipmentViewSet(StatusLifecycleViewSet):
    """ViewSet for shipments."""

    entity_kind = EntityKind.SHIPMENT
    queryset = Shipment.objects.select_related('user').prefetch_related('packages')
    serializer_class = ShipmentSerializer
