"""
Status catalog and dry-run validation views.
"""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from ..exceptions import UnknownEntityKindError
from ..serializers.transition_serializers import ValidateTransitionSerializer
from ..services import TransitionContext, default_graph, default_policy, default_validator
from ..statuses import all_statuses, coerce_kind, is_trackable_by_customer, requires_immediate_attention


def status_catalog(kind):
    """Registry entries for a kind, enriched with graph and duration data."""
    kind = coerce_kind(kind)
    catalog = []
    for status_info in all_statuses(kind):
        entry = status_info.to_dict()
        entry.update({
            'valid_next_statuses': sorted(default_graph.valid_next(kind, status_info.value)),
            'next_actors': sorted(default_graph.next_actors(kind, status_info.value)),
            'expected_duration_hours': default_policy.expected_hours(kind, status_info.value),
            'is_final': default_graph.is_final(kind, status_info.value),
            'requires_immediate_attention': requires_immediate_attention(kind, status_info.value),
            'is_trackable_by_customer': is_trackable_by_customer(kind, status_info.value),
        })
        catalog.append(entry)
    return catalog


class StatusCatalogView(APIView):
    """List the statuses of an entity kind in lifecycle order."""

    def get(self, request, kind):
        try:
            catalog = status_catalog(kind)
        except UnknownEntityKindError as e:
            return Response({
                'success': False,
                'error': {
                    'code': 'UNKNOWN_ENTITY_KIND',
                    'message': str(e)
                }
            }, status=status.HTTP_404_NOT_FOUND)

        return Response({
            'success': True,
            'data': catalog
        })


class ValidateTransitionView(APIView):
    """
    Dry-run validation of a transition.

    Always answers 200 with the validation result; nothing is stored. The
    actor role defaults to the requesting user's role.
    """

    def post(self, request):
        serializer = ValidateTransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        actor_role = data.get('actor_role') or getattr(request.user, 'role', None)
        context = TransitionContext(
            entity_id=data['entity_id'] or None,
            entity_kind=data['entity_kind'],
            current_status=data['current_status'],
            new_status=data['new_status'],
            actor_role=actor_role,
            actor_id=request.user.pk,
            notes=data['notes'],
        )
        result = default_validator.validate(context)

        return Response({
            'success': True,
            'data': result.to_dict()
        })
