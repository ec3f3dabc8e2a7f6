"""
Request serializers for status transitions.
"""

from rest_framework import serializers

from ..statuses import ActorRole, EntityKind, find_status


class TransitionRequestSerializer(serializers.Serializer):
    """Serializer for a status change on a stored package or shipment."""

    status = serializers.CharField(max_length=30)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_status(self, value):
        kind = self.context['entity_kind']
        if find_status(kind, value) is None:
            raise serializers.ValidationError(f"'{value}' is not a {kind} status")
        return value


class ValidateTransitionSerializer(serializers.Serializer):
    """Serializer for a dry-run validation request."""

    entity_kind = serializers.ChoiceField(choices=EntityKind.choices)
    entity_id = serializers.CharField(required=False, allow_blank=True, default='')
    current_status = serializers.CharField(max_length=30)
    new_status = serializers.CharField(max_length=30)
    actor_role = serializers.ChoiceField(choices=ActorRole.choices, required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, data):
        kind = data['entity_kind']
        for field_name in ('current_status', 'new_status'):
            if find_status(kind, data[field_name]) is None:
                raise serializers.ValidationError({
                    field_name: f"'{data[field_name]}' is not a {kind} status"
                })
        return data
