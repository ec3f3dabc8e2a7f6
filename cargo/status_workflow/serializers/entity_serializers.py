"""
Package, shipment and audit serializers for the status workflow.
"""

from rest_framework import serializers

from ..models import Package, Shipment, StatusAuditLog


class StatusLifecycleSerializer(serializers.ModelSerializer):
    """Common read-only status fields for packages and shipments."""

    owner = serializers.CharField(source='user.username', read_only=True)
    status_label = serializers.CharField(source='get_status_display', read_only=True)
    status_color = serializers.SerializerMethodField()
    valid_next_statuses = serializers.ListField(child=serializers.CharField(), read_only=True)
    is_final = serializers.BooleanField(read_only=True)
    is_overdue = serializers.BooleanField(read_only=True)
    requires_immediate_attention = serializers.BooleanField(read_only=True)
    is_trackable_by_customer = serializers.BooleanField(read_only=True)

    lifecycle_fields = [
        'id', 'tracking_number', 'owner', 'status', 'status_label', 'status_color',
        'status_changed_at', 'valid_next_statuses', 'is_final', 'is_overdue',
        'requires_immediate_attention', 'is_trackable_by_customer',
        'notes', 'created_at', 'updated_at',
    ]

    def get_status_color(self, obj):
        status_info = obj.status_info
        return status_info.color if status_info else None


class PackageSerializer(StatusLifecycleSerializer):
    """Serializer for package details."""

    class Meta:
        model = Package
        fields = StatusLifecycleSerializer.lifecycle_fields + ['description', 'weight']
        read_only_fields = fields


class ShipmentSerializer(StatusLifecycleSerializer):
    """Serializer for shipment details."""

    package_tracking_numbers = serializers.SlugRelatedField(
        source='packages', slug_field='tracking_number', many=True, read_only=True
    )

    class Meta:
        model = Shipment
        fields = StatusLifecycleSerializer.lifecycle_fields + ['package_tracking_numbers']
        read_only_fields = fields


class StatusAuditLogSerializer(serializers.ModelSerializer):
    """Serializer for status history entries."""

    username = serializers.CharField(source='user.username', read_only=True, default=None)
    old_status = serializers.CharField(source='old_values.status', read_only=True, default=None)
    new_status = serializers.CharField(source='new_values.status', read_only=True, default=None)

    class Meta:
        model = StatusAuditLog
        fields = [
            'id', 'entity_type', 'entity_id', 'action', 'username', 'actor_role',
            'old_status', 'new_status', 'rule', 'notes', 'metadata', 'timestamp'
        ]
        read_only_fields = fields
