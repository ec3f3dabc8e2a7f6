"""
Django admin configuration for the status workflow.

Status columns are read-only here; status changes go through the transition API.
"""

from django.contrib import admin
from .models import Package, Shipment, StatusAuditLog


@admin.register(Package)
class PackageAdmin(admin.ModelAdmin):
    list_display = ['tracking_number', 'user', 'status', 'status_changed_at', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['tracking_number', 'user__username']
    readonly_fields = ['id', 'status', 'status_changed_at', 'created_at', 'updated_at']


@admin.register(Shipment)
class ShipmentAdmin(admin.ModelAdmin):
    list_display = ['tracking_number', 'user', 'status', 'status_changed_at', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['tracking_number', 'user__username']
    readonly_fields = ['id', 'status', 'status_changed_at', 'created_at', 'updated_at']
    filter_horizontal = ['packages']


@admin.register(StatusAuditLog)
class StatusAuditLogAdmin(admin.ModelAdmin):
    list_display = ['entity_type', 'entity_id', 'action', 'user', 'actor_role', 'timestamp']
    list_filter = ['entity_type', 'action', 'timestamp']
    search_fields = ['entity_id', 'user__username', 'rule']
    readonly_fields = [
        'id', 'entity_type', 'entity_id', 'action', 'user', 'actor_role',
        'old_values', 'new_values', 'rule', 'timestamp', 'notes', 'metadata'
    ]
