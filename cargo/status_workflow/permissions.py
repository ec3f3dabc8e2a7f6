"""
Custom permissions for the status workflow API.
"""

from rest_framework.permissions import BasePermission

from users.permissions import IsStaffRole


class IsOwnerOrStaffRole(BasePermission):
    """
    Clients may read their own packages and shipments; staff roles may read all.

    Whether a user may change a status is decided by the transition validator,
    not here.
    """

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        if IsStaffRole().has_permission(request, view):
            return True
        return obj.user_id == request.user.pk
