from rest_framework import permissions


class IsStaffRole(permissions.BasePermission):
    """Warehouse admins and above."""

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_staff_role)
