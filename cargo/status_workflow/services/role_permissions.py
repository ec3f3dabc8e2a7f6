"""
Role permission table.

Maps an actor role to the destination statuses it may set. Entries are
qualified by entity kind because both kinds share status names such as
'arrived' and 'shipped' with different meanings.
"""

from typing import FrozenSet, Iterable, Mapping, Tuple

from ..statuses import ActorRole, EntityKind, PackageStatus, ShipmentStatus, coerce_kind, find_status

Permission = Tuple[EntityKind, str]


def _qualified(kind: EntityKind, statuses: Iterable[str]) -> FrozenSet[Permission]:
    return frozenset((kind, status) for status in statuses)


# Admins can force any status of either kind
_ALL_STATUSES = (
    _qualified(EntityKind.PACKAGE, PackageStatus)
    | _qualified(EntityKind.SHIPMENT, ShipmentStatus)
)

DEFAULT_ROLE_PERMISSIONS = {
    # Clients never change statuses directly
    ActorRole.CLIENT: frozenset(),
    ActorRole.WAREHOUSE_ADMIN: _qualified(EntityKind.PACKAGE, [
        PackageStatus.ARRIVED,
        PackageStatus.INSPECTED,
        PackageStatus.READY_FOR_SHIPMENT,
        PackageStatus.SHIPPED,
        PackageStatus.ON_HOLD,
        PackageStatus.DAMAGED,
    ]) | _qualified(EntityKind.SHIPMENT, [
        ShipmentStatus.PROCESSING,
        ShipmentStatus.SHIPPED,
        ShipmentStatus.ARRIVED,
    ]),
    ActorRole.ADMIN: _ALL_STATUSES,
    ActorRole.SUPERADMIN: _ALL_STATUSES,
}


class RolePermissionTable:
    """Lookup of (kind, status) destinations each role may set."""

    def __init__(self, permissions: Mapping[str, Iterable[Permission]] = None):
        if permissions is None:
            permissions = DEFAULT_ROLE_PERMISSIONS
        self._permissions = {
            str(role): frozenset((EntityKind(kind), status) for kind, status in allowed)
            for role, allowed in permissions.items()
        }

    def allowed(self, role) -> FrozenSet[Permission]:
        """Destinations the role may set; unknown roles get no permissions."""
        if role is None:
            return frozenset()
        return self._permissions.get(str(role), frozenset())

    def allowed_statuses(self, role, kind) -> FrozenSet[str]:
        kind = coerce_kind(kind)
        return frozenset(status for permitted_kind, status in self.allowed(role) if permitted_kind == kind)

    def is_authorized(self, role, kind, status) -> bool:
        status_value = find_status(kind, status)
        if status_value is None:
            return False
        return (EntityKind(kind), status_value) in self.allowed(role)

    def roles_allowed_to_set(self, kind, status) -> FrozenSet[str]:
        return frozenset(role for role in self._permissions if self.is_authorized(role, kind, status))


default_permissions = RolePermissionTable()


def is_authorized(role, kind, status) -> bool:
    return default_permissions.is_authorized(role, kind, status)
