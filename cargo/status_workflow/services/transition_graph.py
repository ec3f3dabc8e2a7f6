"""
Transition graph for package and shipment statuses.

Edges are declared as static data and indexed by their (from, to) pair.
A status is final exactly when it has no outgoing edges.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from django.db import models

from ..statuses import EntityKind, PackageStatus, ShipmentStatus, STATUS_ENUMS, coerce_kind, find_status


class ActionParty(models.TextChoices):
    """Party that normally performs a transition."""
    WAREHOUSE = 'warehouse', 'Warehouse'
    CUSTOMER = 'customer', 'Customer'
    CARRIER = 'carrier', 'Carrier'
    ADMIN = 'admin', 'Admin'


@dataclass(frozen=True)
class TransitionEdge:
    """A legal status change with its business rule."""
    from_status: str
    to_status: str
    rule: str
    actor: str = ActionParty.WAREHOUSE


def edge(from_status, to_status, rule, actor=ActionParty.WAREHOUSE) -> TransitionEdge:
    return TransitionEdge(from_status, to_status, rule, actor)


P = PackageStatus
S = ShipmentStatus
W, C, K, A = ActionParty.WAREHOUSE, ActionParty.CUSTOMER, ActionParty.CARRIER, ActionParty.ADMIN

PACKAGE_TRANSITIONS = (
    edge(P.PENDING_ARRIVAL, P.ARRIVED, 'Package has been physically received at warehouse and scanned in', W),
    edge(P.PENDING_ARRIVAL, P.LOST, 'Expected package never reached the warehouse and has been declared lost', A),

    edge(P.ARRIVED, P.INSPECTED, 'Package has been opened, inspected, and catalogued by warehouse staff', W),
    edge(P.ARRIVED, P.ON_HOLD, 'Package held on arrival pending an administrative decision', A),
    edge(P.ARRIVED, P.DAMAGED, 'Package arrived damaged and has been recorded as such', W),

    edge(P.INSPECTED, P.READY_FOR_REVIEW, 'Package inspection complete, awaiting customer review and approval', W),
    edge(P.INSPECTED, P.APPROVED, 'Package inspection complete and approved for shipment without customer review', W),
    edge(P.INSPECTED, P.ON_HOLD, 'Inspection raised an issue and the package is held for review', A),

    edge(P.READY_FOR_REVIEW, P.APPROVED, 'Customer has reviewed and approved package for shipment', C),
    edge(P.READY_FOR_REVIEW, P.PENDING_ACTION, 'Customer review requires further action before approval', C),
    edge(P.READY_FOR_REVIEW, P.ON_HOLD, 'Package held during customer review', A),

    edge(P.PENDING_ACTION, P.APPROVED, 'Requested action completed and package approved for shipment', C),
    edge(P.PENDING_ACTION, P.ON_HOLD, 'Requested action not completed; package held', A),

    edge(P.APPROVED, P.CONSOLIDATED, 'Package has been grouped with other packages for consolidated shipment', W),
    edge(P.APPROVED, P.READY_FOR_SHIPMENT, 'Approved package prepared for individual shipment', W),

    edge(P.CONSOLIDATED, P.READY_FOR_SHIPMENT, 'Consolidated package group is prepared and ready for shipping', W),

    # Recovery edges out of the hold
    edge(P.ON_HOLD, P.READY_FOR_REVIEW, 'Hold released and package returned to customer review', A),
    edge(P.ON_HOLD, P.APPROVED, 'Hold released and package approved for shipment', A),
    edge(P.ON_HOLD, P.RETURNED, 'Held package returned to sender', A),

    edge(P.READY_FOR_SHIPMENT, P.SHIPPED, 'Package has been dispatched from warehouse to carrier', W),

    edge(P.SHIPPED, P.IN_TRANSIT, 'Package is confirmed in transit with carrier tracking', K),
    edge(P.SHIPPED, P.LOST, 'Carrier lost the package after dispatch', A),

    edge(P.IN_TRANSIT, P.CUSTOMS_CLEARANCE, 'Package has reached destination country and is undergoing customs processing', K),
    edge(P.IN_TRANSIT, P.OUT_FOR_DELIVERY, 'Package reached the destination hub and is out for final delivery', K),
    edge(P.IN_TRANSIT, P.LOST, 'Package lost in transit', A),

    edge(P.CUSTOMS_CLEARANCE, P.OUT_FOR_DELIVERY, 'Package cleared customs and is out for final delivery', K),
    edge(P.CUSTOMS_CLEARANCE, P.RETURNED, 'Package refused by customs and returned to sender', K),

    edge(P.OUT_FOR_DELIVERY, P.DELIVERED, 'Package has been successfully delivered to recipient', K),
    edge(P.OUT_FOR_DELIVERY, P.RETURNED, 'Delivery failed and package returned to sender', K),
)

SHIPMENT_TRANSITIONS = (
    edge(S.AWAITING_QUOTE, S.QUOTE_READY, 'Shipping cost has been calculated and quote is ready for customer review', W),
    edge(S.AWAITING_QUOTE, S.CANCELLED, 'Shipment request cancelled before a quote was prepared', A),

    edge(S.QUOTE_READY, S.PAYMENT_PENDING, 'Customer has accepted quote and payment is now pending', C),
    edge(S.QUOTE_READY, S.CANCELLED, 'Quote withdrawn and shipment cancelled', W),

    edge(S.PAYMENT_PENDING, S.PROCESSING, 'Payment has been confirmed and shipment is being prepared', C),
    edge(S.PAYMENT_PENDING, S.CANCELLED, 'Payment not received and shipment cancelled', A),

    edge(S.PROCESSING, S.SHIPPED, 'Consolidated shipment has been dispatched from warehouse', W),
    edge(S.PROCESSING, S.CANCELLED, 'Shipment cancelled during preparation', A),

    edge(S.SHIPPED, S.ARRIVED, 'Shipment has arrived at intermediate hub or destination facility', K),
    edge(S.SHIPPED, S.IN_TRANSIT, 'Shipment is confirmed in transit with carrier tracking', K),

    edge(S.ARRIVED, S.IN_TRANSIT, 'Shipment has departed from hub and is continuing to destination', K),
    edge(S.ARRIVED, S.CUSTOMS_CLEARANCE, 'Shipment at destination facility requires customs clearance', K),

    edge(S.IN_TRANSIT, S.CUSTOMS_CLEARANCE, 'Shipment has reached destination country and requires customs processing', K),
    edge(S.IN_TRANSIT, S.OUT_FOR_DELIVERY, 'Shipment reached the destination hub and is out for final delivery', K),
    edge(S.IN_TRANSIT, S.ARRIVED, 'Shipment has arrived at destination hub or facility', K),

    edge(S.CUSTOMS_CLEARANCE, S.OUT_FOR_DELIVERY, 'Shipment cleared customs and is out for final delivery', K),

    edge(S.OUT_FOR_DELIVERY, S.DELIVERED, 'Shipment has been successfully delivered to recipient', K),

    # Legacy statuses
    edge(S.PENDING, S.PROCESSING, 'Legacy pending shipment moved into processing', W),
    edge(S.PENDING, S.CANCELLED, 'Legacy pending shipment cancelled', A),
    edge(S.RECEIVED, S.DELIVERED, 'Legacy received shipment handed over to recipient', K),
    edge(S.TRANSIT, S.DELIVERED, 'Legacy in-transit shipment delivered to recipient', K),
    edge(S.TRANSIT, S.ARRIVED, 'Legacy in-transit shipment arrived at destination facility', K),
)

DEFAULT_TRANSITIONS = {
    EntityKind.PACKAGE: PACKAGE_TRANSITIONS,
    EntityKind.SHIPMENT: SHIPMENT_TRANSITIONS,
}

# Edges allowed to close a cycle; removing them leaves each graph acyclic
CYCLIC_EDGES = {
    EntityKind.PACKAGE: frozenset({
        (P.ON_HOLD, P.READY_FOR_REVIEW),
        (P.ON_HOLD, P.APPROVED),
    }),
    EntityKind.SHIPMENT: frozenset({
        (S.IN_TRANSIT, S.ARRIVED),
    }),
}


class TransitionGraph:
    """
    Directed graph of legal status changes per entity kind.

    The graph is built once from edge declarations and never mutated, so a
    single instance can be shared freely.
    """

    def __init__(self, transitions: Mapping[str, Iterable[TransitionEdge]] = None):
        if transitions is None:
            transitions = DEFAULT_TRANSITIONS

        self._edges: Dict[EntityKind, Dict[Tuple[str, str], TransitionEdge]] = {}
        self._next: Dict[EntityKind, Dict[str, FrozenSet[str]]] = {}

        for kind, edges in transitions.items():
            kind = coerce_kind(kind)
            self._edges[kind] = self._index_edges(kind, edges)
            adjacency: Dict[str, set] = {}
            for from_status, to_status in self._edges[kind]:
                adjacency.setdefault(from_status, set()).add(to_status)
            self._next[kind] = {status: frozenset(targets) for status, targets in adjacency.items()}

    @staticmethod
    def _index_edges(kind: EntityKind, edges: Iterable[TransitionEdge]) -> Dict[Tuple[str, str], TransitionEdge]:
        status_enum = STATUS_ENUMS[kind]
        index = {}
        for item in edges:
            try:
                key = (status_enum(item.from_status), status_enum(item.to_status))
            except ValueError:
                raise ValueError(
                    f"Edge {item.from_status}->{item.to_status} references a status unknown to {kind}"
                ) from None
            if key in index:
                raise ValueError(f"Duplicate {kind} edge {key[0]}->{key[1]}")
            if not item.rule:
                raise ValueError(f"{kind} edge {key[0]}->{key[1]} has no business rule")
            index[key] = TransitionEdge(key[0], key[1], item.rule, item.actor)
        return index

    def kinds(self) -> List[EntityKind]:
        return list(self._edges)

    def edges(self, kind) -> List[TransitionEdge]:
        return list(self._edges.get(coerce_kind(kind), {}).values())

    def valid_next(self, kind, current_status) -> FrozenSet[str]:
        """Statuses reachable in one step; empty for final or unknown statuses."""
        status = find_status(kind, current_status)
        if status is None:
            return frozenset()
        return self._next.get(EntityKind(kind), {}).get(status, frozenset())

    def edge(self, kind, from_status, to_status) -> Optional[TransitionEdge]:
        from_value = find_status(kind, from_status)
        to_value = find_status(kind, to_status)
        if from_value is None or to_value is None:
            return None
        return self._edges.get(EntityKind(kind), {}).get((from_value, to_value))

    def is_legal(self, kind, from_status, to_status) -> bool:
        return self.edge(kind, from_status, to_status) is not None

    def rule_for(self, kind, from_status, to_status) -> Optional[str]:
        found = self.edge(kind, from_status, to_status)
        return found.rule if found else None

    def is_final(self, kind, status) -> bool:
        return not self.valid_next(kind, status)

    def final_statuses(self, kind) -> FrozenSet[str]:
        kind = coerce_kind(kind)
        return frozenset(status for status in STATUS_ENUMS[kind] if self.is_final(kind, status))

    def next_actors(self, kind, status) -> FrozenSet[str]:
        """Parties that perform at least one outgoing transition of status."""
        status_value = find_status(kind, status)
        if status_value is None:
            return frozenset()
        return frozenset(
            item.actor for key, item in self._edges.get(EntityKind(kind), {}).items()
            if key[0] == status_value
        )

    def requires_action(self, kind, status, party) -> bool:
        return ActionParty(party) in self.next_actors(kind, status)


default_graph = TransitionGraph()


def get_valid_next_statuses(kind, current_status) -> FrozenSet[str]:
    return default_graph.valid_next(kind, current_status)


def is_valid_transition(kind, from_status, to_status) -> bool:
    return default_graph.is_legal(kind, from_status, to_status)


def get_transition_rule(kind, from_status, to_status) -> Optional[str]:
    return default_graph.rule_for(kind, from_status, to_status)
