"""Unit tests for the order transition table."""

import pytest

from fingrow.models.enums import TERMINAL_ORDER_STATUSES, OrderStatus
from fingrow.services.order.state_machine import (
    STATUS_TIMESTAMP_FIELDS,
    TRANSITIONS,
    ActorRole,
    allowed_roles,
    can_transition,
    is_post_shipment_cancel,
    next_statuses,
)


HAPPY_PATH = [
    (OrderStatus.PENDING, OrderStatus.CONFIRMED, ActorRole.SELLER),
    (OrderStatus.CONFIRMED, OrderStatus.PAID, ActorRole.BUYER),
    (OrderStatus.PAID, OrderStatus.PAYMENT_VERIFIED, ActorRole.SELLER),
    (OrderStatus.PAYMENT_VERIFIED, OrderStatus.SHIPPED, ActorRole.SELLER),
    (OrderStatus.SHIPPED, OrderStatus.DELIVERED, ActorRole.BUYER),
    (OrderStatus.DELIVERED, OrderStatus.COMPLETED, ActorRole.BUYER),
]


class TestTransitionTable:
    """Test which edges exist and who may take them."""

    @pytest.mark.parametrize("from_status,to_status,role", HAPPY_PATH)
    def test_happy_path_edges(self, from_status, to_status, role):
        """Every happy-path edge exists with its actor role."""
        assert can_transition(from_status, to_status)
        assert role in allowed_roles(from_status, to_status)

    @pytest.mark.parametrize("terminal", sorted(TERMINAL_ORDER_STATUSES))
    def test_terminal_statuses_have_no_outgoing_edges(self, terminal):
        """Completed, cancelled and refunded are final."""
        assert next_statuses(terminal) == []

    def test_no_skipping_steps(self):
        """Shortcuts along the happy path are not edges."""
        assert not can_transition(OrderStatus.PENDING, OrderStatus.PAID)
        assert not can_transition(OrderStatus.PAID, OrderStatus.SHIPPED)
        assert not can_transition(OrderStatus.SHIPPED, OrderStatus.COMPLETED)
        assert allowed_roles(OrderStatus.DELIVERED, OrderStatus.SHIPPED) is None

    def test_only_seller_confirms(self):
        """Buyer cannot confirm their own order."""
        roles = allowed_roles(OrderStatus.PENDING, OrderStatus.CONFIRMED)

        assert roles == frozenset({ActorRole.SELLER})

    def test_system_may_only_deliver(self):
        """The delivery timeout is the only system-driven edge."""
        system_edges = [
            edge for edge, roles in TRANSITIONS.items() if ActorRole.SYSTEM in roles
        ]

        assert system_edges == [(OrderStatus.SHIPPED, OrderStatus.DELIVERED)]

    def test_refund_only_from_paid_states(self):
        """Refund requires money to have changed hands."""
        sources = [
            frm for (frm, to) in TRANSITIONS if to == OrderStatus.REFUNDED
        ]

        assert set(sources) == {OrderStatus.PAID, OrderStatus.PAYMENT_VERIFIED}

    def test_cancel_after_shipment_is_admin_only(self):
        """Post-shipment cancel edges carry only the admin role."""
        for status in (OrderStatus.SHIPPED, OrderStatus.DELIVERED):
            assert is_post_shipment_cancel(status, OrderStatus.CANCELLED)
            assert allowed_roles(status, OrderStatus.CANCELLED) == frozenset(
                {ActorRole.ADMIN}
            )

        assert not is_post_shipment_cancel(
            OrderStatus.PAID, OrderStatus.CANCELLED
        )

    def test_next_statuses_from_pending(self):
        """Pending can be confirmed or cancelled."""
        assert next_statuses(OrderStatus.PENDING) == [
            OrderStatus.CONFIRMED,
            OrderStatus.CANCELLED,
        ]

    def test_every_target_has_a_timestamp_column(self):
        """Each status reached by an edge stamps its own column."""
        targets = {to for (_, to) in TRANSITIONS}

        assert targets <= set(STATUS_TIMESTAMP_FIELDS)
