"""
Order services package.

- state_machine: transition table and actor roles
- manager: OrderLifecycleManager
"""

from fingrow.services.order.manager import (
    OrderLifecycleManager,
    generate_order_number,
    order_guard,
)
from fingrow.services.order.state_machine import (
    TRANSITIONS,
    ActorRole,
    allowed_roles,
    can_transition,
    next_statuses,
)


__all__ = [
    "TRANSITIONS",
    "ActorRole",
    "OrderLifecycleManager",
    "allowed_roles",
    "can_transition",
    "generate_order_number",
    "next_statuses",
    "order_guard",
]
