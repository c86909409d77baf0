"""
Referral services package.

- graph: inviter-pointer tree (ancestor walks, inviter assignment)
"""

from fingrow.services.referral.graph import (
    Ancestor,
    InviterAssignmentResult,
    ReferralGraph,
    registration_guard,
)


__all__ = [
    "Ancestor",
    "InviterAssignmentResult",
    "ReferralGraph",
    "registration_guard",
]
