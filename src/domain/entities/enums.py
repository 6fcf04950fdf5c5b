"""
Membership Domain Enums

Enumeration types used by the membership entity.
"""

from enum import Enum


class MembershipReferenceType(str, Enum):
    """Kind of entity a membership grants access to"""

    api = "API"
    application = "APPLICATION"
    group = "GROUP"
    management = "MANAGEMENT"
    portal = "PORTAL"


class RoleScope(int, Enum):
    """Functional domain a role applies to. One role per scope per membership."""

    management = 1
    portal = 2
    api = 3
    application = 4
    group = 5
