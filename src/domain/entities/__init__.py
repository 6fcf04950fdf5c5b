"""
Membership Store Domain Entities

All domain entities organized by model.
"""

# Export all enums
from .enums import MembershipReferenceType, RoleScope

# Export all entities
from .membership import Membership, RoleMap, RoleName
from .role_map import RoleMapType

__all__ = [
    # Enums
    "MembershipReferenceType",
    "RoleScope",
    # Entities
    "Membership",
    "RoleMap",
    "RoleName",
    "RoleMapType",
]
