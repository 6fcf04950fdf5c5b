"""
Membership Entity

Grants a user one role per role scope on a referenced entity (API, application, ...).
"""

from datetime import datetime
from typing import Dict, Optional, Tuple

from sqlmodel import Column, DateTime, Field, Index, SQLModel

from .enums import MembershipReferenceType, RoleScope
from .role_map import RoleMapType

RoleName = str
RoleMap = Dict[RoleScope, RoleName]


class Membership(SQLModel, table=True):
    """
    Membership entity - links a User to a reference with roles.

    Business Rules:
    - (user_id, reference_type, reference_id) is the primary key
    - At most one role per scope (role map keys are unique)
    - Equality covers the primary key and the role map, nothing else
    """

    __tablename__ = "memberships"

    user_id: str = Field(primary_key=True)
    reference_type: MembershipReferenceType = Field(primary_key=True)
    reference_id: str = Field(primary_key=True)

    roles: RoleMap = Field(
        default_factory=dict, sa_column=Column(RoleMapType, nullable=False)
    )
    source: Optional[str] = Field(default=None)

    # Timestamps
    created_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))
    updated_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime))

    __table_args__ = (
        Index("idx_membership_reference", "reference_type", "reference_id"),
        Index("idx_membership_user_type", "user_id", "reference_type"),
    )

    @property
    def identity(self) -> Tuple[Optional[str], Optional[MembershipReferenceType], Optional[str]]:
        reference_type = (
            MembershipReferenceType(self.reference_type)
            if self.reference_type is not None
            else None
        )
        return self.user_id, reference_type, self.reference_id

    def role_map(self) -> RoleMap:
        """Roles keyed by RoleScope, whatever key type the caller assigned"""
        return {RoleScope(int(scope)): name for scope, name in (self.roles or {}).items()}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Membership):
            return NotImplemented
        return self.identity == other.identity and self.role_map() == other.role_map()

    def __hash__(self) -> int:
        return hash(self.identity)
