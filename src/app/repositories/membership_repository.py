from abc import ABC, abstractmethod
from typing import Iterable, Optional, Set

from src.domain.entities import Membership, MembershipReferenceType, RoleName, RoleScope


class IMembershipRepository(ABC):
    """Membership repository interface - application layer

    Lookups return ``None`` or an empty set when nothing matches; only
    mutations of an invalid state and backing-store failures raise.
    """

    @abstractmethod
    async def find_by_id(
        self,
        user_id: Optional[str],
        reference_type: Optional[MembershipReferenceType],
        reference_id: Optional[str],
    ) -> Optional[Membership]:
        """Get membership by its (user, reference type, reference id) key"""
        pass

    @abstractmethod
    async def find_by_ids(
        self,
        user_id: str,
        reference_type: MembershipReferenceType,
        reference_ids: Iterable[str],
    ) -> Set[Membership]:
        """Get a user's memberships on the given references, unknown ids omitted"""
        pass

    @abstractmethod
    async def find_by_reference_and_role(
        self,
        reference_type: MembershipReferenceType,
        reference_id: str,
        role_scope: Optional[RoleScope] = None,
        role_name: Optional[RoleName] = None,
    ) -> Set[Membership]:
        """Get members of a reference, optionally holding an exact role"""
        pass

    @abstractmethod
    async def find_by_references_and_role(
        self,
        reference_type: MembershipReferenceType,
        reference_ids: Iterable[str],
        role_scope: Optional[RoleScope] = None,
        role_name: Optional[RoleName] = None,
    ) -> Set[Membership]:
        """Get members of several references in one query, optionally holding an exact role"""
        pass

    @abstractmethod
    async def find_by_user_and_reference_type(
        self, user_id: str, reference_type: MembershipReferenceType
    ) -> Set[Membership]:
        """Get all memberships of a user for a reference type"""
        pass

    @abstractmethod
    async def find_by_user_and_reference_type_and_role(
        self,
        user_id: str,
        reference_type: MembershipReferenceType,
        role_scope: RoleScope,
        role_name: RoleName,
    ) -> Set[Membership]:
        """Get memberships of a user for a reference type holding an exact role"""
        pass

    @abstractmethod
    async def find_by_role(
        self, role_scope: RoleScope, role_name: RoleName
    ) -> Set[Membership]:
        """Get all memberships holding an exact role, whatever the reference"""
        pass

    @abstractmethod
    async def find_by_user(self, user_id: str) -> Set[Membership]:
        """Get all memberships for a user"""
        pass

    @abstractmethod
    async def create(self, membership: Membership) -> Membership:
        """Create a new membership"""
        pass

    @abstractmethod
    async def update(self, membership: Membership) -> Membership:
        """Update an existing membership, MembershipStateError if it does not exist"""
        pass

    @abstractmethod
    async def delete(self, membership: Membership) -> None:
        """Delete a membership by key, no-op when absent"""
        pass

    @abstractmethod
    async def delete_members(
        self, reference_type: MembershipReferenceType, reference_id: str
    ) -> None:
        """Delete every membership on a reference"""
        pass
