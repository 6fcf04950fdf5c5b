import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Iterable, Optional, Set

from sqlalchemy import JSON, delete, type_coerce
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm.exc import FlushError
from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.errors import (
    InvalidRoleFilterError,
    MembershipAlreadyExistsError,
    MembershipStateError,
    TechnicalError,
)
from src.app.repositories.membership_repository import IMembershipRepository
from src.domain.entities import Membership, MembershipReferenceType, RoleName, RoleScope

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


@asynccontextmanager
async def _translate_errors(operation: str):
    """Re-raise backing-store failures as TechnicalError"""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error(f"Membership store failure during {operation}: {exc}")
        raise TechnicalError(f"Membership store failure during {operation}") from exc


def _reference_type(value) -> Optional[MembershipReferenceType]:
    return MembershipReferenceType(value) if value is not None else None


def _as_list(reference_ids) -> list:
    if isinstance(reference_ids, str):
        return [reference_ids]
    return list(reference_ids or [])


def _key_criteria(
    user_id: str, reference_type: MembershipReferenceType, reference_id: str
) -> list:
    return [
        Membership.user_id == user_id,
        Membership.reference_type == _reference_type(reference_type),
        Membership.reference_id == reference_id,
    ]


def _role_criteria(
    role_scope: Optional[RoleScope],
    role_name: Optional[RoleName],
    required: bool = False,
) -> list:
    """Exact match on the role stored under the scope key, nothing when both are None"""
    if role_scope is None and role_name is None and not required:
        return []
    if role_scope is None or role_name is None:
        raise InvalidRoleFilterError(role_scope, role_name)
    scope_key = str(RoleScope(role_scope).value)
    return [type_coerce(Membership.roles, JSON)[scope_key].as_string() == role_name]


class MembershipRepository(IMembershipRepository):
    """Membership repository implementation using SQLModel

    Mutations are single statements and only flush; committing belongs to
    the unit of work.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _find_one(self, *criteria) -> Optional[Membership]:
        stmt = (
            select(Membership)
            .where(*criteria)
            .execution_options(populate_existing=True)
        )
        async with _translate_errors("lookup"):
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()

    async def _find_all(self, *criteria) -> Set[Membership]:
        stmt = (
            select(Membership)
            .where(*criteria)
            .execution_options(populate_existing=True)
        )
        async with _translate_errors("query"):
            result = await self.session.execute(stmt)
            return set(result.scalars().all())

    async def find_by_id(
        self,
        user_id: Optional[str],
        reference_type: Optional[MembershipReferenceType],
        reference_id: Optional[str],
    ) -> Optional[Membership]:
        """Get membership by primary key"""
        if user_id is None or reference_type is None or reference_id is None:
            return None
        return await self._find_one(*_key_criteria(user_id, reference_type, reference_id))

    async def find_by_ids(
        self,
        user_id: str,
        reference_type: MembershipReferenceType,
        reference_ids: Iterable[str],
    ) -> Set[Membership]:
        """Get a user's memberships on the given references"""
        reference_ids = _as_list(reference_ids)
        if user_id is None or not reference_ids:
            return set()
        return await self._find_all(
            Membership.user_id == user_id,
            Membership.reference_type == _reference_type(reference_type),
            Membership.reference_id.in_(reference_ids),
        )

    async def find_by_reference_and_role(
        self,
        reference_type: MembershipReferenceType,
        reference_id: str,
        role_scope: Optional[RoleScope] = None,
        role_name: Optional[RoleName] = None,
    ) -> Set[Membership]:
        """Get members of a reference"""
        role_criteria = _role_criteria(role_scope, role_name)
        return await self._find_all(
            Membership.reference_type == _reference_type(reference_type),
            Membership.reference_id == reference_id,
            *role_criteria,
        )

    async def find_by_references_and_role(
        self,
        reference_type: MembershipReferenceType,
        reference_ids: Iterable[str],
        role_scope: Optional[RoleScope] = None,
        role_name: Optional[RoleName] = None,
    ) -> Set[Membership]:
        """Get members of several references with a single IN query"""
        role_criteria = _role_criteria(role_scope, role_name)
        reference_ids = _as_list(reference_ids)
        if not reference_ids:
            return set()
        return await self._find_all(
            Membership.reference_type == _reference_type(reference_type),
            Membership.reference_id.in_(reference_ids),
            *role_criteria,
        )

    async def find_by_user_and_reference_type(
        self, user_id: str, reference_type: MembershipReferenceType
    ) -> Set[Membership]:
        """Get all memberships of a user for a reference type"""
        return await self._find_all(
            Membership.user_id == user_id,
            Membership.reference_type == _reference_type(reference_type),
        )

    async def find_by_user_and_reference_type_and_role(
        self,
        user_id: str,
        reference_type: MembershipReferenceType,
        role_scope: RoleScope,
        role_name: RoleName,
    ) -> Set[Membership]:
        """Get memberships of a user for a reference type holding a role"""
        return await self._find_all(
            Membership.user_id == user_id,
            Membership.reference_type == _reference_type(reference_type),
            *_role_criteria(role_scope, role_name, required=True),
        )

    async def find_by_role(
        self, role_scope: RoleScope, role_name: RoleName
    ) -> Set[Membership]:
        """Get all memberships holding a role, across every reference"""
        return await self._find_all(*_role_criteria(role_scope, role_name, required=True))

    async def find_by_user(self, user_id: str) -> Set[Membership]:
        """Get all memberships for a user"""
        return await self._find_all(Membership.user_id == user_id)

    async def create(self, membership: Membership) -> Membership:
        """Create a new membership"""
        if membership is None:
            raise MembershipStateError("Unable to create a null membership")

        if membership.created_at is None:
            membership.created_at = _utcnow()
        if membership.updated_at is None:
            membership.updated_at = membership.created_at

        async with _translate_errors("create"):
            try:
                # A conflict only rolls back the savepoint, not the caller's transaction
                async with self.session.begin_nested():
                    self.session.add(membership)
                    await self.session.flush()
            except (IntegrityError, FlushError) as exc:
                logger.warning(f"Membership already exists: {membership.identity}")
                raise MembershipAlreadyExistsError(
                    membership.user_id, membership.reference_type, membership.reference_id
                ) from exc
            await self.session.refresh(membership)

        logger.debug(f"Membership created: {membership.identity}")
        return membership

    async def update(self, membership: Membership) -> Membership:
        """Overwrite roles, source and timestamps of an existing membership"""
        if membership is None:
            raise MembershipStateError("Unable to update a null membership")

        user_id, reference_type, reference_id = membership.identity
        values = {
            "roles": membership.role_map(),
            "source": membership.source,
            "updated_at": membership.updated_at or _utcnow(),
        }
        if membership.created_at is not None:
            values["created_at"] = membership.created_at

        # Existence check and write in the same statement
        stmt = (
            update(Membership)
            .where(*_key_criteria(user_id, reference_type, reference_id))
            .values(**values)
        )
        async with _translate_errors("update"):
            result = await self.session.execute(stmt)
            if result.rowcount == 0:
                logger.warning(f"Refused update of unknown membership: {membership.identity}")
                raise MembershipStateError(
                    f"Unable to update membership of user '{user_id}' on "
                    f"{reference_type} '{reference_id}': not found"
                )
            await self.session.flush()

        logger.debug(f"Membership updated: {membership.identity}")
        return await self._find_one(*_key_criteria(user_id, reference_type, reference_id))

    async def delete(self, membership: Membership) -> None:
        """Delete a membership by primary key"""
        if membership is None:
            return

        stmt = delete(Membership).where(*_key_criteria(*membership.identity))
        async with _translate_errors("delete"):
            result = await self.session.execute(stmt)
            await self.session.flush()

        logger.debug(f"Membership delete {membership.identity}: {result.rowcount} row(s)")

    async def delete_members(
        self, reference_type: MembershipReferenceType, reference_id: str
    ) -> None:
        """Delete every membership on a reference"""
        stmt = delete(Membership).where(
            Membership.reference_type == _reference_type(reference_type),
            Membership.reference_id == reference_id,
        )
        async with _translate_errors("delete_members"):
            result = await self.session.execute(stmt)
            await self.session.flush()

        logger.debug(
            f"Memberships deleted on {reference_type} '{reference_id}': {result.rowcount} row(s)"
        )
