"""Exceptions raised by repositories."""


class RepositoryError(Exception):
    """Base class for repository errors."""


class MembershipStateError(RepositoryError):
    """A membership mutation was requested against an invalid state.

    Raised when updating a membership that does not exist, or when no
    membership is given at all. This is a usage error and is never retried.
    """


class InvalidRoleFilterError(RepositoryError, ValueError):
    """Role scope and role name were not supplied together."""

    def __init__(self, role_scope, role_name):
        super().__init__(
            f"Role scope and role name must be given together (got scope={role_scope!r}, name={role_name!r})"
        )
        self.role_scope = role_scope
        self.role_name = role_name


class TechnicalError(RepositoryError):
    """The backing store failed. The original exception is kept as ``__cause__``."""


class MembershipAlreadyExistsError(TechnicalError):
    """Conflict: a membership with the same primary key is already stored.

    Attributes:
        user_id (str): User of the conflicting membership.
        reference_type (str): Reference type of the conflicting membership.
        reference_id (str): Reference id of the conflicting membership.
    """

    def __init__(self, user_id: str, reference_type: str, reference_id: str):
        super().__init__(
            f"Membership of user '{user_id}' on {reference_type} '{reference_id}' already exists."
        )
        self.user_id = user_id
        self.reference_type = reference_type
        self.reference_id = reference_id
