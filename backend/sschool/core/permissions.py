from dataclasses import dataclass
from typing import Iterable, Optional

from sschool.core.exceptions import ForbiddenError, UnauthorizedError
from sschool.models.user import Role, User


@dataclass(frozen=True)
class Identity:
    """The authenticated caller, as attached to the request (no password)"""

    id: str
    name: str
    email: str
    role: Role

    @classmethod
    def from_user(cls, user: User) -> "Identity":
        return cls(id=user.id, name=user.name, email=user.email, role=Role(user.role))


def authorize(identity: Optional[Identity], required_roles: Iterable[Role]) -> Identity:
    """Allow the identity through if its role is one of ``required_roles``.

    Raises UnauthorizedError when no identity was resolved and ForbiddenError
    on a role mismatch. Has no side effects.
    """
    if identity is None:
        raise UnauthorizedError()

    required = list(required_roles)
    if identity.role not in required:
        wanted = " or ".join(role.value for role in required)
        raise ForbiddenError(f"Forbidden - Required role: {wanted}, Your role: {identity.role.value}")
    return identity
