from typing import Iterator, Optional

from fastapi import Depends, Header, Query, Request
from sqlalchemy.orm import Session

from sschool.core.exceptions import UnauthenticatedError
from sschool.core.permissions import Identity, authorize
from sschool.core.security import TokenService
from sschool.models.user import Role, User
from sschool.services.notification_service import Notifier
from sschool.services.user_service import UserService
from sschool.utils.pagination import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT, MAX_PAGE, PageParams

BEARER_PREFIX = "Bearer "


def get_db(request: Request) -> Iterator[Session]:
    """
    One session per request, closed once the response is done.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_token_service(request: Request) -> TokenService:
    return request.app.state.user_service.tokens


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_page_params(
    page: int = Query(DEFAULT_PAGE, ge=1, le=MAX_PAGE),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
) -> PageParams:
    return PageParams(page=page, limit=limit)


async def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
    db: Session = Depends(get_db),
) -> Identity:
    """
    Resolve the caller from an ``Authorization: Bearer <token>`` header.

    Expired and invalid tokens raise their own 401 variants. A valid token
    whose subject no longer exists (deleted account) is also a 401. The
    resolved identity is attached to ``request.state.user``.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise UnauthenticatedError()

    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise UnauthenticatedError()

    claims = tokens.verify(token)

    # One store read per request; there is no session cache
    user = db.get(User, str(claims["sub"]))
    if user is None:
        raise UnauthenticatedError("Token is not valid - user not found")

    identity = Identity.from_user(user)
    request.state.user = identity
    return identity


def require_roles(*roles: Role):
    """Dependency that runs the role gate after authentication"""

    def role_gate(identity: Identity = Depends(get_current_user)) -> Identity:
        return authorize(identity, roles)

    return role_gate


require_admin = require_roles(Role.ADMIN)
require_student = require_roles(Role.STUDENT)
