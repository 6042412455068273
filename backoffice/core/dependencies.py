from typing import AsyncGenerator

from fastapi import Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..enums import UserRole
from ..exceptions import InactiveAccountException, PermissionRequiredException
from ..core.token_bearer import AccessTokenBearer
from ..db.database import AsyncSessionLocal
from ..models.user import User
from ..schemas.common import PaginationParams
from ..services import AuthService


auth_service = AuthService()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    One session per request, closed once the response is sent.

    Services commit or roll back themselves; tests override this dependency to
    hand the app their own session.
    """

    async with AsyncSessionLocal() as db:
        yield db


async def get_current_user(
    token: dict = Depends(AccessTokenBearer()),
    session: AsyncSession = Depends(get_db),
) -> User:
    """
    Retrieve the current authenticated user based on the provided access token.

    Args:
        token (dict): The decoded access token payload.
        session (AsyncSession): The asynchronous database session dependency.

    Returns:
        User: The user object corresponding to the email found in the token.

    Raises:
        InvalidTokenException: If the token's user cannot be found.
        InactiveAccountException: If the account has been deactivated.
    """
    user = await auth_service.get_user(token["user"]["email"], session)

    if not user.is_active:
        raise InactiveAccountException()

    return user


def get_current_admin(user: User = Depends(get_current_user)) -> User:
    if not user.role == UserRole.ADMIN:
        raise PermissionRequiredException()

    return user


def get_pagination(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Items per page"),
    sort_by: str = Query("id", description="Sort by field"),
    sort_order: str = Query("asc", pattern="^(asc|desc)$", description="Sort order (asc/desc)"),
) -> PaginationParams:
    return PaginationParams(page=page, limit=limit, sort_by=sort_by, sort_order=sort_order)
