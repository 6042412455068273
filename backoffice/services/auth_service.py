from sqlalchemy.future import select
from sqlalchemy.ext.asyncio.session import AsyncSession

from .. import exceptions
from ..models import User


class AuthService:
    """
    Resolves the users behind access tokens. Issuing tokens belongs to the identity provider.
    """

    async def get_user(self, email: str, db: AsyncSession) -> User:
        """
        Asynchronously retrieves a user from the database by matching the provided email address.
        """

        stmt = select(User).where(User.email == email.lower())
        user = (await db.execute(stmt)).scalars().first()

        if not user:
            raise exceptions.InvalidTokenException("Token user does not exist")

        return user
