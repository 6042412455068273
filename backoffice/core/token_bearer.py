from fastapi import Request
from fastapi.security import HTTPBearer

from ..exceptions import AccessTokenRequiredException, InvalidTokenException
from ..utils.auth import decode_token


class AccessTokenBearer(HTTPBearer):
    """
    Extracts the bearer token from the Authorization header and returns its decoded payload.
    """

    def __init__(self, auto_error: bool = False):
        super().__init__(auto_error=auto_error)

    async def __call__(self, request: Request) -> dict:
        credentials = await super().__call__(request)
        if credentials is None:
            raise AccessTokenRequiredException()

        token_data = decode_token(credentials.credentials)

        user = token_data.get("user")
        if not isinstance(user, dict) or "email" not in user:
            raise InvalidTokenException("Token carries no user")

        return token_data
