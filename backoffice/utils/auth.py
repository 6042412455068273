import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from ..core.config import Config
from ..exceptions import InvalidTokenException


def create_access_token(user_data: dict, expiry: Optional[timedelta] = None) -> str:
    """
    Create a signed access token for ``user_data`` (``id`` and ``email``).
    """
    now = datetime.now(timezone.utc)
    payload = {
        "user": user_data,
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": now + (expiry if expiry is not None else timedelta(seconds=Config.ACCESS_TOKEN_EXPIRY)),
    }

    return jwt.encode(payload=payload, key=Config.JWT_SECRET, algorithm=Config.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(jwt=token, key=Config.JWT_SECRET, algorithms=[Config.JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        raise InvalidTokenException(str(e))
