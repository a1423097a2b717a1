from typing import Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from pulse_chat_app.core.config.settings import settings
from pulse_chat_app.users.models.user_models import UserModel


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


def decode_token(token: str) -> Optional[UUID]:
    """Return the user id carried by a valid token, or None."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        user_id = payload.get("sub")
        if user_id is None:
            return None
        return UUID(user_id)
    except (JWTError, ValueError):
        return None


async def get_current_user(token: str = Depends(oauth2_scheme)) -> UserModel:
    return await verify_token(token)


async def verify_token(token: str) -> UserModel:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id = decode_token(token)
    if user_id is None:
        raise credentials_exception

    user = await UserModel.get(user_id)
    if user is None:
        raise credentials_exception

    return user


async def get_ws_current_user(token: Optional[str]) -> Optional[UserModel]:
    """Handshake authentication for the socket channel; None means refuse."""
    if not token:
        return None
    user_id = decode_token(token)
    if user_id is None:
        return None
    return await UserModel.get(user_id)
