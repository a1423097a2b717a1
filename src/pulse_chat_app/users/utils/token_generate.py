from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt
from pulse_chat_app.core.config.settings import settings


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def token_for_user(user) -> str:
    return create_access_token(data={
        "sub": str(user.id),
        "username": user.username,
        "email": user.email,
    })
