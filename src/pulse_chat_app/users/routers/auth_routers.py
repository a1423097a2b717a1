import logging
from datetime import datetime, timezone
from typing import List
from fastapi import APIRouter, HTTPException, Depends, status
from beanie.operators import Or
from pymongo.errors import DuplicateKeyError
from pulse_chat_app.users.models.user_models import UserModel, UserProfile
from pulse_chat_app.users.schemas.user_schemas import (
    AuthResponse, MessageResponse, ProfileUpdateRequest, ProfileUpdateResponse,
    UserCreate, UserLogin, UserResponse,
)
from pulse_chat_app.users.utils.password import hash_password, rehash_if_needed, verify_password
from pulse_chat_app.users.utils.token_generate import token_for_user
from pulse_chat_app.users.utils.get_current_user import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


async def _duplicate_detail(user: UserCreate):
    existing = await UserModel.find_one(
        Or(UserModel.username == user.username, UserModel.email == user.email)
    )
    if not existing:
        return None
    if existing.username == user.username:
        return "Username already taken"
    return "Email already registered"


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(user: UserCreate):
    detail = await _duplicate_detail(user)
    if detail:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    new_user = UserModel(
        username=user.username,
        email=user.email,
        password=hash_password(user.password),
        profile=UserProfile(**user.profile.model_dump()) if user.profile else UserProfile(),
    )
    try:
        await new_user.create()
    except DuplicateKeyError:
        # A concurrent registration won the unique index
        detail = await _duplicate_detail(user) or "Username or email already registered"
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)
    logger.info(f"Registered user {new_user.username} ({new_user.id})")

    return AuthResponse(
        message="User registered successfully",
        token=token_for_user(new_user),
        user=UserResponse.model_validate(new_user),
    )


@router.post("/login", response_model=AuthResponse, status_code=status.HTTP_200_OK)
async def login(credentials: UserLogin):
    db_user = await UserModel.find_one(UserModel.email == credentials.email)
    if not db_user or not verify_password(credentials.password, db_user.password):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")

    changes = {UserModel.is_online: True, UserModel.updated_at: datetime.now(timezone.utc)}
    new_hash = rehash_if_needed(credentials.password, db_user.password)
    if new_hash:
        changes[UserModel.password] = new_hash
    await db_user.set(changes)

    return AuthResponse(
        message="Login successful",
        token=token_for_user(db_user),
        user=UserResponse.model_validate(db_user),
    )


@router.get("/profile", response_model=UserResponse)
async def my_profile(current_user: UserModel = Depends(get_current_user)):
    return UserResponse.model_validate(current_user)


@router.put("/profile", response_model=ProfileUpdateResponse)
async def update_profile(data: ProfileUpdateRequest, current_user: UserModel = Depends(get_current_user)):
    """
    Replace the caller's profile (name, bio, phone, avatar) as a whole.
    """
    profile = UserProfile(**data.profile.model_dump())
    await current_user.set({
        UserModel.profile: profile.model_dump(),
        UserModel.updated_at: datetime.now(timezone.utc),
    })
    return ProfileUpdateResponse(
        message="Profile updated successfully",
        user=UserResponse.model_validate(current_user),
    )


@router.get("/users", response_model=List[UserResponse])
async def get_users(current_user: UserModel = Depends(get_current_user)):
    """
    Everyone except the caller, online users first, then by most recent activity.
    """
    users = await UserModel.find(UserModel.id != current_user.id).sort(
        -UserModel.is_online, -UserModel.last_seen
    ).to_list()
    return [UserResponse.model_validate(u) for u in users]


@router.post("/logout", response_model=MessageResponse)
async def logout(current_user: UserModel = Depends(get_current_user)):
    now = datetime.now(timezone.utc)
    await current_user.set({
        UserModel.is_online: False,
        UserModel.last_seen: now,
        UserModel.updated_at: now,
    })
    return MessageResponse(message="Logged out successfully")
