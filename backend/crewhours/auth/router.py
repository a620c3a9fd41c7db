import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth import service
from crewhours.auth.models import Role, User
from crewhours.auth.schemas import (
    CurrentUserResponse,
    TokenRefreshRequest,
    UserCreate,
    UserLogin,
    UserResponse,
    UserRoleUpdate,
    UserUpdate,
)
from crewhours.core.permissions import Capability, capabilities_for
from crewhours.dependencies import get_current_user, get_db, require_capability

router = APIRouter()


def _current(user: User) -> CurrentUserResponse:
    return CurrentUserResponse(
        **UserResponse.model_validate(user).model_dump(),
        capabilities=sorted(c.value for c in capabilities_for(user.role)),
    )


@router.post("/register", status_code=201)
async def register(
    user_data: UserCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    request: Request,
) -> dict:
    user = await service.register_user(db, user_data, request.app.state.settings)
    return {"data": UserResponse.model_validate(user)}


@router.post("/login")
async def login(
    credentials: UserLogin,
    db: Annotated[AsyncSession, Depends(get_db)],
    request: Request,
) -> dict:
    tokens = await service.authenticate_user(
        db, credentials.email, credentials.password, request.app.state.settings
    )
    return {"data": tokens}


@router.post("/refresh")
async def refresh(
    body: TokenRefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    request: Request,
) -> dict:
    tokens = await service.refresh_tokens(db, body.refresh_token, request.app.state.settings)
    return {"data": tokens}


@router.post("/logout")
async def logout(
    body: TokenRefreshRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(get_current_user)],
) -> dict:
    await service.revoke_refresh_token(db, body.refresh_token)
    return {"data": {"message": "Logged out"}}


@router.get("/me")
async def get_me(current_user: Annotated[User, Depends(get_current_user)]) -> dict:
    """The signed-in user and what their role allows them to do."""
    return {"data": _current(current_user)}


@router.put("/me")
async def update_me(
    updates: UserUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    user = await service.update_own_account(db, current_user, updates)
    return {"data": _current(user)}


@router.get("/users")
async def list_users(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_capability(Capability.VIEW_ALL_RECORDS))],
    role: Role | None = Query(None),
    include_inactive: bool = Query(False),
) -> dict:
    users = await service.list_users(db, role, include_inactive)
    return {"data": [UserResponse.model_validate(u) for u in users]}


@router.put("/users/{user_id}/role")
async def update_user_role(
    user_id: uuid.UUID,
    body: UserRoleUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_capability(Capability.MANAGE_USERS))],
) -> dict:
    user = await service.set_role(db, user_id, body.role, current_user)
    return {"data": UserResponse.model_validate(user)}


@router.delete("/users/{user_id}")
async def deactivate_user(
    user_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_capability(Capability.MANAGE_USERS))],
) -> dict:
    user = await service.deactivate_user(db, user_id, current_user)
    return {"data": UserResponse.model_validate(user)}
