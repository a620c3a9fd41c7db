from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth.models import User
from crewhours.auth.utils import decode_token
from crewhours.config import Settings
from crewhours.core.permissions import Capability, has_capability
from crewhours.core.storage import SignatureStorage

security = HTTPBearer()


async def get_db(request: Request) -> AsyncSession:
    async with request.app.state.session_factory() as session:
        yield session


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_storage(request: Request) -> SignatureStorage:
    settings = request.app.state.settings
    return SignatureStorage(settings.storage_path, settings.max_upload_size)


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    token_data = decode_token(credentials.credentials, request.app.state.settings)
    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )

    result = await db.execute(select(User).where(User.id == token_data.sub))
    user = result.scalar_one_or_none()

    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


def require_capability(capability: Capability):
    """Dependency factory that checks the current user's role grants *capability*."""

    async def check_capability(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if not has_capability(current_user, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return current_user

    return check_capability
