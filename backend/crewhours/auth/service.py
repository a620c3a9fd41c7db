from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth.models import RefreshToken, Role, User
from crewhours.auth.schemas import TokenResponse, UserCreate, UserUpdate
from crewhours.auth.utils import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    hash_token,
    verify_password,
)
from crewhours.config import Settings
from crewhours.core.exceptions import ConflictError, NotFoundError, ValidationError
from crewhours.core.timeutils import as_utc
from crewhours.profiles.models import Profile

logger = logging.getLogger(__name__)


async def register_user(
    db: AsyncSession,
    user_data: UserCreate,
    settings: Settings,
) -> User:
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none() is not None:
        raise ConflictError(f"A user with email {user_data.email} already exists.")

    # First user becomes admin
    user_count = await db.scalar(select(func.count()).select_from(User))
    role = Role.ADMIN if user_count == 0 else Role.MONTER

    user = User(
        email=user_data.email,
        hashed_password=hash_password(user_data.password),
        full_name=user_data.full_name,
        role=role,
    )
    db.add(user)
    await db.flush()

    db.add(Profile(user_id=user.id, company_name=user_data.company_name))
    await db.commit()
    await db.refresh(user)
    return user


async def _issue_tokens(db: AsyncSession, user: User, settings: Settings) -> TokenResponse:
    access_token = create_access_token(user.id, user.role.value, settings)
    refresh_token = create_refresh_token(user.id, settings)

    db.add(
        RefreshToken(
            user_id=user.id,
            token_hash=hash_token(refresh_token),
            expires_at=datetime.now(timezone.utc) + timedelta(days=settings.refresh_token_expire_days),
        )
    )
    await db.commit()
    return TokenResponse(access_token=access_token, refresh_token=refresh_token)


async def authenticate_user(
    db: AsyncSession,
    email: str,
    password: str,
    settings: Settings,
) -> TokenResponse:
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(password, user.hashed_password):
        raise ValidationError("Invalid email or password.")

    if not user.is_active:
        raise ValidationError("Account is deactivated.")

    user.last_login_at = datetime.now(timezone.utc)
    return await _issue_tokens(db, user, settings)


async def refresh_tokens(
    db: AsyncSession,
    refresh_token: str,
    settings: Settings,
) -> TokenResponse:
    token_data = decode_token(refresh_token, settings, expected_type="refresh")
    if token_data is None:
        raise ValidationError("Invalid or expired refresh token.")

    result = await db.execute(
        select(RefreshToken).where(
            RefreshToken.token_hash == hash_token(refresh_token),
            RefreshToken.revoked.is_(False),
        )
    )
    stored_token = result.scalar_one_or_none()

    if stored_token is None:
        raise ValidationError("Refresh token not found or already revoked.")

    if as_utc(stored_token.expires_at) < datetime.now(timezone.utc):
        raise ValidationError("Refresh token has expired.")

    stored_token.revoked = True

    result = await db.execute(select(User).where(User.id == token_data.sub))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise ValidationError("User not found or inactive.")

    return await _issue_tokens(db, user, settings)


async def revoke_refresh_token(db: AsyncSession, refresh_token: str) -> None:
    result = await db.execute(
        select(RefreshToken).where(RefreshToken.token_hash == hash_token(refresh_token))
    )
    stored_token = result.scalar_one_or_none()
    if stored_token:
        stored_token.revoked = True
        await db.commit()


async def purge_refresh_tokens(db: AsyncSession, now: datetime | None = None) -> int:
    """Delete refresh tokens that are revoked or past their expiry."""
    now = now or datetime.now(timezone.utc)
    result = await db.execute(
        delete(RefreshToken).where(
            or_(RefreshToken.revoked.is_(True), RefreshToken.expires_at < now)
        )
    )
    await db.commit()
    return result.rowcount or 0


# ── User administration ──────────────────────────────────────────────────────


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User", str(user_id))
    return user


async def list_users(
    db: AsyncSession, role: Role | None = None, include_inactive: bool = False
) -> list[User]:
    query = select(User)
    if role is not None:
        query = query.where(User.role == role)
    if not include_inactive:
        query = query.where(User.is_active.is_(True))
    result = await db.execute(query.order_by(User.full_name))
    return list(result.scalars().all())


async def update_own_account(db: AsyncSession, user: User, updates: UserUpdate) -> User:
    if updates.full_name is not None:
        user.full_name = updates.full_name
    if updates.password is not None:
        if not updates.current_password or not verify_password(
            updates.current_password, user.hashed_password
        ):
            raise ValidationError("The current password is incorrect.")
        user.hashed_password = hash_password(updates.password)
    await db.commit()
    await db.refresh(user)
    return user


async def _active_admin_count(db: AsyncSession) -> int:
    return await db.scalar(
        select(func.count(User.id)).where(User.role == Role.ADMIN, User.is_active.is_(True))
    ) or 0


async def set_role(db: AsyncSession, user_id: uuid.UUID, role: Role, actor: User) -> User:
    user = await get_user(db, user_id)
    if user.role == Role.ADMIN and role != Role.ADMIN and await _active_admin_count(db) <= 1:
        raise ValidationError("The last administrator cannot be demoted.")
    previous = user.role
    user.role = role
    await db.commit()
    await db.refresh(user)
    logger.info("Role of %s changed from %s to %s by %s", user.email, previous.value, role.value, actor.id)
    return user


async def deactivate_user(db: AsyncSession, user_id: uuid.UUID, actor: User) -> User:
    """Block the account and revoke all of its refresh tokens."""
    if user_id == actor.id:
        raise ValidationError("You cannot deactivate your own account.")
    user = await get_user(db, user_id)
    user.is_active = False
    await db.execute(
        update(RefreshToken)
        .where(RefreshToken.user_id == user.id, RefreshToken.revoked.is_(False))
        .values(revoked=True)
    )
    await db.commit()
    logger.info("User %s deactivated by %s", user.email, actor.id)
    return user
