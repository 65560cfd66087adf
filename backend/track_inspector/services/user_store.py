"""User store - account persistence with email uniqueness and password redaction."""
from typing import List, Optional
from uuid import UUID
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from track_inspector.core.enums import UserRole
from track_inspector.core.exceptions import ConflictError, NotFoundError
from track_inspector.core.security import hash_password
from track_inspector.models.base import utcnow
from track_inspector.models.user import User
from track_inspector.schemas.shared import UserCreate, UserResponse, UserUpdate

logger = logging.getLogger(__name__)


class UserStore:
    """Service for user accounts. Responses never carry the password hash."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_users(self) -> List[UserResponse]:
        result = await self.db.execute(select(User).order_by(User.created_at))
        return [self._to_response(user) for user in result.scalars().all()]

    async def list_by_role(self, role: UserRole) -> List[UserResponse]:
        result = await self.db.execute(
            select(User).where(User.role == role.value).order_by(User.created_at)
        )
        return [self._to_response(user) for user in result.scalars().all()]

    async def create_user(self, data: UserCreate) -> UserResponse:
        """
        Create a user after checking that the email is free.

        Args:
            data: Validated creation payload (plain password)

        Returns:
            UserResponse without the password

        Raises:
            ConflictError: If another user already has this email
        """
        if await self._find_by_email(data.email) is not None:
            logger.info(f"Rejected user create: email {data.email} already registered")
            raise ConflictError("User with this email already exists")

        user = User(
            name=data.name,
            email=data.email,
            role=data.role.value,
            department=data.department,
            expertise=list(data.expertise),
            phone_number=data.phone_number,
            avatar=data.avatar,
            is_active=data.is_active,
            last_active=data.last_active,
            hashed_password=hash_password(data.password),
        )

        self.db.add(user)
        await self._commit(conflict_message="User with this email already exists")

        logger.info(f"Created user {user.id} ({user.role})")
        return self._to_response(user)

    async def update_status(self, user_id: str, is_active: bool) -> UserResponse:
        """Toggle activation; activating stamps lastActive, deactivating leaves it as is."""
        user = await self._get_or_404(user_id)
        user.is_active = is_active
        if is_active:
            user.last_active = utcnow()

        await self._commit()
        return self._to_response(user)

    async def update_user(self, user_id: str, data: UserUpdate) -> UserResponse:
        """
        Apply a partial profile update.

        The payload schema has no password field, so a password sent by the
        client is dropped before anything is written.

        Raises:
            ConflictError: If the new email belongs to a different user
            NotFoundError: If no user has this id
        """
        user = await self._get_or_404(user_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("email"):
            existing = await self._find_by_email(changes["email"])
            if existing is not None and existing.id != user.id:
                logger.info(f"Rejected email change for user {user.id}: email in use")
                raise ConflictError("Email already in use")

        for field, value in changes.items():
            if isinstance(value, UserRole):
                value = value.value
            setattr(user, field, value)

        await self._commit()
        return self._to_response(user)

    async def delete_user(self, user_id: str) -> None:
        user = await self._get_or_404(user_id)
        await self.db.delete(user)
        await self._commit()
        logger.info(f"Deleted user {user_id}")

    # ─── helpers ──────────────────────────────────────────────

    async def _find_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def _get_or_404(self, user_id: str) -> User:
        try:
            user_uuid = UUID(str(user_id))
        except ValueError:
            raise NotFoundError("User not found")

        user = await self.db.get(User, user_uuid)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _commit(self, conflict_message: str = "Email already in use") -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.warning(f"Integrity error on users: {e.orig}")
            raise ConflictError(conflict_message) from e
        except Exception:
            await self.db.rollback()
            raise

    @staticmethod
    def _to_response(user: User) -> UserResponse:
        return UserResponse(
            id=user.id,
            name=user.name,
            email=user.email,
            role=user.role,
            department=user.department,
            expertise=list(user.expertise or []),
            phone_number=user.phone_number,
            avatar=user.avatar,
            is_active=user.is_active,
            last_active=user.last_active,
            created_at=user.created_at,
        )
