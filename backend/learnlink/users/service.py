import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from learnlink.exceptions import ResourceNotFoundError, ValidationError
from learnlink.users.models import User
from learnlink.users.schemas import UserProfileUpdate, UserSummary


logger = logging.getLogger(__name__)


class UserService:
    """Service for handling user operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_user(self, user_id: UUID) -> User:
        """
        Get user by ID.

        Parameters
        ----------
        user_id : UUID
            User ID

        Returns
        -------
        User
            User instance

        Raises
        ------
        ResourceNotFoundError
            If user not found
        """
        user = await self._session.get(User, user_id)
        if not user:
            msg = "User"
            raise ResourceNotFoundError(msg, str(user_id))
        return user

    async def get_or_create_user(self, user_id: UUID) -> User:
        """Return the profile row for ``user_id``, creating an empty one if needed."""
        user = await self._session.get(User, user_id)
        if user is not None:
            return user

        user = User(id=user_id)
        self._session.add(user)
        await self._session.flush()
        logger.info("Created profile row for user %s", user_id)
        return user

    async def update_profile(self, user_id: UUID, data: UserProfileUpdate) -> User:
        """
        Upsert the profile of ``user_id``.

        Raises
        ------
        ValidationError
            If the email is already used by another profile
        """
        user = await self.get_or_create_user(user_id)

        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(user, key, value)

        try:
            await self._session.commit()
        except IntegrityError as e:
            await self._session.rollback()
            msg = f"User with email {data.email} already exists"
            raise ValidationError(msg) from e

        logger.info("Updated profile for user %s", user_id)
        return user

    async def get_summaries(self, user_ids: set[UUID]) -> dict[UUID, UserSummary]:
        """Creator/author blocks for a set of users.

        Users without a profile row still get a summary with only their id.
        """
        if not user_ids:
            return {}

        result = await self._session.execute(select(User).where(User.id.in_(list(user_ids))))
        found = {user.id: UserSummary.model_validate(user) for user in result.scalars()}
        return {user_id: found.get(user_id, UserSummary(id=user_id)) for user_id in user_ids}
