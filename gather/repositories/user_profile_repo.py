"""User profile repository."""

from typing import Optional, cast

from sqlalchemy.orm import Session

from gather.models.user_profile import UserProfile
from gather.repositories.base_repo import BaseRepo


class UserProfileRepo(BaseRepo):
    """Read access to user display profiles."""

    def get_by_user_id(
        self, user_id: str, session: Optional[Session] = None
    ) -> Optional[UserProfile]:
        """Get the profile for a user id."""
        return cast(
            Optional[UserProfile],
            self._execute_with_session(
                lambda s: s.query(UserProfile)
                .filter(UserProfile.user_id == user_id)
                .first(),
                session=session,
                operation_name="get_by_user_id",
            ),
        )

    def create_profile(
        self,
        user_id: str,
        name: Optional[str] = None,
        email: Optional[str] = None,
        session: Optional[Session] = None,
    ) -> UserProfile:
        """Create a profile. Used by seeding scripts and tests."""

        def _create(s: Session) -> UserProfile:
            profile = UserProfile(user_id=user_id, name=name, email=email)
            s.add(profile)
            s.flush()
            return profile

        return cast(
            UserProfile,
            self._execute_with_session(
                _create, session=session, operation_name="create_profile"
            ),
        )
