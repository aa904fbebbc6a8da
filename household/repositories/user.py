"""User repository for user and partner-link database operations."""

from typing import Optional
from sqlalchemy.orm import Session

from household.repositories.base import BaseRepository
from household.db.models.user import User
from household.schemas.partnership import PartnerLink, Persona
from household.schemas.user import UserCreate


class UserRepository(BaseRepository[User]):
    """Repository for User entity operations."""

    def __init__(self, db: Session, correlation_id: Optional[str] = None):
        super().__init__(db, User, correlation_id)

    def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email address.

        Args:
            email: User's email address

        Returns:
            User instance or None if not found
        """
        result = self.db.query(self.model).filter(
            self.model.email == email,
            self.model.is_deleted == False
        ).first()

        self._log_operation("get_by_email", email_domain=email.split("@")[-1], found=result is not None)
        return result

    def email_exists(self, email: str) -> bool:
        """Check if email is already registered."""
        result = self.db.query(self.model.id).filter(
            self.model.email == email,
            self.model.is_deleted == False
        ).first() is not None
        self._log_operation("email_exists", exists=result)
        return result

    def create_user(self, user_in: UserCreate, hashed_password: str) -> User:
        user_data = user_in.model_dump(exclude={"password"})
        user_data["email"] = user_data["email"].lower().strip()
        user_data["hashed_password"] = hashed_password
        return self.create(user_data)

    def get_secondary_of(self, primary_user_id: int) -> Optional[User]:
        """Get the live secondary linked to a primary, if any."""
        result = self.db.query(self.model).filter(
            self.model.primary_user_id == primary_user_id,
            self.model.is_deleted == False
        ).first()
        self._log_operation("get_secondary_of", primary_user_id=primary_user_id, found=result is not None)
        return result

    def get_link(self, user: User) -> Optional[PartnerLink]:
        """Resolve the partner link a user takes part in, from either side.

        A secondary always yields a link, even when the referenced primary
        no longer resolves; callers use ``get_by_id`` on the primary side to
        tell a live link from an orphaned one.
        """
        if user.primary_user_id is not None:
            return PartnerLink(primary_user_id=user.primary_user_id, secondary_user_id=user.id)
        secondary = self.get_secondary_of(user.id)
        if secondary is not None:
            return PartnerLink(primary_user_id=user.id, secondary_user_id=secondary.id)
        return None

    def link_secondary(self, secondary: User, primary_user_id: int) -> User:
        """Attach a user as the secondary of ``primary_user_id``."""
        return self.update_fields(secondary, {
            "primary_user_id": primary_user_id,
            "persona": Persona.DUAL.value,
        })

    def demote_to_solo(self, user: User, onboarding_step: Optional[int] = None) -> User:
        """Drop any link and switch the user to solo.

        Args:
            user: User to demote
            onboarding_step: When given, onboarding is rewound to this step
                and marked incomplete
        """
        fields = {"primary_user_id": None, "persona": Persona.SOLO.value}
        if onboarding_step is not None:
            fields["onboarding_step"] = onboarding_step
            fields["onboarding_complete"] = False
        return self.update_fields(user, fields)
