"""Orphan detection and recovery.

A secondary is orphaned when its ``primary_user_id`` no longer resolves to a
live account. Nothing repairs that automatically; the secondary sees the
orphaned status and unlinks itself.
"""

from typing import Optional

from sqlalchemy.orm import Session

from household.core.config import settings
from household.db.models.user import User
from household.schemas.partnership import Committed, NotASecondary
from household.services.base import BaseService
from household.services.exceptions import AccountNotFoundError, NotASecondaryError, ValidationError


class OrphanRecoveryService(BaseService):
    """Detects orphaned secondaries and demotes users to solo."""

    def __init__(self, correlation_id: Optional[str] = None, **repositories):
        super().__init__(correlation_id)
        if repositories:
            self._set_repositories(**repositories)

        for required in ("user_repo", "settings_repo"):
            if not hasattr(self, required):
                raise ValidationError(
                    field=required,
                    message=f"{required} is required for OrphanRecoveryService",
                    correlation_id=correlation_id
                )

    def resolve_primary(self, user: User) -> Optional[User]:
        if user.primary_user_id is None:
            return None
        return self.user_repo.get_by_id(user.primary_user_id)

    def is_orphaned(self, user: User) -> bool:
        orphaned = user.primary_user_id is not None and self.resolve_primary(user) is None
        if orphaned:
            self.log_operation("orphan_detected", user_id=user.id, primary_user_id=user.primary_user_id)
        return orphaned

    def demote(self, user: User) -> User:
        """Unlink ``user``, switch it to solo and wipe its shared settings.

        Personal settings (emoji, payee preferences) are kept and onboarding
        goes back to group selection. Runs inside the caller's transaction.
        """
        self.user_repo.demote_to_solo(user, onboarding_step=settings.ONBOARDING_GROUP_STEP)
        settings_row = self.settings_repo.get_by_user(user.id)
        if settings_row is not None:
            self.settings_repo.clear_shared_fields(settings_row)
        self.log_operation("demote_to_solo", user_id=user.id)
        return user

    def unlink_from_primary(self, user_id: int, db: Session):
        """Detach a secondary from its primary, whether or not the primary still exists.

        Returns:
            Committed, or NotASecondary when the user has no primary link

        Raises:
            AccountNotFoundError: If the user does not exist
        """
        self.log_operation("unlink_from_primary_attempt", user_id=user_id)

        try:
            def _unlink_operation() -> User:
                user = self.user_repo.get_by_id(user_id)
                if user is None:
                    raise AccountNotFoundError(user_id=user_id, correlation_id=self.correlation_id)
                if user.primary_user_id is None:
                    raise NotASecondaryError(user_id=user_id, correlation_id=self.correlation_id)
                orphaned = self.is_orphaned(user)
                self.demote(user)
                self.log_operation("unlink_from_primary_success", user_id=user_id, was_orphaned=orphaned)
                return user

            self.run_in_transaction(db, _unlink_operation)
            return Committed(message="Unlinked from your partner. Please choose a group again.")

        except NotASecondaryError as e:
            self.log_operation("unlink_from_primary_rejected", user_id=user_id, error_code=e.error_code)
            return NotASecondary()
        except Exception as e:
            self.log_operation("unlink_from_primary_error", user_id=user_id, error_type=type(e).__name__, error_message=str(e))
            raise
