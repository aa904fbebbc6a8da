"""Shared settings repository."""

from datetime import datetime
from typing import Optional, List, Tuple
from sqlalchemy.orm import Session

from household.repositories.base import BaseRepository
from household.db.models.shared_settings import SharedSettings
from household.db.models.user import User

SHARED_FIELDS = ("group_id", "group_name", "currency_code", "default_split_ratio", "currency_synced_at")


class SharedSettingsRepository(BaseRepository[SharedSettings]):
    """Repository for per-user shared settings."""

    def __init__(self, db: Session, correlation_id: Optional[str] = None):
        super().__init__(db, SharedSettings, correlation_id)

    def get_by_user(self, user_id: int) -> Optional[SharedSettings]:
        result = self.db.query(self.model).filter(
            self.model.user_id == user_id,
            self.model.is_deleted == False
        ).first()
        self._log_operation("get_by_user", user_id=user_id, found=result is not None)
        return result

    def get_or_create(self, user_id: int, default_emoji: str) -> SharedSettings:
        """Return the user's settings row, creating an empty one if missing."""
        existing = self.get_by_user(user_id)
        if existing is not None:
            return existing
        return self.create({"user_id": user_id, "emoji": default_emoji})

    def list_members_in_group(self, group_id: str, exclude_user_id: Optional[int] = None) -> List[Tuple[SharedSettings, User]]:
        """List settings of live users currently on ``group_id``.

        Rows belonging to deleted accounts are skipped, so a removed primary
        never counts as a group member.
        """
        query = self.db.query(self.model, User).join(User, User.id == self.model.user_id).filter(
            self.model.group_id == group_id,
            self.model.is_deleted == False,
            User.is_deleted == False
        )
        if exclude_user_id is not None:
            query = query.filter(self.model.user_id != exclude_user_id)

        results = query.order_by(self.model.user_id).all()
        self._log_operation("list_members_in_group", group_id=group_id, count=len(results))
        return results

    def clear_shared_fields(self, settings_row: SharedSettings) -> SharedSettings:
        """Wipe the fields shared with a partner, keeping personal ones."""
        return self.update_fields(settings_row, {field: None for field in SHARED_FIELDS})

    def mark_synced(self, settings_row: SharedSettings, fields: dict, synced_at: datetime) -> SharedSettings:
        """Write values received from a partner and stamp the sync marker."""
        return self.update_fields(settings_row, {**fields, "currency_synced_at": synced_at})
