"""Partner invite repository."""

from datetime import datetime
from typing import Optional, List
from sqlalchemy.orm import Session

from household.repositories.base import BaseRepository
from household.db.models.partner_invite import PartnerInvite
from household.schemas.invite import InviteStatus


class PartnerInviteRepository(BaseRepository[PartnerInvite]):
    """Repository for PartnerInvite entity operations."""

    def __init__(self, db: Session, correlation_id: Optional[str] = None):
        super().__init__(db, PartnerInvite, correlation_id)

    def get_by_token(self, token: str) -> Optional[PartnerInvite]:
        result = self.db.query(self.model).filter(
            self.model.token == token,
            self.model.is_deleted == False
        ).first()
        # Never log the token itself
        self._log_operation("get_by_token", found=result is not None)
        return result

    def token_exists(self, token: str) -> bool:
        return self.db.query(self.model.id).filter(self.model.token == token).first() is not None

    def get_pending_for_primary(self, primary_user_id: int) -> Optional[PartnerInvite]:
        result = self.db.query(self.model).filter(
            self.model.primary_user_id == primary_user_id,
            self.model.status == InviteStatus.PENDING.value,
            self.model.is_deleted == False
        ).first()
        self._log_operation("get_pending_for_primary", primary_user_id=primary_user_id, found=result is not None)
        return result

    def expire_pending_for_primary(self, primary_user_id: int) -> List[PartnerInvite]:
        """Mark every pending invite of a primary as expired.

        Returns:
            The invites that were expired
        """
        pending = self.db.query(self.model).filter(
            self.model.primary_user_id == primary_user_id,
            self.model.status == InviteStatus.PENDING.value,
            self.model.is_deleted == False
        ).all()
        for invite in pending:
            invite.status = InviteStatus.EXPIRED.value
        if pending:
            self.db.flush()
        self._log_operation("expire_pending_for_primary", primary_user_id=primary_user_id, count=len(pending))
        return pending

    def mark_accepted(self, invite: PartnerInvite, user_id: int, accepted_at: datetime) -> PartnerInvite:
        return self.update_fields(invite, {
            "status": InviteStatus.ACCEPTED.value,
            "accepted_by_user_id": user_id,
            "accepted_at": accepted_at,
        })
