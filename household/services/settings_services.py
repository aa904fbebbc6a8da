"""Shared settings: save, conflict checks and propagation to the partner.

Saving runs validate -> detect -> write -> propagate. The caller's row and
every row it propagates to are written in one transaction, so a partner never
observes half of a change.
"""

import random
from datetime import datetime, timedelta
from typing import Callable, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from household.core.clock import as_utc, utcnow
from household.core.config import settings
from household.db.models.shared_settings import SharedSettings
from household.db.models.user import User
from household.schemas.conflict import EmojiConflict, GroupConflict
from household.schemas.partnership import Rejected
from household.schemas.settings import (
    CurrencySyncStatus,
    EmojiSuggestion,
    PartnerInfo,
    SaveSettingsRequest,
    Saved,
    SharedSettingsInput,
    SharedSettingsRead,
)
from household.services import conflict_services
from household.services.base import BaseService
from household.services.conflict_services import ConflictSnapshotLoader
from household.services.exceptions import (
    AccountNotFoundError,
    EmojiConflictError,
    GroupConflictError,
    PartnershipRuleError,
    ValidationError,
)
from household.services.invite_services import InviteService
from household.services.notification_services import NotificationService
from household.services.orphan_services import OrphanRecoveryService
from household.services.split_ratio import invert_split_ratio


class SettingsService(BaseService):
    """Reads and saves a user's shared settings."""

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        notifier: Optional[NotificationService] = None,
        invite_ledger: Optional[InviteService] = None,
        clock: Callable[[], datetime] = utcnow,
        rng: Optional[random.Random] = None,
        **repositories
    ):
        super().__init__(correlation_id)
        if repositories:
            self._set_repositories(**repositories)

        for required in ("user_repo", "settings_repo", "invite_repo"):
            if not hasattr(self, required):
                raise ValidationError(
                    field=required,
                    message=f"{required} is required for SettingsService",
                    correlation_id=correlation_id
                )

        self.notifier = notifier or NotificationService(correlation_id)
        self.clock = clock
        self.rng = rng or random.Random(settings.EMOJI_SUGGESTION_SEED)
        self.invite_ledger = invite_ledger or InviteService(
            correlation_id,
            notifier=self.notifier,
            clock=clock,
            rng=self.rng,
            user_repo=self.user_repo,
            settings_repo=self.settings_repo,
            invite_repo=self.invite_repo
        )
        self.conflicts = ConflictSnapshotLoader(
            correlation_id,
            user_repo=self.user_repo,
            settings_repo=self.settings_repo
        )
        self.orphans = OrphanRecoveryService(
            correlation_id,
            user_repo=self.user_repo,
            settings_repo=self.settings_repo
        )

    def save_shared_settings(self, user_id: int, payload: Union[SaveSettingsRequest, dict], db: Session):
        """Validate, conflict-check, write and propagate a settings change.

        Only the fields present in ``payload`` are written. Currency is
        copied to every other member of the group as is; the split ratio is
        inverted for them. A primary that moves to another group takes its
        secondary along when the secondary is already there and demotes it
        otherwise; a pending invite advertising the old group is expired.

        Returns:
            Saved, EmojiConflict, GroupConflict or Rejected

        Raises:
            AccountNotFoundError: If the user does not exist
            ConcurrentModificationError: If a concurrent save claimed the
                same group and emoji first
        """
        raw = payload.model_dump(exclude_unset=True) if hasattr(payload, "model_dump") else dict(payload)
        try:
            data = SharedSettingsInput(**raw)
        except PydanticValidationError as e:
            error = e.errors()[0]
            # Validator messages come from the raised ValueError itself
            cause = error.get("ctx", {}).get("error")
            reason = str(cause) if cause is not None else error["msg"]
            self.log_operation("save_settings_invalid", user_id=user_id, reason=reason)
            return Rejected(reason=reason, error_code="VALIDATION_ERROR")

        values = data.model_dump(include=data.model_fields_set)
        self.log_operation("save_settings_attempt", user_id=user_id, fields=sorted(values.keys()))

        try:
            def _save_operation():
                user = self._require_user(user_id)
                row = self.settings_repo.get_or_create(user.id, settings.DEFAULT_EMOJI)
                acting = self.conflicts.snapshot(user, row)

                new_group = values.get("group_id", row.group_id)
                group_changed = "group_id" in values and new_group != row.group_id
                is_secondary = user.primary_user_id is not None

                if new_group and values.get("currency_code", row.currency_code) is None:
                    raise PartnershipRuleError("Please select a currency for your group", "VALIDATION_ERROR")
                if group_changed and is_secondary:
                    raise PartnershipRuleError(
                        "Your group is managed by your partner's account. Unlink first to choose another group.",
                        "SECONDARY_GROUP_LOCKED"
                    )
                if group_changed:
                    self._check_group_available(acting, new_group)

                emoji = values.get("emoji", row.emoji)
                if new_group and ("emoji" in values or group_changed):
                    self._check_emoji_available(user, row, new_group, emoji)

                self.settings_repo.update_fields(row, values)
                saved = Saved()
                notice = None

                if group_changed:
                    notice = self._follow_primary_group_change(user, acting, row, saved)
                self._propagate(user, row, values, group_changed, saved)
                return saved, notice

            saved, notice = self.run_in_transaction(db, _save_operation)

            if notice is not None:
                to, partner_name, primary_name = notice
                self.notifier.partner_disconnected(to=to, partner_name=partner_name, primary_name=primary_name)
            self.log_operation(
                "save_settings_success",
                user_id=user_id,
                propagated_to=len(saved.propagated_to),
                partner_orphaned=saved.partner_orphaned,
                invite_expired=saved.invite_expired
            )
            return saved

        except GroupConflictError as e:
            self.log_operation("save_settings_group_conflict", user_id=user_id)
            return GroupConflict(
                owner=e.owner,
                owner_persona=e.owner_persona,
                owner_has_partner=e.owner_has_partner,
                message=e.user_message
            )
        except EmojiConflictError as e:
            self.log_operation("save_settings_emoji_conflict", user_id=user_id)
            return EmojiConflict(owner=e.owner, emoji=e.emoji, suggested_emoji=e.suggested_emoji)
        except PartnershipRuleError as e:
            self.log_operation("save_settings_rejected", user_id=user_id, error_code=e.error_code)
            return Rejected(reason=e.reason, error_code=e.error_code)
        except Exception as e:
            self.log_operation("save_settings_error", user_id=user_id, error_type=type(e).__name__, error_message=str(e))
            raise

    def get_settings(self, user_id: int) -> SharedSettingsRead:
        self._require_user(user_id)
        row = self.settings_repo.get_by_user(user_id)
        if row is None:
            return SharedSettingsRead(user_id=user_id, emoji=settings.DEFAULT_EMOJI, use_description_as_payee=True)
        return SharedSettingsRead.model_validate(row)

    def get_currency_sync_status(self, user_id: int) -> CurrencySyncStatus:
        """Was the currency recently changed by the partner?"""
        row = self.settings_repo.get_by_user(user_id)
        synced_at = as_utc(row.currency_synced_at) if row else None
        if synced_at is None:
            return CurrencySyncStatus(recently_updated=False)
        window = timedelta(hours=settings.CURRENCY_SYNC_WINDOW_HOURS)
        return CurrencySyncStatus(recently_updated=self.clock() - synced_at < window, synced_at=synced_at)

    def get_partner_info(self, user_id: int, group_id: Optional[str]) -> Optional[PartnerInfo]:
        """Describe whoever else is on ``group_id``, preferring the linked partner."""
        user = self._require_user(user_id)
        members = self.conflicts.members_in_group(group_id, exclude_user_id=user.id)
        if not members:
            return None
        link = self.user_repo.get_link(user)
        partner_id = link.other(user.id) if link else None
        member = next((m for m in members if m.user_id == partner_id), members[0])
        return PartnerInfo(partner_name=member.display_name, emoji=member.emoji, currency_code=member.currency_code)

    def suggest_emoji(self, user_id: int, group_id: Optional[str] = None) -> EmojiSuggestion:
        row = self.settings_repo.get_by_user(user_id)
        group_id = group_id or (row.group_id if row else None)
        partner = self.get_partner_info(user_id, group_id) if group_id else None
        suggestion = conflict_services.suggest_emoji(
            partner.emoji if partner else None,
            row.emoji if row else None,
            self.rng
        )
        return EmojiSuggestion(emoji=suggestion)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_user(self, user_id: int) -> User:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise AccountNotFoundError(user_id=user_id, correlation_id=self.correlation_id)
        return user

    def _check_group_available(self, acting, new_group: Optional[str]) -> None:
        members = self.conflicts.members_in_group(new_group, exclude_user_id=acting.user_id)
        verdict = conflict_services.check_group_in_use(acting, new_group, members)
        if verdict.conflict:
            raise GroupConflictError(
                owner=verdict.owner,
                owner_persona=verdict.owner_persona,
                owner_has_partner=verdict.owner_has_partner,
                user_message=verdict.message,
                correlation_id=self.correlation_id
            )

    def _check_emoji_available(self, user: User, row: SharedSettings, group_id: str, emoji: str) -> None:
        members = self.conflicts.members_in_group(group_id, exclude_user_id=user.id)
        verdict = conflict_services.check_emoji_conflict(user.id, group_id, emoji, members)
        if verdict.conflict:
            raise EmojiConflictError(
                owner=verdict.owner,
                emoji=emoji,
                suggested_emoji=conflict_services.suggest_emoji(emoji, row.emoji, self.rng),
                correlation_id=self.correlation_id
            )

    def _follow_primary_group_change(self, user: User, acting, row: SharedSettings, saved: Saved):
        """Bring the secondary and any pending invite in line with a new group.

        Returns:
            Disconnect notice ``(to, partner_name, primary_name)`` when the
            secondary was demoted, else None
        """
        notice = None
        secondary = self.user_repo.get_secondary_of(user.id)
        if secondary is not None:
            secondary_view = self.conflicts.snapshot(secondary)
            verdict = conflict_services.check_secondary_orphan_risk(acting, row.group_id, secondary_view)
            if verdict.orphans_secondary:
                self.orphans.demote(secondary)
                saved.partner_orphaned = True
                saved.orphaned_partner_name = verdict.secondary_name
                notice = (secondary.email, secondary.display_name, user.display_name)
            else:
                saved.group_synced = True

        pending = self.invite_repo.get_pending_for_primary(user.id)
        invite_verdict = conflict_services.check_invite_orphan_risk(pending, row.group_id)
        if invite_verdict.stale:
            self.invite_ledger.expire_all_for_primary(user.id)
            saved.invite_expired = True
            saved.expired_invitee_name = invite_verdict.invitee_name
        return notice

    def _propagate(self, user: User, row: SharedSettings, values: dict, group_changed: bool, saved: Saved) -> None:
        if not row.group_id:
            return

        shared = {}
        if "currency_code" in values or group_changed:
            shared["currency_code"] = row.currency_code
        if ("default_split_ratio" in values or group_changed) and row.default_split_ratio:
            shared["default_split_ratio"] = invert_split_ratio(row.default_split_ratio)
        if ("group_name" in values or group_changed) and row.group_name:
            shared["group_name"] = row.group_name
        if not shared:
            return

        now = self.clock()
        for other_row, other_user in self.settings_repo.list_members_in_group(row.group_id, exclude_user_id=user.id):
            self.settings_repo.mark_synced(other_row, shared, now)
            saved.propagated_to.append(other_user.display_name)

        if saved.propagated_to:
            saved.currency_synced = "currency_code" in shared
            saved.split_ratio_synced = "default_split_ratio" in shared
            saved.group_synced = saved.group_synced or "group_name" in shared
