"""Partner invite ledger.

An invite is created by a primary in duo mode and consumed by the partner who
follows its link. A primary holds at most one pending invite; asking for an
invite again returns the live one instead of issuing a second token.
"""

import random
import secrets
import string
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Tuple

from sqlalchemy.orm import Session

from household.core.clock import as_utc, utcnow
from household.core.config import settings
from household.db.models.partner_invite import PartnerInvite
from household.db.models.shared_settings import SharedSettings
from household.db.models.user import User
from household.schemas.conflict import EmojiConflict
from household.schemas.invite import (
    AcceptInviteInput,
    CreateInviteInput,
    InviteAccepted,
    InviteCreated,
    InviteResent,
    InviteStatus,
    InvalidOrExpiredToken,
    InvitePreview,
    MaxRemindersExceeded,
    ResendInviteInput,
)
from household.schemas.partnership import Persona, Rejected
from household.services.base import BaseService
from household.services.conflict_services import ConflictSnapshotLoader, check_emoji_conflict, suggest_emoji
from household.services.exceptions import (
    AccountNotFoundError,
    EmojiConflictError,
    InvalidInviteTokenError,
    MaxRemindersExceededError,
    PartnershipRuleError,
    ValidationError,
)
from household.services.notification_services import NotificationService
from household.services.split_ratio import invert_split_ratio

TOKEN_ALPHABET = string.ascii_letters + string.digits
TOKEN_LENGTH = 12

ADVERTISED_FIELDS = ("group_id", "group_name", "currency_code", "default_split_ratio")


def generate_invite_token() -> str:
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


class InviteService(BaseService):
    """Creates, resends, previews and consumes partner invites."""

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        notifier: Optional[NotificationService] = None,
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
                    message=f"{required} is required for InviteService",
                    correlation_id=correlation_id
                )

        self.notifier = notifier or NotificationService(correlation_id)
        self.clock = clock
        self.rng = rng or random.Random(settings.EMOJI_SUGGESTION_SEED)
        self.conflicts = ConflictSnapshotLoader(
            correlation_id,
            user_repo=self.user_repo,
            settings_repo=self.settings_repo
        )

    # ------------------------------------------------------------------
    # Create / resend
    # ------------------------------------------------------------------

    def create_invite(self, user_id: int, invite_in: CreateInviteInput, db: Session):
        """Return the primary's live invite, or issue a new one.

        Returns:
            InviteCreated (``reused`` tells whether an existing invite was
            returned) or Rejected when the caller may not invite

        Raises:
            AccountNotFoundError: If the caller does not exist
        """
        self.log_operation("create_invite_attempt", user_id=user_id, has_pending_settings=invite_in.pending_settings is not None)

        try:
            def _create_operation() -> Tuple[PartnerInvite, bool, User]:
                user = self._require_user(user_id)
                self._ensure_can_invite(user, invite_in.partner_email)
                now = self.clock()

                existing = self.invite_repo.get_pending_for_primary(user.id)
                if existing is not None:
                    if as_utc(existing.expires_at) > now:
                        return existing, True, user
                    self.invite_repo.update_fields(existing, {"status": InviteStatus.EXPIRED.value})

                advertised = self._advertised_for_new_invite(user, invite_in)
                invite = self.invite_repo.create({
                    "token": self._unique_token(),
                    "primary_user_id": user.id,
                    "partner_email": invite_in.partner_email,
                    "partner_name": invite_in.partner_name,
                    "status": InviteStatus.PENDING.value,
                    "expires_at": now + timedelta(days=settings.INVITE_EXPIRY_DAYS),
                    "email_sent_at": now if invite_in.send_email else None,
                    "email_reminder_count": 0,
                    "max_reminders": settings.INVITE_MAX_REMINDERS,
                    **advertised,
                })
                return invite, False, user

            invite, reused, user = self.run_in_transaction(db, _create_operation)

            if not reused and invite_in.send_email:
                self.notifier.partner_invite(
                    to=invite.partner_email,
                    primary_name=user.display_name,
                    token=invite.token,
                    partner_name=invite.partner_name,
                    group_name=invite.group_name,
                )

            self.log_operation("create_invite_success", user_id=user_id, invite_id=invite.id, reused=reused)
            return InviteCreated(token=invite.token, expires_at=as_utc(invite.expires_at), reused=reused)

        except PartnershipRuleError as e:
            self.log_operation("create_invite_rejected", user_id=user_id, error_code=e.error_code)
            return Rejected(reason=e.reason, error_code=e.error_code)
        except Exception as e:
            self.log_operation("create_invite_error", user_id=user_id, error_type=type(e).__name__, error_message=str(e))
            raise

    def resend_invite(self, user_id: int, resend_in: ResendInviteInput, db: Session):
        """Send the pending invite e-mail again.

        The first send is free; each resend counts as a reminder until
        ``max_reminders`` is reached, after which nothing changes.

        Returns:
            InviteResent, MaxRemindersExceeded, or Rejected when there is no
            live pending invite
        """
        self.log_operation("resend_invite_attempt", user_id=user_id, new_email=resend_in.new_email is not None)

        try:
            def _resend_operation():
                user = self._require_user(user_id)
                invite = self.invite_repo.get_pending_for_primary(user.id)
                if invite is None:
                    raise PartnershipRuleError("There is no pending invite to resend", "NO_PENDING_INVITE")

                now = self.clock()
                if as_utc(invite.expires_at) <= now:
                    self.invite_repo.update_fields(invite, {"status": InviteStatus.EXPIRED.value})
                    return Rejected(reason="This invite has expired. Please create a new one.", error_code="INVITE_EXPIRED"), None, user

                if invite.email_reminder_count >= invite.max_reminders:
                    raise MaxRemindersExceededError(
                        reminder_count=invite.email_reminder_count,
                        max_reminders=invite.max_reminders,
                        correlation_id=self.correlation_id
                    )

                fields = {"email_reminder_count": invite.email_reminder_count + 1, "email_sent_at": now}
                if resend_in.new_email:
                    fields["partner_email"] = resend_in.new_email
                self.invite_repo.update_fields(invite, fields)
                return InviteResent(sent=True, reminder_count=invite.email_reminder_count), invite, user

            result, invite, user = self.run_in_transaction(db, _resend_operation)

            if invite is not None:
                self.notifier.partner_invite(
                    to=invite.partner_email,
                    primary_name=user.display_name,
                    token=invite.token,
                    partner_name=invite.partner_name,
                    group_name=invite.group_name,
                    reminder=True,
                )
            self.log_operation("resend_invite_done", user_id=user_id, status=result.status)
            return result

        except MaxRemindersExceededError as e:
            self.log_operation("resend_invite_limit", user_id=user_id, reminder_count=e.reminder_count)
            return MaxRemindersExceeded(reminder_count=e.reminder_count, max_reminders=e.max_reminders)
        except PartnershipRuleError as e:
            self.log_operation("resend_invite_rejected", user_id=user_id, error_code=e.error_code)
            return Rejected(reason=e.reason, error_code=e.error_code)
        except Exception as e:
            self.log_operation("resend_invite_error", user_id=user_id, error_type=type(e).__name__, error_message=str(e))
            raise

    # ------------------------------------------------------------------
    # Preview / accept
    # ------------------------------------------------------------------

    def get_invite_preview(self, token: str, db: Session):
        """Describe what accepting ``token`` would link the invitee into."""
        try:
            def _preview_operation():
                invite, primary = self._load_live_invite(token)
                if primary is None:
                    return invite
                advertised = self._advertised_for_acceptance(invite, self.settings_repo.get_by_user(primary.id))
                return InvitePreview(
                    primary_name=primary.display_name,
                    partner_email=invite.partner_email,
                    partner_name=invite.partner_name,
                    primary_emoji=advertised["primary_emoji"],
                    expires_at=as_utc(invite.expires_at),
                    **{field: advertised[field] for field in ADVERTISED_FIELDS if field != "group_id"},
                )

            return self.run_in_transaction(db, _preview_operation)

        except InvalidInviteTokenError as e:
            self.log_operation("invite_preview_invalid", reason=e.reason)
            return InvalidOrExpiredToken(reason=e.reason)

    def accept_invite(self, token: str, user_id: int, accept_in: AcceptInviteInput, db: Session):
        """Link the caller as secondary of the invite's primary.

        The shared settings are copied from the primary, with the split ratio
        turned around so it reads from the secondary's side. The caller's
        personal fields survive, except an emoji that would collide with the
        primary's.

        Returns:
            InviteAccepted, InvalidOrExpiredToken, EmojiConflict (only for an
            explicitly chosen emoji) or Rejected
        """
        self.log_operation("accept_invite_attempt", user_id=user_id, explicit_emoji=accept_in.emoji is not None)

        try:
            def _accept_operation():
                invite, primary = self._load_live_invite(token)
                if primary is None:
                    return invite, None

                user = self._require_user(user_id)
                self._ensure_can_accept(invite, user, primary)

                now = self.clock()
                primary_settings = self.settings_repo.get_by_user(primary.id)
                advertised = self._advertised_for_acceptance(invite, primary_settings)
                own_settings = self.settings_repo.get_by_user(user.id)
                emoji = self._resolve_accept_emoji(user, primary, advertised, own_settings, accept_in.emoji)

                self.expire_all_for_primary(user.id)
                self.user_repo.link_secondary(user, primary.id)
                skip_onboarding = bool(user.onboarding_complete)
                if not skip_onboarding:
                    self.user_repo.update_fields(user, {"onboarding_step": 0})

                if own_settings is None:
                    own_settings = self.settings_repo.get_or_create(user.id, emoji)
                self.settings_repo.update_fields(own_settings, {
                    "group_id": advertised["group_id"],
                    "group_name": advertised["group_name"],
                    "currency_code": advertised["currency_code"],
                    "default_split_ratio": invert_split_ratio(advertised["default_split_ratio"]),
                    "currency_synced_at": now if advertised["currency_code"] else None,
                    "emoji": emoji,
                })
                self.invite_repo.mark_accepted(invite, user.id, now)

                result = InviteAccepted(primary_name=primary.display_name, emoji=emoji, skip_onboarding=skip_onboarding)
                return result, (primary.email, primary.display_name, user.display_name)

            result, joined = self.run_in_transaction(db, _accept_operation)

            if joined is not None:
                primary_email, primary_name, partner_name = joined
                self.notifier.partner_joined(to=primary_email, primary_name=primary_name, partner_name=partner_name)
            self.log_operation("accept_invite_done", user_id=user_id, status=result.status)
            return result

        except InvalidInviteTokenError as e:
            self.log_operation("accept_invite_invalid", user_id=user_id, reason=e.reason)
            return InvalidOrExpiredToken(reason=e.reason)
        except EmojiConflictError as e:
            self.log_operation("accept_invite_emoji_conflict", user_id=user_id)
            return EmojiConflict(owner=e.owner, emoji=e.emoji, suggested_emoji=e.suggested_emoji)
        except PartnershipRuleError as e:
            self.log_operation("accept_invite_rejected", user_id=user_id, error_code=e.error_code)
            return Rejected(reason=e.reason, error_code=e.error_code)
        except Exception as e:
            self.log_operation("accept_invite_error", user_id=user_id, error_type=type(e).__name__, error_message=str(e))
            raise

    def expire_all_for_primary(self, primary_user_id: int) -> List[PartnerInvite]:
        """Expire every pending invite of a primary.

        Runs inside the caller's transaction and never commits.
        """
        expired = self.invite_repo.expire_pending_for_primary(primary_user_id)
        if expired:
            self.log_operation("expire_all_for_primary", primary_user_id=primary_user_id, count=len(expired))
        return expired

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_user(self, user_id: int) -> User:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise AccountNotFoundError(user_id=user_id, correlation_id=self.correlation_id)
        return user

    def _ensure_can_invite(self, user: User, partner_email: str) -> None:
        if user.primary_user_id is not None:
            raise PartnershipRuleError("Partner accounts cannot invite someone else", "SECONDARY_CANNOT_INVITE")
        if user.persona != Persona.DUAL.value:
            raise PartnershipRuleError("Switch to Duo mode before inviting a partner", "NOT_IN_DUO_MODE")
        if self.user_repo.get_secondary_of(user.id) is not None:
            raise PartnershipRuleError("You already have a partner", "ALREADY_HAS_PARTNER")
        if partner_email == user.email.lower():
            raise PartnershipRuleError("You cannot invite yourself", "SELF_INVITE")

    def _ensure_can_accept(self, invite: PartnerInvite, user: User, primary: User) -> None:
        if invite.primary_user_id == user.id:
            raise PartnershipRuleError("You cannot accept your own invite", "OWN_INVITE")
        if user.primary_user_id is not None:
            raise PartnershipRuleError("You are already linked to a primary account", "ALREADY_SECONDARY")
        if self.user_repo.get_secondary_of(user.id) is not None:
            raise PartnershipRuleError("You already have a partner linked to your account", "ALREADY_HAS_PARTNER")
        if self.user_repo.get_secondary_of(primary.id) is not None:
            raise PartnershipRuleError(f"{primary.display_name} already has a partner", "INVITER_HAS_PARTNER")

    def _load_live_invite(self, token: str):
        """Look up a pending, unexpired invite and its primary.

        Returns ``(invite, primary)``. When the invite turns out to be past
        its expiry (or its primary is gone) it is marked expired and
        ``(InvalidOrExpiredToken, None)`` is returned so the caller can
        commit the change.

        Raises:
            InvalidInviteTokenError: If the token is unknown or not pending
        """
        invite = self.invite_repo.get_by_token(token)
        if invite is None:
            raise InvalidInviteTokenError("not_found", correlation_id=self.correlation_id)
        if invite.status == InviteStatus.ACCEPTED.value:
            raise InvalidInviteTokenError("already_used", correlation_id=self.correlation_id)
        if invite.status != InviteStatus.PENDING.value:
            raise InvalidInviteTokenError("expired", correlation_id=self.correlation_id)

        primary = self.user_repo.get_by_id(invite.primary_user_id)
        if as_utc(invite.expires_at) <= self.clock() or primary is None:
            self.invite_repo.update_fields(invite, {"status": InviteStatus.EXPIRED.value})
            return InvalidOrExpiredToken(reason="expired"), None
        return invite, primary

    def _advertised_for_new_invite(self, user: User, invite_in: CreateInviteInput) -> dict:
        current = self.settings_repo.get_by_user(user.id)
        if invite_in.pending_settings is not None:
            advertised = invite_in.pending_settings.model_dump()
        else:
            advertised = {field: getattr(current, field, None) for field in ADVERTISED_FIELDS}
        advertised["primary_emoji"] = current.emoji if current else settings.DEFAULT_EMOJI
        return advertised

    def _advertised_for_acceptance(self, invite: PartnerInvite, primary_settings: Optional[SharedSettings]) -> dict:
        # Live settings win once the primary has saved a group
        source = primary_settings if primary_settings is not None and primary_settings.group_id else invite
        advertised = {field: getattr(source, field) for field in ADVERTISED_FIELDS}
        advertised["primary_emoji"] = primary_settings.emoji if primary_settings else invite.primary_emoji
        return advertised

    def _resolve_accept_emoji(
        self,
        user: User,
        primary: User,
        advertised: dict,
        own_settings: Optional[SharedSettings],
        explicit_emoji: Optional[str],
    ) -> str:
        current = own_settings.emoji if own_settings else None
        emoji = explicit_emoji or current or settings.DEFAULT_EMOJI
        primary_emoji = advertised["primary_emoji"]

        owner = None
        if emoji == primary_emoji:
            owner = primary.display_name
        else:
            members = self.conflicts.members_in_group(advertised["group_id"], exclude_user_id=user.id)
            verdict = check_emoji_conflict(user.id, advertised["group_id"], emoji, members)
            if verdict.conflict:
                owner = verdict.owner
        if owner is None:
            return emoji

        suggestion = suggest_emoji(primary_emoji, emoji, self.rng)
        if explicit_emoji or suggestion is None:
            raise EmojiConflictError(
                owner=owner,
                emoji=emoji,
                suggested_emoji=suggestion,
                correlation_id=self.correlation_id
            )
        self.log_operation("accept_invite_emoji_replaced", user_id=user.id)
        return suggestion

    def _unique_token(self) -> str:
        token = generate_invite_token()
        while self.invite_repo.token_exists(token):
            token = generate_invite_token()
        return token
