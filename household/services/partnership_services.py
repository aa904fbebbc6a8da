"""Persona changes and partnership status.

Persona transitions:

    solo -> dual                       committed immediately
    primary with secondary -> solo     confirmation, then secondary demoted,
                                       caller switched to solo, invites expired
    primary without secondary -> solo  committed, pending invites expired
    secondary -> solo                  confirmation, then caller demoted
    anything else                      plain persona update
"""

from typing import Optional, Tuple

from sqlalchemy.orm import Session

from household.db.models.user import User
from household.schemas.partnership import (
    Committed,
    ConfirmationKind,
    ConfirmationRequired,
    OrphanedStatus,
    Persona,
    PrimaryStatus,
    PrimaryWaitingStatus,
    Rejected,
    SecondaryStatus,
    SetPersonaInput,
    SoloStatus,
)
from household.services.base import BaseService
from household.services.exceptions import AccountNotFoundError, PartnershipRuleError, ValidationError
from household.services.invite_services import InviteService
from household.services.notification_services import NotificationService
from household.services.orphan_services import OrphanRecoveryService

DisconnectNotice = Tuple[str, str, str]


class PartnershipService(BaseService):
    """Applies persona changes and reports who a user is linked to."""

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        notifier: Optional[NotificationService] = None,
        invite_ledger: Optional[InviteService] = None,
        **repositories
    ):
        super().__init__(correlation_id)
        if repositories:
            self._set_repositories(**repositories)

        for required in ("user_repo", "settings_repo", "invite_repo"):
            if not hasattr(self, required):
                raise ValidationError(
                    field=required,
                    message=f"{required} is required for PartnershipService",
                    correlation_id=correlation_id
                )

        self.notifier = notifier or NotificationService(correlation_id)
        self.invite_ledger = invite_ledger or InviteService(
            correlation_id,
            notifier=self.notifier,
            user_repo=self.user_repo,
            settings_repo=self.settings_repo,
            invite_repo=self.invite_repo
        )
        self.orphans = OrphanRecoveryService(
            correlation_id,
            user_repo=self.user_repo,
            settings_repo=self.settings_repo
        )

    def set_persona(self, user_id: int, persona_in: SetPersonaInput, db: Session):
        """Switch a user between solo and dual.

        Leaving a partnership is destructive, so it first answers with
        ConfirmationRequired and only commits when called again with
        ``confirmed=True``.

        Returns:
            Committed, ConfirmationRequired or Rejected

        Raises:
            AccountNotFoundError: If the user does not exist
        """
        target = persona_in.persona.value
        self.log_operation("set_persona_attempt", user_id=user_id, target=target, confirmed=persona_in.confirmed)

        try:
            def _persona_operation():
                user = self._require_user(user_id)
                if not user.is_active:
                    raise PartnershipRuleError("Your account is inactive", "ACCOUNT_INACTIVE")

                if user.primary_user_id is not None:
                    return self._change_secondary(user, target, persona_in.confirmed)
                if target == Persona.SOLO.value and user.persona == Persona.DUAL.value:
                    return self._primary_to_solo(user, persona_in.confirmed)
                if user.persona == target:
                    return Committed(message="Persona unchanged"), None

                self.user_repo.update_fields(user, {"persona": target})
                return Committed(), None

            result, notice = self.run_in_transaction(db, _persona_operation)

            if notice is not None:
                to, partner_name, primary_name = notice
                self.notifier.partner_disconnected(to=to, partner_name=partner_name, primary_name=primary_name)
            self.log_operation("set_persona_done", user_id=user_id, status=result.status)
            return result

        except PartnershipRuleError as e:
            self.log_operation("set_persona_rejected", user_id=user_id, error_code=e.error_code)
            return Rejected(reason=e.reason, error_code=e.error_code)
        except Exception as e:
            self.log_operation("set_persona_error", user_id=user_id, error_type=type(e).__name__, error_message=str(e))
            raise

    def get_partnership_status(self, user_id: int):
        """Resolve the user's role in a partnership.

        A secondary whose primary no longer exists is reported as orphaned.
        """
        user = self._require_user(user_id)

        if user.primary_user_id is not None:
            primary = self.orphans.resolve_primary(user)
            if primary is None:
                self.log_operation("partnership_status", user_id=user_id, status="orphaned")
                return OrphanedStatus()
            primary_settings = self.settings_repo.get_by_user(primary.id)
            return SecondaryStatus(
                primary_name=primary.display_name,
                primary_email=primary.email,
                primary_emoji=primary_settings.emoji if primary_settings else None,
            )

        secondary = self.user_repo.get_secondary_of(user.id)
        if secondary is not None:
            return PrimaryStatus(secondary_name=secondary.display_name, secondary_email=secondary.email)

        if user.persona == Persona.DUAL.value:
            invite = self.invite_repo.get_pending_for_primary(user.id)
            return PrimaryWaitingStatus(pending_invite_email=invite.partner_email if invite else None)

        return SoloStatus()

    def _change_secondary(self, user: User, target: str, confirmed: bool):
        if target != Persona.SOLO.value:
            if user.persona != target:
                self.user_repo.update_fields(user, {"persona": target})
            return Committed(message="Persona unchanged"), None

        if not confirmed:
            primary = self.orphans.resolve_primary(user)
            own_settings = self.settings_repo.get_by_user(user.id)
            return ConfirmationRequired(
                kind=ConfirmationKind.SECONDARY_LEAVING,
                partner_name=primary.display_name if primary else None,
                group_name=own_settings.group_name if own_settings else None,
            ), None

        self.orphans.demote(user)
        return Committed(message="You left the shared account"), None

    def _primary_to_solo(self, user: User, confirmed: bool):
        notice: Optional[DisconnectNotice] = None
        secondary = self.user_repo.get_secondary_of(user.id)

        if secondary is not None:
            if not confirmed:
                own_settings = self.settings_repo.get_by_user(user.id)
                return ConfirmationRequired(
                    kind=ConfirmationKind.PRIMARY_HAS_PARTNER,
                    partner_name=secondary.display_name,
                    group_name=own_settings.group_name if own_settings else None,
                ), None
            self.orphans.demote(secondary)
            notice = (secondary.email, secondary.display_name, user.display_name)

        self.invite_ledger.expire_all_for_primary(user.id)
        self.user_repo.update_fields(user, {"persona": Persona.SOLO.value})
        return Committed(), notice

    def _require_user(self, user_id: int) -> User:
        user = self.user_repo.get_by_id(user_id)
        if user is None:
            raise AccountNotFoundError(user_id=user_id, correlation_id=self.correlation_id)
        return user
