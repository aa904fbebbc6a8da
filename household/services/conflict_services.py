"""Conflict detection for shared groups, sync emojis and partner links.

The check functions are pure: they take member snapshots and candidate values
and return verdicts, leaving it to the caller to block, warn or proceed.
``ConflictSnapshotLoader`` is the only piece that reads from the database and
it never writes.
"""

import random
from typing import Iterable, List, Optional

from household.core.config import settings
from household.db.models.shared_settings import SharedSettings
from household.db.models.user import User
from household.schemas.conflict import (
    EmojiVerdict,
    GroupVerdict,
    InviteOrphanVerdict,
    MemberSnapshot,
    SecondaryOrphanVerdict,
)
from household.schemas.partnership import Persona
from household.services.base import BaseService
from household.services.exceptions import ValidationError

EMOJI_SUGGESTIONS = ("✅", "🤴", "👸", "🤑", "😸", "💰", "💸", "🌚", "🌞")


def check_emoji_conflict(
    acting_user_id: int,
    group_id: Optional[str],
    candidate_emoji: Optional[str],
    members: Iterable[MemberSnapshot],
) -> EmojiVerdict:
    """Find another member of ``group_id`` already using ``candidate_emoji``."""
    if not group_id or not candidate_emoji:
        return EmojiVerdict()
    for member in members:
        if member.user_id == acting_user_id:
            continue
        if member.group_id == group_id and member.emoji == candidate_emoji:
            return EmojiVerdict(conflict=True, owner=member.display_name, emoji=candidate_emoji)
    return EmojiVerdict()


def group_in_use_message(owner: MemberSnapshot) -> str:
    if owner.persona != Persona.DUAL.value:
        return (
            f"This group is already used by {owner.display_name} (Solo mode). "
            "To share this group, ask them to switch to Duo mode and invite you."
        )
    if owner.has_partner:
        return (
            f"This group is already used by {owner.display_name}. "
            "Their Duo account is full. Please select a different group."
        )
    return (
        f"This group is already used by {owner.display_name}. "
        "Ask them to invite you to their Duo account."
    )


def check_group_in_use(
    acting: MemberSnapshot,
    candidate_group_id: Optional[str],
    members: Iterable[MemberSnapshot],
) -> GroupVerdict:
    """Report the first non-partner already on ``candidate_group_id``.

    Only a change of group is checked; keeping the current group never
    conflicts.
    """
    if not candidate_group_id or candidate_group_id == acting.group_id:
        return GroupVerdict()
    for member in members:
        if member.user_id in (acting.user_id, acting.partner_user_id):
            continue
        if member.group_id == candidate_group_id:
            return GroupVerdict(
                conflict=True,
                owner=member.display_name,
                owner_persona=member.persona,
                owner_has_partner=member.has_partner,
                message=group_in_use_message(member),
            )
    return GroupVerdict()


def check_secondary_orphan_risk(
    primary: MemberSnapshot,
    new_group_id: Optional[str],
    secondary: Optional[MemberSnapshot],
) -> SecondaryOrphanVerdict:
    """Would moving ``primary`` to ``new_group_id`` leave the secondary behind?"""
    if secondary is None or new_group_id == primary.group_id:
        return SecondaryOrphanVerdict()
    if secondary.group_id == new_group_id:
        return SecondaryOrphanVerdict()
    return SecondaryOrphanVerdict(
        orphans_secondary=True,
        secondary_user_id=secondary.user_id,
        secondary_name=secondary.display_name,
    )


def check_invite_orphan_risk(invite, new_group_id: Optional[str]) -> InviteOrphanVerdict:
    """Would accepting ``invite`` link into a group the primary has left?

    An invite that advertised no group can never go stale.
    """
    if invite is None or invite.group_id is None or invite.group_id == new_group_id:
        return InviteOrphanVerdict()
    return InviteOrphanVerdict(
        stale=True,
        invite_id=invite.id,
        invitee_name=invite.partner_name or invite.partner_email,
    )


def suggest_emoji(
    partner_emoji: Optional[str],
    current_emoji: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> Optional[str]:
    """Pick a sync emoji that differs from both the partner's and the current one.

    The default checkmark wins when it is free; otherwise one of the remaining
    suggestions is drawn from ``rng``.
    """
    available = [e for e in EMOJI_SUGGESTIONS if e not in (partner_emoji, current_emoji)]
    if not available:
        return None
    if settings.DEFAULT_EMOJI in available:
        return settings.DEFAULT_EMOJI
    rng = rng or random.Random(settings.EMOJI_SUGGESTION_SEED)
    return rng.choice(available)


class ConflictSnapshotLoader(BaseService):
    """Builds the member snapshots the conflict checks run on."""

    def __init__(self, correlation_id: Optional[str] = None, **repositories):
        super().__init__(correlation_id)
        if repositories:
            self._set_repositories(**repositories)

        for required in ("user_repo", "settings_repo"):
            if not hasattr(self, required):
                raise ValidationError(
                    field=required,
                    message=f"{required} is required for ConflictSnapshotLoader",
                    correlation_id=correlation_id
                )

    def snapshot(self, user: User, settings_row: Optional[SharedSettings] = None) -> MemberSnapshot:
        if settings_row is None:
            settings_row = self.settings_repo.get_by_user(user.id)
        link = self.user_repo.get_link(user)
        return MemberSnapshot(
            user_id=user.id,
            display_name=user.display_name,
            persona=user.persona,
            primary_user_id=user.primary_user_id,
            partner_user_id=link.other(user.id) if link else None,
            group_id=settings_row.group_id if settings_row else None,
            emoji=settings_row.emoji if settings_row else None,
            currency_code=settings_row.currency_code if settings_row else None,
        )

    def members_in_group(self, group_id: Optional[str], exclude_user_id: Optional[int] = None) -> List[MemberSnapshot]:
        """Snapshots of every live user currently on ``group_id``."""
        if not group_id:
            return []
        members = [
            self.snapshot(user, settings_row)
            for settings_row, user in self.settings_repo.list_members_in_group(group_id, exclude_user_id)
        ]
        self.log_operation("members_in_group", group_id=group_id, count=len(members))
        return members
