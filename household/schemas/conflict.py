"""Conflict verdicts and the result variants built from them."""

from typing import Literal, Optional
from pydantic import BaseModel


class MemberSnapshot(BaseModel):
	"""Read-only view of a user used by the conflict checks."""
	user_id: int
	display_name: str
	persona: Optional[str] = None
	primary_user_id: Optional[int] = None
	partner_user_id: Optional[int] = None
	group_id: Optional[str] = None
	emoji: Optional[str] = None
	currency_code: Optional[str] = None

	@property
	def has_partner(self) -> bool:
		return self.partner_user_id is not None


class EmojiVerdict(BaseModel):
	conflict: bool = False
	owner: Optional[str] = None
	emoji: Optional[str] = None


class GroupVerdict(BaseModel):
	conflict: bool = False
	owner: Optional[str] = None
	owner_persona: Optional[str] = None
	owner_has_partner: bool = False
	message: Optional[str] = None


class SecondaryOrphanVerdict(BaseModel):
	orphans_secondary: bool = False
	secondary_user_id: Optional[int] = None
	secondary_name: Optional[str] = None


class InviteOrphanVerdict(BaseModel):
	stale: bool = False
	invite_id: Optional[int] = None
	invitee_name: Optional[str] = None


class EmojiConflict(BaseModel):
	status: Literal["emoji_conflict"] = "emoji_conflict"
	owner: str
	emoji: str
	suggested_emoji: Optional[str] = None


class GroupConflict(BaseModel):
	status: Literal["group_conflict"] = "group_conflict"
	owner: str
	owner_persona: Optional[str] = None
	owner_has_partner: bool = False
	message: str
