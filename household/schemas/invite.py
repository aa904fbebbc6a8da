"""Partner invite schemas."""

from datetime import datetime
from enum import Enum
from typing import Literal, Optional, Union
from typing_extensions import Annotated
from pydantic import BaseModel, EmailStr, Field, field_validator

from household.schemas.conflict import EmojiConflict
from household.schemas.partnership import Rejected
from household.schemas.settings import normalize_currency_code
from household.services.split_ratio import normalize_split_ratio


class InviteStatus(str, Enum):
	PENDING = "pending"
	ACCEPTED = "accepted"
	EXPIRED = "expired"


class PendingSettings(BaseModel):
	"""Shared settings a primary proposes before saving them."""
	group_id: Optional[str] = Field(None, max_length=64)
	group_name: Optional[str] = Field(None, max_length=100)
	currency_code: Optional[str] = None
	default_split_ratio: Optional[str] = None

	@field_validator("currency_code")
	@classmethod
	def validate_currency(cls, v):
		if v is None:
			return v
		return normalize_currency_code(v)

	@field_validator("default_split_ratio")
	@classmethod
	def validate_split_ratio(cls, v):
		if v is None:
			return v
		return normalize_split_ratio(v)


class CreateInviteInput(BaseModel):
	partner_email: EmailStr
	partner_name: Optional[str] = Field(None, max_length=100)
	pending_settings: Optional[PendingSettings] = None
	send_email: bool = True

	@field_validator("partner_email")
	@classmethod
	def normalize_email(cls, v):
		return str(v).lower().strip()

	@field_validator("partner_name")
	@classmethod
	def strip_name(cls, v):
		if v is None:
			return v
		return v.strip() or None


class ResendInviteInput(BaseModel):
	new_email: Optional[EmailStr] = None

	@field_validator("new_email")
	@classmethod
	def normalize_email(cls, v):
		if v is None:
			return v
		return str(v).lower().strip()


class AcceptInviteInput(BaseModel):
	emoji: Optional[str] = Field(None, min_length=1, max_length=16)


class InviteRead(BaseModel):
	id: int
	partner_email: str
	partner_name: Optional[str] = None
	status: InviteStatus
	expires_at: datetime
	email_reminder_count: int
	max_reminders: int

	class Config:
		from_attributes = True


# Results

class InviteCreated(BaseModel):
	status: Literal["created"] = "created"
	token: str
	expires_at: datetime
	reused: bool = False


class InviteResent(BaseModel):
	status: Literal["sent"] = "sent"
	sent: bool = True
	reminder_count: int


class MaxRemindersExceeded(BaseModel):
	status: Literal["max_reminders_exceeded"] = "max_reminders_exceeded"
	reminder_count: int
	max_reminders: int


class InvalidOrExpiredToken(BaseModel):
	status: Literal["invalid_or_expired_token"] = "invalid_or_expired_token"
	reason: Literal["not_found", "expired", "already_used"]


class InvitePreview(BaseModel):
	status: Literal["valid"] = "valid"
	primary_name: str
	partner_email: str
	partner_name: Optional[str] = None
	group_name: Optional[str] = None
	currency_code: Optional[str] = None
	default_split_ratio: Optional[str] = None
	primary_emoji: Optional[str] = None
	expires_at: datetime


class InviteAccepted(BaseModel):
	status: Literal["committed"] = "committed"
	primary_name: str
	emoji: str
	skip_onboarding: bool = False


CreateInviteResult = Annotated[Union[InviteCreated, Rejected], Field(discriminator="status")]

ResendInviteResult = Annotated[
	Union[InviteResent, MaxRemindersExceeded, Rejected],
	Field(discriminator="status"),
]

InvitePreviewResult = Annotated[Union[InvitePreview, InvalidOrExpiredToken], Field(discriminator="status")]

AcceptInviteResult = Annotated[
	Union[InviteAccepted, InvalidOrExpiredToken, EmojiConflict, Rejected],
	Field(discriminator="status"),
]
