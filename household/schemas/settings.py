"""Shared settings schemas."""

import re
from datetime import datetime
from typing import List, Literal, Optional, Union
from typing_extensions import Annotated
from pydantic import BaseModel, Field, field_validator, model_validator

from household.schemas.conflict import EmojiConflict, GroupConflict
from household.schemas.partnership import Rejected
from household.services.split_ratio import normalize_split_ratio

CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")


def normalize_currency_code(value: str) -> str:
	code = value.strip().upper()
	if not CURRENCY_PATTERN.match(code):
		raise ValueError("Currency must be a three-letter ISO code")
	return code


class SaveSettingsRequest(BaseModel):
	"""Raw settings-save body; validated by the service."""
	group_id: Optional[str] = None
	group_name: Optional[str] = None
	currency_code: Optional[str] = None
	default_split_ratio: Optional[str] = None
	emoji: Optional[str] = None
	use_description_as_payee: Optional[bool] = None
	custom_payee_name: Optional[str] = None


class SharedSettingsInput(BaseModel):
	"""Validated settings-save input.

	Only fields that were explicitly provided are written, so a client can
	update its emoji without resending the group.
	"""
	group_id: Optional[str] = Field(None, max_length=64)
	group_name: Optional[str] = Field(None, max_length=100)
	currency_code: Optional[str] = None
	default_split_ratio: Optional[str] = None
	emoji: Optional[str] = Field(None, min_length=1, max_length=16)
	use_description_as_payee: Optional[bool] = None
	custom_payee_name: Optional[str] = Field(None, max_length=100)

	@field_validator("group_id", "group_name", "emoji", "custom_payee_name")
	@classmethod
	def strip_text(cls, v):
		if v is None:
			return v
		return v.strip() or None

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

	@model_validator(mode="after")
	def group_requires_currency(self):
		if self.group_id and not self.currency_code:
			raise ValueError("Please select a currency for your group")
		return self


class SharedSettingsRead(BaseModel):
	user_id: int
	group_id: Optional[str] = None
	group_name: Optional[str] = None
	currency_code: Optional[str] = None
	default_split_ratio: Optional[str] = None
	currency_synced_at: Optional[datetime] = None
	emoji: str
	use_description_as_payee: bool
	custom_payee_name: Optional[str] = None

	class Config:
		from_attributes = True


class CurrencySyncStatus(BaseModel):
	recently_updated: bool
	synced_at: Optional[datetime] = None


class PartnerInfo(BaseModel):
	partner_name: str
	emoji: Optional[str] = None
	currency_code: Optional[str] = None


class EmojiSuggestion(BaseModel):
	emoji: Optional[str] = None


class Saved(BaseModel):
	status: Literal["saved"] = "saved"
	propagated_to: List[str] = []
	currency_synced: bool = False
	split_ratio_synced: bool = False
	group_synced: bool = False
	partner_orphaned: bool = False
	orphaned_partner_name: Optional[str] = None
	invite_expired: bool = False
	expired_invitee_name: Optional[str] = None


SaveSettingsResult = Annotated[
	Union[Saved, EmojiConflict, GroupConflict, Rejected],
	Field(discriminator="status"),
]
