"""Persona, link and partnership status schemas.

Every operation result is a closed union tagged by ``status`` (or ``type``
for partnership status), so callers have to handle each outcome.
"""

from enum import Enum
from typing import Literal, Optional, Union
from typing_extensions import Annotated
from pydantic import BaseModel, ConfigDict, Field


class Persona(str, Enum):
	SOLO = "solo"
	DUAL = "dual"


class ConfirmationKind(str, Enum):
	PRIMARY_HAS_PARTNER = "primary_has_partner"
	SECONDARY_LEAVING = "secondary_leaving"


class PartnerLink(BaseModel):
	"""A primary/secondary pair, looked up from either side."""
	model_config = ConfigDict(frozen=True)

	primary_user_id: int
	secondary_user_id: int

	def other(self, user_id: int) -> int:
		return self.secondary_user_id if user_id == self.primary_user_id else self.primary_user_id


class SetPersonaInput(BaseModel):
	persona: Persona
	confirmed: bool = False


class Committed(BaseModel):
	status: Literal["committed"] = "committed"
	message: Optional[str] = None


class ConfirmationRequired(BaseModel):
	status: Literal["confirmation_required"] = "confirmation_required"
	kind: ConfirmationKind
	partner_name: Optional[str] = None
	group_name: Optional[str] = None


class Rejected(BaseModel):
	status: Literal["rejected"] = "rejected"
	reason: str
	error_code: str = "REJECTED"


class NotASecondary(BaseModel):
	status: Literal["not_a_secondary"] = "not_a_secondary"
	reason: str = "You are not linked to a primary account"


PersonaChangeResult = Annotated[
	Union[Committed, ConfirmationRequired, Rejected],
	Field(discriminator="status"),
]

UnlinkResult = Annotated[Union[Committed, NotASecondary], Field(discriminator="status")]


# Partnership status variants

class SoloStatus(BaseModel):
	type: Literal["solo"] = "solo"


class PrimaryWaitingStatus(BaseModel):
	type: Literal["primary_waiting"] = "primary_waiting"
	pending_invite_email: Optional[str] = None


class PrimaryStatus(BaseModel):
	type: Literal["primary"] = "primary"
	secondary_name: str
	secondary_email: str


class SecondaryStatus(BaseModel):
	type: Literal["secondary"] = "secondary"
	primary_name: str
	primary_email: str
	primary_emoji: Optional[str] = None


class OrphanedStatus(BaseModel):
	type: Literal["orphaned"] = "orphaned"


PartnershipStatus = Annotated[
	Union[SoloStatus, PrimaryWaitingStatus, PrimaryStatus, SecondaryStatus, OrphanedStatus],
	Field(discriminator="type"),
]
