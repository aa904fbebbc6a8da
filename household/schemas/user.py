from typing import Optional
from pydantic import BaseModel, EmailStr, Field

class UserBase(BaseModel):
	email: EmailStr
	name: str = Field(..., min_length=1, max_length=100)

class UserCreate(UserBase):
	password: str = Field(..., min_length=8, max_length=128)

class UserRead(UserBase):
	id: int
	persona: Optional[str] = None
	primary_user_id: Optional[int] = None
	onboarding_step: int = 0
	onboarding_complete: bool = False

	class Config:
		from_attributes = True
