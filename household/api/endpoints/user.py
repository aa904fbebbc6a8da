# household/api/endpoints/user.py
from fastapi import Depends
from household.api.router import create_router
from household.api.dependencies.auth import get_current_user
from household.db.models.user import User
from household.schemas.user import UserRead

router = create_router(name="users")

@router.get("/me", response_model=UserRead)
def read_current_profile(current_user: User = Depends(get_current_user)):
	"""Caller profile, including persona, primary link and onboarding progress."""
	return current_user
