from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from household.api.dependencies.database import get_db
from household.core.security import decode_access_token
from household.db.models.user import User
from household.repositories.user import UserRepository

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
	credentials_exception = HTTPException(
		status_code=status.HTTP_401_UNAUTHORIZED,
		detail="Could not validate credentials",
		headers={"WWW-Authenticate": "Bearer"},
	)
	user_id = decode_access_token(token)
	if user_id is None:
		raise credentials_exception

	user = UserRepository(db).get_by_id(user_id)
	if user is None or not user.is_active:
		raise credentials_exception
	return user
