from fastapi import Depends, HTTPException, status
from household.api.router import create_router
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session

from household.api.dependencies.database import get_db
from household.api.dependencies.services import get_auth_service, get_user_repository
from household.repositories.user import UserRepository
from household.schemas.auth import Token, UserLogin
from household.schemas.user import UserCreate, UserRead
from household.services.auth_services import AuthService

router = create_router(name="auth")

@router.post("/register", status_code=201, response_model=UserRead)
def register(
    user_in: UserCreate,
    db: Session = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
    user_repo: UserRepository = Depends(get_user_repository)
) -> UserRead:
	"""Register a new user if the email is not already taken."""
	registration_result = auth_service.register_user(user_in, db)
	if not registration_result.success:
		raise HTTPException(
			status_code=400,
			detail=registration_result.message or "Registration failed"
		)
	return user_repo.get_by_id(registration_result.user_id)

@router.post("/login", response_model=Token)
def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    auth_service: AuthService = Depends(get_auth_service),
) -> Token:
    """Authenticate user and return access token."""
    try:
        login_data = UserLogin(email=form_data.username, password=form_data.password)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    auth_result = auth_service.authenticate_user_and_create_token(login_data)

    if not auth_result.success:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=auth_result.message or "Invalid credentials"
        )

    return auth_result.token
