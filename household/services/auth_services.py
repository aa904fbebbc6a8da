"""Authentication service for user registration and login operations.

Registration hashes the password with bcrypt; login verifies it and issues a
short-lived JWT bearer token whose subject is the user id.
"""

from typing import Optional
from sqlalchemy.orm import Session

from household.services.base import BaseService
from household.services.exceptions import (
    UserNotFoundError, 
    UserInactiveError,
    InvalidPasswordError,
    EmailAlreadyExistsError,
    ValidationError
)
from household.db.models.user import User
from household.core.security import get_password_hash, verify_password, create_access_token
from household.schemas.user import UserCreate
from household.schemas.auth import UserLogin, AuthResult, RegistrationResult, Token
from household.core.config import settings


class AuthService(BaseService):
    """Registers accounts and exchanges credentials for bearer tokens.

    Failures the caller can act on (duplicate e-mail, unknown user, wrong
    password) come back as unsuccessful result objects; anything else is
    logged and re-raised.
    """
    
    def __init__(self, correlation_id: Optional[str] = None, **repositories):
        """Initialize authentication service.
        
        Args:
            correlation_id: Optional request correlation ID for logging
            **repositories: Repository instances (user_repo, etc.)
        """
        super().__init__(correlation_id)
        if repositories:
            self._set_repositories(**repositories)
        
        # Ensure required repositories are available
        if not hasattr(self, 'user_repo'):
            raise ValidationError(
                field="user_repo",
                message="UserRepository is required for AuthService",
                correlation_id=correlation_id
            )
    
    def register_user(self, user_in: UserCreate, db: Session) -> RegistrationResult:
        """Create a new user if the email is not already registered.

        Args:
            user_in: User creation data containing email, name, and password
            db: Database session for transaction management
            
        Returns:
            RegistrationResult with success status and user details or error info
            
        Raises:
            EmailAlreadyExistsError: If email is already registered
            ValidationError: If input validation fails
        """
        # Sanitize and validate input
        sanitized_email = user_in.email.lower().strip()
        self.log_operation(
            "register_user_attempt", 
            email_domain=sanitized_email.split('@')[1] if '@' in sanitized_email else 'unknown'
        )
        
        try:
            def _register_operation() -> User:
                # Check if user already exists
                if self.user_repo.email_exists(sanitized_email):
                    raise EmailAlreadyExistsError(
                        email=sanitized_email,
                        correlation_id=self.correlation_id
                    )

                # Create new user with hashed password
                hashed_password = get_password_hash(user_in.password)
                new_user = self.user_repo.create_user(user_in, hashed_password)
                
                self.log_operation(
                    "register_user_success", 
                    user_id=new_user.id,
                    email_domain=sanitized_email.split('@')[1]
                )
                return new_user
            
            user = self.run_in_transaction(db, _register_operation)
            return RegistrationResult(
                success=True,
                user_id=user.id,
                message="User registered successfully"
            )
            
        except EmailAlreadyExistsError as e:
            self.log_operation(
                "register_user_failed",
                error_code=e.error_code,
                reason="email_already_exists"
            )
            return RegistrationResult(
                success=False,
                error_code=e.error_code,
                message=e.message
            )
        except Exception as e:
            self.log_operation(
                "register_user_error",
                error_type=type(e).__name__,
                error_message=str(e)
            )
            raise

    def authenticate_user_and_create_token(self, login_data: UserLogin) -> AuthResult:
        """Authenticate a user by email and password.

        Args:
            login_data: Validated login credentials from UserLogin schema
            
        Returns:
            AuthResult with token on success or error details on failure
            
        Raises:
            UserNotFoundError: If user doesn't exist
            UserInactiveError: If user account is inactive  
            InvalidPasswordError: If password is incorrect
        """
        # Input is already validated by Pydantic schema
        sanitized_email = login_data.email.lower().strip()
        
        self.log_operation(
            "authenticate_user_attempt", 
            email_domain=sanitized_email.split('@')[1] if '@' in sanitized_email else 'unknown'
        )
        
        try:
            # Find user by email
            user = self.user_repo.get_by_email(sanitized_email)
            if not user:
                raise UserNotFoundError(
                    email=sanitized_email,
                    correlation_id=self.correlation_id
                )
            
            # Check if user is active
            if not user.is_active:
                raise UserInactiveError(
                    user_id=user.id,
                    correlation_id=self.correlation_id
                )
            
            # Verify password
            if not verify_password(login_data.password, user.hashed_password):
                raise InvalidPasswordError(correlation_id=self.correlation_id)

            access_token = create_access_token({"sub": str(user.id)})
            expires_in = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
            
            self.log_operation(
                "authenticate_user_success", 
                user_id=user.id,
                email_domain=sanitized_email.split('@')[1]
            )
            
            return AuthResult(
                success=True,
                token=Token(
                    access_token=access_token,
                    token_type="bearer",
                    expires_in=expires_in
                )
            )
            
        except (UserNotFoundError, UserInactiveError, InvalidPasswordError) as e:
            self.log_operation(
                "authenticate_user_failed",
                error_code=e.error_code,
                reason=e.error_code.lower()
            )
            return AuthResult(
                success=False,
                error_code=e.error_code,
                message=e.message
            )
        except Exception as e:
            self.log_operation(
                "authenticate_user_error",
                error_type=type(e).__name__,
                error_message=str(e)
            )
            raise
