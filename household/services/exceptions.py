"""Domain-specific exceptions for service layer operations.

This module provides a structured exception hierarchy with comprehensive error handling
capabilities for business operations, enabling proper error handling, logging, and
client response generation.

Architecture:
- ServiceError: Base exception with correlation ID and context support
- Category Base Classes: Domain-specific base exceptions (AuthError, BusinessError, etc.)
- Specific Exceptions: Concrete exceptions for specific business scenarios
- Error Context: Rich metadata and user-friendly message support
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union
from http import HTTPStatus


class ErrorSeverity(Enum):
    """Error severity levels for logging and monitoring."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Error categories for classification and handling."""
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    EXTERNAL_SERVICE = "external_service"
    INFRASTRUCTURE = "infrastructure"
    SYSTEM = "system"


class ServiceError(Exception):
    """Base exception for all service layer errors.
    
    Provides structured error information with correlation ID support,
    HTTP status mapping, and rich context for debugging and client responses.
    
    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code for client handling
        correlation_id: Request correlation ID for tracing
        details: Additional error context (sanitized for logging)
        user_message: User-friendly message for client display
        severity: Error severity level for logging/monitoring
        category: Error category for classification
        http_status: HTTP status code for API responses
    """
    
    def __init__(
        self, 
        message: str, 
        error_code: str = "SERVICE_ERROR",
        correlation_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.SYSTEM,
        http_status: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    ):
        """Initialize service error with comprehensive context.
        
        Args:
            message: Human-readable error message for logging
            error_code: Machine-readable error code for client handling
            correlation_id: Request correlation ID for tracing
            details: Additional error context (sanitized for logging)
            user_message: User-friendly message for client display
            severity: Error severity level
            category: Error category for classification
            http_status: HTTP status code for API responses
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.correlation_id = correlation_id
        self.details = details or {}
        self.user_message = user_message or message
        self.severity = severity
        self.category = category
        self.http_status = http_status

    def to_dict(self, include_sensitive: bool = False) -> Dict[str, Any]:
        """Convert exception to dictionary for logging or client response.
        
        Args:
            include_sensitive: Whether to include sensitive details
            
        Returns:
            Dictionary representation of the error
        """
        result = {
            "error_code": self.error_code,
            "message": self.user_message,
            "severity": self.severity.value,
            "category": self.category.value,
            "http_status": self.http_status.value
        }
        
        if self.correlation_id:
            result["correlation_id"] = self.correlation_id
            
        if include_sensitive and self.details:
            result["details"] = self.details
            result["internal_message"] = self.message
            
        return result

    def __str__(self) -> str:
        """String representation for logging."""
        return f"{self.error_code}: {self.message}"


# =============================================================================
# AUTHENTICATION & AUTHORIZATION ERRORS
# =============================================================================

class AuthError(ServiceError):
    """Base class for authentication and authorization errors."""
    
    def __init__(
        self,
        message: str,
        error_code: str,
        correlation_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.AUTHENTICATION,
        http_status: HTTPStatus = HTTPStatus.UNAUTHORIZED
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            correlation_id=correlation_id,
            details=details,
            user_message=user_message,
            severity=severity,
            category=category,
            http_status=http_status
        )


class UserNotFoundError(AuthError):
    """User not found during authentication."""
    
    def __init__(
        self, 
        email: str,
        correlation_id: Optional[str] = None
    ):
        super().__init__(
            message="User not found",
            error_code="USER_NOT_FOUND", 
            correlation_id=correlation_id,
            details={"email": email},
            user_message="User account not found. Please check your email address.",
            category=ErrorCategory.RESOURCE_NOT_FOUND,
            http_status=HTTPStatus.NOT_FOUND
        )


class UserInactiveError(AuthError):
    """User account is inactive."""
    
    def __init__(
        self, 
        user_id: int,
        correlation_id: Optional[str] = None
    ):
        super().__init__(
            message="User account is inactive",
            error_code="USER_INACTIVE",
            correlation_id=correlation_id,
            details={"user_id": user_id},
            user_message="Your account is inactive. Please contact support.",
            http_status=HTTPStatus.FORBIDDEN
        )


class InvalidPasswordError(AuthError):
    """Invalid password provided."""
    
    def __init__(
        self, 
        correlation_id: Optional[str] = None
    ):
        super().__init__(
            message="Invalid password",
            error_code="INVALID_PASSWORD",
            correlation_id=correlation_id,
            user_message="Invalid password. Please try again.",
            severity=ErrorSeverity.LOW
        )


class EmailAlreadyExistsError(AuthError):
    """Email address is already registered."""
    
    def __init__(
        self, 
        email: str,
        correlation_id: Optional[str] = None
    ):
        super().__init__(
            message="Email address already registered",
            error_code="EMAIL_EXISTS",
            correlation_id=correlation_id,
            details={"email": email},
            user_message="This email address is already registered. Please use a different email or try logging in.",
            category=ErrorCategory.CONFLICT,
            http_status=HTTPStatus.CONFLICT
        )


# =============================================================================
# VALIDATION ERRORS
# =============================================================================

class ValidationError(ServiceError):
    """Input validation failed."""
    
    def __init__(
        self, 
        field: str,
        message: str,
        correlation_id: Optional[str] = None,
        validation_errors: Optional[List[Dict[str, str]]] = None
    ):
        details = {"field": field, "validation_message": message}
        if validation_errors:
            details["validation_errors"] = validation_errors
            
        super().__init__(
            message=f"Validation failed for {field}: {message}",
            error_code="VALIDATION_ERROR",
            correlation_id=correlation_id,
            details=details,
            user_message=f"Invalid {field}: {message}",
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            http_status=HTTPStatus.BAD_REQUEST
        )


# =============================================================================
# BUSINESS DOMAIN ERRORS
# =============================================================================

class BusinessError(ServiceError):
    """Base class for business domain errors."""
    
    def __init__(
        self,
        message: str,
        error_code: str,
        correlation_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        http_status: HTTPStatus = HTTPStatus.BAD_REQUEST
    ):
        super().__init__(
            message=message,
            error_code=error_code,
            correlation_id=correlation_id,
            details=details,
            user_message=user_message,
            severity=severity,
            category=ErrorCategory.BUSINESS_RULE,
            http_status=http_status
        )


class ResourceNotFoundError(BusinessError):
    """Base class for resource not found errors."""
    
    def __init__(
        self,
        resource_type: str,
        resource_id: Union[int, str],
        user_id: Optional[int] = None,
        correlation_id: Optional[str] = None
    ):
        details = {"resource_type": resource_type, "resource_id": resource_id}
        if user_id is not None:
            details["user_id"] = user_id
            
        super().__init__(
            message=f"{resource_type} not found or access denied",
            error_code=f"{resource_type.upper()}_NOT_FOUND",
            correlation_id=correlation_id,
            details=details,
            user_message=f"{resource_type} not found or you don't have permission to access it.",
            http_status=HTTPStatus.NOT_FOUND
        )


# =============================================================================
# PARTNERSHIP DOMAIN ERRORS
# =============================================================================

class AccountNotFoundError(ResourceNotFoundError):
    """Referenced user account does not exist or was deleted."""

    def __init__(
        self,
        user_id: int,
        correlation_id: Optional[str] = None
    ):
        super().__init__(
            resource_type="Account",
            resource_id=user_id,
            correlation_id=correlation_id
        )


class PartnershipRuleError(BusinessError):
    """A persona, link or invite rule forbids the requested change."""

    def __init__(
        self,
        reason: str,
        error_code: str = "PARTNERSHIP_RULE_VIOLATION",
        correlation_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=reason,
            error_code=error_code,
            correlation_id=correlation_id,
            details=details,
            user_message=reason,
            severity=ErrorSeverity.LOW
        )
        self.reason = reason


class NotASecondaryError(BusinessError):
    """Unlink requested by a user who is not linked to a primary."""

    def __init__(
        self,
        user_id: int,
        correlation_id: Optional[str] = None
    ):
        super().__init__(
            message="User is not a secondary",
            error_code="NOT_A_SECONDARY",
            correlation_id=correlation_id,
            details={"user_id": user_id},
            user_message="You are not linked to a primary account.",
            severity=ErrorSeverity.LOW
        )


class InvalidInviteTokenError(BusinessError):
    """Invite token is unknown, expired or already used."""

    def __init__(
        self,
        reason: str,
        correlation_id: Optional[str] = None
    ):
        super().__init__(
            message=f"Invite token rejected: {reason}",
            error_code="INVALID_OR_EXPIRED_TOKEN",
            correlation_id=correlation_id,
            details={"reason": reason},
            user_message="This invite link is invalid or has expired.",
            severity=ErrorSeverity.LOW,
            http_status=HTTPStatus.NOT_FOUND
        )
        self.reason = reason


class MaxRemindersExceededError(BusinessError):
    """Invite e-mail reminder limit reached."""

    def __init__(
        self,
        reminder_count: int,
        max_reminders: int,
        correlation_id: Optional[str] = None
    ):
        super().__init__(
            message=f"Reminder limit reached ({reminder_count}/{max_reminders})",
            error_code="MAX_REMINDERS_EXCEEDED",
            correlation_id=correlation_id,
            details={"reminder_count": reminder_count, "max_reminders": max_reminders},
            user_message="The maximum number of reminder e-mails has already been sent.",
            severity=ErrorSeverity.LOW,
            http_status=HTTPStatus.CONFLICT
        )
        self.reminder_count = reminder_count
        self.max_reminders = max_reminders


class EmojiConflictError(BusinessError):
    """Emoji is already taken by another member of the group."""

    def __init__(
        self,
        owner: str,
        emoji: str,
        suggested_emoji: Optional[str],
        correlation_id: Optional[str] = None
    ):
        super().__init__(
            message=f"Emoji already used in group by {owner}",
            error_code="EMOJI_CONFLICT",
            correlation_id=correlation_id,
            details={"emoji": emoji, "suggested_emoji": suggested_emoji},
            user_message=f"{owner} is already using {emoji}. Please pick a different emoji.",
            severity=ErrorSeverity.LOW,
            http_status=HTTPStatus.CONFLICT
        )
        self.owner = owner
        self.emoji = emoji
        self.suggested_emoji = suggested_emoji


class GroupConflictError(BusinessError):
    """Group is already claimed by an account the user is not linked to."""

    def __init__(
        self,
        owner: str,
        owner_persona: Optional[str],
        owner_has_partner: bool,
        user_message: str,
        correlation_id: Optional[str] = None
    ):
        super().__init__(
            message=f"Group already claimed by {owner}",
            error_code="GROUP_CONFLICT",
            correlation_id=correlation_id,
            details={"owner_persona": owner_persona, "owner_has_partner": owner_has_partner},
            user_message=user_message,
            severity=ErrorSeverity.LOW,
            http_status=HTTPStatus.CONFLICT
        )
        self.owner = owner
        self.owner_persona = owner_persona
        self.owner_has_partner = owner_has_partner


class ConcurrentModificationError(ServiceError):
    """A concurrent write won a uniqueness race; the caller should retry."""

    def __init__(
        self,
        constraint: Optional[str] = None,
        correlation_id: Optional[str] = None
    ):
        super().__init__(
            message=f"Concurrent modification detected ({constraint or 'unknown constraint'})",
            error_code="CONCURRENT_MODIFICATION",
            correlation_id=correlation_id,
            details={"constraint": constraint},
            user_message="Someone else changed this at the same time. Please try again.",
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.CONFLICT,
            http_status=HTTPStatus.CONFLICT
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def create_error_response(
    error: ServiceError,
    include_details: bool = False
) -> Dict[str, Any]:
    """Create standardized error response dictionary.
    
    Args:
        error: ServiceError instance
        include_details: Whether to include sensitive details
        
    Returns:
        Standardized error response dictionary
    """
    return error.to_dict(include_sensitive=include_details)


def get_http_status_for_error(error: Exception) -> HTTPStatus:
    """Get appropriate HTTP status code for an exception.
    
    Args:
        error: Exception instance
        
    Returns:
        Appropriate HTTP status code
    """
    if isinstance(error, ServiceError):
        return error.http_status
    
    # Default mappings for non-ServiceError exceptions
    error_mappings = {
        ValueError: HTTPStatus.BAD_REQUEST,
        TypeError: HTTPStatus.BAD_REQUEST,
        KeyError: HTTPStatus.NOT_FOUND,
        AttributeError: HTTPStatus.INTERNAL_SERVER_ERROR,
        NotImplementedError: HTTPStatus.NOT_IMPLEMENTED,
    }
    
    return error_mappings.get(type(error), HTTPStatus.INTERNAL_SERVER_ERROR)
