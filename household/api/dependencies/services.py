"""Service dependency providers for FastAPI dependency injection."""

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session
from typing import Optional

from household.api.dependencies.database import get_db
from household.core.observability import generate_correlation_id
from household.services.auth_services import AuthService
from household.services.invite_services import InviteService
from household.services.notification_services import EmailSender, NotificationService, log_email_sender
from household.services.orphan_services import OrphanRecoveryService
from household.services.partnership_services import PartnershipService
from household.services.settings_services import SettingsService
from household.repositories.user import UserRepository
from household.repositories.shared_settings import SharedSettingsRepository
from household.repositories.partner_invite import PartnerInviteRepository


def get_correlation_id(request: Request) -> Optional[str]:
	"""Extract or generate correlation ID for logging and tracing."""
	cid = getattr(request.state, "correlation_id", None)
	if not cid:
		cid = generate_correlation_id(request.headers.get("X-Correlation-ID"))
		setattr(request.state, "correlation_id", cid)
	return cid


# Repository Dependencies
def get_user_repository(
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id)
) -> UserRepository:
    """Provide UserRepository instance."""
    return UserRepository(db=db, correlation_id=correlation_id)


def get_settings_repository(
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id)
) -> SharedSettingsRepository:
    """Provide SharedSettingsRepository instance."""
    return SharedSettingsRepository(db=db, correlation_id=correlation_id)


def get_invite_repository(
    db: Session = Depends(get_db),
    correlation_id: Optional[str] = Depends(get_correlation_id)
) -> PartnerInviteRepository:
    """Provide PartnerInviteRepository instance."""
    return PartnerInviteRepository(db=db, correlation_id=correlation_id)


# Outbound e-mail
def get_email_sender() -> EmailSender:
    """Provide the callable that delivers e-mails; override to plug in a provider."""
    return log_email_sender


def get_notification_service(
    background_tasks: BackgroundTasks,
    sender: EmailSender = Depends(get_email_sender),
    correlation_id: Optional[str] = Depends(get_correlation_id)
) -> NotificationService:
    """Provide NotificationService that delivers after the response is sent."""
    return NotificationService(correlation_id=correlation_id, background_tasks=background_tasks, sender=sender)


# Service Dependencies
def get_auth_service(
    user_repo: UserRepository = Depends(get_user_repository),
    correlation_id: Optional[str] = Depends(get_correlation_id)
) -> AuthService:
    """Provide AuthService instance with user repository and correlation ID."""
    return AuthService(correlation_id=correlation_id, user_repo=user_repo)


def get_invite_service(
    user_repo: UserRepository = Depends(get_user_repository),
    settings_repo: SharedSettingsRepository = Depends(get_settings_repository),
    invite_repo: PartnerInviteRepository = Depends(get_invite_repository),
    notifier: NotificationService = Depends(get_notification_service),
    correlation_id: Optional[str] = Depends(get_correlation_id)
) -> InviteService:
    """Provide InviteService instance with required repositories.

    Args:
        user_repo: User repository from dependency injection
        settings_repo: Shared settings repository from dependency injection
        invite_repo: Partner invite repository from dependency injection
        notifier: Notification service bound to the request's background tasks
        correlation_id: Optional correlation ID from request headers

    Returns:
        Configured InviteService instance
    """
    return InviteService(
        correlation_id=correlation_id,
        notifier=notifier,
        user_repo=user_repo,
        settings_repo=settings_repo,
        invite_repo=invite_repo
    )


def get_partnership_service(
    user_repo: UserRepository = Depends(get_user_repository),
    settings_repo: SharedSettingsRepository = Depends(get_settings_repository),
    invite_repo: PartnerInviteRepository = Depends(get_invite_repository),
    notifier: NotificationService = Depends(get_notification_service),
    correlation_id: Optional[str] = Depends(get_correlation_id)
) -> PartnershipService:
    """Provide PartnershipService instance with required repositories."""
    return PartnershipService(
        correlation_id=correlation_id,
        notifier=notifier,
        user_repo=user_repo,
        settings_repo=settings_repo,
        invite_repo=invite_repo
    )


def get_settings_service(
    user_repo: UserRepository = Depends(get_user_repository),
    settings_repo: SharedSettingsRepository = Depends(get_settings_repository),
    invite_repo: PartnerInviteRepository = Depends(get_invite_repository),
    notifier: NotificationService = Depends(get_notification_service),
    correlation_id: Optional[str] = Depends(get_correlation_id)
) -> SettingsService:
    """Provide SettingsService instance with required repositories."""
    return SettingsService(
        correlation_id=correlation_id,
        notifier=notifier,
        user_repo=user_repo,
        settings_repo=settings_repo,
        invite_repo=invite_repo
    )


def get_orphan_recovery_service(
    user_repo: UserRepository = Depends(get_user_repository),
    settings_repo: SharedSettingsRepository = Depends(get_settings_repository),
    correlation_id: Optional[str] = Depends(get_correlation_id)
) -> OrphanRecoveryService:
    """Provide OrphanRecoveryService instance."""
    return OrphanRecoveryService(correlation_id=correlation_id, user_repo=user_repo, settings_repo=settings_repo)
