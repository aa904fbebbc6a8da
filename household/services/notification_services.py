"""Outbound partner e-mails.

Messages are handed to a sender callable after the owning transaction has
committed. Under a request they run as FastAPI background tasks; elsewhere
they are delivered inline. A failed delivery is logged and otherwise ignored.
"""

import logging
from typing import Callable, Optional

from fastapi import BackgroundTasks

from household.core.config import settings
from household.core.observability import log_outbound_call
from household.schemas.notification import EmailMessage
from household.services.base import BaseService

EmailSender = Callable[[EmailMessage], None]

logger = logging.getLogger(__name__)


def log_email_sender(message: EmailMessage) -> None:
    """Default sender: record the message instead of delivering it."""
    logger.info(
        "Outbound e-mail",
        extra={
            "email_template": message.template,
            "email_subject": message.subject,
            "to_domain": message.to.split("@")[-1],
            "from_address": settings.EMAIL_FROM,
        }
    )


def invite_url(token: str) -> str:
    return f"{settings.APP_BASE_URL.rstrip('/')}/invite/{token}"


class NotificationService(BaseService):
    """Queues partner-invite, partner-joined and partner-disconnected e-mails."""

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        background_tasks: Optional[BackgroundTasks] = None,
        sender: Optional[EmailSender] = None,
    ):
        super().__init__(correlation_id)
        self.background_tasks = background_tasks
        self.sender = sender or log_email_sender

    def partner_invite(self, to: str, primary_name: str, token: str, partner_name: Optional[str] = None,
                       group_name: Optional[str] = None, reminder: bool = False) -> None:
        subject = f"{primary_name} invited you to share expenses"
        if reminder:
            subject = f"Reminder: {subject}"
        self._dispatch(EmailMessage(
            to=to,
            subject=subject,
            template="partner_invite",
            context={
                "primary_name": primary_name,
                "partner_name": partner_name,
                "group_name": group_name,
                "invite_url": invite_url(token),
                "reminder": reminder,
            },
        ))

    def partner_joined(self, to: str, primary_name: str, partner_name: str) -> None:
        self._dispatch(EmailMessage(
            to=to,
            subject=f"{partner_name} joined your household",
            template="partner_joined",
            context={"primary_name": primary_name, "partner_name": partner_name},
        ))

    def partner_disconnected(self, to: str, partner_name: Optional[str], primary_name: Optional[str]) -> None:
        self._dispatch(EmailMessage(
            to=to,
            subject="Your household link was removed",
            template="partner_disconnected",
            context={
                "partner_name": partner_name,
                "primary_name": primary_name,
                "settings_url": f"{settings.APP_BASE_URL.rstrip('/')}/settings",
            },
        ))

    def _dispatch(self, message: EmailMessage) -> None:
        self.log_operation("queue_email", email_template=message.template, deferred=self.background_tasks is not None)
        if self.background_tasks is not None:
            self.background_tasks.add_task(self._deliver, message)
        else:
            self._deliver(message)

    def _deliver(self, message: EmailMessage) -> None:
        try:
            log_outbound_call("email", message.template, "send", self.correlation_id, lambda: self.sender(message))
        except Exception as e:
            # Delivery never affects an already committed change
            self.logger.error(
                "E-mail delivery failed",
                exc_info=True,
                extra={
                    "correlation_id": self.correlation_id,
                    "service": self.__class__.__name__,
                    "email_template": message.template,
                    "error": str(e)
                }
            )
