from typing import Optional

from fastapi import Depends
from household.api.router import create_router
from sqlalchemy.orm import Session
from household.api.dependencies.database import get_db
from household.api.dependencies.auth import get_current_user
from household.api.dependencies.services import get_invite_service
from household.api.responses import result_response
from household.schemas.invite import AcceptInviteInput, CreateInviteInput, ResendInviteInput
from household.services.invite_services import InviteService

router = create_router(name="invites")

@router.post("", status_code=201)
def create_invite(
	invite_in: CreateInviteInput,
	db: Session = Depends(get_db),
	current_user=Depends(get_current_user),
	invite_service: InviteService = Depends(get_invite_service)
):
	"""
	Invite a partner, or get the invite that is already pending.
	"""
	result = invite_service.create_invite(current_user.id, invite_in, db)
	return result_response(result, success_status=200 if getattr(result, "reused", False) else 201)

@router.post("/resend")
def resend_invite(
	resend_in: Optional[ResendInviteInput] = None,
	db: Session = Depends(get_db),
	current_user=Depends(get_current_user),
	invite_service: InviteService = Depends(get_invite_service)
):
	"""Send the pending invite again, optionally to a corrected address."""
	result = invite_service.resend_invite(current_user.id, resend_in or ResendInviteInput(), db)
	return result_response(result)

@router.get("/{token}")
def preview_invite(
	token: str,
	db: Session = Depends(get_db),
	invite_service: InviteService = Depends(get_invite_service)
):
	"""Public invite landing data; no login required."""
	result = invite_service.get_invite_preview(token, db)
	return result_response(result)

@router.post("/{token}/accept")
def accept_invite(
	token: str,
	accept_in: Optional[AcceptInviteInput] = None,
	db: Session = Depends(get_db),
	current_user=Depends(get_current_user),
	invite_service: InviteService = Depends(get_invite_service)
):
	result = invite_service.accept_invite(token, current_user.id, accept_in or AcceptInviteInput(), db)
	return result_response(result)
