from fastapi import Depends
from household.api.router import create_router
from sqlalchemy.orm import Session
from household.api.dependencies.database import get_db
from household.api.dependencies.auth import get_current_user
from household.api.dependencies.services import get_orphan_recovery_service, get_partnership_service
from household.api.responses import result_response
from household.schemas.partnership import PartnershipStatus, SetPersonaInput
from household.services.orphan_services import OrphanRecoveryService
from household.services.partnership_services import PartnershipService

router = create_router(name="partnership")

@router.get("/status", response_model=PartnershipStatus)
def get_status(
	current_user=Depends(get_current_user),
	partnership_service: PartnershipService = Depends(get_partnership_service)
):
	"""Whether the caller is solo, a primary (waiting or linked), a secondary or orphaned."""
	return partnership_service.get_partnership_status(current_user.id)

@router.put("/persona")
def set_persona(
	persona_in: SetPersonaInput,
	db: Session = Depends(get_db),
	current_user=Depends(get_current_user),
	partnership_service: PartnershipService = Depends(get_partnership_service)
):
	"""
	Switch between solo and duo.

	Leaving a partnership answers ``confirmation_required`` first; repeat the
	call with ``confirmed: true`` to go ahead.
	"""
	result = partnership_service.set_persona(current_user.id, persona_in, db)
	return result_response(result)

@router.post("/unlink")
def unlink_from_primary(
	db: Session = Depends(get_db),
	current_user=Depends(get_current_user),
	orphan_service: OrphanRecoveryService = Depends(get_orphan_recovery_service)
):
	"""Detach the caller from its primary account, e.g. after the primary was removed."""
	result = orphan_service.unlink_from_primary(current_user.id, db)
	return result_response(result)
