from typing import Optional

from fastapi import Depends, HTTPException
from household.api.router import create_router
from sqlalchemy.orm import Session
from household.api.dependencies.database import get_db
from household.api.dependencies.auth import get_current_user
from household.api.dependencies.services import get_settings_service
from household.api.responses import result_response
from household.schemas.settings import (
	CurrencySyncStatus,
	EmojiSuggestion,
	PartnerInfo,
	SaveSettingsRequest,
	SharedSettingsRead,
)
from household.services.settings_services import SettingsService

router = create_router(name="settings")

@router.get("", response_model=SharedSettingsRead)
def get_settings(
	current_user=Depends(get_current_user),
	settings_service: SettingsService = Depends(get_settings_service)
):
	return settings_service.get_settings(current_user.id)

@router.put("")
def save_settings(
	settings_in: SaveSettingsRequest,
	db: Session = Depends(get_db),
	current_user=Depends(get_current_user),
	settings_service: SettingsService = Depends(get_settings_service)
):
	"""
	Save shared settings and push currency and split ratio to the partner.
	"""
	result = settings_service.save_shared_settings(current_user.id, settings_in, db)
	return result_response(result)

@router.get("/currency-sync", response_model=CurrencySyncStatus)
def get_currency_sync(
	current_user=Depends(get_current_user),
	settings_service: SettingsService = Depends(get_settings_service)
):
	return settings_service.get_currency_sync_status(current_user.id)

@router.get("/partner", response_model=PartnerInfo)
def get_partner(
	group_id: str,
	current_user=Depends(get_current_user),
	settings_service: SettingsService = Depends(get_settings_service)
):
	partner = settings_service.get_partner_info(current_user.id, group_id)
	if partner is None:
		raise HTTPException(status_code=404, detail="No one else is using this group")
	return partner

@router.get("/emoji-suggestion", response_model=EmojiSuggestion)
def get_emoji_suggestion(
	group_id: Optional[str] = None,
	current_user=Depends(get_current_user),
	settings_service: SettingsService = Depends(get_settings_service)
):
	return settings_service.suggest_emoji(current_user.id, group_id)
