"""Render service result variants as HTTP responses."""

from typing import Dict

from fastapi.responses import JSONResponse
from pydantic import BaseModel

# Result variants that are not a success map to these statuses
VARIANT_STATUS_CODES: Dict[str, int] = {
	"rejected": 400,
	"not_a_secondary": 400,
	"invalid_or_expired_token": 404,
	"emoji_conflict": 409,
	"group_conflict": 409,
	"max_reminders_exceeded": 409,
}


def result_response(result: BaseModel, success_status: int = 200) -> JSONResponse:
	status_code = VARIANT_STATUS_CODES.get(getattr(result, "status", None), success_status)
	return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))
