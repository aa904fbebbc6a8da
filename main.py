# main.py
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from household.api.endpoints import auth, user, partnership, invites, settings
from household.core.observability import RequestLoggingMiddleware
# Import all models to ensure relationships are properly resolved
from household.db import base  # This imports all models
from household.services.exceptions import ServiceError, create_error_response, get_http_status_for_error

logger = logging.getLogger(__name__)

app = FastAPI(title="Household Sync")
app.add_middleware(RequestLoggingMiddleware)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.correlation_id is None:
        exc.correlation_id = getattr(request.state, "correlation_id", None)
    logger.warning(
        "Service error reached the API boundary",
        extra={"correlation_id": exc.correlation_id, "error_code": exc.error_code}
    )
    return JSONResponse(status_code=get_http_status_for_error(exc).value, content=create_error_response(exc))


app.include_router(auth.router, prefix="/auth")
app.include_router(user.router, prefix="/users")
app.include_router(partnership.router, prefix="/partnership")
app.include_router(invites.router, prefix="/invites")
app.include_router(settings.router, prefix="/settings")
