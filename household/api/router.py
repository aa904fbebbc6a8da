from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from fastapi import APIRouter, Depends


# Error responses every partnership router can produce. Result variants that
# are not a success (rejected, conflict, expired token) use these codes too.
DEFAULT_ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    400: {"description": "Rejected by a partnership rule or invalid settings"},
    401: {"description": "Missing or invalid bearer token"},
    404: {"description": "Unknown, expired or already used invite"},
    409: {"description": "Emoji or group conflict, or a concurrent change"},
    500: {"description": "Internal Server Error"},
}


def create_router(
    *,
    name: Optional[str] = None,
    dependencies: Optional[Sequence[Depends]] = None,
    default_responses: Optional[Dict[int, Dict[str, Any]]] = None,
) -> APIRouter:
    """Create an APIRouter carrying the shared error responses.

    Args:
        name: Logical name of the router, also used as its OpenAPI tag.
        dependencies: Optional dependencies applied to all routes in the router.
        default_responses: Optional map to override default error responses.
    """
    router = APIRouter(
        tags=[name] if name else None,
        dependencies=list(dependencies) if dependencies else None,
        responses=(default_responses or DEFAULT_ERROR_RESPONSES),
    )
    if name:
        setattr(router, "name", name)
    return router
