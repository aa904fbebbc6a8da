from __future__ import annotations

import logging
import time
import uuid
from random import random
from typing import Callable, Optional, Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.background import BackgroundTask

from household.core.config import settings
from household.core.security import decode_access_token
from household.db.session import SessionLocal
from household.repositories.request_log import RequestLogRepository

logger = logging.getLogger(__name__)


def generate_correlation_id(existing: Optional[str]) -> str:
	if existing and existing.strip():
		return existing.strip()
	return str(uuid.uuid4())


class RequestLoggingMiddleware(BaseHTTPMiddleware):
	"""Attach correlation IDs to every request and persist inbound request logs."""

	async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
		correlation_id = generate_correlation_id(request.headers.get("X-Correlation-ID"))
		setattr(request.state, "correlation_id", correlation_id)

		sampled_out = (settings.LOG_SAMPLE_RATE < 1.0) and (random() > float(settings.LOG_SAMPLE_RATE))

		start_ns = time.monotonic_ns()
		response = await call_next(request)
		duration_ms = int((time.monotonic_ns() - start_ns) / 1_000_000)

		response.headers["X-Correlation-ID"] = correlation_id
		if settings.ENABLE_REQUEST_LOGGING and not sampled_out:
			payload = _build_inbound_payload(request, correlation_id, response.status_code, duration_ms)
			response.background = _chain_background(response.background, BackgroundTask(_insert_inbound, payload))
		return response


def _chain_background(existing: Optional[BackgroundTask], extra: BackgroundTask) -> BackgroundTask:
	# Endpoint-scheduled tasks (e-mail dispatch) must still run
	if existing is None:
		return extra

	async def _run_both() -> None:
		await existing()
		await extra()

	return BackgroundTask(_run_both)


def _build_inbound_payload(request: Request, correlation_id: str, status_code: int, duration_ms: int) -> dict:
	# Route template and name may be unavailable for 404 or early errors
	path_template = None
	route_name = None
	route = request.scope.get("route")
	if route is not None:
		path_template = getattr(route, "path", None)
		route_name = getattr(request.scope.get("endpoint"), "__name__", None)

	xff = request.headers.get("x-forwarded-for")
	client_ip = (xff.split(",")[0].strip() if xff else (request.client.host if request.client else None))

	auth_header = request.headers.get("authorization") or ""
	auth_type = "none"
	user_id = None
	if auth_header.lower().startswith("bearer "):
		auth_type = "bearer"
		user_id = decode_access_token(auth_header[7:].strip())

	return {
		"correlation_id": correlation_id,
		"connection_type": "http",
		"method": request.method,
		# Paths with parameters can carry invite tokens; keep only the template
		"raw_path": path_template if request.scope.get("path_params") else request.url.path,
		"path_template": path_template or request.url.path,
		"route_name": route_name,
		"status_code": status_code,
		"duration_ms": duration_ms,
		"client_ip": client_ip,
		"user_agent": (request.headers.get("user-agent") or "")[:256],
		"auth_type": auth_type,
		"user_id": user_id,
	}


def _insert_inbound(payload: dict) -> None:
	db = SessionLocal()
	try:
		RequestLogRepository(db).insert_inbound(payload)
	except Exception:
		# Telemetry must never affect the request path
		logger.warning("Failed to persist inbound request log", exc_info=True, extra={"correlation_id": payload.get("correlation_id")})
	finally:
		db.close()


def log_outbound_call(provider: str, target: str, operation: str, correlation_id: Optional[str], call: Callable[[], Any]) -> Any:
	"""Execute outbound call and record its duration.

	Args:
		provider: External provider name (e.g., email)
		target: Target entity (e.g., template name)
		operation: Operation name
		correlation_id: Correlation ID for linkage
		call: Callable that performs the operation

	Returns:
		Result of `call()`
	"""
	if not settings.ENABLE_OUTBOUND_LOGGING:
		return call()

	start_ns = time.monotonic_ns()
	error_code: Optional[str] = None
	try:
		return call()
	except Exception as e:
		error_code = type(e).__name__
		raise
	finally:
		duration_ms = int((time.monotonic_ns() - start_ns) / 1_000_000)
		payload = {
			"correlation_id": correlation_id or str(uuid.uuid4()),
			"connection_type": "sdk",
			"provider": provider,
			"target": f"{operation}:{target}",
			"duration_ms": duration_ms,
			"error_code": error_code,
		}
		db = SessionLocal()
		try:
			RequestLogRepository(db).insert_outbound(payload)
		except Exception:
			logger.warning("Failed to persist outbound call log", exc_info=True, extra={"correlation_id": correlation_id})
		finally:
			db.close()
