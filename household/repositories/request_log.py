from typing import Optional, Dict, Any, Iterable, List
from sqlalchemy.orm import Session

from household.db.models.request_log import RequestLog

INBOUND_FIELDS = (
	"connection_type", "method", "path_template", "raw_path", "route_name",
	"status_code", "client_ip", "user_agent", "auth_type", "user_id",
)
OUTBOUND_FIELDS = ("connection_type", "status_code", "provider", "target", "error_code")


class RequestLogRepository:
	"""Telemetry inserts. Each insert commits on its own session."""

	def __init__(self, db: Session):
		self.db = db

	def insert_inbound(self, payload: Dict[str, Any]) -> RequestLog:
		return self._insert("inbound", payload, INBOUND_FIELDS)

	def insert_outbound(self, payload: Dict[str, Any]) -> RequestLog:
		payload = {**payload, "connection_type": payload.get("connection_type") or "sdk"}
		return self._insert("outbound", payload, OUTBOUND_FIELDS)

	def list_for_correlation(self, correlation_id: str) -> List[RequestLog]:
		return self.db.query(RequestLog).filter(
			RequestLog.correlation_id == correlation_id
		).order_by(RequestLog.id).all()

	def _insert(self, direction: str, payload: Dict[str, Any], fields: Iterable[str]) -> RequestLog:
		values = {name: _fit(name, payload.get(name)) for name in fields}
		log = RequestLog(
			direction=direction,
			correlation_id=_fit("correlation_id", payload.get("correlation_id")) or "unknown",
			duration_ms=int(payload.get("duration_ms") or 0),
			**values,
		)
		self.db.add(log)
		self.db.commit()
		return log


def _fit(column: str, value: Optional[Any]) -> Optional[Any]:
	# Clip strings to the column's declared length
	if not isinstance(value, str):
		return value
	length = getattr(RequestLog.__table__.c[column].type, "length", None)
	return value[:length] if length else value
