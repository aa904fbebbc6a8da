from sqlalchemy import Column, Integer, String, DateTime, Index
from sqlalchemy.sql import func

from household.db.base_class import Base


class RequestLog(Base):
	"""Inbound HTTP requests and outbound calls (e-mail sends), keyed by correlation id."""
	__tablename__ = "request_logs"
	__table_args__ = (
		Index("ix_request_logs_correlation_direction", "correlation_id", "direction"),
	)

	id = Column(Integer, primary_key=True, index=True)
	created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
	correlation_id = Column(String(64), nullable=False)
	direction = Column(String(16), nullable=False, default="inbound")  # inbound, outbound
	connection_type = Column(String(16), nullable=True)

	# Inbound
	method = Column(String(16), nullable=True)
	path_template = Column(String(512), nullable=True, index=True)
	raw_path = Column(String(512), nullable=True)
	route_name = Column(String(128), nullable=True)
	status_code = Column(Integer, nullable=True, index=True)
	client_ip = Column(String(64), nullable=True)
	user_agent = Column(String(256), nullable=True)
	auth_type = Column(String(16), nullable=True)
	user_id = Column(Integer, nullable=True, index=True)

	# Outbound
	provider = Column(String(64), nullable=True, index=True)
	target = Column(String(256), nullable=True)
	error_code = Column(String(64), nullable=True)

	duration_ms = Column(Integer, nullable=False)
