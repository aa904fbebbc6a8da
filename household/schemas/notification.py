from typing import Any, Dict
from pydantic import BaseModel


class EmailMessage(BaseModel):
	"""Outbound e-mail handed to the configured sender."""
	to: str
	subject: str
	template: str
	context: Dict[str, Any] = {}
