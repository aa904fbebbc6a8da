# Import all the models, so that Base has them before being
# imported by Alembic or used for create_all
from household.db.base_class import Base  # noqa: F401
from household.db.models.user import User  # noqa: F401
from household.db.models.shared_settings import SharedSettings  # noqa: F401
from household.db.models.partner_invite import PartnerInvite  # noqa: F401
from household.db.models.request_log import RequestLog  # noqa: F401
