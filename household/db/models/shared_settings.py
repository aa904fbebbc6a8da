from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, DateTime, Index, text
from sqlalchemy.orm import relationship
from household.db.base_class import AuditMixin, Base

class SharedSettings(Base, AuditMixin):
	__tablename__ = "shared_settings"
	__table_args__ = (
		# Two live members of one group can never hold the same sync marker
		Index(
			"uq_shared_settings_group_emoji",
			"group_id",
			"emoji",
			unique=True,
			sqlite_where=text("is_deleted = 0"),
			postgresql_where=text("is_deleted = false"),
		),
	)

	id = Column(Integer, primary_key=True, index=True)
	user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)

	# Shared with the linked partner
	group_id = Column(String(64), nullable=True, index=True)
	group_name = Column(String(255), nullable=True)
	currency_code = Column(String(3), nullable=True)
	default_split_ratio = Column(String(32), nullable=True)
	currency_synced_at = Column(DateTime(timezone=True), nullable=True)

	# Personal
	emoji = Column(String(16), nullable=False, default="✅")
	use_description_as_payee = Column(Boolean, nullable=False, default=True)
	custom_payee_name = Column(String(255), nullable=True)

	user = relationship("User", back_populates="shared_settings")
