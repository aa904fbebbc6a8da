from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Index, text
from sqlalchemy.orm import relationship
from household.db.base_class import AuditMixin, Base


class PartnerInvite(Base, AuditMixin):
	__tablename__ = "partner_invites"
	__table_args__ = (
		# At most one pending invite per primary
		Index(
			"uq_partner_invites_pending_primary",
			"primary_user_id",
			unique=True,
			sqlite_where=text("status = 'pending'"),
			postgresql_where=text("status = 'pending'"),
		),
	)

	id = Column(Integer, primary_key=True, index=True)
	token = Column(String(32), unique=True, index=True, nullable=False)
	primary_user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
	partner_email = Column(String, nullable=False)
	partner_name = Column(String, nullable=True)
	status = Column(String(16), nullable=False, default="pending", index=True)  # pending, accepted, expired

	# What the invite advertises to the invitee
	group_id = Column(String(64), nullable=True)
	group_name = Column(String(255), nullable=True)
	currency_code = Column(String(3), nullable=True)
	default_split_ratio = Column(String(32), nullable=True)
	primary_emoji = Column(String(16), nullable=True)

	expires_at = Column(DateTime(timezone=True), nullable=False)
	email_sent_at = Column(DateTime(timezone=True), nullable=True)
	email_reminder_count = Column(Integer, nullable=False, default=0)
	max_reminders = Column(Integer, nullable=False, default=3)
	accepted_by_user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
	accepted_at = Column(DateTime(timezone=True), nullable=True)

	primary_user = relationship("User", back_populates="invites", foreign_keys=[primary_user_id])
