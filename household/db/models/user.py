from sqlalchemy import Column, Integer, String, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from household.db.base_class import AuditMixin, Base

class User(Base, AuditMixin):
	__tablename__ = "users"

	id = Column(Integer, primary_key=True, index=True)
	email = Column(String, unique=True, index=True, nullable=False)
	name = Column(String, nullable=False)
	hashed_password = Column(String, nullable=False)
	is_active = Column(Boolean, default=True)

	persona = Column(String(16), nullable=True)  # solo, dual
	# Set iff this user is a secondary; unique so a primary has at most one secondary.
	# No ORM relationship: deleting the primary must leave this column untouched.
	primary_user_id = Column(Integer, ForeignKey("users.id"), nullable=True, unique=True, index=True)
	onboarding_step = Column(Integer, nullable=False, default=0)
	onboarding_complete = Column(Boolean, nullable=False, default=False)

	shared_settings = relationship("SharedSettings", back_populates="user", uselist=False, cascade="all, delete-orphan")
	invites = relationship(
		"PartnerInvite",
		back_populates="primary_user",
		foreign_keys="PartnerInvite.primary_user_id",
		cascade="all, delete-orphan",
	)

	@property
	def display_name(self) -> str:
		return self.name or self.email

	def mark_deleted(self) -> None:
		super().mark_deleted()
		# Deleted users drop out of conflict checks along with their settings
		if self.shared_settings is not None:
			self.shared_settings.mark_deleted()
