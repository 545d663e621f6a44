import uuid
from sqlalchemy import Column, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
import enum


class UserRole(str, enum.Enum):
    OWNER = "owner"
    MANAGER = "manager"
    STAFF = "staff"


def _new_user_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    """Staff member (the profile that sales and commission are attributed to)."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_new_user_id)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String, nullable=True)

    role = Column(String, default="staff", nullable=False)
    is_active = Column(Boolean, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    sales = relationship("Sale", back_populates="staff")
    commission_override = relationship(
        "StaffCommissionOverride", back_populates="staff", uselist=False, cascade="all, delete-orphan"
    )
    commission_payments = relationship("CommissionPayment", back_populates="staff", foreign_keys="CommissionPayment.staff_id")
