"""
SQLAlchemy models for registered medicines and their scheduled doses
"""

from sqlalchemy import (
    Column, String, Integer, Boolean, Date, DateTime, Text,
    ForeignKey, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from medreminder.database import Base
import uuid
import enum


def generate_uuid():
    return str(uuid.uuid4())


class DoseStatus(str, enum.Enum):
    pending = "pending"
    taken = "taken"


class Medicine(Base):
    __tablename__ = "medicines"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False, index=True)
    prescription_id = Column(String, nullable=True, index=True)

    medicine_name = Column(String, nullable=False)
    dosage = Column(String, nullable=False)
    frequency = Column(String, nullable=False)
    instructions = Column(Text, nullable=True)
    duration_days = Column(Integer, nullable=True)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)

    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    doses = relationship(
        "MedicineDose",
        back_populates="medicine",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_medicines_user_active", "user_id", "active"),
    )


class MedicineDose(Base):
    __tablename__ = "medicine_doses"

    id = Column(String, primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False, index=True)
    medicine_id = Column(
        String,
        ForeignKey("medicines.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    scheduled_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, nullable=False, default=DoseStatus.pending.value)
    taken_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    medicine = relationship("Medicine", back_populates="doses")

    __table_args__ = (
        # Concurrent generation passes collapse on this instead of duplicating
        UniqueConstraint("medicine_id", "scheduled_time", name="uq_medicine_dose_time"),
        Index("idx_medicine_doses_user_scheduled", "user_id", "scheduled_time"),
    )
