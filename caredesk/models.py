"""
Care office data model: masters, service patterns, weekly schedules,
time-slot service records and the import / linking audit tables.
"""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_public_id():
    """Generate a unique public ID for external references"""
    return str(uuid.uuid4())


class CareUser(Base):
    """A person receiving home-visit care"""

    __tablename__ = "users_master"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, nullable=False, index=True, default=generate_public_id)
    name = Column(String(100), unique=True, nullable=False, index=True)
    name_kana = Column(String(100), nullable=True)
    user_code = Column(String(50), unique=True, nullable=True)
    care_level = Column(String(20), nullable=True)  # 要支援1-2, 要介護1-5
    insurance_number = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    health_baseline = relationship(
        "UserHealthBaseline", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    time_patterns = relationship(
        "UserTimePattern", back_populates="user", cascade="all, delete-orphan"
    )


class Staff(Base):
    """A caregiver or service manager"""

    __tablename__ = "staff_master"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, nullable=False, index=True, default=generate_public_id)
    name = Column(String(100), unique=True, nullable=False, index=True)
    staff_code = Column(String(50), unique=True, nullable=True)
    email = Column(String(255), nullable=True)
    is_service_manager = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class UserHealthBaseline(Base):
    """Per-user normal ranges for vital signs"""

    __tablename__ = "user_health_baselines"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users_master.id", ondelete="CASCADE"), unique=True, nullable=False)

    temperature_min = Column(Float, default=36.0, nullable=False)
    temperature_max = Column(Float, default=37.5, nullable=False)
    systolic_min = Column(Integer, default=100, nullable=False)
    systolic_max = Column(Integer, default=140, nullable=False)
    diastolic_min = Column(Integer, default=60, nullable=False)
    diastolic_max = Column(Integer, default=90, nullable=False)
    pulse_min = Column(Integer, default=60, nullable=False)
    pulse_max = Column(Integer, default=100, nullable=False)
    notes = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("CareUser", back_populates="health_baseline")


class ServicePattern(Base):
    """Reusable checklist of care activities"""

    __tablename__ = "service_patterns"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, nullable=False, index=True, default=generate_public_id)
    pattern_name = Column(String(100), unique=True, nullable=False, index=True)
    pattern_details = Column(JSON, nullable=False, default=dict)
    description = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    time_patterns = relationship(
        "UserTimePattern", back_populates="pattern", cascade="all, delete-orphan"
    )


class UserTimePattern(Base):
    """Weekly recurring slot: a user receives a pattern on a weekday"""

    __tablename__ = "user_time_patterns"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users_master.id", ondelete="CASCADE"), nullable=False, index=True)
    pattern_id = Column(Integer, ForeignKey("service_patterns.id", ondelete="CASCADE"), nullable=False, index=True)

    # Snapshot of the pattern at creation time
    pattern_name = Column(String(100), nullable=False)
    pattern_details = Column(JSON, nullable=True)

    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    day_of_week = Column(Integer, nullable=False, index=True)  # 0=Sunday ... 6=Saturday
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("CareUser", back_populates="time_patterns")
    pattern = relationship("ServicePattern", back_populates="time_patterns")


class ServiceRecord(Base):
    """One logged visit (time-slot record), optionally linked to a pattern"""

    __tablename__ = "csv_service_records"

    id = Column(Integer, primary_key=True, index=True)
    public_id = Column(String(36), unique=True, nullable=False, index=True, default=generate_public_id)

    user_id = Column(Integer, ForeignKey("users_master.id", ondelete="SET NULL"), nullable=True, index=True)
    staff_id = Column(Integer, ForeignKey("staff_master.id", ondelete="SET NULL"), nullable=True)
    pattern_id = Column(Integer, ForeignKey("service_patterns.id", ondelete="SET NULL"), nullable=True, index=True)

    user_name = Column(String(100), nullable=False, index=True)
    user_code = Column(String(50), nullable=True)
    staff_name = Column(String(100), nullable=True)

    service_date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    duration_minutes = Column(Integer, nullable=False)
    service_content = Column(Text, nullable=True)
    special_notes = Column(Text, nullable=True)
    service_details = Column(JSON, nullable=True)

    is_pattern_assigned = Column(Boolean, default=False, nullable=False, index=True)
    is_manually_created = Column(Boolean, default=False, nullable=False)

    record_created_at = Column(DateTime, nullable=True)
    print_datetime = Column(DateTime, nullable=True)
    csv_import_batch_id = Column(String(36), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    pattern = relationship("ServicePattern")

    @property
    def pattern_name(self):
        return self.pattern.pattern_name if self.pattern else None


class CsvImportLog(Base):
    """One CSV import run.

    Status: pending → processing → completed | failed | cancelled
    """

    __tablename__ = "csv_import_logs"

    id = Column(Integer, primary_key=True, index=True)
    batch_id = Column(String(36), unique=True, nullable=False, index=True, default=generate_public_id)
    filename = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=True)
    status = Column(String(20), default="pending", nullable=False, index=True)

    import_count = Column(Integer, default=0, nullable=False)
    success_count = Column(Integer, default=0, nullable=False)
    error_count = Column(Integer, default=0, nullable=False)
    errors = Column(JSON, nullable=True)
    warnings = Column(JSON, nullable=True)
    summary = Column(JSON, nullable=True)

    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class NameResolutionPattern(Base):
    """Learned mapping from a raw CSV name to a master name"""

    __tablename__ = "name_resolution_patterns"
    __table_args__ = (UniqueConstraint("entity_type", "original_name", name="uq_name_resolution"),)

    id = Column(Integer, primary_key=True, index=True)
    entity_type = Column(String(10), nullable=False)  # user, staff
    original_name = Column(String(100), nullable=False)
    resolved_name = Column(String(100), nullable=False)
    confidence = Column(Float, default=1.0, nullable=False)
    usage_count = Column(Integer, default=1, nullable=False)
    last_used_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class PatternLinkHistory(Base):
    """Audit trail of link / unlink operations on service records"""

    __tablename__ = "pattern_link_history"

    id = Column(Integer, primary_key=True, index=True)
    record_id = Column(Integer, nullable=False, index=True)
    pattern_id = Column(Integer, nullable=True)
    previous_pattern_id = Column(Integer, nullable=True)
    action = Column(String(10), nullable=False)  # link, unlink
    method = Column(String(10), nullable=False)  # manual, auto, bulk
    confidence = Column(Float, nullable=True)
    created_at = Column(DateTime, nullable=False, index=True)
