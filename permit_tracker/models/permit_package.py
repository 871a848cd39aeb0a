"""
PermitPackage database model
"""
import uuid
from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from permit_tracker.core.database import Base
from permit_tracker.utils.timestamps import utcnow
from permit_tracker.models.enums import PackageStatus, PermitType


class PermitPackage(Base):
    """
    Permit package filed with a county.

    Status changes go through the lifecycle service only, which appends
    exactly one StatusLogEntry per change. `version` is bumped on every
    status change and backs the optional stale-write check.
    """
    __tablename__ = "permit_packages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    package_number = Column(String(20), nullable=False, unique=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    permit_type = Column(Enum(PermitType), nullable=False)
    status = Column(Enum(PackageStatus), default=PackageStatus.DRAFT, nullable=False)
    due_date = Column(Date, nullable=True)
    customer_id = Column(String(36), nullable=False, index=True)
    contractor_id = Column(String(36), nullable=True, index=True)
    county_id = Column(Integer, ForeignKey("counties.id"), nullable=False, index=True)
    created_by_id = Column(String(36), nullable=False, index=True)
    updated_by_id = Column(String(36), nullable=True, index=True)
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    county = relationship("County", back_populates="packages")
    checklist_items = relationship(
        "PackageChecklistItem",
        back_populates="package",
        cascade="all, delete-orphan",
        order_by="(PackageChecklistItem.sort_order, PackageChecklistItem.id)",
    )
    status_logs = relationship(
        "StatusLogEntry",
        back_populates="package",
        cascade="all, delete-orphan",
        order_by="StatusLogEntry.id",
    )

    def __repr__(self):
        return f"<PermitPackage(id={self.id}, number={self.package_number}, status={self.status.value})>"
