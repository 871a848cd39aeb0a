"""
StatusLogEntry database model
"""
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from permit_tracker.core.database import Base
from permit_tracker.utils.timestamps import utcnow
from permit_tracker.models.enums import PackageStatus


class StatusLogEntry(Base):
    """Append-only audit record, one per status change (creation included)"""
    __tablename__ = "status_log_entries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    package_id = Column(String(36), ForeignKey("permit_packages.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Enum(PackageStatus), nullable=False)
    note = Column(Text, nullable=True)
    user_id = Column(String(36), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    package = relationship("PermitPackage", back_populates="status_logs")

    def __repr__(self):
        return f"<StatusLogEntry(id={self.id}, package_id={self.package_id}, status={self.status.value})>"
