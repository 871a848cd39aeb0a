"""
PackageChecklistItem database model
"""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from permit_tracker.core.database import Base
from permit_tracker.utils.timestamps import utcnow


class PackageChecklistItem(Base):
    """
    Concrete checklist item owned by one permit package.

    Cloned from a county template at package creation (template_id records
    the source) or added ad hoc from a supplied template list. Only the
    progress tracker mutates it afterwards.
    """
    __tablename__ = "package_checklist_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    package_id = Column(String(36), ForeignKey("permit_packages.id", ondelete="CASCADE"), nullable=False, index=True)
    template_id = Column(Integer, nullable=True, index=True)
    label = Column(String, nullable=False)
    category = Column(String, nullable=False)
    required = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    package = relationship("PermitPackage", back_populates="checklist_items")

    def __repr__(self):
        return f"<PackageChecklistItem(id={self.id}, label={self.label}, completed={self.completed})>"
