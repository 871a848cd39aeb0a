"""
ChecklistTemplateItem database model
"""
from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from permit_tracker.core.database import Base
from permit_tracker.utils.timestamps import utcnow
from permit_tracker.models.enums import PermitType


class ChecklistTemplateItem(Base):
    """
    Catalog entry describing one checklist item a county expects.

    A null permit_type means the item applies to every permit type.
    Package checklist items are copies; editing a template never touches
    checklists that were already instantiated from it.
    """
    __tablename__ = "checklist_template_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    county_id = Column(Integer, ForeignKey("counties.id", ondelete="CASCADE"), nullable=False, index=True)
    label = Column(String, nullable=False)
    category = Column(String, nullable=False)
    permit_type = Column(Enum(PermitType), nullable=True)
    required = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    county = relationship("County", back_populates="checklist_templates")

    def __repr__(self):
        scope = self.permit_type.value if self.permit_type else "ALL"
        return f"<ChecklistTemplateItem(id={self.id}, label={self.label}, permit_type={scope})>"
