"""
County database model
"""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from permit_tracker.core.database import Base
from permit_tracker.utils.timestamps import utcnow


class County(Base):
    """
    County (jurisdiction) that permit packages are filed with.

    Each county owns its own checklist template catalog.
    """
    __tablename__ = "counties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True, index=True)
    state = Column(String(2), nullable=False, default="FL")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    # Relationships
    checklist_templates = relationship(
        "ChecklistTemplateItem",
        back_populates="county",
        cascade="all, delete-orphan",
        order_by="(ChecklistTemplateItem.sort_order, ChecklistTemplateItem.id)",
    )
    packages = relationship("PermitPackage", back_populates="county")

    def __repr__(self):
        return f"<County(id={self.id}, name={self.name}, state={self.state})>"
