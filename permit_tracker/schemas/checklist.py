"""
Checklist Pydantic schemas
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field


class ChecklistItemResponse(BaseModel):
    """Schema for individual checklist item"""
    id: int
    package_id: str
    template_id: Optional[int]
    label: str
    category: str
    required: bool
    sort_order: int
    completed: bool
    completed_at: Optional[datetime]
    notes: Optional[str]
    version: int

    class Config:
        from_attributes = True


class ChecklistItemToggle(BaseModel):
    """Schema for toggling a checklist item"""
    completed: bool
    notes: Optional[str] = Field(None, description="Replaces any previous notes when provided")
    expected_version: Optional[int] = Field(None, ge=1)


class TemplateItemInput(BaseModel):
    """Template row supplied for an ad hoc 'add from template' action"""
    label: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1)
    required: bool = False
    sort_order: int = Field(0, ge=0)
    template_id: Optional[int] = None


class CreateFromTemplatesRequest(BaseModel):
    """Schema for cloning an explicit list of template rows into a package"""
    template_items: List[TemplateItemInput] = Field(..., min_length=1)


class ChecklistProgress(BaseModel):
    """Completion statistics for a checklist"""
    total: int = Field(..., ge=0)
    completed: int = Field(..., ge=0)
    required: int = Field(..., ge=0)
    required_completed: int = Field(..., ge=0)
    percentage: int = Field(..., ge=0, le=100)
    required_percentage: int = Field(..., ge=0, le=100)


class ChecklistCategory(BaseModel):
    """Items of one category in display order"""
    category: str
    items: List[ChecklistItemResponse]


class ChecklistResponse(BaseModel):
    """Schema for full checklist with progress"""
    package_id: str
    progress: ChecklistProgress
    categories: List[ChecklistCategory]
    items: List[ChecklistItemResponse]
