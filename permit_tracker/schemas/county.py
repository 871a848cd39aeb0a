"""
County and checklist template Pydantic schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from permit_tracker.models.enums import PermitType


class CountyCreate(BaseModel):
    """Schema for creating a county"""
    name: str = Field(..., min_length=1, max_length=255, description="County name (e.g., Miami-Dade)")
    state: str = Field("FL", min_length=2, max_length=2, description="Two-letter state code")


class CountyResponse(BaseModel):
    """Schema for county response"""
    id: int
    name: str
    state: str
    created_at: datetime

    class Config:
        from_attributes = True


class TemplateItemCreate(BaseModel):
    """Schema for creating a county checklist template item"""
    label: str = Field(..., min_length=1, description="Checklist item label")
    category: str = Field(..., min_length=1, description="Grouping key (e.g., Application)")
    permit_type: Optional[PermitType] = Field(None, description="Permit type this applies to; null = all")
    required: bool = False
    sort_order: int = Field(0, ge=0)


class TemplateItemUpdate(BaseModel):
    """Partial update of a template item; unset fields are left alone"""
    label: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, min_length=1)
    permit_type: Optional[PermitType] = None
    required: Optional[bool] = None
    sort_order: Optional[int] = Field(None, ge=0)


class TemplateItemResponse(BaseModel):
    """Schema for template item response"""
    id: int
    county_id: int
    label: str
    category: str
    permit_type: Optional[PermitType]
    required: bool
    sort_order: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
