"""
Permit package Pydantic schemas
"""
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from permit_tracker.models.enums import PackageStatus, PermitType


class PackageCreate(BaseModel):
    """Schema for creating a permit package"""
    title: str = Field(..., min_length=1, max_length=255, description="Short package title")
    description: Optional[str] = None
    permit_type: PermitType = Field(..., description="RESIDENTIAL, MOBILE_HOME or MODULAR_HOME")
    due_date: Optional[date] = None
    customer_id: str = Field(..., min_length=1, description="Customer reference")
    contractor_id: Optional[str] = None
    county_id: int = Field(..., description="County the package is filed with")


class PackageResponse(BaseModel):
    """Schema for package response"""
    id: str = Field(..., description="Package UUID")
    package_number: str = Field(..., description="Human readable number, e.g. PKG-2026-0001")
    title: str
    description: Optional[str]
    permit_type: PermitType
    status: PackageStatus
    due_date: Optional[date]
    customer_id: str
    contractor_id: Optional[str]
    county_id: int
    created_by_id: str
    updated_by_id: Optional[str]
    version: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class StatusUpdateRequest(BaseModel):
    """Schema for a status transition request"""
    status: PackageStatus
    note: Optional[str] = None
    expected_version: Optional[int] = Field(None, ge=1, description="Reject if the package moved on")


class StatusLogResponse(BaseModel):
    """Schema for an audit trail entry"""
    id: int
    package_id: str
    status: PackageStatus
    note: Optional[str]
    user_id: str
    created_at: datetime

    class Config:
        from_attributes = True


class StatusUpdateResponse(BaseModel):
    """Result of a status transition"""
    package: PackageResponse
    status_log: StatusLogResponse


class DashboardStats(BaseModel):
    """Package counts for the dashboard"""
    total_packages: int
    pending_packages: int
    approved_packages: int
    overdue_packages: int
    recent_packages: List[PackageResponse]
