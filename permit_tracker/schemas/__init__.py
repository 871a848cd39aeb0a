"""
Pydantic schemas for request/response validation
"""
from permit_tracker.schemas.county import (
    CountyCreate,
    CountyResponse,
    TemplateItemCreate,
    TemplateItemUpdate,
    TemplateItemResponse,
)
from permit_tracker.schemas.package import (
    PackageCreate,
    PackageResponse,
    StatusUpdateRequest,
    StatusLogResponse,
    StatusUpdateResponse,
    DashboardStats,
)
from permit_tracker.schemas.checklist import (
    ChecklistItemResponse,
    ChecklistItemToggle,
    TemplateItemInput,
    CreateFromTemplatesRequest,
    ChecklistProgress,
    ChecklistCategory,
    ChecklistResponse,
)

__all__ = [
    "CountyCreate",
    "CountyResponse",
    "TemplateItemCreate",
    "TemplateItemUpdate",
    "TemplateItemResponse",
    "PackageCreate",
    "PackageResponse",
    "StatusUpdateRequest",
    "StatusLogResponse",
    "StatusUpdateResponse",
    "DashboardStats",
    "ChecklistItemResponse",
    "ChecklistItemToggle",
    "TemplateItemInput",
    "CreateFromTemplatesRequest",
    "ChecklistProgress",
    "ChecklistCategory",
    "ChecklistResponse",
]
