"""
Database models package
"""
from permit_tracker.models.enums import PermitType, PackageStatus, UserRole, PresenceAction
from permit_tracker.models.county import County
from permit_tracker.models.checklist_template import ChecklistTemplateItem
from permit_tracker.models.permit_package import PermitPackage
from permit_tracker.models.checklist_item import PackageChecklistItem
from permit_tracker.models.status_log import StatusLogEntry

__all__ = [
    "PermitType",
    "PackageStatus",
    "UserRole",
    "PresenceAction",
    "County",
    "ChecklistTemplateItem",
    "PermitPackage",
    "PackageChecklistItem",
    "StatusLogEntry",
]
