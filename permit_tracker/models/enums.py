"""
Enum definitions for database models
"""
import enum


class PermitType(str, enum.Enum):
    """Kind of permit a package is filed for"""
    RESIDENTIAL = "RESIDENTIAL"
    MOBILE_HOME = "MOBILE_HOME"
    MODULAR_HOME = "MODULAR_HOME"


class PackageStatus(str, enum.Enum):
    """Package lifecycle status"""
    DRAFT = "DRAFT"            # Being assembled
    IN_REVIEW = "IN_REVIEW"    # Internal review before filing
    SUBMITTED = "SUBMITTED"    # Filed with the county
    APPROVED = "APPROVED"      # Permit issued
    REJECTED = "REJECTED"      # Denied by reviewer or county
    CLOSED = "CLOSED"          # Terminal


class UserRole(str, enum.Enum):
    """Caller roles issued by the identity provider"""
    ADMIN = "ADMIN"
    USER = "USER"


class PresenceAction(str, enum.Enum):
    """Presence notifications sent to room members"""
    JOINED = "joined"
    LEFT = "left"
