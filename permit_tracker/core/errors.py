"""
Domain errors shared by the REST routes and the collaboration hub
"""


class PermitTrackerError(Exception):
    """Base class for workflow errors"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(PermitTrackerError):
    """Referenced package, checklist item, county or template does not exist"""

    status_code = 404


class UnauthorizedError(PermitTrackerError):
    """Caller has no verified identity"""

    status_code = 401


class ForbiddenError(PermitTrackerError):
    """Caller is identified but may not act on the resource"""

    status_code = 403


class WorkflowValidationError(PermitTrackerError):
    """Input rejected before any mutation (bad enum, illegal edge, gating)"""

    status_code = 422


class ConflictError(PermitTrackerError):
    """Stale version or uniqueness violation"""

    status_code = 409


class PersistenceError(PermitTrackerError):
    """The store rejected or failed a write; nothing was committed"""

    status_code = 503
