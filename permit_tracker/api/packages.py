"""
Permit package API endpoints
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from permit_tracker.api.deps import get_hub
from permit_tracker.core.database import get_db
from permit_tracker.core.security import (
    Identity,
    PackageAccessPolicy,
    ensure_package_access,
    get_access_policy,
    get_current_identity,
)
from permit_tracker.schemas.package import (
    DashboardStats,
    PackageCreate,
    PackageResponse,
    StatusLogResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from permit_tracker.services import lifecycle
from permit_tracker.services.collaboration import CollaborationHub

router = APIRouter()


@router.post("", response_model=PackageResponse, status_code=201)
async def create_package(
    package_data: PackageCreate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    hub: CollaborationHub = Depends(get_hub),
):
    """
    Create a permit package.

    The package starts in DRAFT with a "Package created" audit entry, and
    its checklist is cloned from the county templates that apply to every
    permit type or to the package's permit type.

    Args:
        package_data: Package attributes
        db: Database session
        identity: Authenticated caller (becomes the creator)
        hub: Collaboration hub holding the workflow policy

    Returns:
        PackageResponse with the created package

    Raises:
        HTTPException 404: If county not found
    """
    return await lifecycle.create_package(db, package_data, identity.user_id, hub.policy)


@router.get("/dashboard", response_model=DashboardStats)
async def get_dashboard_stats(
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Package counts by workflow stage and the five most recent packages."""
    return await lifecycle.dashboard_stats(db)


@router.get("/{package_id}", response_model=PackageResponse)
async def get_package(
    package_id: str,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return await lifecycle.get_package(db, package_id)


@router.delete("/{package_id}")
async def delete_package(
    package_id: str,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    access_policy: PackageAccessPolicy = Depends(get_access_policy),
):
    """Delete a package together with its checklist and audit trail."""
    await lifecycle.get_package(db, package_id)
    await ensure_package_access(db, access_policy, identity, package_id)
    await lifecycle.delete_package(db, package_id)
    return {"message": "Permit package deleted successfully"}


@router.patch("/{package_id}/status", response_model=StatusUpdateResponse)
async def update_package_status(
    package_id: str,
    status_data: StatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    access_policy: PackageAccessPolicy = Depends(get_access_policy),
    hub: CollaborationHub = Depends(get_hub),
):
    """
    Change a package's status and record it in the audit trail.

    Everyone joined to the package's collaboration room receives
    `status-updated` once the change is committed.

    Raises:
        HTTPException 403: If the caller may not edit this package
        HTTPException 404: If package not found
        HTTPException 409: If expected_version is stale (optimistic mode)
        HTTPException 422: If the transition is rejected (strict mode or approval gating)
    """
    await lifecycle.get_package(db, package_id)
    await ensure_package_access(db, access_policy, identity, package_id)
    package, log_entry = await lifecycle.transition(
        db,
        package_id,
        status_data.status,
        identity.user_id,
        status_data.note,
        policy=hub.policy,
        expected_version=status_data.expected_version,
        notifier=hub,
    )
    return StatusUpdateResponse(
        package=PackageResponse.model_validate(package),
        status_log=StatusLogResponse.model_validate(log_entry),
    )


@router.get("/{package_id}/status-log", response_model=List[StatusLogResponse])
async def get_status_log(
    package_id: str,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """Audit trail of a package, newest first."""
    return await lifecycle.list_status_log(db, package_id)
