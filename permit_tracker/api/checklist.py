"""
Checklist API endpoints
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
from permit_tracker.schemas.checklist import (
    ChecklistCategory,
    ChecklistItemResponse,
    ChecklistItemToggle,
    ChecklistProgress,
    ChecklistResponse,
    CreateFromTemplatesRequest,
)
from permit_tracker.services import instantiation, progress
from permit_tracker.services.collaboration import CollaborationHub

router = APIRouter()


@router.get("/{package_id}/checklist", response_model=ChecklistResponse)
async def get_package_checklist(
    package_id: str,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Get the checklist of a package.

    Returns the items in display order, grouped by category, plus overall
    and required-item progress.

    Raises:
        HTTPException 404: If package not found
    """
    items = await progress.get_checklist(db, package_id)
    item_models = [ChecklistItemResponse.model_validate(item) for item in items]
    by_id = {item.id: item for item in item_models}

    return ChecklistResponse(
        package_id=package_id,
        progress=progress.compute_progress(items),
        categories=[
            ChecklistCategory(category=category, items=[by_id[item.id] for item in members])
            for category, members in progress.group_by_category(items)
        ],
        items=item_models,
    )


@router.get("/{package_id}/checklist/progress", response_model=ChecklistProgress)
async def get_checklist_progress(
    package_id: str,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    items = await progress.get_checklist(db, package_id)
    return progress.compute_progress(items)


@router.post("/{package_id}/checklist", response_model=List[ChecklistItemResponse], status_code=201)
async def create_checklist_items(
    package_id: str,
    request: CreateFromTemplatesRequest,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    access_policy: PackageAccessPolicy = Depends(get_access_policy),
    hub: CollaborationHub = Depends(get_hub),
):
    """
    Clone the supplied template rows into the package checklist.

    Only the rows in the request are added; the county catalog is not read.

    Raises:
        HTTPException 404: If package not found
    """
    await progress.get_checklist(db, package_id)
    await ensure_package_access(db, access_policy, identity, package_id)
    return await instantiation.create_items_from_templates(
        db,
        package_id,
        request.template_items,
        idempotent=hub.policy.idempotent_instantiation,
    )


@router.patch("/checklist/{item_id}", response_model=ChecklistItemResponse)
async def toggle_checklist_item(
    item_id: int,
    toggle_data: ChecklistItemToggle,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
    access_policy: PackageAccessPolicy = Depends(get_access_policy),
    hub: CollaborationHub = Depends(get_hub),
):
    """
    Mark a checklist item completed or not.

    Members of the package's collaboration room receive
    `checklist-updated` once the change is committed.

    Raises:
        HTTPException 403: If the caller may not edit this package
        HTTPException 404: If checklist item not found
        HTTPException 409: If expected_version is stale (optimistic mode)
    """
    item = await progress.get_item(db, item_id)
    await ensure_package_access(db, access_policy, identity, item.package_id)
    return await progress.toggle(
        db,
        item_id,
        toggle_data.completed,
        identity.user_id,
        toggle_data.notes,
        expected_version=toggle_data.expected_version,
        optimistic=hub.policy.optimistic_concurrency,
        notifier=hub,
    )
