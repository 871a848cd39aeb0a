"""
County and checklist template API endpoints
"""
from typing import List
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from permit_tracker.core.database import get_db
from permit_tracker.core.security import Identity, get_current_identity, require_admin
from permit_tracker.schemas.county import (
    CountyCreate,
    CountyResponse,
    TemplateItemCreate,
    TemplateItemResponse,
    TemplateItemUpdate,
)
from permit_tracker.services import template_store

router = APIRouter()


@router.get("", response_model=List[CountyResponse])
async def list_counties(
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """List all counties ordered by name."""
    return await template_store.list_counties(db)


@router.post("", response_model=CountyResponse, status_code=201)
async def create_county(
    county_data: CountyCreate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(require_admin),
):
    """
    Create a county (administrators only).

    Raises:
        HTTPException 409: If a county with the same name exists
    """
    return await template_store.create_county(db, county_data)


@router.get("/{county_id}", response_model=CountyResponse)
async def get_county(
    county_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    return await template_store.get_county(db, county_id)


@router.get("/{county_id}/templates", response_model=List[TemplateItemResponse])
async def list_county_templates(
    county_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(get_current_identity),
):
    """
    Get the county's checklist template catalog, ordered by sort_order.

    Raises:
        HTTPException 404: If county not found
    """
    return await template_store.list_templates(db, county_id)


@router.post("/{county_id}/templates", response_model=TemplateItemResponse, status_code=201)
async def create_county_template(
    county_id: int,
    template_data: TemplateItemCreate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(require_admin),
):
    """
    Add a checklist template item to a county (administrators only).

    Raises:
        HTTPException 403: If the caller is not an administrator
        HTTPException 404: If county not found
    """
    return await template_store.create_template(db, county_id, template_data)


@router.patch("/{county_id}/templates/{item_id}", response_model=TemplateItemResponse)
async def update_county_template(
    county_id: int,
    item_id: int,
    template_data: TemplateItemUpdate,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(require_admin),
):
    """
    Edit a template item. Checklists already created from it keep their copy.

    Raises:
        HTTPException 404: If the template item is not in this county
    """
    return await template_store.update_template(db, county_id, item_id, template_data)


@router.delete("/{county_id}/templates/{item_id}")
async def delete_county_template(
    county_id: int,
    item_id: int,
    db: AsyncSession = Depends(get_db),
    identity: Identity = Depends(require_admin),
):
    await template_store.delete_template(db, county_id, item_id)
    return {"message": "Template item deleted successfully"}
