"""County catalog and checklist template store."""

import logging
from typing import List
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from permit_tracker.core.errors import NotFoundError
from permit_tracker.models.checklist_template import ChecklistTemplateItem
from permit_tracker.models.county import County
from permit_tracker.models.enums import PermitType
from permit_tracker.schemas.county import CountyCreate, TemplateItemCreate, TemplateItemUpdate
from permit_tracker.services.persistence import commit_or_rollback

logger = logging.getLogger(__name__)


async def list_counties(db: AsyncSession) -> List[County]:
    result = await db.execute(select(County).order_by(County.name))
    return list(result.scalars().all())


async def get_county(db: AsyncSession, county_id: int) -> County:
    """Fetch a county or raise NotFoundError."""
    county = await db.get(County, county_id)
    if county is None:
        raise NotFoundError(f"County with id {county_id} not found")
    return county


async def create_county(db: AsyncSession, data: CountyCreate) -> County:
    county = County(name=data.name.strip(), state=data.state.upper())
    db.add(county)
    await commit_or_rollback(db, f"create county {county.name}")
    await db.refresh(county)
    logger.info("Created county %s (%s)", county.name, county.id)
    return county


async def list_templates(db: AsyncSession, county_id: int) -> List[ChecklistTemplateItem]:
    """Return a county's template catalog in display order.

    Raises:
        NotFoundError: If the county does not exist
    """
    await get_county(db, county_id)
    result = await db.execute(
        select(ChecklistTemplateItem)
        .where(ChecklistTemplateItem.county_id == county_id)
        .order_by(ChecklistTemplateItem.sort_order, ChecklistTemplateItem.id)
    )
    return list(result.scalars().all())


async def select_applicable(
    db: AsyncSession, county_id: int, permit_type: PermitType
) -> List[ChecklistTemplateItem]:
    """Templates of a county that apply to every permit type or to `permit_type`.

    Ordered by sort_order, ties broken by insertion order (id).
    """
    result = await db.execute(
        select(ChecklistTemplateItem)
        .where(
            ChecklistTemplateItem.county_id == county_id,
            (ChecklistTemplateItem.permit_type.is_(None))
            | (ChecklistTemplateItem.permit_type == permit_type),
        )
        .order_by(ChecklistTemplateItem.sort_order, ChecklistTemplateItem.id)
    )
    return list(result.scalars().all())


async def get_template(db: AsyncSession, county_id: int, item_id: int) -> ChecklistTemplateItem:
    result = await db.execute(
        select(ChecklistTemplateItem).where(
            ChecklistTemplateItem.id == item_id,
            ChecklistTemplateItem.county_id == county_id,
        )
    )
    template = result.scalar_one_or_none()
    if template is None:
        raise NotFoundError(f"Template item {item_id} not found in county {county_id}")
    return template


async def create_template(
    db: AsyncSession, county_id: int, data: TemplateItemCreate
) -> ChecklistTemplateItem:
    await get_county(db, county_id)
    template = ChecklistTemplateItem(county_id=county_id, **data.model_dump())
    db.add(template)
    await commit_or_rollback(db, "create checklist template item")
    await db.refresh(template)
    return template


async def update_template(
    db: AsyncSession, county_id: int, item_id: int, data: TemplateItemUpdate
) -> ChecklistTemplateItem:
    """Apply a partial edit. Checklists already instantiated are unaffected."""
    template = await get_template(db, county_id, item_id)
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(template, field, value)
    await commit_or_rollback(db, f"update checklist template item {item_id}")
    await db.refresh(template)
    return template


async def delete_template(db: AsyncSession, county_id: int, item_id: int) -> None:
    template = await get_template(db, county_id, item_id)
    await db.delete(template)
    await commit_or_rollback(db, f"delete checklist template item {item_id}")
    logger.info("Deleted template item %s from county %s", item_id, county_id)
