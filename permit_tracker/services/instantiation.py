"""Checklist instantiation: clone county templates into package checklists."""

import logging
from typing import Iterable, List, Optional, Set
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from permit_tracker.core.errors import NotFoundError
from permit_tracker.models.checklist_item import PackageChecklistItem
from permit_tracker.models.enums import PermitType
from permit_tracker.models.permit_package import PermitPackage
from permit_tracker.schemas.checklist import TemplateItemInput
from permit_tracker.services import template_store
from permit_tracker.services.persistence import commit_or_rollback, flush_or_rollback

logger = logging.getLogger(__name__)


def clone_template(template, package_id: str) -> PackageChecklistItem:
    """Build an uncompleted checklist item from a template-shaped object."""
    return PackageChecklistItem(
        package_id=package_id,
        template_id=getattr(template, "template_id", None) or getattr(template, "id", None),
        label=template.label,
        category=template.category,
        required=template.required,
        sort_order=template.sort_order,
        completed=False,
        completed_at=None,
    )


async def _cloned_template_ids(db: AsyncSession, package_id: str) -> Set[int]:
    result = await db.execute(
        select(PackageChecklistItem.template_id).where(
            PackageChecklistItem.package_id == package_id,
            PackageChecklistItem.template_id.is_not(None),
        )
    )
    return set(result.scalars().all())


async def _add_items(
    db: AsyncSession, package_id: str, templates: Iterable, idempotent: bool
) -> List[PackageChecklistItem]:
    skip: Set[int] = await _cloned_template_ids(db, package_id) if idempotent else set()
    items = []
    for template in templates:
        item = clone_template(template, package_id)
        if item.template_id is not None and item.template_id in skip:
            continue
        items.append(item)
    db.add_all(items)
    await flush_or_rollback(db, f"add checklist items to package {package_id}")
    return items


async def instantiate(
    db: AsyncSession,
    package_id: str,
    county_id: int,
    permit_type: PermitType,
    idempotent: bool = False,
) -> List[PackageChecklistItem]:
    """Clone every applicable county template into the package checklist.

    Runs inside the caller's transaction (package creation) and only
    flushes. Without `idempotent` a repeated call clones the templates
    again; with it, templates already cloned into this package are skipped.

    Args:
        db: Database session
        package_id: Package receiving the items
        county_id: County whose catalog is used
        permit_type: Package permit type used to filter templates
        idempotent: Skip templates already present in the checklist

    Returns:
        The newly created items in display order
    """
    templates = await template_store.select_applicable(db, county_id, permit_type)
    items = await _add_items(db, package_id, templates, idempotent)
    logger.info(
        "Instantiated %d checklist items for package %s (%s, county %s)",
        len(items), package_id, permit_type.value, county_id,
    )
    return items


async def create_items_from_templates(
    db: AsyncSession,
    package_id: str,
    template_items: List[TemplateItemInput],
    idempotent: bool = False,
) -> List[PackageChecklistItem]:
    """Clone an explicit list of template rows into an existing package.

    Raises:
        NotFoundError: If the package does not exist
    """
    package: Optional[PermitPackage] = await db.get(PermitPackage, package_id)
    if package is None:
        raise NotFoundError(f"Permit package with id {package_id} not found")

    items = await _add_items(db, package_id, template_items, idempotent)
    await commit_or_rollback(db, f"add checklist items to package {package_id}")
    for item in items:
        await db.refresh(item)
    return items
