"""Checklist progress tracking."""

import logging
import math
from typing import Dict, List, Optional, Sequence, Tuple
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from permit_tracker.core.errors import ConflictError, NotFoundError
from permit_tracker.models.checklist_item import PackageChecklistItem
from permit_tracker.models.permit_package import PermitPackage
from permit_tracker.schemas.checklist import ChecklistProgress
from permit_tracker.schemas.events import CHECKLIST_UPDATED, ChecklistUpdatedPayload, dump_payload
from permit_tracker.services.persistence import commit_or_rollback
from permit_tracker.utils.timestamps import iso_now, utcnow

logger = logging.getLogger(__name__)


def _percent(part: int, whole: int) -> int:
    # half-up rounding, so 12.5 -> 13 rather than banker's 12
    if whole <= 0:
        return 0
    return int(math.floor(100 * part / whole + 0.5))


def compute_progress(items: Sequence) -> ChecklistProgress:
    """Completion statistics over any objects with `completed` and `required`."""
    total = len(items)
    completed = sum(1 for item in items if item.completed)
    required = sum(1 for item in items if item.required)
    required_completed = sum(1 for item in items if item.required and item.completed)
    return ChecklistProgress(
        total=total,
        completed=completed,
        required=required,
        required_completed=required_completed,
        percentage=_percent(completed, total),
        required_percentage=_percent(required_completed, required),
    )


def outstanding_required(items: Sequence) -> int:
    return sum(1 for item in items if item.required and not item.completed)


def group_by_category(items: Sequence) -> List[Tuple[str, list]]:
    """Group items by category for display.

    Categories keep their first-appearance order; within a category items
    are sorted by sort_order (stable, so equal sort_order keeps input order).
    """
    groups: Dict[str, list] = {}
    for item in items:
        groups.setdefault(item.category, []).append(item)
    return [
        (category, sorted(members, key=lambda item: item.sort_order))
        for category, members in groups.items()
    ]


async def get_item(db: AsyncSession, item_id: int) -> PackageChecklistItem:
    item = await db.get(PackageChecklistItem, item_id)
    if item is None:
        raise NotFoundError(f"Checklist item with id {item_id} not found")
    return item


async def get_checklist(db: AsyncSession, package_id: str) -> List[PackageChecklistItem]:
    """Checklist items of a package ordered by sort_order then id.

    Raises:
        NotFoundError: If the package does not exist
    """
    package = await db.get(PermitPackage, package_id)
    if package is None:
        raise NotFoundError(f"Permit package with id {package_id} not found")

    result = await db.execute(
        select(PackageChecklistItem)
        .where(PackageChecklistItem.package_id == package_id)
        .order_by(PackageChecklistItem.sort_order, PackageChecklistItem.id)
    )
    return list(result.scalars().all())


async def toggle(
    db: AsyncSession,
    item_id: int,
    completed: bool,
    actor_id: str,
    notes: Optional[str] = None,
    *,
    package_id: Optional[str] = None,
    expected_version: Optional[int] = None,
    optimistic: bool = False,
    notifier=None,
) -> PackageChecklistItem:
    """Mark a checklist item completed or not.

    Every `completed=True` stamps `completed_at` with the current time, even
    if the item was already completed; `completed=False` clears it. `notes`
    replaces the previous notes when given. After the commit succeeds,
    `checklist-updated` is broadcast to the item's package room.

    Args:
        db: Database session
        item_id: Checklist item id
        completed: New completion flag
        actor_id: User performing the change (reported as updatedBy)
        notes: Replacement notes
        package_id: When given, the item must belong to this package
        expected_version: Item version the caller last saw
        optimistic: Enforce `expected_version`
        notifier: Object with an async `broadcast(package_id, event, payload)`

    Raises:
        NotFoundError: Unknown item, or item outside `package_id`
        ConflictError: Stale `expected_version` in optimistic mode
        PersistenceError: If the commit fails
    """
    item = await get_item(db, item_id)
    if package_id is not None and item.package_id != package_id:
        raise NotFoundError(f"Checklist item {item_id} not found in package {package_id}")

    if optimistic and expected_version is not None and expected_version != item.version:
        raise ConflictError(f"Checklist item {item_id} is at version {item.version}, not {expected_version}")

    item.completed = completed
    item.completed_at = utcnow() if completed else None
    if notes is not None:
        item.notes = notes
    item.version = item.version + 1

    await commit_or_rollback(db, f"update checklist item {item_id}")
    await db.refresh(item)
    logger.debug("Checklist item %s completed=%s by %s", item_id, completed, actor_id)

    if notifier is not None:
        payload = ChecklistUpdatedPayload(
            item_id=item.id,
            completed=item.completed,
            updated_by=actor_id,
            timestamp=iso_now(),
        )
        await notifier.broadcast(item.package_id, CHECKLIST_UPDATED, dump_payload(payload))

    return item
