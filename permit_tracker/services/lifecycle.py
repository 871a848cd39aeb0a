"""Package lifecycle: creation, status transitions and the audit trail."""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, FrozenSet, List, Optional, Tuple, Union
from sqlalchemy import Integer, cast, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from permit_tracker.core.config import Settings
from permit_tracker.core.errors import ConflictError, NotFoundError, WorkflowValidationError
from permit_tracker.models.checklist_item import PackageChecklistItem
from permit_tracker.models.enums import PackageStatus
from permit_tracker.models.permit_package import PermitPackage
from permit_tracker.models.status_log import StatusLogEntry
from permit_tracker.schemas.events import STATUS_UPDATED, StatusUpdatedPayload, dump_payload
from permit_tracker.schemas.package import PackageCreate
from permit_tracker.services import instantiation, template_store
from permit_tracker.services.persistence import commit_or_rollback, flush_or_rollback
from permit_tracker.utils.timestamps import iso_now, utcnow

logger = logging.getLogger(__name__)

CREATION_NOTE = "Package created"
PACKAGE_NUMBER_ATTEMPTS = 3

ALLOWED_TRANSITIONS: Dict[PackageStatus, FrozenSet[PackageStatus]] = {
    PackageStatus.DRAFT: frozenset({PackageStatus.IN_REVIEW, PackageStatus.REJECTED, PackageStatus.CLOSED}),
    PackageStatus.IN_REVIEW: frozenset({PackageStatus.SUBMITTED, PackageStatus.REJECTED, PackageStatus.CLOSED}),
    PackageStatus.SUBMITTED: frozenset({PackageStatus.APPROVED, PackageStatus.REJECTED, PackageStatus.CLOSED}),
    PackageStatus.APPROVED: frozenset({PackageStatus.CLOSED}),
    PackageStatus.REJECTED: frozenset({PackageStatus.CLOSED}),
    PackageStatus.CLOSED: frozenset(),
}

PENDING_STATUSES = (PackageStatus.DRAFT, PackageStatus.IN_REVIEW, PackageStatus.SUBMITTED)


@dataclass(frozen=True)
class WorkflowPolicy:
    """Switches for the optional workflow checks.

    The defaults reproduce the permissive behaviour: any status may follow
    any other, approval is not gated on required items, last write wins and
    template instantiation is not deduplicated.
    """
    strict_transitions: bool = False
    enforce_required_items: bool = False
    optimistic_concurrency: bool = False
    idempotent_instantiation: bool = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "WorkflowPolicy":
        return cls(
            strict_transitions=settings.STRICT_TRANSITIONS,
            enforce_required_items=settings.ENFORCE_REQUIRED_ITEMS,
            optimistic_concurrency=settings.OPTIMISTIC_CONCURRENCY,
            idempotent_instantiation=settings.IDEMPOTENT_INSTANTIATION,
        )


def is_allowed(current: PackageStatus, new: PackageStatus) -> bool:
    """True if `current -> new` is an edge of the lifecycle graph."""
    return new in ALLOWED_TRANSITIONS[current]


def coerce_status(value: Union[PackageStatus, str]) -> PackageStatus:
    """Parse a status value, raising WorkflowValidationError for unknown ones."""
    if isinstance(value, PackageStatus):
        return value
    try:
        return PackageStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in PackageStatus)
        raise WorkflowValidationError(f"Unknown status {value!r}. Allowed: {allowed}") from None


async def generate_package_number(db: AsyncSession) -> str:
    """Next package number for the current year, e.g. PKG-2026-0007.

    Follows the highest suffix in use, so numbers freed by deletes are not
    handed out again.
    """
    year = utcnow().year
    prefix = f"PKG-{year}-"
    suffix = func.substr(PermitPackage.package_number, len(prefix) + 1)
    result = await db.execute(
        select(func.max(cast(suffix, Integer))).where(PermitPackage.package_number.startswith(prefix))
    )
    highest = result.scalar_one() or 0
    return f"{prefix}{highest + 1:04d}"


async def get_package(db: AsyncSession, package_id: str) -> PermitPackage:
    """Fetch a package or raise NotFoundError."""
    package = await db.get(PermitPackage, package_id)
    if package is None:
        raise NotFoundError(f"Permit package with id {package_id} not found")
    return package


async def create_package(
    db: AsyncSession,
    data: PackageCreate,
    actor_id: str,
    policy: WorkflowPolicy = WorkflowPolicy(),
) -> PermitPackage:
    """Create a package in DRAFT with its first audit entry and checklist.

    Package row, creation log entry and instantiated checklist are committed
    together; a failure in any of them leaves nothing behind. A package
    number taken by a concurrent create is retried with the next number.

    Raises:
        NotFoundError: If the county does not exist
        ConflictError: If no free package number was found
        PersistenceError: On any other store failure
    """
    for attempt in range(1, PACKAGE_NUMBER_ATTEMPTS + 1):
        try:
            package = await _insert_package(db, data, actor_id, policy)
            break
        except ConflictError:
            if attempt == PACKAGE_NUMBER_ATTEMPTS:
                raise
            logger.warning("Package number collision creating package (attempt %d), retrying", attempt)

    await db.refresh(package)
    logger.info("Created package %s (%s) by %s", package.package_number, package.id, actor_id)
    return package


async def _insert_package(
    db: AsyncSession, data: PackageCreate, actor_id: str, policy: WorkflowPolicy
) -> PermitPackage:
    await template_store.get_county(db, data.county_id)

    package = PermitPackage(
        package_number=await generate_package_number(db),
        title=data.title,
        description=data.description,
        permit_type=data.permit_type,
        status=PackageStatus.DRAFT,
        due_date=data.due_date,
        customer_id=data.customer_id,
        contractor_id=data.contractor_id,
        county_id=data.county_id,
        created_by_id=actor_id,
        version=1,
    )
    db.add(package)
    await flush_or_rollback(db, f"reserve package number {package.package_number}")

    db.add(StatusLogEntry(
        package_id=package.id,
        status=PackageStatus.DRAFT,
        note=CREATION_NOTE,
        user_id=actor_id,
    ))
    await instantiation.instantiate(
        db,
        package.id,
        data.county_id,
        data.permit_type,
        idempotent=policy.idempotent_instantiation,
    )

    await commit_or_rollback(db, "create permit package")
    return package


async def count_outstanding_required(db: AsyncSession, package_id: str) -> int:
    result = await db.execute(
        select(func.count(PackageChecklistItem.id)).where(
            PackageChecklistItem.package_id == package_id,
            PackageChecklistItem.required.is_(True),
            PackageChecklistItem.completed.is_(False),
        )
    )
    return result.scalar_one()


async def transition(
    db: AsyncSession,
    package_id: str,
    new_status: Union[PackageStatus, str],
    actor_id: str,
    note: Optional[str] = None,
    *,
    policy: WorkflowPolicy = WorkflowPolicy(),
    expected_version: Optional[int] = None,
    notifier=None,
) -> Tuple[PermitPackage, StatusLogEntry]:
    """Move a package to `new_status` and append the matching audit entry.

    The status update and the log entry are committed in one transaction.
    Only after the commit succeeds is `status-updated` broadcast through
    `notifier` (anything with an async `broadcast(package_id, event, payload)`).

    Raises:
        WorkflowValidationError: Unknown status, edge rejected in strict mode,
            or APPROVED requested while required items are outstanding
        NotFoundError: If the package does not exist
        ConflictError: If `expected_version` is stale (optimistic mode only)
        PersistenceError: If the commit fails
    """
    status = coerce_status(new_status)
    package = await get_package(db, package_id)

    if policy.optimistic_concurrency and expected_version is not None and expected_version != package.version:
        raise ConflictError(
            f"Package {package_id} is at version {package.version}, not {expected_version}"
        )

    if policy.strict_transitions and not is_allowed(package.status, status):
        raise WorkflowValidationError(
            f"Transition {package.status.value} -> {status.value} is not allowed"
        )

    if policy.enforce_required_items and status == PackageStatus.APPROVED:
        outstanding = await count_outstanding_required(db, package_id)
        if outstanding:
            raise WorkflowValidationError(
                f"Cannot approve package: {outstanding} required checklist item(s) outstanding"
            )

    previous = package.status
    package.status = status
    package.updated_by_id = actor_id
    package.version = package.version + 1
    log_entry = StatusLogEntry(package_id=package_id, status=status, note=note, user_id=actor_id)
    db.add(log_entry)

    await commit_or_rollback(db, f"update status of package {package_id}")
    await db.refresh(package)
    await db.refresh(log_entry)
    logger.info("Package %s: %s -> %s by %s", package_id, previous.value, status.value, actor_id)

    if notifier is not None:
        payload = StatusUpdatedPayload(
            package_id=package_id,
            status=status,
            note=note,
            updated_by=actor_id,
            timestamp=iso_now(),
        )
        await notifier.broadcast(package_id, STATUS_UPDATED, dump_payload(payload))

    return package, log_entry


async def list_status_log(db: AsyncSession, package_id: str) -> List[StatusLogEntry]:
    """Audit trail of a package, newest first."""
    await get_package(db, package_id)
    result = await db.execute(
        select(StatusLogEntry)
        .where(StatusLogEntry.package_id == package_id)
        .order_by(StatusLogEntry.id.desc())
    )
    return list(result.scalars().all())


async def delete_package(db: AsyncSession, package_id: str) -> None:
    """Delete a package together with its checklist and audit trail."""
    package = await get_package(db, package_id)
    await db.delete(package)
    await commit_or_rollback(db, f"delete package {package_id}")
    logger.info("Deleted package %s", package_id)


async def dashboard_stats(db: AsyncSession, today: Optional[date] = None) -> dict:
    """Counts by workflow stage plus the five most recent packages."""
    today = today or utcnow().date()

    async def count(*criteria) -> int:
        result = await db.execute(select(func.count(PermitPackage.id)).where(*criteria))
        return result.scalar_one()

    recent = await db.execute(
        select(PermitPackage).order_by(PermitPackage.created_at.desc()).limit(5)
    )
    return {
        "total_packages": await count(),
        "pending_packages": await count(PermitPackage.status.in_(PENDING_STATUSES)),
        "approved_packages": await count(PermitPackage.status == PackageStatus.APPROVED),
        "overdue_packages": await count(
            PermitPackage.due_date.is_not(None),
            PermitPackage.due_date < today,
            PermitPackage.status != PackageStatus.CLOSED,
        ),
        "recent_packages": list(recent.scalars().all()),
    }
