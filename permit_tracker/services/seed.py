"""Reference data: Florida counties and a sample Miami-Dade checklist catalog."""

import logging
from typing import Dict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from permit_tracker.models.checklist_template import ChecklistTemplateItem
from permit_tracker.models.county import County
from permit_tracker.services.persistence import commit_or_rollback

logger = logging.getLogger(__name__)

FLORIDA_COUNTIES = [
    "Alachua County",
    "Baker County",
    "Bay County",
    "Bradford County",
    "Brevard County",
    "Broward County",
    "Calhoun County",
    "Charlotte County",
    "Citrus County",
    "Clay County",
    "Collier County",
    "Columbia County",
    "DeSoto County",
    "Dixie County",
    "Duval County",
    "Escambia County",
    "Flagler County",
    "Franklin County",
    "Gadsden County",
    "Gilchrist County",
    "Glades County",
    "Gulf County",
    "Hamilton County",
    "Hardee County",
    "Hendry County",
    "Hernando County",
    "Highlands County",
    "Hillsborough County",
    "Holmes County",
    "Indian River County",
    "Jackson County",
    "Jefferson County",
    "Lafayette County",
    "Lake County",
    "Lee County",
    "Leon County",
    "Levy County",
    "Liberty County",
    "Madison County",
    "Manatee County",
    "Marion County",
    "Martin County",
    "Miami-Dade County",
    "Monroe County",
    "Nassau County",
    "Okaloosa County",
    "Okeechobee County",
    "Orange County",
    "Osceola County",
    "Palm Beach County",
    "Pasco County",
    "Pinellas County",
    "Polk County",
    "Putnam County",
    "St. Johns County",
    "St. Lucie County",
    "Santa Rosa County",
    "Sarasota County",
    "Seminole County",
    "Sumter County",
    "Suwannee County",
    "Taylor County",
    "Union County",
    "Volusia County",
    "Wakulla County",
    "Walton County",
    "Washington County",
]

SAMPLE_COUNTY = "Miami-Dade County"

# (label, category, required, sort_order); apply to every permit type
SAMPLE_TEMPLATES = [
    ("Building Permit Application", "Application", True, 1),
    ("Site Plan", "Plans", True, 2),
    ("Foundation Plans", "Plans", True, 3),
    ("Electrical Plans", "Plans", False, 4),
    ("Plumbing Plans", "Plans", False, 5),
    ("HVAC Plans", "Plans", False, 6),
    ("Energy Code Compliance", "Compliance", True, 7),
    ("Wind Load Calculations", "Engineering", True, 8),
    ("Soil Report", "Site", True, 9),
    ("Flood Zone Determination", "Site", True, 10),
]


async def seed_reference_data(db: AsyncSession) -> Dict[str, int]:
    """Insert missing counties and, for a county with no catalog yet, the sample templates.

    Safe to run repeatedly.

    Returns:
        Counts of counties and templates created
    """
    result = await db.execute(select(County.name))
    existing = set(result.scalars().all())

    created_counties = 0
    for name in FLORIDA_COUNTIES:
        if name not in existing:
            db.add(County(name=name, state="FL"))
            created_counties += 1
    await db.flush()

    result = await db.execute(select(County).where(County.name == SAMPLE_COUNTY))
    sample_county = result.scalar_one()
    result = await db.execute(
        select(ChecklistTemplateItem.id).where(ChecklistTemplateItem.county_id == sample_county.id).limit(1)
    )
    created_templates = 0
    if result.scalar_one_or_none() is None:
        for label, category, required, sort_order in SAMPLE_TEMPLATES:
            db.add(ChecklistTemplateItem(
                county_id=sample_county.id,
                label=label,
                category=category,
                required=required,
                sort_order=sort_order,
            ))
            created_templates += 1

    await commit_or_rollback(db, "seed reference data")
    logger.info("Seeded %d counties and %d templates", created_counties, created_templates)
    return {"counties": created_counties, "templates": created_templates}
