"""
Identity and package access contracts.

The identity service and the access-control policy are external
collaborators; this module defines the shape the rest of the application
relies on plus the default implementations wired at startup.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional
from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import HTTPConnection
from permit_tracker.core.config import TokenIdentity
from permit_tracker.core.errors import ForbiddenError, UnauthorizedError
from permit_tracker.models.enums import UserRole
from permit_tracker.models.permit_package import PermitPackage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Verified caller identity"""
    user_id: str
    role: str = UserRole.USER.value

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


def strip_bearer(credential: Optional[str]) -> Optional[str]:
    """Remove a leading 'Bearer ' from a credential if present"""
    if not credential:
        return None
    credential = credential.strip()
    if credential.lower().startswith("bearer "):
        credential = credential[7:].strip()
    return credential or None


class IdentityProvider:
    """Resolves a bearer credential to an Identity"""

    async def verify(self, token: Optional[str]) -> Identity:
        raise NotImplementedError


class TokenIdentityProvider(IdentityProvider):
    """Identity provider backed by a static token table"""

    def __init__(self, tokens: Dict[str, TokenIdentity]):
        self._tokens = dict(tokens)

    async def verify(self, token: Optional[str]) -> Identity:
        token = strip_bearer(token)
        if token is None:
            raise UnauthorizedError("No token provided")
        entry = self._tokens.get(token)
        if entry is None:
            raise UnauthorizedError("Invalid token")
        return Identity(user_id=entry.user_id, role=entry.role)


class PackageAccessPolicy:
    """
    Decides whether a user may join or mutate a package's collaboration room.

    Baseline rule: the package creator or its last updater. Administrators
    pass when `admin_override` is set.
    """

    def __init__(self, admin_override: bool = True):
        self.admin_override = admin_override

    async def can_access(self, db: AsyncSession, identity: Identity, package_id: str) -> bool:
        if self.admin_override and identity.is_admin:
            result = await db.execute(select(PermitPackage.id).where(PermitPackage.id == package_id))
            return result.scalar_one_or_none() is not None
        result = await db.execute(
            select(PermitPackage.id).where(
                PermitPackage.id == package_id,
                (PermitPackage.created_by_id == identity.user_id)
                | (PermitPackage.updated_by_id == identity.user_id),
            )
        )
        return result.scalar_one_or_none() is not None


async def ensure_package_access(
    db: AsyncSession, policy: PackageAccessPolicy, identity: Identity, package_id: str
) -> None:
    """Raise ForbiddenError unless the policy lets `identity` act on the package"""
    if not await policy.can_access(db, identity, package_id):
        logger.warning("User %s denied access to package %s", identity.user_id, package_id)
        raise ForbiddenError("Access denied to this package")


def get_identity_provider(connection: HTTPConnection) -> IdentityProvider:
    return connection.app.state.identity_provider


def get_access_policy(connection: HTTPConnection) -> PackageAccessPolicy:
    return connection.app.state.access_policy


async def get_current_identity(
    authorization: Optional[str] = Header(None),
    provider: IdentityProvider = Depends(get_identity_provider),
) -> Identity:
    """FastAPI dependency resolving the Authorization header"""
    return await provider.verify(authorization)


async def require_admin(identity: Identity = Depends(get_current_identity)) -> Identity:
    """FastAPI dependency restricting a route to administrators"""
    if not identity.is_admin:
        logger.warning("User %s denied admin-only operation", identity.user_id)
        raise ForbiddenError("Administrator role required")
    return identity
