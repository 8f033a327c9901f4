"""API key tenant resolution."""

import hashlib
import logging
from typing import Annotated

from fastapi import Depends
from fastapi.security import APIKeyHeader
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from easytax.config import settings
from easytax.database import get_db
from easytax.exceptions import NotFoundError, PersistenceError
from easytax.models.tenant import Tenant

logger = logging.getLogger(__name__)

API_KEY_HEADER = APIKeyHeader(name="Authorization", auto_error=False)

NO_TENANT_MESSAGE = "No tenant specified"


def hash_api_key(api_key: str) -> str:
    """Hash API key with salt for storage/lookup."""
    return hashlib.sha256(
        f"{settings.api_key_hash_salt}:{api_key}".encode()
    ).hexdigest()


def bearer_api_key(auth_header: str | None) -> str | None:
    """The API key from an ``Authorization: Bearer <key>`` header, if any."""
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    return auth_header[7:].strip() or None


async def get_tenant_from_bearer(
    db: Annotated[AsyncSession, Depends(get_db)],
    auth_header: str | None = Depends(API_KEY_HEADER),
) -> Tenant:
    """Extract tenant from Bearer token (API key).

    Every identification failure is reported as "no tenant": the resource
    simply does not exist for an unidentified caller. A failed lookup is a
    PersistenceError.
    """
    api_key = bearer_api_key(auth_header)
    if api_key is None:
        raise NotFoundError(NO_TENANT_MESSAGE)
    try:
        result = await db.execute(
            select(Tenant).where(Tenant.api_key_hash == hash_api_key(api_key))
        )
    except SQLAlchemyError as e:
        logger.exception("Tenant lookup failed")
        raise PersistenceError.from_exception(e) from e
    tenant = result.scalar_one_or_none()
    if not tenant:
        raise NotFoundError(NO_TENANT_MESSAGE)
    return tenant


# Type alias for dependency injection
TenantDep = Annotated[Tenant, Depends(get_tenant_from_bearer)]
