"""Tax code endpoints - /taxCodes[/{zone}[/{product}[/{code}]]]."""

import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query, Request, Response, status
from pydantic import TypeAdapter, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from easytax.auth.middleware import TenantDep
from easytax.config import settings
from easytax.database import get_db
from easytax.engine.paths import RESOURCE_ROOT, TaxCodePrefix, match_tax_code_path
from easytax.engine.resolver import resolve
from easytax.engine.writer import save_tax_code, save_tax_codes
from easytax.exceptions import BadRequestError, NotFoundError
from easytax.schemas.tax_code import TaxCodeBatchItem, TaxCodeBody
from easytax.storage.repositories import SqlTaxCodeStore
from easytax.storage.store import TaxCodeStore
from easytax.utils.encoding import (
    DEFAULT_POLICY,
    EncodingPolicy,
    decode_json,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

router = APIRouter()

VALID_NOW_PARAM = "validNow"
VALID_DATE_PARAM = "validDate"
APPLICATION_JSON_UTF8 = "application/json;charset=UTF-8"

_body_adapter = TypeAdapter(TaxCodeBody)
_batch_adapter = TypeAdapter(list[TaxCodeBatchItem] | None)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def get_clock() -> Callable[[], datetime]:
    """Dependency for the current-time source."""
    return utc_now


def get_tax_code_store(db: Annotated[AsyncSession, Depends(get_db)]) -> TaxCodeStore:
    """Dependency for the tax code store."""
    return SqlTaxCodeStore(db)


def get_encoding_policy() -> EncodingPolicy:
    """Dependency for the wire encoding policy."""
    return DEFAULT_POLICY


StoreDep = Annotated[TaxCodeStore, Depends(get_tax_code_store)]
ClockDep = Annotated[Callable[[], datetime], Depends(get_clock)]
PolicyDep = Annotated[EncodingPolicy, Depends(get_encoding_policy)]


def match_prefix(resource_path: str) -> TaxCodePrefix:
    """Key prefix for a resource path, or NotFoundError."""
    path = "/" + resource_path
    prefix = match_tax_code_path(path)
    if prefix is None:
        raise NotFoundError(f"Resource {path} not found")
    return prefix


def validity_instant(
    valid_now: str | None,
    valid_date: str | None,
    clock: Callable[[], datetime],
) -> datetime | None:
    """The instant to filter on: current time, a supplied date, or none."""
    now_requested = valid_now is not None and valid_now.lower() == "true"
    if now_requested and valid_date is not None:
        raise BadRequestError(
            f"{VALID_NOW_PARAM} and {VALID_DATE_PARAM} cannot be used together"
        )
    if now_requested:
        return clock()
    if valid_date is not None:
        try:
            return parse_timestamp(valid_date)
        except ValueError as e:
            raise BadRequestError(f"Invalid {VALID_DATE_PARAM} {valid_date!r}: {e}") from e
    return None


def describe_validation_error(e: ValidationError) -> str:
    """One line per problem: 'location: message'."""
    problems = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err["loc"])
        problems.append(f"{loc}: {err['msg']}" if loc else err["msg"])
    return "Invalid tax code: " + "; ".join(problems)


def parse_body(raw: bytes, adapter: TypeAdapter):
    """Validate a JSON body; fractional numbers reach pydantic as Decimal."""
    try:
        data = decode_json(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BadRequestError(f"Invalid tax code: {e}") from e
    try:
        return adapter.validate_python(data)
    except ValidationError as e:
        raise BadRequestError(describe_validation_error(e)) from e


def tax_code_location(prefix: TaxCodePrefix) -> str:
    """Canonical URL of a single tax code."""
    segments = "/".join(quote(s, safe="") for s in prefix.segments())
    return f"{settings.mount_path}{RESOURCE_ROOT}/{segments}"


@router.get("/{resource_path:path}")
async def get_tax_codes(
    resource_path: str,
    tenant: TenantDep,
    store: StoreDep,
    clock: ClockDep,
    policy: PolicyDep,
    valid_now: Annotated[str | None, Query(alias=VALID_NOW_PARAM)] = None,
    valid_date: Annotated[str | None, Query(alias=VALID_DATE_PARAM)] = None,
):
    """
    List tax codes under the path prefix, as a JSON array (possibly empty).
    validNow=true or validDate=<ISO-8601> restrict the list to records whose
    validity window contains that instant.
    """
    prefix = match_prefix(resource_path)
    instant = validity_instant(valid_now, valid_date, clock)
    records = await resolve(store, str(tenant.tenant_id), prefix, instant)
    return Response(content=policy.dumps(records), media_type=APPLICATION_JSON_UTF8)


@router.post("/{resource_path:path}")
async def post_tax_codes(
    resource_path: str,
    request: Request,
    tenant: TenantDep,
    store: StoreDep,
    clock: ClockDep,
):
    """
    Save tax codes.

    On /taxCodes/{zone}/{product}/{code} the body is a single object with
    tax_rate, valid_from_date and optional valid_to_date. On any shorter path
    the body is an array of objects that also carry tax_zone, product_name
    and tax_code. tenant_id and created_date are always assigned here.
    """
    prefix = match_prefix(resource_path)
    raw = await request.body()
    tenant_id = str(tenant.tenant_id)

    if prefix.is_complete:
        body = parse_body(raw, _body_adapter)
        await save_tax_code(store, tenant_id, prefix, body, clock())
        return Response(
            status_code=status.HTTP_201_CREATED,
            headers={"Location": tax_code_location(prefix)},
        )

    items = parse_body(raw, _batch_adapter) if raw.strip() else None
    await save_tax_codes(store, tenant_id, items, clock())
    return Response(status_code=status.HTTP_200_OK)


@router.delete("/{resource_path:path}")
async def delete_tax_codes(
    resource_path: str,
    tenant: TenantDep,
    store: StoreDep,
):
    """Delete every tax code under the path prefix (none is fine)."""
    prefix = match_prefix(resource_path)
    removed = await store.delete(str(tenant.tenant_id), prefix)
    logger.info(
        "Deleted %d tax codes under %s for tenant %s",
        removed,
        "/".join(prefix.segments()) or "*",
        tenant.tenant_id,
    )
    return Response(status_code=status.HTTP_200_OK)
