"""
API Dependencies

Common dependencies shared by the v1 endpoints.
"""
from typing import Optional

from fastapi import Header, Query
from pydantic import BaseModel

from pks_ledger.db.session import get_db  # noqa: F401


class PaginationParams(BaseModel):
    skip: int = 0
    limit: int = 50


def get_pagination_params(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(50, ge=1, le=500, description="Maximum records to return"),
) -> PaginationParams:
    return PaginationParams(skip=skip, limit=limit)


def get_company_id(
    company_id: Optional[int] = Query(None, ge=1, description="Only return the record if it belongs to this company"),
) -> Optional[int]:
    return company_id


def get_actor_id(x_actor_id: Optional[int] = Header(None, alias="X-Actor-Id")) -> Optional[int]:
    """
    Id of the user performing the request, recorded in audit columns.

    Authentication happens upstream; the gateway forwards the user id in
    the X-Actor-Id header.
    """
    return x_actor_id
