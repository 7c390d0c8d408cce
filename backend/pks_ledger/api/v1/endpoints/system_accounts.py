"""
System Account Map API Endpoints

Which posting account each automatic journal uses.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pks_ledger.api.v1.deps import get_actor_id, get_db
from pks_ledger.db.session import atomic
from pks_ledger.schemas.accounting import (
    SystemAccountMappingResponse,
    SystemAccountMappingsUpdate,
)
from pks_ledger.services.system_account_service import SystemAccountService

router = APIRouter()


@router.get("/", response_model=List[SystemAccountMappingResponse])
async def list_system_accounts(company_id: int, db: Session = Depends(get_db)):
    return SystemAccountService(db).list_mappings(company_id)


@router.put("/", response_model=List[SystemAccountMappingResponse])
async def set_system_accounts(
    request: SystemAccountMappingsUpdate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """
    Upsert key -> account mappings

    The whole batch is rejected when any account is missing, belongs to
    another company, or is a header account.
    """
    with atomic(db):
        mappings = SystemAccountService(db).set_mappings(
            request.company_id,
            [(m.key, m.account_id) for m in request.mappings],
            actor_id=actor_id,
        )
    for mapping in mappings:
        db.refresh(mapping)
    return mappings
