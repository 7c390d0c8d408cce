"""
Journal API Endpoints (Jurnal Umum)

Manual entries and reversals. Entries posted by warehouse documents and
weighbridge tickets are readable here too.
"""
from datetime import date
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pks_ledger.api.v1.deps import (
    PaginationParams,
    get_actor_id,
    get_company_id,
    get_db,
    get_pagination_params,
)
from pks_ledger.db.session import atomic
from pks_ledger.schemas.accounting import (
    JournalEntryCreate,
    JournalEntryResponse,
    JournalEntryReverse,
)
from pks_ledger.services.journal_service import SOURCE_MANUAL, JournalLineInput, JournalService

router = APIRouter()


@router.get("/", response_model=List[JournalEntryResponse])
async def list_entries(
    company_id: int,
    pagination: Annotated[PaginationParams, Depends(get_pagination_params)],
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    source_type: Optional[str] = None,
    source_id: Optional[int] = None,
    db: Session = Depends(get_db),
):
    return JournalService(db).list_entries(
        company_id,
        start_date=start_date,
        end_date=end_date,
        source_type=source_type,
        source_id=source_id,
        skip=pagination.skip,
        limit=pagination.limit,
    )


@router.get("/{entry_id}", response_model=JournalEntryResponse)
async def get_entry(
    entry_id: int,
    company_id: Optional[int] = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    return JournalService(db).get_entry(entry_id, company_id)


@router.post("/", response_model=JournalEntryResponse, status_code=201)
async def post_manual_entry(
    request: JournalEntryCreate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """
    Post a manual journal entry

    Debits must equal credits, every account must be an active posting
    account of the company, and the entry date must be in an open period.
    """
    with atomic(db):
        entry = JournalService(db).post_entry(
            company_id=request.company_id,
            entry_date=request.entry_date,
            source_type=SOURCE_MANUAL,
            source_id=None,
            memo=request.memo,
            lines=[JournalLineInput(**line.model_dump()) for line in request.lines],
            actor_id=actor_id,
        )
    db.refresh(entry)
    return entry


@router.post("/{entry_id}/reverse", response_model=JournalEntryResponse, status_code=201)
async def reverse_entry(
    entry_id: int,
    request: JournalEntryReverse,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Post the mirror image of an entry; an entry can be reversed once"""
    with atomic(db):
        entry = JournalService(db).reverse_entry(
            entry_id,
            reversal_date=request.reversal_date,
            actor_id=actor_id,
            memo=request.memo,
        )
    db.refresh(entry)
    return entry
