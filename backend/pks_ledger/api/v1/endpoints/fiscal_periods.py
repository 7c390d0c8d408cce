"""
Fiscal Period API Endpoints (Periode Akuntansi)
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pks_ledger.api.v1.deps import get_actor_id, get_company_id, get_db
from pks_ledger.db.session import atomic
from pks_ledger.schemas.accounting import (
    FiscalPeriodCreate,
    FiscalPeriodResponse,
    FiscalPeriodUpdate,
)
from pks_ledger.services.fiscal_period_service import FiscalPeriodService

router = APIRouter()


@router.get("/", response_model=List[FiscalPeriodResponse])
async def list_periods(company_id: int, year: Optional[int] = None, db: Session = Depends(get_db)):
    return FiscalPeriodService(db).list_periods(company_id, year=year)


@router.get("/{period_id}", response_model=FiscalPeriodResponse)
async def get_period(
    period_id: int,
    company_id: Optional[int] = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    return FiscalPeriodService(db).get_period(period_id, company_id)


@router.post("/", response_model=FiscalPeriodResponse, status_code=201)
async def create_period(
    request: FiscalPeriodCreate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Open a monthly period; dates default to the calendar month"""
    with atomic(db):
        period = FiscalPeriodService(db).create_period(actor_id=actor_id, **request.model_dump())
    db.refresh(period)
    return period


@router.patch("/{period_id}", response_model=FiscalPeriodResponse)
async def update_period(
    period_id: int,
    request: FiscalPeriodUpdate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    with atomic(db):
        period = FiscalPeriodService(db).update_period(
            period_id, actor_id=actor_id, **request.model_dump(exclude_unset=True)
        )
    db.refresh(period)
    return period


@router.post("/{period_id}/close", response_model=FiscalPeriodResponse)
async def close_period(
    period_id: int,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Close a period; postings dated inside it are rejected afterwards"""
    with atomic(db):
        period = FiscalPeriodService(db).close(period_id, actor_id=actor_id)
    db.refresh(period)
    return period


@router.post("/{period_id}/reopen", response_model=FiscalPeriodResponse)
async def reopen_period(
    period_id: int,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    with atomic(db):
        period = FiscalPeriodService(db).reopen(period_id, actor_id=actor_id)
    db.refresh(period)
    return period


@router.delete("/{period_id}")
async def delete_period(
    period_id: int,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    with atomic(db):
        FiscalPeriodService(db).delete_period(period_id, actor_id=actor_id)
    return {"message": f"Fiscal period {period_id} deleted"}
