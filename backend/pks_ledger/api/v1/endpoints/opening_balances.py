"""
Opening Balance API Endpoints (Saldo Awal)
"""
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pks_ledger.api.v1.deps import get_actor_id, get_db
from pks_ledger.db.session import atomic
from pks_ledger.schemas.accounting import OpeningBalanceRowResponse, OpeningBalancesUpdate
from pks_ledger.services.opening_balance_service import OpeningBalanceInput, OpeningBalanceService

router = APIRouter()


@router.get("/", response_model=List[OpeningBalanceRowResponse])
async def get_opening_balances(company_id: int, period_id: int, db: Session = Depends(get_db)):
    """Every posting account with its opening debit/credit; zero when not entered"""
    rows = OpeningBalanceService(db).get_entries(company_id, period_id)
    return [row._asdict() for row in rows]


@router.put("/", response_model=List[OpeningBalanceRowResponse])
async def set_opening_balances(
    request: OpeningBalancesUpdate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Replace the period's opening balances. Rejected when the period is closed."""
    service = OpeningBalanceService(db)
    with atomic(db):
        service.set_entries(
            request.company_id,
            request.period_id,
            [OpeningBalanceInput(**entry.model_dump()) for entry in request.entries],
            actor_id=actor_id,
        )
    rows = service.get_entries(request.company_id, request.period_id)
    return [row._asdict() for row in rows]
