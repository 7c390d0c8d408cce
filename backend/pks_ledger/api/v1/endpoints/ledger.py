"""
Ledger Report API Endpoints (Buku Besar, Neraca Saldo)
"""
from datetime import date

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pks_ledger.api.v1.deps import get_db
from pks_ledger.schemas.accounting import (
    AccountBalanceResponse,
    AccountLedgerResponse,
    TrialBalanceResponse,
)
from pks_ledger.services.ledger_service import LedgerService

router = APIRouter()


@router.get("/accounts/{account_id}", response_model=AccountLedgerResponse)
async def get_account_ledger(
    account_id: int,
    company_id: int,
    start_date: date,
    end_date: date,
    db: Session = Depends(get_db),
):
    """Opening balance, every line with running balance, and the ending balance"""
    return LedgerService(db).account_ledger(company_id, account_id, start_date, end_date)


@router.get("/accounts/{account_id}/balance", response_model=AccountBalanceResponse)
async def get_account_balance(
    account_id: int,
    company_id: int,
    as_of: date,
    db: Session = Depends(get_db),
):
    balance = LedgerService(db).balance_as_of(company_id, account_id, as_of)
    return {"account_id": account_id, "as_of": as_of, "balance": balance}


@router.get("/trial-balance", response_model=TrialBalanceResponse)
async def get_trial_balance(company_id: int, as_of: date, db: Session = Depends(get_db)):
    return LedgerService(db).trial_balance(company_id, as_of)
