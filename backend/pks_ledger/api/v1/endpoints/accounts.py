"""
Chart of Accounts API Endpoints (Daftar Akun)
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pks_ledger.api.v1.deps import get_actor_id, get_company_id, get_db
from pks_ledger.db.session import atomic
from pks_ledger.schemas.accounting import (
    AccountCreate,
    AccountResponse,
    AccountTreeNode,
    AccountUpdate,
)
from pks_ledger.services.account_service import AccountService

router = APIRouter()


@router.get("/", response_model=List[AccountResponse])
async def list_accounts(
    company_id: int,
    account_class: Optional[str] = None,
    status: Optional[str] = None,
    is_posting: Optional[bool] = None,
    search: Optional[str] = Query(None, description="Match on code or name"),
    db: Session = Depends(get_db),
):
    """
    List accounts ordered by code

    - **account_class**: ASSET, LIABILITY, EQUITY, REVENUE, COGS, EXPENSE, OTHER_INCOME, OTHER_EXPENSE
    - **status**: AKTIF or NONAKTIF
    - **is_posting**: only posting (leaf) or only header accounts
    """
    return AccountService(db).list_accounts(
        company_id,
        account_class=account_class,
        status=status,
        is_posting=is_posting,
        search=search,
    )


@router.get("/tree", response_model=List[AccountTreeNode])
async def get_account_tree(company_id: int, db: Session = Depends(get_db)):
    """Chart of accounts as a nested tree"""
    return AccountService(db).list_tree(company_id)


@router.get("/{account_id}", response_model=AccountResponse)
async def get_account(
    account_id: int,
    company_id: Optional[int] = Depends(get_company_id),
    db: Session = Depends(get_db),
):
    return AccountService(db).get_account(account_id, company_id)


@router.get("/{account_id}/descendants", response_model=List[AccountResponse])
async def get_account_descendants(account_id: int, db: Session = Depends(get_db)):
    """Every account below this one in the hierarchy"""
    return AccountService(db).find_descendants(account_id)


@router.post("/", response_model=AccountResponse, status_code=201)
async def create_account(
    request: AccountCreate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    with atomic(db):
        account = AccountService(db).create_account(actor_id=actor_id, **request.model_dump())
    db.refresh(account)
    return account


@router.patch("/{account_id}", response_model=AccountResponse)
async def update_account(
    account_id: int,
    request: AccountUpdate,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Update an account; only fields sent are changed"""
    with atomic(db):
        account = AccountService(db).update_account(
            account_id, actor_id=actor_id, **request.model_dump(exclude_unset=True)
        )
    db.refresh(account)
    return account


@router.delete("/{account_id}")
async def delete_account(
    account_id: int,
    actor_id: Optional[int] = Depends(get_actor_id),
    db: Session = Depends(get_db),
):
    """Delete an account that has no children, journal lines, mapping or opening balance"""
    with atomic(db):
        AccountService(db).delete_account(account_id, actor_id=actor_id)
    return {"message": f"Account {account_id} deleted"}
