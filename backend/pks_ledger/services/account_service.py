"""
Account Registry - chart of accounts per company

Header accounts (is_posting=False) aggregate their children; posting
accounts are leaves and are the only accounts journal lines may reference.
The tree is validated on every write so it can be read without cycle checks.
"""
from typing import Any, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from pks_ledger.exceptions import AccountInUseError, DuplicateError, NotFoundError, ValidationError
from pks_ledger.logging_config import get_logger
from pks_ledger.models.accounting import (
    Account,
    AccountClass,
    AccountStatus,
    JournalLine,
    NormalSide,
    OpeningBalance,
    SystemAccountMapping,
    TaxCode,
)

logger = get_logger(__name__)

_UPDATABLE_FIELDS = (
    "code",
    "name",
    "account_class",
    "normal_side",
    "is_posting",
    "is_cash_bank",
    "tax_code",
    "parent_id",
    "status",
    "description",
)


def _enum_value(enum_cls, value, field: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError:
        raise ValidationError(
            f"Invalid {field}: {value}",
            field=field,
            value=value,
            details={"allowed": [m.value for m in enum_cls]},
        )


class AccountService:
    def __init__(self, db: Session):
        self.db = db

    # === QUERIES ===

    def get_account(self, account_id: int, company_id: Optional[int] = None) -> Account:
        query = self.db.query(Account).filter(Account.id == account_id)
        if company_id is not None:
            query = query.filter(Account.company_id == company_id)
        account = query.first()
        if not account:
            raise NotFoundError("Account", account_id)
        return account

    def list_accounts(
        self,
        company_id: int,
        account_class: Optional[str] = None,
        status: Optional[str] = None,
        is_posting: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> List[Account]:
        query = self.db.query(Account).filter(Account.company_id == company_id)
        if account_class:
            query = query.filter(Account.account_class == _enum_value(AccountClass, account_class, "account_class"))
        if status:
            query = query.filter(Account.status == _enum_value(AccountStatus, status, "status"))
        if is_posting is not None:
            query = query.filter(Account.is_posting == is_posting)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Account.code.ilike(pattern), Account.name.ilike(pattern)))
        return query.order_by(Account.code).all()

    def list_tree(self, company_id: int) -> List[Dict[str, Any]]:
        """
        Chart of accounts as a depth-first nested structure ordered by code.

        Each node is a dict of account fields plus ``children``. Every account
        appears exactly once.
        """
        accounts = self.list_accounts(company_id)
        by_id = {a.id: a for a in accounts}
        children: Dict[Optional[int], List[Account]] = {}
        for account in accounts:
            parent_id = account.parent_id if account.parent_id in by_id else None
            children.setdefault(parent_id, []).append(account)

        seen = set()

        def build(account: Account) -> Dict[str, Any]:
            seen.add(account.id)
            node = _account_node(account)
            node["children"] = [
                build(child) for child in children.get(account.id, []) if child.id not in seen
            ]
            return node

        return [build(root) for root in children.get(None, []) if root.id not in seen]

    def find_descendants(self, account_id: int) -> List[Account]:
        """All accounts below account_id, depth-first, excluding the account itself."""
        root = self.get_account(account_id)
        result: List[Account] = []
        seen = {root.id}
        stack = [root.id]
        while stack:
            parent_id = stack.pop()
            kids = (
                self.db.query(Account)
                .filter(Account.parent_id == parent_id)
                .order_by(Account.code.desc())
                .all()
            )
            for kid in kids:
                if kid.id in seen:
                    continue
                seen.add(kid.id)
                result.append(kid)
                stack.append(kid.id)
        return result

    # === WRITES ===

    def create_account(
        self,
        company_id: int,
        code: str,
        name: str,
        account_class: str,
        normal_side: str,
        is_posting: bool = True,
        parent_id: Optional[int] = None,
        is_cash_bank: bool = False,
        tax_code: str = TaxCode.NON_TAX.value,
        status: str = AccountStatus.AKTIF.value,
        description: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Account:
        code = (code or "").strip()
        name = (name or "").strip()
        if not code:
            raise ValidationError("Account code is required", field="code")
        if not name:
            raise ValidationError("Account name is required", field="name")

        self._ensure_code_free(company_id, code)
        if parent_id is not None:
            self._validate_parent(company_id, parent_id)

        account = Account(
            company_id=company_id,
            code=code,
            name=name,
            account_class=_enum_value(AccountClass, account_class, "account_class"),
            normal_side=_enum_value(NormalSide, normal_side, "normal_side"),
            is_posting=bool(is_posting),
            is_cash_bank=bool(is_cash_bank),
            tax_code=_enum_value(TaxCode, tax_code, "tax_code"),
            parent_id=parent_id,
            status=_enum_value(AccountStatus, status, "status"),
            description=description,
        )
        self.db.add(account)
        self.db.flush()

        logger.info(
            "Account created",
            extra={"account_id": account.id, "company_id": company_id, "code": code, "actor_id": actor_id},
        )
        return account

    def update_account(self, account_id: int, actor_id: Optional[int] = None, **changes) -> Account:
        account = self.get_account(account_id)

        unknown = set(changes) - set(_UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown account fields: {', '.join(sorted(unknown))}")

        if "code" in changes:
            code = (changes["code"] or "").strip()
            if not code:
                raise ValidationError("Account code is required", field="code")
            if code != account.code:
                self._ensure_code_free(account.company_id, code)
            changes["code"] = code
        if "name" in changes:
            name = (changes["name"] or "").strip()
            if not name:
                raise ValidationError("Account name is required", field="name")
            changes["name"] = name

        for field, enum_cls in (
            ("account_class", AccountClass),
            ("normal_side", NormalSide),
            ("tax_code", TaxCode),
            ("status", AccountStatus),
        ):
            if field in changes:
                changes[field] = _enum_value(enum_cls, changes[field], field)

        if "parent_id" in changes and changes["parent_id"] != account.parent_id:
            parent_id = changes["parent_id"]
            if parent_id is not None:
                self._validate_parent(account.company_id, parent_id)
                self._ensure_no_cycle(account.id, parent_id)

        if "is_posting" in changes and bool(changes["is_posting"]) != account.is_posting:
            if changes["is_posting"] and self._has_children(account.id):
                raise ValidationError(
                    f"Account {account.code} has child accounts and must stay a header",
                    field="is_posting",
                    value=changes["is_posting"],
                )
            if not changes["is_posting"] and self._has_journal_lines(account.id):
                raise ValidationError(
                    f"Account {account.code} has journal lines and must stay a posting account",
                    field="is_posting",
                    value=changes["is_posting"],
                )

        for field, value in changes.items():
            setattr(account, field, value)
        self.db.flush()

        logger.info(
            "Account updated",
            extra={"account_id": account.id, "fields": sorted(changes), "actor_id": actor_id},
        )
        return account

    def delete_account(self, account_id: int, actor_id: Optional[int] = None) -> None:
        account = self.get_account(account_id)

        if self._has_children(account.id):
            raise AccountInUseError(account.id, reason="has child accounts")
        if self._has_journal_lines(account.id):
            raise AccountInUseError(account.id, reason="referenced by journal lines")
        if self.db.query(SystemAccountMapping.id).filter(SystemAccountMapping.account_id == account.id).first():
            raise AccountInUseError(account.id, reason="mapped as a system account")
        if self.db.query(OpeningBalance.id).filter(OpeningBalance.account_id == account.id).first():
            raise AccountInUseError(account.id, reason="has opening balances")

        self.db.delete(account)
        self.db.flush()
        logger.info(
            "Account deleted",
            extra={"account_id": account_id, "code": account.code, "actor_id": actor_id},
        )

    # === INTERNAL HELPERS ===

    def _ensure_code_free(self, company_id: int, code: str) -> None:
        exists = (
            self.db.query(Account.id)
            .filter(Account.company_id == company_id, Account.code == code)
            .first()
        )
        if exists:
            raise DuplicateError("Account", field="code", value=code)

    def _validate_parent(self, company_id: int, parent_id: int) -> Account:
        parent = self.db.query(Account).filter(Account.id == parent_id).first()
        if not parent:
            raise NotFoundError("Account", parent_id)
        if parent.company_id != company_id:
            raise ValidationError(
                "Parent account belongs to another company",
                field="parent_id",
                value=parent_id,
            )
        if parent.is_posting:
            raise ValidationError(
                f"Parent account {parent.code} is a posting account; only header accounts may have children",
                field="parent_id",
                value=parent_id,
            )
        return parent

    def _ensure_no_cycle(self, account_id: int, new_parent_id: int) -> None:
        """Walk up from the new parent; meeting account_id means a cycle."""
        current_id = new_parent_id
        seen = set()
        while current_id is not None:
            if current_id == account_id:
                raise ValidationError(
                    "Account cannot be placed under itself or one of its descendants",
                    field="parent_id",
                    value=new_parent_id,
                )
            if current_id in seen:
                break
            seen.add(current_id)
            current_id = (
                self.db.query(Account.parent_id).filter(Account.id == current_id).scalar()
            )

    def _has_children(self, account_id: int) -> bool:
        return self.db.query(Account.id).filter(Account.parent_id == account_id).first() is not None

    def _has_journal_lines(self, account_id: int) -> bool:
        return self.db.query(JournalLine.id).filter(JournalLine.account_id == account_id).first() is not None


def _account_node(account: Account) -> Dict[str, Any]:
    return {
        "id": account.id,
        "code": account.code,
        "name": account.name,
        "account_class": account.account_class,
        "normal_side": account.normal_side,
        "is_posting": account.is_posting,
        "status": account.status,
        "parent_id": account.parent_id,
    }
