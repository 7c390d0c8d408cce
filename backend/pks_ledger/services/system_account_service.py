"""
System Account Map - business roles resolved to concrete posting accounts

Workflow services receive an instance of this service and call resolve()
inside the posting transaction. A missing mapping aborts the whole
business transaction; there are no fallback accounts.
"""
from typing import Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from pks_ledger.exceptions import AccountMisconfiguredError, NotFoundError, ValidationError
from pks_ledger.logging_config import get_logger
from pks_ledger.models.accounting import Account, SystemAccountKey, SystemAccountMapping

logger = get_logger(__name__)

KeyLike = Union[SystemAccountKey, str]


def to_key(key: KeyLike) -> SystemAccountKey:
    if isinstance(key, SystemAccountKey):
        return key
    try:
        return SystemAccountKey(key)
    except ValueError:
        raise ValidationError(f"Unknown system account key: {key}", field="key", value=key)


class SystemAccountService:
    def __init__(self, db: Session):
        self.db = db
        # Per-request cache; invalidated by set_mapping
        self._cache: Dict[Tuple[int, SystemAccountKey], Optional[int]] = {}

    def list_mappings(self, company_id: int) -> List[SystemAccountMapping]:
        return (
            self.db.query(SystemAccountMapping)
            .filter(SystemAccountMapping.company_id == company_id)
            .order_by(SystemAccountMapping.key)
            .all()
        )

    def set_mapping(
        self,
        company_id: int,
        key: KeyLike,
        account_id: int,
        actor_id: Optional[int] = None,
    ) -> SystemAccountMapping:
        """Create or overwrite the mapping for (company_id, key)."""
        key = to_key(key)
        account = self.db.query(Account).filter(Account.id == account_id).first()
        if not account:
            raise NotFoundError("Account", account_id)
        if account.company_id != company_id:
            raise ValidationError(
                "Account belongs to another company",
                field="account_id",
                value=account_id,
            )
        if not account.is_posting:
            raise ValidationError(
                f"Account {account.code} is a header account; system accounts must be posting accounts",
                field="account_id",
                value=account_id,
            )

        mapping = (
            self.db.query(SystemAccountMapping)
            .filter(
                SystemAccountMapping.company_id == company_id,
                SystemAccountMapping.key == key,
            )
            .first()
        )
        if mapping:
            mapping.account_id = account_id
            mapping.updated_by = actor_id
        else:
            mapping = SystemAccountMapping(
                company_id=company_id,
                key=key,
                account_id=account_id,
                updated_by=actor_id,
            )
            self.db.add(mapping)
        self.db.flush()
        self._cache.pop((company_id, key), None)

        logger.info(
            "System account mapped",
            extra={"company_id": company_id, "key": key.value, "account_id": account_id, "actor_id": actor_id},
        )
        return mapping

    def set_mappings(
        self,
        company_id: int,
        mappings: Iterable[Tuple[KeyLike, int]],
        actor_id: Optional[int] = None,
    ) -> List[SystemAccountMapping]:
        """Bulk upsert; any invalid pair aborts the whole batch."""
        return [
            self.set_mapping(company_id, key, account_id, actor_id=actor_id)
            for key, account_id in mappings
        ]

    def resolve_optional(self, company_id: int, key: KeyLike) -> Optional[int]:
        key = to_key(key)
        cache_key = (company_id, key)
        if cache_key not in self._cache:
            self._cache[cache_key] = (
                self.db.query(SystemAccountMapping.account_id)
                .filter(
                    SystemAccountMapping.company_id == company_id,
                    SystemAccountMapping.key == key,
                )
                .scalar()
            )
        return self._cache[cache_key]

    def resolve(self, company_id: int, key: KeyLike) -> int:
        """
        Account id mapped to key for the company.

        Raises:
            AccountMisconfiguredError: No mapping exists
        """
        account_id = self.resolve_optional(company_id, key)
        if account_id is None:
            key = to_key(key)
            logger.warning(
                "System account not configured",
                extra={"company_id": company_id, "key": key.value},
            )
            raise AccountMisconfiguredError(key.value, company_id=company_id)
        return account_id
