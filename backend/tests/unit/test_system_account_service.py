"""
Unit Tests for the system account map
"""
import pytest

from pks_ledger.exceptions import AccountMisconfiguredError, NotFoundError, ValidationError
from pks_ledger.models.accounting import SystemAccountKey
from pks_ledger.services.system_account_service import SystemAccountService
from tests.factories import create_test_account


class TestSystemAccountMap:

    def test_resolve_returns_mapped_account(self, db_session):
        account = create_test_account(db_session, code="1-1302")
        service = SystemAccountService(db_session)
        service.set_mapping(1, SystemAccountKey.INVENTORY_TBS, account.id)

        assert service.resolve(1, SystemAccountKey.INVENTORY_TBS) == account.id
        assert service.resolve(1, "INVENTORY_TBS") == account.id

    def test_missing_mapping_is_misconfigured(self, db_session):
        with pytest.raises(AccountMisconfiguredError) as exc:
            SystemAccountService(db_session).resolve(1, SystemAccountKey.INVENTORY_TBS)
        assert exc.value.details == {"key": "INVENTORY_TBS", "company_id": 1}
        assert exc.value.status_code == 422

    def test_mapping_is_per_company(self, db_session):
        account = create_test_account(db_session, company_id=1)
        service = SystemAccountService(db_session)
        service.set_mapping(1, SystemAccountKey.CASH_DEFAULT, account.id)

        assert service.resolve_optional(2, SystemAccountKey.CASH_DEFAULT) is None

    def test_set_mapping_overwrites_and_refreshes_cache(self, db_session):
        first = create_test_account(db_session, code="1-1101")
        second = create_test_account(db_session, code="1-1102")
        service = SystemAccountService(db_session)
        service.set_mapping(1, SystemAccountKey.CASH_DEFAULT, first.id)
        assert service.resolve(1, SystemAccountKey.CASH_DEFAULT) == first.id

        service.set_mapping(1, SystemAccountKey.CASH_DEFAULT, second.id, actor_id=7)

        assert service.resolve(1, SystemAccountKey.CASH_DEFAULT) == second.id
        mappings = service.list_mappings(1)
        assert len(mappings) == 1
        assert mappings[0].updated_by == 7

    def test_header_account_cannot_be_mapped(self, db_session):
        header = create_test_account(db_session, is_posting=False)
        with pytest.raises(ValidationError):
            SystemAccountService(db_session).set_mapping(1, SystemAccountKey.CASH_DEFAULT, header.id)

    def test_foreign_account_cannot_be_mapped(self, db_session):
        other = create_test_account(db_session, company_id=2)
        with pytest.raises(ValidationError):
            SystemAccountService(db_session).set_mapping(1, SystemAccountKey.CASH_DEFAULT, other.id)

    def test_unknown_account_or_key(self, db_session):
        service = SystemAccountService(db_session)
        with pytest.raises(NotFoundError):
            service.set_mapping(1, SystemAccountKey.CASH_DEFAULT, 404)
        with pytest.raises(ValidationError):
            service.resolve(1, "NOT_A_KEY")
