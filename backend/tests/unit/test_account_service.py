"""
Unit Tests for the chart of accounts

Covers code uniqueness, header/posting rules, hierarchy cycles and the
in-use guards on delete.
"""
import pytest

from pks_ledger.exceptions import AccountInUseError, DuplicateError, NotFoundError, ValidationError
from pks_ledger.models.accounting import SystemAccountKey
from pks_ledger.services.account_service import AccountService
from pks_ledger.services.journal_service import JournalLineInput, JournalService
from tests.factories import JAN_15, create_test_account, map_system_account


class TestCreateAccount:

    def test_creates_posting_account_under_header(self, db_session):
        header = create_test_account(db_session, code="1-0000", is_posting=False)
        service = AccountService(db_session)

        account = service.create_account(
            company_id=1,
            code=" 1-1301 ",
            name="Persediaan",
            account_class="ASSET",
            normal_side="DEBIT",
            parent_id=header.id,
        )

        assert account.id is not None
        assert account.code == "1-1301"
        assert account.parent_id == header.id
        assert account.is_posting is True
        assert account.status == "AKTIF"
        assert account.tax_code == "NON_TAX"

    def test_duplicate_code_in_same_company_rejected(self, db_session):
        create_test_account(db_session, code="1-1101")
        with pytest.raises(DuplicateError):
            AccountService(db_session).create_account(
                company_id=1, code="1-1101", name="Kas Lagi", account_class="ASSET", normal_side="DEBIT"
            )

    def test_same_code_allowed_in_other_company(self, db_session):
        create_test_account(db_session, company_id=1, code="1-1101")
        account = AccountService(db_session).create_account(
            company_id=2, code="1-1101", name="Kas", account_class="ASSET", normal_side="DEBIT"
        )
        assert account.company_id == 2

    def test_posting_account_cannot_be_parent(self, db_session):
        leaf = create_test_account(db_session, code="1-1101")
        with pytest.raises(ValidationError) as exc:
            AccountService(db_session).create_account(
                company_id=1, code="1-1102", name="Bank", account_class="ASSET",
                normal_side="DEBIT", parent_id=leaf.id,
            )
        assert exc.value.details["field"] == "parent_id"

    def test_unknown_parent_is_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            AccountService(db_session).create_account(
                company_id=1, code="1-1102", name="Bank", account_class="ASSET",
                normal_side="DEBIT", parent_id=999,
            )

    def test_invalid_class_rejected(self, db_session):
        with pytest.raises(ValidationError) as exc:
            AccountService(db_session).create_account(
                company_id=1, code="X", name="X", account_class="PROFIT", normal_side="DEBIT"
            )
        assert "allowed" in exc.value.details


class TestUpdateAccount:

    def test_cannot_move_header_under_its_descendant(self, db_session):
        root = create_test_account(db_session, code="1-0000", is_posting=False)
        child = create_test_account(db_session, code="1-1000", is_posting=False, parent=root)

        with pytest.raises(ValidationError):
            AccountService(db_session).update_account(root.id, parent_id=child.id)

    def test_header_with_children_cannot_become_posting(self, db_session):
        root = create_test_account(db_session, code="1-0000", is_posting=False)
        create_test_account(db_session, code="1-1101", parent=root)

        with pytest.raises(ValidationError):
            AccountService(db_session).update_account(root.id, is_posting=True)

    def test_posting_account_with_lines_cannot_become_header(self, db_session):
        cash = create_test_account(db_session, code="1-1101")
        capital = create_test_account(db_session, code="3-1001", account_class="EQUITY")
        JournalService(db_session).post_entry(
            1, JAN_15, "Manual", None, "Setoran modal",
            [JournalLineInput(cash.id, debit=100), JournalLineInput(capital.id, credit=100)],
        )

        with pytest.raises(ValidationError):
            AccountService(db_session).update_account(cash.id, is_posting=False)

    def test_rename_and_deactivate(self, db_session):
        account = create_test_account(db_session, code="1-1101", name="Kas")
        updated = AccountService(db_session).update_account(account.id, name="Kas Besar", status="NONAKTIF")
        assert updated.name == "Kas Besar"
        assert updated.is_active is False

    def test_unknown_field_rejected(self, db_session):
        account = create_test_account(db_session)
        with pytest.raises(ValidationError):
            AccountService(db_session).update_account(account.id, company_id=2)


class TestDeleteAccount:

    def test_unused_account_is_deleted(self, db_session):
        account = create_test_account(db_session)
        service = AccountService(db_session)
        service.delete_account(account.id)
        with pytest.raises(NotFoundError):
            service.get_account(account.id)

    def test_header_with_children_in_use(self, db_session):
        root = create_test_account(db_session, code="1-0000", is_posting=False)
        create_test_account(db_session, code="1-1101", parent=root)
        with pytest.raises(AccountInUseError) as exc:
            AccountService(db_session).delete_account(root.id)
        assert exc.value.details["reason"] == "has child accounts"

    def test_mapped_account_in_use(self, db_session):
        account = create_test_account(db_session)
        map_system_account(db_session, 1, SystemAccountKey.CASH_DEFAULT, account)
        with pytest.raises(AccountInUseError):
            AccountService(db_session).delete_account(account.id)

    def test_account_with_journal_lines_in_use(self, db_session):
        cash = create_test_account(db_session, code="1-1101")
        capital = create_test_account(db_session, code="3-1001", account_class="EQUITY")
        JournalService(db_session).post_entry(
            1, JAN_15, "Manual", None, None,
            [JournalLineInput(cash.id, debit=50), JournalLineInput(capital.id, credit=50)],
        )
        with pytest.raises(AccountInUseError):
            AccountService(db_session).delete_account(capital.id)


class TestHierarchyQueries:

    def test_tree_nests_children_in_code_order(self, db_session):
        assets = create_test_account(db_session, code="1-0000", is_posting=False)
        current = create_test_account(db_session, code="1-1000", is_posting=False, parent=assets)
        create_test_account(db_session, code="1-1102", parent=current)
        create_test_account(db_session, code="1-1101", parent=current)
        create_test_account(db_session, code="2-0000", account_class="LIABILITY", is_posting=False)

        tree = AccountService(db_session).list_tree(1)

        assert [node["code"] for node in tree] == ["1-0000", "2-0000"]
        leaves = tree[0]["children"][0]["children"]
        assert [node["code"] for node in leaves] == ["1-1101", "1-1102"]

    def test_descendants_exclude_self(self, db_session):
        assets = create_test_account(db_session, code="1-0000", is_posting=False)
        current = create_test_account(db_session, code="1-1000", is_posting=False, parent=assets)
        cash = create_test_account(db_session, code="1-1101", parent=current)

        found = AccountService(db_session).find_descendants(assets.id)

        assert {a.id for a in found} == {current.id, cash.id}

    def test_list_filters_by_class_and_search(self, db_session):
        create_test_account(db_session, code="1-1101", name="Kas Kecil")
        create_test_account(db_session, code="2-1101", name="Hutang", account_class="LIABILITY")
        service = AccountService(db_session)

        assert [a.code for a in service.list_accounts(1, account_class="LIABILITY")] == ["2-1101"]
        assert [a.code for a in service.list_accounts(1, search="kas")] == ["1-1101"]
