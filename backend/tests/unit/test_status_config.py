"""
Unit Tests for document state machines
"""
import pytest

from pks_ledger.core.status_config import (
    GOODS_ISSUE_TRANSITIONS,
    GOODS_RECEIPT_TRANSITIONS,
    LOAN_TRANSITIONS,
    WEIGHBRIDGE_TRANSITIONS,
    allowed_actions,
    next_status,
)
from pks_ledger.exceptions import InvalidTransitionError


class TestTransitions:

    def test_receipt_draft_to_approved(self):
        assert next_status(GOODS_RECEIPT_TRANSITIONS, "DRAFT", "approve", document="GoodsReceipt") == "APPROVED"

    def test_approved_receipt_is_terminal(self):
        assert allowed_actions(GOODS_RECEIPT_TRANSITIONS, "APPROVED") == []
        with pytest.raises(InvalidTransitionError) as exc:
            next_status(GOODS_RECEIPT_TRANSITIONS, "APPROVED", "approve", document="GoodsReceipt", document_id=4)
        assert exc.value.details["current_state"] == "APPROVED"
        assert exc.value.details["document_id"] == "4"
        assert exc.value.status_code == 409

    def test_plain_issue_has_no_returns(self):
        assert allowed_actions(GOODS_ISSUE_TRANSITIONS, "APPROVED") == []

    def test_loan_return_path(self):
        assert next_status(LOAN_TRANSITIONS, "APPROVED", "partial_return", document="GoodsIssue") == "PARTIAL_RETURN"
        assert next_status(LOAN_TRANSITIONS, "PARTIAL_RETURN", "full_return", document="GoodsIssue") == "RETURNED"
        assert allowed_actions(LOAN_TRANSITIONS, "RETURNED") == []

    @pytest.mark.parametrize("status,action,target", [
        ("DRAFT", "post", "POSTED"),
        ("POSTED", "reject", "DRAFT"),
        ("POSTED", "approve", "APPROVED"),
    ])
    def test_weighbridge_transitions(self, status, action, target):
        assert next_status(WEIGHBRIDGE_TRANSITIONS, status, action, document="WeighbridgeTicket") == target

    @pytest.mark.parametrize("status,action", [
        ("DRAFT", "approve"),
        ("POSTED", "edit"),
        ("APPROVED", "reject"),
    ])
    def test_weighbridge_illegal_transitions(self, status, action):
        with pytest.raises(InvalidTransitionError):
            next_status(WEIGHBRIDGE_TRANSITIONS, status, action, document="WeighbridgeTicket")
