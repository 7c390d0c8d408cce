"""Status Configuration and Transition Rules

Defines the status values of every warehouse document and the allowed
transitions between them. Each table maps (current status, action) to the
next status; anything not in the table is an illegal transition and is
rejected centrally by next_status().
"""
from enum import Enum
from typing import Dict, List, Tuple

from pks_ledger.exceptions import InvalidTransitionError


class GLStatus(str, Enum):
    """Whether a document's journal entry has been recorded"""
    PENDING = "PENDING"
    POSTED = "POSTED"


# =============================================================================
# Goods Receipt
# =============================================================================

class GoodsReceiptStatus(str, Enum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"


class GoodsReceiptAction(str, Enum):
    EDIT = "edit"
    DELETE = "delete"
    APPROVE = "approve"


GOODS_RECEIPT_TRANSITIONS: Dict[Tuple[str, str], str] = {
    (GoodsReceiptStatus.DRAFT, GoodsReceiptAction.EDIT): GoodsReceiptStatus.DRAFT,
    (GoodsReceiptStatus.DRAFT, GoodsReceiptAction.DELETE): GoodsReceiptStatus.DRAFT,
    (GoodsReceiptStatus.DRAFT, GoodsReceiptAction.APPROVE): GoodsReceiptStatus.APPROVED,
    # APPROVED is terminal
}


# =============================================================================
# Goods Issue (ISSUE / PROD / SCRAP / LOAN)
# =============================================================================

class GoodsIssueStatus(str, Enum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    PARTIAL_RETURN = "PARTIAL_RETURN"  # Loans only
    RETURNED = "RETURNED"  # Loans only


class GoodsIssueAction(str, Enum):
    EDIT = "edit"
    DELETE = "delete"
    APPROVE = "approve"
    PARTIAL_RETURN = "partial_return"
    FULL_RETURN = "full_return"


GOODS_ISSUE_TRANSITIONS: Dict[Tuple[str, str], str] = {
    (GoodsIssueStatus.DRAFT, GoodsIssueAction.EDIT): GoodsIssueStatus.DRAFT,
    (GoodsIssueStatus.DRAFT, GoodsIssueAction.DELETE): GoodsIssueStatus.DRAFT,
    (GoodsIssueStatus.DRAFT, GoodsIssueAction.APPROVE): GoodsIssueStatus.APPROVED,
}

LOAN_TRANSITIONS: Dict[Tuple[str, str], str] = {
    **GOODS_ISSUE_TRANSITIONS,
    (GoodsIssueStatus.APPROVED, GoodsIssueAction.PARTIAL_RETURN): GoodsIssueStatus.PARTIAL_RETURN,
    (GoodsIssueStatus.APPROVED, GoodsIssueAction.FULL_RETURN): GoodsIssueStatus.RETURNED,
    (GoodsIssueStatus.PARTIAL_RETURN, GoodsIssueAction.PARTIAL_RETURN): GoodsIssueStatus.PARTIAL_RETURN,
    (GoodsIssueStatus.PARTIAL_RETURN, GoodsIssueAction.FULL_RETURN): GoodsIssueStatus.RETURNED,
    # RETURNED is terminal
}


# =============================================================================
# Weighbridge Ticket
# =============================================================================

class WeighbridgeStatus(str, Enum):
    DRAFT = "DRAFT"
    POSTED = "POSTED"
    APPROVED = "APPROVED"


class WeighbridgeAction(str, Enum):
    EDIT = "edit"  # Weighing or pricing fields
    DELETE = "delete"
    POST = "post"
    REJECT = "reject"
    APPROVE = "approve"


WEIGHBRIDGE_TRANSITIONS: Dict[Tuple[str, str], str] = {
    (WeighbridgeStatus.DRAFT, WeighbridgeAction.EDIT): WeighbridgeStatus.DRAFT,
    (WeighbridgeStatus.DRAFT, WeighbridgeAction.DELETE): WeighbridgeStatus.DRAFT,
    (WeighbridgeStatus.DRAFT, WeighbridgeAction.POST): WeighbridgeStatus.POSTED,
    (WeighbridgeStatus.POSTED, WeighbridgeAction.REJECT): WeighbridgeStatus.DRAFT,
    (WeighbridgeStatus.POSTED, WeighbridgeAction.APPROVE): WeighbridgeStatus.APPROVED,
    # APPROVED is terminal
}


# =============================================================================
# Helpers
# =============================================================================

def _value(v) -> str:
    return v.value if isinstance(v, Enum) else str(v)


def allowed_actions(table: Dict[Tuple[str, str], str], current_status: str) -> List[str]:
    """Actions that are legal from the given status"""
    current = _value(current_status)
    return sorted(_value(action) for (status, action) in table if _value(status) == current)


def next_status(
    table: Dict[Tuple[str, str], str],
    current_status: str,
    action: str,
    *,
    document: str,
    document_id=None,
) -> str:
    """
    Look up the status a document moves to when the action is applied.

    Raises:
        InvalidTransitionError: If the action is not legal from current_status
    """
    current = _value(current_status)
    wanted = _value(action)
    for (status, act), target in table.items():
        if _value(status) == current and _value(act) == wanted:
            return _value(target)
    raise InvalidTransitionError(
        document,
        document_id=document_id,
        current_state=current,
        action=wanted,
        allowed_actions=allowed_actions(table, current),
    )
