"""
PKS Ledger - Custom Exception Hierarchy

Provides structured, typed exceptions with error codes for consistent
error handling across the accounting and inventory core.

Every exception aborts the enclosing unit of work. Services raise them,
the API layer renders them through a single exception handler.

Usage:
    from pks_ledger.exceptions import NotFoundError, PeriodClosedError

    raise NotFoundError("Account", account_id)
    raise PeriodClosedError(company_id=1, on_date=entry_date)
"""
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional


class PksLedgerException(Exception):
    """
    Base exception for all PKS Ledger errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "PERIOD_CLOSED")
        status_code: HTTP status code to return
        details: Additional context (entity ids, offending values)
    """

    error_code: str = "PKS_LEDGER_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ===================
# 400 Bad Request Errors
# ===================


class ValidationError(PksLedgerException):
    """Raised when input validation fails. No side effects have happened."""

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        super().__init__(message, details=details)


# ===================
# 404 Not Found Errors
# ===================


class NotFoundError(PksLedgerException):
    """Raised when a referenced entity does not exist."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Any = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


# ===================
# 409 Conflict Errors
# ===================


class ConflictError(PksLedgerException):
    """Raised when there's a resource conflict."""

    error_code = "CONFLICT"
    status_code = 409

    def __init__(
        self,
        message: str = "Resource conflict",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class DuplicateError(ConflictError):
    """Raised when a unique business key (code, no_seri, doc number) is taken."""

    error_code = "DUPLICATE_ERROR"

    def __init__(
        self,
        resource: str = "Resource",
        *,
        field: Optional[str] = None,
        value: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)
        message = f"{resource} already exists"
        if field and value is not None:
            message = f"{resource} with {field}='{value}' already exists"
        super().__init__(message, details=details)


class ConcurrencyError(ConflictError):
    """Raised when concurrent modification is detected. Safe to retry."""

    error_code = "CONCURRENCY_ERROR"

    def __init__(
        self,
        message: str = "Resource was modified by another transaction",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class PeriodClosedError(ConflictError):
    """Raised when a posting targets a date inside a closed fiscal period."""

    error_code = "PERIOD_CLOSED"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        company_id: Optional[int] = None,
        on_date: Optional[date] = None,
        period_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if company_id is not None:
            details["company_id"] = company_id
        if on_date is not None:
            details["date"] = on_date.isoformat()
        if period_id is not None:
            details["period_id"] = period_id
        if message is None:
            message = "Fiscal period is closed"
            if on_date is not None:
                message = f"Fiscal period for {on_date.isoformat()} is closed"
        super().__init__(message, details=details)


class AccountInUseError(ConflictError):
    """Raised when deleting an account that is still referenced."""

    error_code = "ACCOUNT_IN_USE"

    def __init__(
        self,
        account_id: int,
        *,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["account_id"] = account_id
        details["reason"] = reason
        super().__init__(f"Account {account_id} is in use: {reason}", details=details)


class InvalidTransitionError(ConflictError):
    """Raised when a document is not in the state required for an action."""

    error_code = "INVALID_TRANSITION"

    def __init__(
        self,
        document: str,
        *,
        document_id: Any = None,
        current_state: Optional[str] = None,
        action: Optional[str] = None,
        allowed_actions: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["document"] = document
        if document_id is not None:
            details["document_id"] = str(document_id)
        if current_state:
            details["current_state"] = current_state
        if action:
            details["action"] = action
        if allowed_actions is not None:
            details["allowed_actions"] = allowed_actions
        message = f"Cannot {action or 'change'} {document}"
        if current_state:
            message = f"{message} in status {current_state}"
        super().__init__(message, details=details)


# ===================
# 422 Unprocessable Entity Errors
# ===================


class BusinessRuleError(PksLedgerException):
    """Raised when a business rule is violated."""

    error_code = "BUSINESS_RULE_ERROR"
    status_code = 422

    def __init__(
        self,
        message: str = "Business rule violation",
        *,
        rule: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if rule:
            details["rule"] = rule
        super().__init__(message, details=details)


class InsufficientStockError(BusinessRuleError):
    """Raised when an issue exceeds the on-hand quantity."""

    error_code = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        item_id: int,
        warehouse_id: int,
        *,
        requested: Decimal,
        available: Decimal,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["item_id"] = item_id
        details["warehouse_id"] = warehouse_id
        details["requested"] = str(requested)
        details["available"] = str(available)
        message = (
            f"Insufficient stock for item {item_id} in warehouse {warehouse_id}: "
            f"requested {requested}, available {available}"
        )
        super().__init__(message, details=details)


class AccountMisconfiguredError(BusinessRuleError):
    """Raised when the system account map lacks a key a posting needs."""

    error_code = "ACCOUNT_MISCONFIGURED"

    def __init__(
        self,
        key: str,
        *,
        company_id: Optional[int] = None,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["key"] = key
        if company_id is not None:
            details["company_id"] = company_id
        super().__init__(
            message or f"System account {key} is not configured",
            details=details,
        )


# ===================
# 500 Internal Server Errors
# ===================


class UnbalancedEntryError(PksLedgerException):
    """Raised when a journal entry does not balance. Always a bug upstream."""

    error_code = "UNBALANCED_ENTRY"
    status_code = 500

    def __init__(
        self,
        *,
        total_debit: Decimal,
        total_credit: Decimal,
        source_type: Optional[str] = None,
        source_id: Any = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["total_debit"] = str(total_debit)
        details["total_credit"] = str(total_credit)
        if source_type:
            details["source_type"] = source_type
        if source_id is not None:
            details["source_id"] = str(source_id)
        super().__init__(
            f"Journal entry not balanced: DR={total_debit}, CR={total_credit}",
            details=details,
        )
