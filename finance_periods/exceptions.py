"""
Typed exception hierarchy for fiscal period control.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the period engine (the request/response layer, the journal posting
pipeline, operator tooling) must react to failures by type, not by parsing
message strings.  Every exception therefore carries:

  1. A ``code`` class attribute (machine-readable, API-safe)
  2. An ``http_status`` class attribute (the conventional status code the
     surrounding application maps the error to)
  3. Structured attributes with the data needed to self-correct

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PeriodControlError (base)
    |
    +-- NotFoundError
    |   +-- FiscalYearNotFoundError
    |   +-- PeriodNotFoundError
    |   +-- AccountNotFoundError
    |
    +-- AlreadyExistsError
    |   +-- FiscalYearAlreadyExistsError
    |
    +-- StateError
    |   +-- InvalidTransitionError
    |   +-- ConcurrentModificationError
    |   +-- ClosedPeriodError
    |
    +-- ValidationError
    |   +-- UnbalancedBatchError
    |   +-- InvalidAccountTypeError
    |   +-- InactiveAccountError
    |   +-- InvalidLineError
    |   +-- NoLinesError
    |   +-- InvalidActorError
    |   +-- InvalidTenantError
    |   +-- InvalidFiscalYearError
    |
    +-- ConflictError
    |   +-- OpeningBalancesAlreadyPostedError
    |
    +-- FatalError
        +-- IncompleteFiscalYearError
        +-- CorruptRecordError
        +-- StorageFailureError

===============================================================================
RETRY SEMANTICS
===============================================================================

Category        | Retry?
----------------|--------------------------------------------------------------
NotFound        | No.
AlreadyExists   | No.
State           | Only after re-fetching current state.
Validation      | No.  The caller must correct the input.
Conflict        | No.  Idempotent callers treat it as success-equivalent.
Fatal           | Never automatically.  Operator intervention required.
"""

from decimal import Decimal


class PeriodControlError(Exception):
    """
    Base exception for all period-control errors.

    All subclasses define ``code`` and ``http_status`` class attributes.
    """

    code: str = "PERIOD_CONTROL_ERROR"
    http_status: int = 400


# Not found


class NotFoundError(PeriodControlError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"
    http_status: int = 404


class FiscalYearNotFoundError(NotFoundError):
    """No fiscal year matches the given identifiers."""

    code: str = "FISCAL_YEAR_NOT_FOUND"

    def __init__(self, tenant_id: str, year_ref: str):
        self.tenant_id = tenant_id
        self.year_ref = year_ref
        super().__init__(
            f"Fiscal year {year_ref} does not exist for tenant {tenant_id}"
        )


class PeriodNotFoundError(NotFoundError):
    """No fiscal period matches the identifier or covers the date."""

    code: str = "PERIOD_NOT_FOUND"

    def __init__(self, tenant_id: str, period_ref: str):
        self.tenant_id = tenant_id
        self.period_ref = period_ref
        super().__init__(
            f"No fiscal period found for {period_ref} (tenant {tenant_id})"
        )


class AccountNotFoundError(NotFoundError):
    """Opening balance line references an account the directory does not know."""

    code: str = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_id: str, line_number: int):
        self.account_id = account_id
        self.line_number = line_number
        super().__init__(
            f"Line {line_number}: account {account_id} does not exist"
        )


# Already exists


class AlreadyExistsError(PeriodControlError):
    """Base exception for duplicate creation attempts."""

    code: str = "ALREADY_EXISTS"
    http_status: int = 409


class FiscalYearAlreadyExistsError(AlreadyExistsError):
    """The tenant already has a fiscal year for this calendar year."""

    code: str = "FISCAL_YEAR_ALREADY_EXISTS"

    def __init__(self, tenant_id: str, year: int):
        self.tenant_id = tenant_id
        self.year = year
        super().__init__(f"Fiscal year {year} already exists")


# State


class StateError(PeriodControlError):
    """Base exception for operations refused by current record state."""

    code: str = "STATE_ERROR"
    http_status: int = 409


class InvalidTransitionError(StateError):
    """
    Requested status change is not allowed from the current status.

    The caller must re-fetch the period before retrying.
    """

    code: str = "INVALID_TRANSITION"

    def __init__(self, period_name: str, current_status: str, action: str, reason: str):
        self.period_name = period_name
        self.current_status = current_status
        self.action = action
        self.reason = reason
        super().__init__(
            f"Cannot {action} fiscal period {period_name} "
            f"(status: {current_status}): {reason}"
        )


class ConcurrentModificationError(StateError):
    """The record changed between read and compare-and-swap write."""

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type} {entity_id} was modified by another request; "
            "reload it and try again"
        )


class ClosedPeriodError(StateError):
    """Posting date falls inside a period that is not Open."""

    code: str = "CLOSED_PERIOD"

    def __init__(self, period_name: str, status: str, posting_date: str):
        self.period_name = period_name
        self.status = status
        self.posting_date = posting_date
        if status == "locked":
            remedy = "Locked periods are permanent; date the entry in an open period."
        else:
            remedy = "Reopen the period to post entries."
        super().__init__(
            f"Fiscal period {period_name} is {status}; "
            f"entries dated {posting_date} cannot be posted. {remedy}"
        )


# Validation


class ValidationError(PeriodControlError):
    """Base exception for input that can never succeed as submitted."""

    code: str = "VALIDATION_ERROR"
    http_status: int = 422


class UnbalancedBatchError(ValidationError):
    """Opening balance debits and credits differ by at least the tolerance."""

    code: str = "UNBALANCED"

    def __init__(
        self,
        delta: Decimal,
        total_debit: Decimal,
        total_credit: Decimal,
        currency_symbol: str = "$",
    ):
        self.delta = delta
        self.total_debit = total_debit
        self.total_credit = total_credit
        super().__init__(
            f"Opening balances must balance: off by "
            f"{currency_symbol}{abs(delta):,.2f} "
            f"(debits {currency_symbol}{total_debit:,.2f}, "
            f"credits {currency_symbol}{total_credit:,.2f})"
        )


class InvalidAccountTypeError(ValidationError):
    """Opening balances may only target balance-sheet accounts."""

    code: str = "INVALID_ACCOUNT_TYPE"

    def __init__(self, account_code: str, account_type: str, line_number: int):
        self.account_code = account_code
        self.account_type = account_type
        self.line_number = line_number
        super().__init__(
            f"Line {line_number}: account {account_code} is a {account_type} "
            "account; opening balances are limited to asset, liability "
            "and equity accounts"
        )


class InactiveAccountError(ValidationError):
    """Opening balance line targets a deactivated account."""

    code: str = "INACTIVE_ACCOUNT"

    def __init__(self, account_code: str, line_number: int):
        self.account_code = account_code
        self.line_number = line_number
        super().__init__(
            f"Line {line_number}: account {account_code} is inactive"
        )


class InvalidLineError(ValidationError):
    """Opening balance line is malformed."""

    code: str = "INVALID_LINE"

    def __init__(self, line_number: int, reason: str):
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Line {line_number}: {reason}")


class NoLinesError(ValidationError):
    """Opening balance batch contains no lines."""

    code: str = "NO_LINES"

    def __init__(self):
        super().__init__("Opening balance batch has no lines")


class InvalidActorError(ValidationError):
    """Caller identity is missing or malformed."""

    code: str = "INVALID_ACTOR"
    http_status: int = 400

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid actor: {reason}")


class InvalidTenantError(ValidationError):
    """Tenant identifier is missing or malformed."""

    code: str = "INVALID_TENANT"
    http_status: int = 400

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid tenant: {reason}")


class InvalidFiscalYearError(ValidationError):
    """Year number is outside what the engine accepts."""

    code: str = "INVALID_FISCAL_YEAR"
    http_status: int = 400

    def __init__(self, year: object, reason: str):
        self.year = year
        self.reason = reason
        super().__init__(f"Invalid fiscal year {year!r}: {reason}")


# Conflict


class ConflictError(PeriodControlError):
    """Base exception for requests that were already satisfied."""

    code: str = "CONFLICT"
    http_status: int = 409


class OpeningBalancesAlreadyPostedError(ConflictError):
    """
    Opening balances for this fiscal year were already posted.

    Idempotent callers treat this as success.
    """

    code: str = "CONFLICT"

    def __init__(self, tenant_id: str, year: int, entry_id: str | None = None):
        self.tenant_id = tenant_id
        self.year = year
        self.entry_id = entry_id
        suffix = f" (journal entry {entry_id})" if entry_id else ""
        super().__init__(
            f"Opening balances for {year} have already been posted{suffix}"
        )


# Fatal


class FatalError(PeriodControlError):
    """
    Base exception for storage states that need operator repair.

    Never recovered at the service boundary; propagated for alerting.
    """

    code: str = "FATAL"
    http_status: int = 500


class IncompleteFiscalYearError(FatalError):
    """A fiscal year does not have exactly 12 periods."""

    code: str = "INCOMPLETE_FISCAL_YEAR"

    def __init__(self, tenant_id: str, year: int, period_count: int):
        self.tenant_id = tenant_id
        self.year = year
        self.period_count = period_count
        super().__init__(
            f"Fiscal year {year} for tenant {tenant_id} has {period_count} "
            "periods instead of 12; operator repair required"
        )


class CorruptRecordError(FatalError):
    """A stored field does not parse into its domain type."""

    code: str = "CORRUPT_RECORD"

    def __init__(self, entity_type: str, entity_id: str, field: str, value: object):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.field = field
        self.value = value
        super().__init__(
            f"{entity_type} {entity_id} has invalid {field}: {value!r}"
        )


class StorageFailureError(FatalError):
    """The storage layer failed during a multi-record write."""

    code: str = "STORAGE_FAILURE"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage failure during {operation}: {detail}")
