"""
Opening balance validator.

Responsibility:
    Decides whether one proposed batch of opening balance lines may seed a
    fiscal year.  Pure: the caller supplies the resolved accounts, the
    year's posted flag and the configured tolerance.

Invariants enforced:
    - Only balance-sheet accounts (asset, liability, equity) carry opening
      balances; revenue and expense are period activity, not positions.
    - Each line has exactly one non-zero side with at most two decimals.
    - Accepted batches satisfy |sum(debit) - sum(credit)| < tolerance,
      summed exactly in integer minor units.

Check order (first failure wins):
    1. year already posted            -> OpeningBalancesAlreadyPostedError
    2. empty batch                    -> NoLinesError
    3. per line: account unknown, wrong type, inactive
    4. per line: amount shape
    5. batch balance                  -> UnbalancedBatchError
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from finance_periods.domain.dtos import AccountInfo, AccountType, OpeningBalanceLine
from finance_periods.domain.money import from_minor_units, to_minor_units
from finance_periods.exceptions import (
    AccountNotFoundError,
    InactiveAccountError,
    InvalidAccountTypeError,
    InvalidLineError,
    NoLinesError,
    OpeningBalancesAlreadyPostedError,
    UnbalancedBatchError,
)

BALANCE_SHEET_TYPES = frozenset(
    {AccountType.ASSET.value, AccountType.LIABILITY.value, AccountType.EQUITY.value}
)


@dataclass(frozen=True)
class ValidatedBatch:
    """A batch that passed every check, normalised to two-place amounts."""

    lines: tuple[OpeningBalanceLine, ...]
    total_debit: Decimal
    total_credit: Decimal

    @property
    def line_count(self) -> int:
        return len(self.lines)


def _line_amount(value: object, side: str, line_number: int) -> int:
    try:
        return to_minor_units(value)
    except ValueError as exc:
        raise InvalidLineError(line_number, f"{side} {exc}") from exc


def _check_account(
    line: OpeningBalanceLine,
    line_number: int,
    accounts: Mapping[str, AccountInfo],
    allowed_types: frozenset[str],
) -> AccountInfo:
    account = accounts.get(line.account_id)
    if account is None:
        raise AccountNotFoundError(line.account_id, line_number)
    # The directory may report types this engine has no enum member for
    raw_type = account.account_type
    if isinstance(raw_type, AccountType):
        raw_type = raw_type.value
    if str(raw_type) not in allowed_types:
        raise InvalidAccountTypeError(account.account_code, str(raw_type), line_number)
    if not account.is_active:
        raise InactiveAccountError(account.account_code, line_number)
    return account


def validate_opening_balances(
    lines: Sequence[OpeningBalanceLine],
    accounts: Mapping[str, AccountInfo],
    *,
    tenant_id: str,
    year: int,
    already_posted: bool,
    posted_entry_id: str | None = None,
    tolerance: Decimal = Decimal("0.01"),
    allowed_types: frozenset[str] = BALANCE_SHEET_TYPES,
    currency_symbol: str = "$",
) -> ValidatedBatch:
    """
    Validate one opening balance batch.

    Args:
        lines: Proposed lines in submission order (reported 1-based).
        accounts: Account id -> AccountInfo for every account the directory
            resolved.  Missing ids are reported as unknown accounts.
        tenant_id: Tenant the batch belongs to (for the conflict message).
        year: Fiscal year being seeded.
        already_posted: The year's opening_balances_posted flag.
        posted_entry_id: Entry recorded on the year, reported on conflict.
        tolerance: Exclusive bound on |debits - credits|.
        allowed_types: Account types that may carry opening balances.
        currency_symbol: Used in the imbalance message.

    Returns:
        ValidatedBatch with normalised lines and exact totals.
    """
    if already_posted:
        raise OpeningBalancesAlreadyPostedError(tenant_id, year, posted_entry_id)
    if not lines:
        raise NoLinesError()

    resolved: list[AccountInfo] = [
        _check_account(line, number, accounts, allowed_types)
        for number, line in enumerate(lines, start=1)
    ]

    debit_minor = 0
    credit_minor = 0
    normalised: list[OpeningBalanceLine] = []
    for number, (line, account) in enumerate(zip(lines, resolved), start=1):
        debit = _line_amount(line.debit, "debit", number)
        credit = _line_amount(line.credit, "credit", number)
        if debit and credit:
            raise InvalidLineError(
                number, "a line cannot carry both a debit and a credit"
            )
        if not debit and not credit:
            raise InvalidLineError(number, "a line needs a non-zero debit or credit")
        debit_minor += debit
        credit_minor += credit
        normalised.append(
            OpeningBalanceLine(
                account_id=line.account_id,
                debit=from_minor_units(debit),
                credit=from_minor_units(credit),
                account_code=line.account_code or account.account_code,
                account_name=line.account_name or account.name,
                memo=line.memo,
            )
        )

    delta_minor = debit_minor - credit_minor
    total_debit = from_minor_units(debit_minor)
    total_credit = from_minor_units(credit_minor)
    if not abs(delta_minor) < tolerance * 100:
        raise UnbalancedBatchError(
            from_minor_units(delta_minor),
            total_debit,
            total_credit,
            currency_symbol,
        )

    return ValidatedBatch(
        lines=tuple(normalised),
        total_debit=total_debit,
        total_credit=total_credit,
    )
