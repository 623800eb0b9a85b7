"""
Downstream shapes built from the compiled distribution.

`batch_accounts` slices the distribution list into the address / balance
pairs a `setAirdropBalances` call takes. Encoding those calls is the
transaction builder's job, not ours.

`build_entitlement_schedule` is the reconciliation view used when checking a
deployment: stated Flare balances summed per address, then split into the
initial airdrop and the monthly distribution.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from .amounts import balance_context, floor_to_integer, parse_balance
from .exceptions import ConfigurationError
from .models import AccountBatch, EntitlementLine, LineItem, ProcessedAccount, ValidationResult

DEFAULT_BATCH_SIZE = 900

INITIAL_AIRDROP_PERCENT = 15
MONTHLY_DISTRIBUTION_PERCENT = 3


def batch_accounts(
    accounts: Sequence[ProcessedAccount], batch_size: int = DEFAULT_BATCH_SIZE
) -> list[AccountBatch]:
    """Split accounts into consecutive batches of at most `batch_size`."""
    if batch_size < 1:
        raise ConfigurationError(
            f"batch_size must be at least 1, got {batch_size}",
            details={"batch_size": batch_size},
        )
    batches: list[AccountBatch] = []
    for start in range(0, len(accounts), batch_size):
        chunk = accounts[start:start + batch_size]
        batches.append(
            AccountBatch(
                index=len(batches),
                addresses=[account.destination_address for account in chunk],
                balances=[account.balance for account in chunk],
            )
        )
    return batches


def build_entitlement_schedule(
    rows: Sequence[LineItem], validation: ValidationResult
) -> list[EntitlementLine]:
    """Per Flare address: total stated balance and its airdrop / distribution split."""
    totals: dict[str, Decimal] = {}
    with balance_context():
        for item, is_valid in zip(rows, validation.per_row_valid):
            if not is_valid:
                continue
            balance = parse_balance(item.destination_balance)
            totals[item.destination_address] = (
                totals.get(item.destination_address, Decimal(0)) + balance
            )

    schedule: list[EntitlementLine] = []
    for address, total in totals.items():
        total_balance = floor_to_integer(total)
        initial = total_balance * INITIAL_AIRDROP_PERCENT // 100
        schedule.append(
            EntitlementLine(
                destination_address=address,
                total_balance=total_balance,
                initial_airdrop_balance=initial,
                distribution_monthly_balance=total_balance * MONTHLY_DISTRIBUTION_PERCENT // 100,
                total_distribution_balance=total_balance - initial,
            )
        )
    return schedule
