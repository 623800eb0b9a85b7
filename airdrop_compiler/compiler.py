"""
Balance compilation: the second pass over the ledger export.

For every row the validator accepted:

  XRP balance × conversion factor × 10^12    (drops precision → wei precision)
      → whale cap (reserved source address only)
      → drift check against the stated Flare balance (log only)
      × retained fraction
      → floor to whole wei
      → aggregate per Flare address

Floor rounding guarantees the distributed total never exceeds the funded pool.
All accumulator state lives inside one `compile_balances` call.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from decimal import Decimal, Inexact, InvalidOperation

from .amounts import (
    MAX_DESTINATION_BALANCE,
    UNIT_SCALE,
    balance_context,
    floor_to_integer,
    parse_balance,
    to_hex,
)
from .exceptions import ConfigurationError, MalformedInputError, MissingConfigurationError
from .log_sink import LogSink
from .models import (
    CompilationResult,
    LineItem,
    ProcessedAccount,
    Severity,
    ValidationFinding,
    ValidationResult,
)
from .validator import readable_line

logger = logging.getLogger(__name__)

# RippleWorks. Its converted balance is capped before aggregation.
CAPPED_SOURCE_ADDRESS = "rKveEyR1SrkWbJX214xcfH43ZsoGMb3PEv"


def compile_balances(
    rows: Sequence[LineItem],
    validation: ValidationResult,
    retained_fraction: Decimal | None,
    conversion_factor: Decimal | None,
    sink: LogSink | None = None,
    log_console: bool = True,
) -> CompilationResult:
    """Convert valid rows to wei and aggregate them per Flare address.

    Args:
        rows: The same rows that were passed to the validator.
        validation: The validator's verdicts for `rows`.
        retained_fraction: Share of the entitlement released now, in [0, 1].
        conversion_factor: XRP → FLR rate, applied before unit scaling.
        sink: Audit log destination. Defaults to console-only.
        log_console: Echo log lines to the console as well as the sink.

    Raises:
        MissingConfigurationError: a rate is missing.
        ConfigurationError: a rate is out of range.
        MalformedInputError: verdicts do not line up with rows, a row
            marked valid has an unparseable balance, or a balance cannot be
            converted without rounding before the final floor.
    """
    retained_fraction, conversion_factor = _check_rates(retained_fraction, conversion_factor)
    if len(validation.per_row_valid) != len(rows):
        raise MalformedInputError(
            f"Validation covers {len(validation.per_row_valid)} rows "
            f"but {len(rows)} rows were given",
            details={"verdicts": len(validation.per_row_valid), "rows": len(rows)},
        )
    sink = sink or LogSink()
    findings: list[ValidationFinding] = []

    def emit(finding: ValidationFinding) -> None:
        sink.write(finding.message, suppress_console=not log_console)
        findings.append(finding)

    processed_rows = 0
    total_wei = 0
    balances: dict[str, int] = {}
    contributions: dict[str, int] = {}

    with balance_context():
        for index, item in enumerate(rows):
            if not validation.per_row_valid[index]:
                continue
            line = readable_line(index)
            processed_rows += 1

            try:
                converted = convert_balance(item, conversion_factor, line)
                if item.source_address == CAPPED_SOURCE_ADDRESS:
                    converted, finding = apply_whale_cap(converted, line)
                    emit(finding)

                expected = _parse_valid_balance(item.destination_balance, line)
                if converted != expected:
                    emit(
                        ValidationFinding(
                            severity=Severity.WARNING,
                            code="BALANCE_DRIFT",
                            field="destination_balance",
                            line=line,
                            message=f"Line {line}: Flare balance error: {_plain(converted)}",
                            details={
                                "computed": _plain(converted),
                                "stated": item.destination_balance,
                            },
                        )
                    )

                amount = floor_to_integer(converted * retained_fraction)
            except (Inexact, InvalidOperation) as exc:
                raise MalformedInputError(
                    f"Line {line}: balance {item.source_balance!r} cannot be converted "
                    "exactly at the configured rates",
                    details={"line": line, "value": item.source_balance},
                ) from exc
            total_wei += amount
            address = item.destination_address
            if address in balances:
                balances[address] += amount
                contributions[address] += 1
            else:
                balances[address] = amount
                contributions[address] = 1

    accounts: list[ProcessedAccount] = []
    for address, balance in balances.items():
        if balance > MAX_DESTINATION_BALANCE:
            emit(
                ValidationFinding(
                    severity=Severity.WARNING,
                    code="ACCOUNT_OVER_CAP",
                    field="account",
                    message=f"Address {address}: Flare balance bigger than 1BN",
                    details={"address": address, "balance": str(balance)},
                )
            )
        accounts.append(
            ProcessedAccount(
                destination_address=address,
                native_balance=to_hex(balance),
                contribution_count=contributions[address],
            )
        )

    histogram = Counter(contributions.values())

    logger.info(
        "Compiled %d valid rows into %d accounts, %d wei total",
        processed_rows, len(accounts), total_wei,
    )

    return CompilationResult(
        accounts=accounts,
        account_count=len(accounts),
        processed_rows=processed_rows,
        total_converted_balance=total_wei,
        contribution_histogram=dict(sorted(histogram.items())),
        findings=findings,
    )


# ─── Steps ───────────────────────────────────────────────────────────


def convert_balance(item: LineItem, conversion_factor: Decimal, line: int) -> Decimal:
    """XRP balance in wei-precision units, before cap and retained fraction."""
    source = _parse_valid_balance(item.source_balance, line)
    with balance_context():
        return source * conversion_factor * UNIT_SCALE


def apply_whale_cap(balance: Decimal, line: int) -> tuple[Decimal, ValidationFinding]:
    """Clamp the reserved address to MAX_DESTINATION_BALANCE.

    The finding is produced whether or not the clamp changed the value.
    """
    capped = min(balance, MAX_DESTINATION_BALANCE)
    finding = ValidationFinding(
        severity=Severity.INFO,
        code="WHALE_CAP_APPLIED",
        field="source_address",
        line=line,
        message=f"Line {line}: Flare balance capped to: {_plain(capped)}",
        details={
            "address": CAPPED_SOURCE_ADDRESS,
            "uncapped": _plain(balance),
            "capped": _plain(capped),
        },
    )
    return capped, finding


# ─── Helpers ─────────────────────────────────────────────────────────


def _check_rates(
    retained_fraction: Decimal | None, conversion_factor: Decimal | None
) -> tuple[Decimal, Decimal]:
    rates = {
        "retained_fraction": retained_fraction,
        "conversion_factor": conversion_factor,
    }
    missing = [name for name, value in rates.items() if value is None]
    if missing:
        raise MissingConfigurationError(
            f"Missing required rate(s): {', '.join(missing)}",
            details={"missing": missing},
        )

    for name, value in rates.items():
        if not isinstance(value, Decimal):
            raise ConfigurationError(
                f"{name} must be a Decimal, got {type(value).__name__}",
                details={"name": name, "type": type(value).__name__},
            )
        if not value.is_finite():
            raise ConfigurationError(f"{name} must be finite, got {value}")

    if not Decimal(0) <= retained_fraction <= Decimal(1):
        raise ConfigurationError(
            f"retained_fraction must be between 0 and 1, got {retained_fraction}",
            details={"retained_fraction": str(retained_fraction)},
        )
    if conversion_factor <= 0:
        raise ConfigurationError(
            f"conversion_factor must be positive, got {conversion_factor}",
            details={"conversion_factor": str(conversion_factor)},
        )
    return retained_fraction, conversion_factor


def _parse_valid_balance(value: str, line: int) -> Decimal:
    try:
        return parse_balance(value)
    except (ValueError, InvalidOperation) as exc:
        raise MalformedInputError(
            f"Line {line}: row marked valid but balance {value!r} is not a number",
            details={"line": line, "value": value},
        ) from exc


def _plain(value: Decimal) -> str:
    """Fixed-point rendering without trailing zeros, never scientific notation."""
    with balance_context():
        return format(value.normalize(), "f")
