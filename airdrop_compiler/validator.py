"""
Row validation: the first pass over the ledger export.

Every row gets four independent checks (source address format, source address
uniqueness, destination address format, numeric balances). A failed check
never raises: it marks the row invalid, writes one line to the audit log and
records one finding.

Bookkeeping keeps excluded value visible. Valid rows add both balances to the
valid totals. Invalid rows add each balance that still parsed to that field's
invalid total, so an operator can reconcile exactly how much was left out.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from decimal import Decimal

from .addresses import is_valid_flare_address, is_valid_xrp_address
from .amounts import balance_context, is_base_ten_number
from .exceptions import MalformedInputError
from .log_sink import LogSink
from .models import LineItem, Severity, ValidationFinding, ValidationResult

logger = logging.getLogger(__name__)

# Row index → readable file line: 1-indexed, plus the header row
LINE_OFFSET = 2


def readable_line(index: int) -> int:
    return index + LINE_OFFSET


# ─── Orchestrator ────────────────────────────────────────────────────


def validate_rows(
    rows: Sequence[LineItem],
    sink: LogSink | None = None,
    log_console: bool = True,
) -> ValidationResult:
    """Validate every row and tally included / excluded balances.

    Args:
        rows: Parsed ledger rows, in file order.
        sink: Audit log destination. Defaults to console-only.
        log_console: Echo log lines to the console as well as the sink.

    Raises:
        MalformedInputError: `rows` is not a sequence of LineItem.
    """
    _require_line_items(rows)
    sink = sink or LogSink()

    per_row_valid: list[bool] = []
    findings: list[ValidationFinding] = []
    first_seen_line: dict[str, int] = {}
    valid_count = 0
    invalid_count = 0
    line_errors = 0

    total_source_valid = Decimal(0)
    total_source_invalid = Decimal(0)
    total_destination_valid = Decimal(0)
    total_destination_invalid = Decimal(0)

    with balance_context():
        for index, item in enumerate(rows):
            line = readable_line(index)

            row_findings: list[ValidationFinding] = []
            row_findings.extend(check_source_address(item, line))
            row_findings.extend(check_source_uniqueness(item, line, first_seen_line))
            row_findings.extend(check_destination_address(item, line))
            source_findings = check_balance(item.source_balance, "source_balance", line)
            destination_findings = check_balance(
                item.destination_balance, "destination_balance", line
            )
            row_findings.extend(source_findings)
            row_findings.extend(destination_findings)

            if item.source_address not in first_seen_line:
                first_seen_line[item.source_address] = line

            for finding in row_findings:
                sink.write(finding.message, suppress_console=not log_console)
            findings.extend(row_findings)
            line_errors += len(row_findings)

            is_valid = not row_findings
            per_row_valid.append(is_valid)
            if is_valid:
                valid_count += 1
                total_source_valid += Decimal(item.source_balance)
                total_destination_valid += Decimal(item.destination_balance)
            else:
                invalid_count += 1
                if not source_findings:
                    total_source_invalid += Decimal(item.source_balance)
                if not destination_findings:
                    total_destination_invalid += Decimal(item.destination_balance)

    logger.info(
        "Validated %d rows: %d valid, %d invalid, %d line errors",
        len(per_row_valid), valid_count, invalid_count, line_errors,
    )

    return ValidationResult(
        per_row_valid=per_row_valid,
        valid_count=valid_count,
        invalid_count=invalid_count,
        line_error_count=line_errors,
        total_source_balance_valid=total_source_valid,
        total_source_balance_invalid=total_source_invalid,
        total_destination_balance_valid=total_destination_valid,
        total_destination_balance_invalid=total_destination_invalid,
        findings=findings,
    )


def _require_line_items(rows: Sequence[LineItem]) -> None:
    if not isinstance(rows, (list, tuple)):
        raise MalformedInputError(
            f"Expected a list of LineItem rows, got {type(rows).__name__}",
            details={"type": type(rows).__name__},
        )
    for index, item in enumerate(rows):
        if not isinstance(item, LineItem):
            raise MalformedInputError(
                f"Row {index} is {type(item).__name__}, not LineItem",
                details={"index": index, "type": type(item).__name__},
            )


# ─── Individual Checks ───────────────────────────────────────────────


def check_source_address(item: LineItem, line: int) -> list[ValidationFinding]:
    """The XRP address must pass the base58check / account id rule."""
    if is_valid_xrp_address(item.source_address):
        return []
    return [
        ValidationFinding(
            severity=Severity.ERROR,
            code="SOURCE_ADDRESS_INVALID",
            field="source_address",
            line=line,
            message=f"Line {line}: XRP address is invalid {item.source_address}",
            details={"address": item.source_address},
        )
    ]


def check_source_uniqueness(
    item: LineItem, line: int, first_seen_line: dict[str, int]
) -> list[ValidationFinding]:
    """Each XRP address may appear once. Later repeats are duplicates."""
    first_line = first_seen_line.get(item.source_address)
    if first_line is None:
        return []
    return [
        ValidationFinding(
            severity=Severity.ERROR,
            code="SOURCE_ADDRESS_DUPLICATE",
            field="source_address",
            line=line,
            message=f"Line {line}: XRP address is duplicate of line {first_line}",
            details={"address": item.source_address, "first_line": first_line},
        )
    ]


def check_destination_address(item: LineItem, line: int) -> list[ValidationFinding]:
    """The Flare address must be 20-byte hex with a consistent checksum."""
    if is_valid_flare_address(item.destination_address):
        return []
    return [
        ValidationFinding(
            severity=Severity.ERROR,
            code="DESTINATION_ADDRESS_INVALID",
            field="destination_address",
            line=line,
            message=f"Line {line}: Flare address is invalid {item.destination_address}",
            details={"address": item.destination_address},
        )
    ]


_BALANCE_LABELS = {
    "source_balance": ("SOURCE_BALANCE_INVALID", "XRP Balance"),
    "destination_balance": ("DESTINATION_BALANCE_INVALID", "FLR Balance"),
}


def check_balance(value: str, field: str, line: int) -> list[ValidationFinding]:
    """A balance must be a plain non-negative base-10 decimal."""
    if is_base_ten_number(value):
        return []
    code, label = _BALANCE_LABELS[field]
    return [
        ValidationFinding(
            severity=Severity.ERROR,
            code=code,
            field=field,
            line=line,
            message=f"Line {line}: {label} is not a valid number",
            details={"value": value},
        )
    ]
