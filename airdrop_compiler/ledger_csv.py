"""
Ledger export parsing.

The export is comma-delimited with a header row naming the four columns.
A leading byte-order mark is dropped. Empty lines are skipped, so the line
numbers the validator logs count the header plus non-empty rows, not physical
lines in the file. A structurally broken file is rejected outright rather
than dropping the bad row.
"""

from __future__ import annotations

import csv
import io

from .exceptions import LedgerFormatError
from .models import LineItem

# Export column → LineItem field
COLUMNS: dict[str, str] = {
    "XRPAddress": "source_address",
    "FlareAddress": "destination_address",
    "XRPBalance": "source_balance",
    "FlareBalance": "destination_balance",
}


def parse_ledger_csv(text: str) -> list[LineItem]:
    """Parse the ledger export into rows, in file order.

    Raises:
        LedgerFormatError: missing header columns or a row with the wrong
            number of fields.
    """
    # Spreadsheet tools prepend a BOM when saving as UTF-8
    text = text.removeprefix("\ufeff")
    reader = csv.DictReader(io.StringIO(text), skipinitialspace=False)
    header = [name.strip() for name in (reader.fieldnames or [])]
    missing = [column for column in COLUMNS if column not in header]
    if missing:
        raise LedgerFormatError(
            f"Ledger export is missing column(s): {', '.join(missing)}",
            details={"missing": missing, "header": header},
        )
    reader.fieldnames = header

    rows: list[LineItem] = []
    for record in reader:
        if None in record or any(value is None for value in record.values()):
            raise LedgerFormatError(
                f"Line {reader.line_num}: expected {len(header)} fields",
                details={"line": reader.line_num},
            )
        rows.append(LineItem(**{field: record[column] for column, field in COLUMNS.items()}))
    return rows
