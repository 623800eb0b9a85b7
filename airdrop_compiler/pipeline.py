"""
Main airdrop pipeline: orchestrates the full workflow.

Flow:
  ┌──────────────┐
  │ Ledger CSV   │
  └──────┬───────┘
         │
  ┌──────▼───────┐
  │    Parser    │   ← Header + four columns, strict field count
  └──────┬───────┘
         │
  ┌──────▼───────┐
  │  Validator   │   ← Per-row verdicts, included / excluded totals
  └──────┬───────┘
         │
  ┌──────▼───────┐
  │   Compiler   │   ← XRP → wei, whale cap, floor, aggregate
  └──────┬───────┘
         │
  ┌──────▼───────┐
  │   Batches    │   ← Address / balance pairs for the transaction builder
  └──────────────┘

Design principles:
  - Validator and compiler are pure apart from the audit log sink.
  - Row defects become findings; structural defects raise.
  - The ledger export is SHA-256 hashed for audit trail.
"""

from __future__ import annotations

import hashlib
import logging

from .batching import batch_accounts
from .config import Settings
from .compiler import compile_balances
from .ledger_csv import parse_ledger_csv
from .log_sink import LogSink
from .models import AirdropReport, LineItem
from .validator import validate_rows

logger = logging.getLogger(__name__)


class AirdropPipeline:
    """Orchestrates the full airdrop compilation workflow.

    Usage:
        pipeline = AirdropPipeline(Settings.from_env())
        report = pipeline.run(csv_text)
        for batch in report.batches:
            builder.add(batch.addresses, batch.balances)
    """

    def __init__(self, settings: Settings, sink: LogSink | None = None):
        self.settings = settings
        self.sink = sink or settings.make_sink()

    def run(self, csv_text: str) -> AirdropReport:
        """Execute the full pipeline on a ledger export.

        Args:
            csv_text: The comma-delimited export, header row included.

        Returns:
            AirdropReport with verdicts, distribution list, and batches.
        """
        doc_hash = hashlib.sha256(csv_text.encode("utf-8")).hexdigest()

        logger.info("Parsing ledger export...")
        rows = parse_ledger_csv(csv_text)
        return self.run_rows(rows, original_hash=doc_hash)

    def run_rows(self, rows: list[LineItem], original_hash: str = "") -> AirdropReport:
        """Validate, compile, and batch rows that were parsed elsewhere."""
        settings = self.settings

        logger.info("Validating %d rows...", len(rows))
        validation = validate_rows(rows, self.sink, settings.log_console)

        logger.info("Compiling balances...")
        compilation = compile_balances(
            rows,
            validation,
            settings.retained_fraction,
            settings.conversion_factor,
            self.sink,
            settings.log_console,
        )

        batches = batch_accounts(compilation.accounts, settings.batch_size)

        return AirdropReport(
            row_count=len(rows),
            validation=validation,
            compilation=compilation,
            batches=batches,
            original_hash=original_hash,
        )
