"""
Pydantic models for airdrop data: strict typing as our first line of defense.

Every structure is created once per run and frozen. Balances travel as
Decimal (or int for smallest units), never float.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# ─── Severity Levels ────────────────────────────────────────────────


class Severity(str, Enum):
    """Severity of a finding."""

    ERROR = "ERROR"  # Row excluded from the distribution
    WARNING = "WARNING"  # Included, but needs operator review
    INFO = "INFO"  # Informational observation


# ─── Finding ────────────────────────────────────────────────────────


class ValidationFinding(BaseModel):
    """A single finding with severity, machine-readable code, and details."""

    model_config = ConfigDict(frozen=True)

    severity: Severity
    code: str  # Machine-readable, e.g. "SOURCE_ADDRESS_DUPLICATE"
    field: str  # Which ledger field (or "account") this relates to
    message: str  # Same text as the audit log line
    line: Optional[int] = None  # Readable file line, None for per-account findings
    details: dict = Field(default_factory=dict)


# ─── Input ──────────────────────────────────────────────────────────


class LineItem(BaseModel):
    """One row of the ledger export.

    Balances stay as the raw strings from the file; the validator decides
    whether they are numbers.
    """

    model_config = ConfigDict(frozen=True)

    source_address: str
    destination_address: str
    source_balance: str
    destination_balance: str


# ─── Validator Output ───────────────────────────────────────────────


class ValidationResult(BaseModel):
    """Per-row verdicts plus the bookkeeping needed to reconcile excluded value."""

    model_config = ConfigDict(frozen=True)

    per_row_valid: list[bool]
    valid_count: int
    invalid_count: int
    line_error_count: int
    total_source_balance_valid: Decimal
    total_source_balance_invalid: Decimal
    total_destination_balance_valid: Decimal
    total_destination_balance_invalid: Decimal
    findings: list[ValidationFinding] = Field(default_factory=list)

    @model_validator(mode="after")
    def _counts_cover_every_row(self) -> "ValidationResult":
        if self.valid_count + self.invalid_count != len(self.per_row_valid):
            raise ValueError(
                f"valid_count ({self.valid_count}) + invalid_count "
                f"({self.invalid_count}) must equal the number of rows "
                f"({len(self.per_row_valid)})"
            )
        return self


# ─── Compiler Output ────────────────────────────────────────────────


class ProcessedAccount(BaseModel):
    """One destination address and its aggregated balance in wei."""

    model_config = ConfigDict(frozen=True)

    destination_address: str
    native_balance: str  # Base-16, lowercase, no 0x prefix
    contribution_count: int = 1

    @property
    def balance(self) -> int:
        return int(self.native_balance, 16)


class CompilationResult(BaseModel):
    """The distribution list plus audit totals."""

    model_config = ConfigDict(frozen=True)

    accounts: list[ProcessedAccount]
    account_count: int
    processed_rows: int
    total_converted_balance: int
    contribution_histogram: dict[int, int]
    findings: list[ValidationFinding] = Field(default_factory=list)


# ─── Downstream Shapes ──────────────────────────────────────────────


class AccountBatch(BaseModel):
    """Addresses and integer balances for one setAirdropBalances call."""

    model_config = ConfigDict(frozen=True)

    index: int
    addresses: list[str]
    balances: list[int]


class EntitlementLine(BaseModel):
    """Expected on-chain entitlement split for one destination address."""

    model_config = ConfigDict(frozen=True)

    destination_address: str
    total_balance: int
    initial_airdrop_balance: int
    distribution_monthly_balance: int
    total_distribution_balance: int


# ─── Pipeline Report ────────────────────────────────────────────────


class AirdropReport(BaseModel):
    """The final output of the airdrop pipeline."""

    model_config = ConfigDict(frozen=True)

    row_count: int
    validation: ValidationResult
    compilation: CompilationResult
    batches: list[AccountBatch] = Field(default_factory=list)
    original_hash: str = ""  # SHA-256 of the ledger export for audit trail

    @property
    def findings(self) -> list[ValidationFinding]:
        return [*self.validation.findings, *self.compilation.findings]
