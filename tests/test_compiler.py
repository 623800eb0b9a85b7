"""
Balance compiler test suite: conversion, cap, floor, aggregation.

Most tests hand the compiler all-valid verdicts so it is exercised alone.
TestValidateThenCompile runs real validator output through it.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from airdrop_compiler.amounts import MAX_DESTINATION_BALANCE
from airdrop_compiler.compiler import CAPPED_SOURCE_ADDRESS, apply_whale_cap, compile_balances
from airdrop_compiler.exceptions import (
    ConfigurationError,
    MalformedInputError,
    MissingConfigurationError,
)
from airdrop_compiler.models import LineItem, Severity, ValidationResult
from airdrop_compiler.validator import validate_rows

ONE = Decimal("1")
FIFTEEN_PERCENT = Decimal("0.15")
# Cancels the 10^12 unit scale, so contributions equal the XRP balance
PICO = Decimal("0.000000000001")


def _verdicts(*valid: bool) -> ValidationResult:
    """Minimal ValidationResult carrying only the per-row verdicts."""
    return ValidationResult(
        per_row_valid=list(valid),
        valid_count=sum(valid),
        invalid_count=len(valid) - sum(valid),
        line_error_count=0,
        total_source_balance_valid=Decimal(0),
        total_source_balance_invalid=Decimal(0),
        total_destination_balance_valid=Decimal(0),
        total_destination_balance_invalid=Decimal(0),
    )


def _compile(rows, fraction=FIFTEEN_PERCENT, factor=ONE, sink=None, verdicts=None):
    validation = verdicts or _verdicts(*([True] * len(rows)))
    return compile_balances(rows, validation, fraction, factor, sink)


# ═══════════════════════════════════════════════════════════════════════
# CONVERSION & ROUNDING
# ═══════════════════════════════════════════════════════════════════════


class TestConversion:
    def test_hundred_xrp_at_fifteen_percent(self, make_row, sink):
        result = _compile([make_row(1, "100")], sink=sink)
        account = result.accounts[0]
        assert account.balance == 15_000_000_000_000
        assert account.native_balance == format(15_000_000_000_000, "x")
        assert result.total_converted_balance == 15_000_000_000_000
        assert sink.lines == []

    def test_conversion_factor_applied(self, make_row):
        row = make_row(1, "10", "25000000000000")
        result = _compile([row], fraction=ONE, factor=Decimal("2.5"))
        assert result.accounts[0].balance == 25_000_000_000_000
        assert result.findings == []

    def test_fractional_drops_convert_exactly(self, make_row):
        row = make_row(1, "0.000001", "1000000")
        result = _compile([row], fraction=ONE)
        assert result.accounts[0].balance == 1_000_000

    def test_floor_never_rounds_up(self, make_row):
        # 1 drop = 10^6 wei; × 0.0000019999 = 1.9999 wei
        row = make_row(1, "0.000001", "1000000")
        result = _compile([row], fraction=Decimal("0.0000019999"))
        assert result.accounts[0].balance == 1

    def test_floor_to_zero(self, make_row):
        row = make_row(1, "0.000001", "1000000")
        result = _compile([row], fraction=Decimal("0.0000009"))
        assert result.accounts[0].balance == 0
        assert result.accounts[0].native_balance == "0"

    def test_zero_fraction_distributes_nothing(self, make_row):
        result = _compile([make_row(1), make_row(2)], fraction=Decimal(0))
        assert result.total_converted_balance == 0

    def test_invalid_rows_skipped(self, make_row):
        rows = [make_row(1, "100"), make_row(2, "200")]
        result = _compile(rows, verdicts=_verdicts(False, True))
        assert result.processed_rows == 1
        assert [a.destination_address for a in result.accounts] == [rows[1].destination_address]
        assert result.total_converted_balance == 30_000_000_000_000


# ═══════════════════════════════════════════════════════════════════════
# AGGREGATION
# ═══════════════════════════════════════════════════════════════════════


class TestAggregation:
    def test_shared_destination_merges(self, make_row):
        rows = [make_row(1, "15", flare_seed=9), make_row(2, "24", flare_seed=9)]
        result = _compile(rows, fraction=PICO)
        assert result.account_count == 1
        assert result.accounts[0].balance == 39
        assert result.accounts[0].contribution_count == 2

    def test_conservation(self, make_row):
        rows = [
            make_row(1, "100", flare_seed=7),
            make_row(2, "33.333333", "33333333000000", flare_seed=7),
            make_row(3, "0.5", "500000000000"),
            make_row(4, "12345.678901", "12345678901000000"),
        ]
        result = _compile(rows, fraction=Decimal("0.333333333333333333333"))
        assert sum(a.balance for a in result.accounts) == result.total_converted_balance

    def test_contribution_histogram(self, make_row):
        rows = [
            make_row(1, flare_seed=10),
            make_row(2, flare_seed=10),
            make_row(3, flare_seed=10),
            make_row(4, flare_seed=11),
            make_row(5, flare_seed=12),
            make_row(6, flare_seed=13),
            make_row(7, flare_seed=13),
        ]
        result = _compile(rows)
        assert result.contribution_histogram == {1: 2, 2: 1, 3: 1}

    def test_accounts_in_first_seen_order(self, make_row):
        rows = [make_row(1, flare_seed=3), make_row(2, flare_seed=1), make_row(3, flare_seed=3)]
        result = _compile(rows)
        assert [a.destination_address for a in result.accounts] == [
            rows[0].destination_address,
            rows[1].destination_address,
        ]

    def test_idempotent(self, make_row):
        rows = [make_row(i, str(i * 7), flare_seed=i % 3) for i in range(1, 20)]
        first = _compile(rows)
        second = _compile(rows)
        assert first.model_dump_json() == second.model_dump_json()

    def test_empty_input(self):
        result = _compile([])
        assert result.accounts == []
        assert result.total_converted_balance == 0
        assert result.contribution_histogram == {}


# ═══════════════════════════════════════════════════════════════════════
# WHALE CAP, DRIFT, OVER-CAP WARNING
# ═══════════════════════════════════════════════════════════════════════


class TestWhaleCap:
    def _whale(self, source: str) -> LineItem:
        return LineItem(
            source_address=CAPPED_SOURCE_ADDRESS,
            destination_address="0x" + "aa" * 20,
            source_balance=source,
            destination_balance=source + "0" * 12,
        )

    def test_reserved_address_clamped(self, sink):
        result = _compile([self._whale("5000000000000000")], fraction=ONE, sink=sink)
        assert result.accounts[0].balance == 10**27
        assert sink.lines[0] == "Line 2: Flare balance capped to: 1000000000000000000000000000"
        assert result.findings[0].code == "WHALE_CAP_APPLIED"
        assert result.findings[0].severity == Severity.INFO

    def test_clamp_applies_before_retained_fraction(self):
        result = _compile([self._whale("5000000000000000")])
        assert result.accounts[0].balance == 15 * 10**25

    def test_reserved_address_below_cap_unchanged(self, sink):
        result = _compile([self._whale("100")], fraction=ONE, sink=sink)
        assert result.accounts[0].balance == 100 * 10**12
        assert sink.lines == ["Line 2: Flare balance capped to: 100000000000000"]

    def test_clamp_step_in_isolation(self):
        capped, finding = apply_whale_cap(MAX_DESTINATION_BALANCE * 3, 12)
        assert capped == MAX_DESTINATION_BALANCE
        assert finding.line == 12

    def test_other_addresses_never_clamped(self, make_row, sink):
        rows = [
            make_row(1, "600000000000000", flare_seed=5),
            make_row(2, "600000000000000", flare_seed=5),
        ]
        result = _compile(rows, fraction=ONE, sink=sink)
        assert result.accounts[0].balance == 12 * 10**26
        address = rows[0].destination_address
        assert sink.lines == [f"Address {address}: Flare balance bigger than 1BN"]
        assert result.findings[0].code == "ACCOUNT_OVER_CAP"


class TestDrift:
    def test_mismatch_logged_not_rejected(self, make_row, sink):
        result = _compile([make_row(1, "100", "99")], sink=sink)
        assert sink.lines == ["Line 2: Flare balance error: 100000000000000"]
        assert result.findings[0].code == "BALANCE_DRIFT"
        assert result.findings[0].severity == Severity.WARNING
        assert result.accounts[0].balance == 15_000_000_000_000

    def test_equal_values_with_different_scale_match(self, make_row, sink):
        _compile([make_row(1, "100", "100000000000000.000")], sink=sink)
        assert sink.lines == []


# ═══════════════════════════════════════════════════════════════════════
# STRUCTURAL DEFECTS
# ═══════════════════════════════════════════════════════════════════════


class TestStructuralDefects:
    def test_verdict_length_mismatch(self, make_row):
        with pytest.raises(MalformedInputError):
            _compile([make_row(1)], verdicts=_verdicts(True, True))

    def test_missing_rate(self, make_row):
        with pytest.raises(MissingConfigurationError, match="retained_fraction"):
            _compile([make_row(1)], fraction=None)

    def test_both_missing_rates_named(self, make_row):
        with pytest.raises(MissingConfigurationError) as excinfo:
            _compile([make_row(1)], fraction=None, factor=None)
        assert excinfo.value.details["missing"] == ["retained_fraction", "conversion_factor"]

    def test_fraction_above_one(self, make_row):
        with pytest.raises(ConfigurationError):
            _compile([make_row(1)], fraction=Decimal("1.5"))

    def test_non_positive_conversion_factor(self, make_row):
        with pytest.raises(ConfigurationError):
            _compile([make_row(1)], factor=Decimal(0))

    def test_float_rate_rejected(self, make_row):
        with pytest.raises(ConfigurationError, match="Decimal"):
            _compile([make_row(1)], fraction=0.15)

    def test_valid_verdict_on_unparseable_balance(self, make_row):
        with pytest.raises(MalformedInputError, match="Line 2"):
            _compile([make_row(1, "abc")])

    def test_product_beyond_working_precision_rejected(self, make_row):
        # 30 significant digits times 53 overflows the 80-digit context
        row = make_row(1, "123456789012345678901234567890", "1")
        factor = Decimal("1." + "0" * 51 + "1")
        with pytest.raises(MalformedInputError, match="Line 2"):
            _compile([row], factor=factor)

    def test_retained_fraction_beyond_working_precision_rejected(self, make_row):
        row = make_row(1, "123456789012345678901234567890", "1")
        fraction = Decimal("0." + "1" * 60)
        with pytest.raises(MalformedInputError, match="cannot be converted exactly"):
            _compile([row], fraction=fraction)


# ═══════════════════════════════════════════════════════════════════════
# VALIDATE → COMPILE
# ═══════════════════════════════════════════════════════════════════════


class TestValidateThenCompile:
    def test_only_validator_approved_rows_distributed(self, make_row, sink):
        rows = [
            make_row(1, "100", flare_seed=1),
            make_row(2, "200", flare_seed=1),
            make_row(1, "300", flare_seed=2),  # duplicate source
            make_row(3, "1e3"),  # bad number
        ]
        validation = validate_rows(rows, sink)
        result = compile_balances(rows, validation, FIFTEEN_PERCENT, ONE, sink)
        assert result.processed_rows == validation.valid_count == 2
        assert result.account_count == 1
        assert result.accounts[0].contribution_count == 2
        assert result.total_converted_balance == 45_000_000_000_000

    def test_reserved_address_passes_validation_and_is_capped(self, flare_address, sink):
        row = LineItem(
            source_address=CAPPED_SOURCE_ADDRESS,
            destination_address=flare_address(9),
            source_balance="5000000000000000",
            destination_balance="5000000000000000" + "0" * 12,
        )
        validation = validate_rows([row], sink)
        assert validation.per_row_valid == [True]
        result = compile_balances([row], validation, FIFTEEN_PERCENT, ONE, sink)
        assert result.accounts[0].balance == 15 * 10**25
        assert [f.code for f in result.findings] == ["WHALE_CAP_APPLIED", "BALANCE_DRIFT"]

    def test_longest_accepted_balance_compiles_exactly(self, make_row):
        row = make_row(1, "9" * 30, "1")
        assert validate_rows([row]).per_row_valid == [True]
        result = _compile([row])
        assert result.total_converted_balance == int("9" * 30) * 15 * 10**10
