"""Pytest configuration: ensures the project root is importable."""

from __future__ import annotations

import sys
from pathlib import Path

import base58
import pytest

sys.path.insert(0, str(Path(__file__).parent))

from airdrop_compiler.log_sink import MemoryLogSink  # noqa: E402
from airdrop_compiler.models import LineItem  # noqa: E402


def _xrp_address(seed: int) -> str:
    """A checksum-valid classic XRP address derived from `seed`."""
    account_id = seed.to_bytes(20, "big")
    return base58.b58encode_check(b"\x00" + account_id, alphabet=base58.RIPPLE_ALPHABET).decode("ascii")


def _flare_address(seed: int) -> str:
    """A lowercase (checksum-free) Flare address derived from `seed`."""
    return "0x" + format(seed, "040x")


@pytest.fixture
def xrp_address():
    return _xrp_address


@pytest.fixture
def flare_address():
    return _flare_address


@pytest.fixture
def make_row():
    """Factory for valid rows: XRP balance `source`, FLR balance = source × 10^12."""

    def _make(
        seed: int,
        source: str = "100",
        destination: str | None = None,
        *,
        flare_seed: int | None = None,
        **overrides: str,
    ) -> LineItem:
        fields = {
            "source_address": _xrp_address(seed),
            "destination_address": _flare_address(seed if flare_seed is None else flare_seed),
            "source_balance": source,
            "destination_balance": destination if destination is not None else source + "0" * 12,
        }
        fields.update(overrides)
        return LineItem(**fields)

    return _make


@pytest.fixture
def sink() -> MemoryLogSink:
    return MemoryLogSink()


@pytest.fixture(autouse=True)
def _no_dotenv(monkeypatch):
    """Keep a developer's .env out of the configuration tests."""
    monkeypatch.setattr("airdrop_compiler.config.load_dotenv", lambda *a, **k: False)
