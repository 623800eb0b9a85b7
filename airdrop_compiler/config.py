"""
Run configuration, read from the environment (and .env if present).

    AIRDROP_RETAINED_FRACTION   required, e.g. 0.15
    AIRDROP_CONVERSION_FACTOR   required, e.g. 1
    AIRDROP_LOG_FILE            optional audit log path
    AIRDROP_LOG_CONSOLE         echo audit lines to the console (default true)
    AIRDROP_BATCH_SIZE          accounts per setAirdropBalances batch (default 900)
"""

from __future__ import annotations

import os
from decimal import Decimal, InvalidOperation
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

from .batching import DEFAULT_BATCH_SIZE
from .exceptions import ConfigurationError, MissingConfigurationError
from .log_sink import FileLogSink, LogSink

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    retained_fraction: Decimal
    conversion_factor: Decimal
    log_file: Optional[str] = None
    log_console: bool = True
    batch_size: int = DEFAULT_BATCH_SIZE

    @staticmethod
    def from_env() -> "Settings":
        load_dotenv()

        return Settings(
            retained_fraction=_require_decimal("AIRDROP_RETAINED_FRACTION"),
            conversion_factor=_require_decimal("AIRDROP_CONVERSION_FACTOR"),
            log_file=os.getenv("AIRDROP_LOG_FILE", "").strip() or None,
            log_console=_parse_bool("AIRDROP_LOG_CONSOLE", default=True),
            batch_size=_parse_int("AIRDROP_BATCH_SIZE", default=DEFAULT_BATCH_SIZE),
        )

    def make_sink(self) -> LogSink:
        return FileLogSink(self.log_file) if self.log_file else LogSink()


def _require_decimal(name: str) -> Decimal:
    raw = os.getenv(name, "").strip()
    if not raw:
        raise MissingConfigurationError(
            f"Missing {name}. Put it in .env or export it.",
            details={"variable": name},
        )
    try:
        return Decimal(raw)
    except InvalidOperation as exc:
        raise ConfigurationError(
            f"{name} is not a decimal number: {raw!r}",
            details={"variable": name, "value": raw},
        ) from exc


def _parse_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigurationError(
        f"{name} must be true or false, got {raw!r}",
        details={"variable": name, "value": raw},
    )


def _parse_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(
            f"{name} is not an integer: {raw!r}",
            details={"variable": name, "value": raw},
        ) from exc
