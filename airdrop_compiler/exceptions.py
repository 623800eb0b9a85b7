"""
Exception hierarchy for airdrop processing.

Row-level defects never raise; they become findings. These exceptions are for
structural defects where continuing would produce an incorrect distribution.
"""

from __future__ import annotations


class AirdropProcessingError(Exception):
    """Base exception for all fatal airdrop processing failures."""

    def __init__(self, code: str, message: str, details: dict | None = None):
        self.code = code
        self.details = details or {}
        super().__init__(message)


class MalformedInputError(AirdropProcessingError):
    """Input does not have the shape the validator or compiler requires."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("MALFORMED_INPUT", message, details)


class MissingConfigurationError(AirdropProcessingError):
    """A required configuration value was not provided."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("MISSING_CONFIGURATION", message, details)


class ConfigurationError(AirdropProcessingError):
    """A configuration value was provided but is out of range."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("INVALID_CONFIGURATION", message, details)


class LedgerFormatError(AirdropProcessingError):
    """The ledger export cannot be parsed into rows."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__("LEDGER_FORMAT_INVALID", message, details)
