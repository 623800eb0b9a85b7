"""
Airdrop Compiler: deterministic XRP → Flare airdrop balance compilation.

Architecture: Ledger CSV → Validator → Balance Compiler → Batches
Philosophy:  Every drop of value is either distributed or accounted for as excluded.
"""

__version__ = "1.0.0"
