"""Poker night ledger: buy-ins, chip transfers and cash-out settlement."""

__version__ = "1.0.0"
