"""Epoch-stamped single-round voting ledger and its client reconciliation engine."""

__version__ = "0.1.0"
