"""Microfin Ledger: loan tracking and collections backend."""

__version__ = "1.0.0"
