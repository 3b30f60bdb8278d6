"""Regression tracker - reconcile component report regressions against a persistent ledger."""

__version__ = "1.0.0"
