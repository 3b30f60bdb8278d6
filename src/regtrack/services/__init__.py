"""Regression tracking services."""
