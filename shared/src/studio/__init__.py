"""Shared domain code for the studio payment reconciliation service."""

__version__ = "0.1.0"
