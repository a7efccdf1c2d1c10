"""Kharchaji personal expense ledger."""
