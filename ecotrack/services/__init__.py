"""Checklist, ledger and collaborator services."""
