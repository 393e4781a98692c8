"""Shared helpers: errors, audit trail, masking and time."""
