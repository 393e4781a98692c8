"""Helpers for masking account identifiers before exposing them externally."""
from __future__ import annotations

from typing import Any

# Digits left visible at the end of a masked account or card number.
VISIBLE_TAIL = 4


def mask_account_number(value: Any) -> str | None:
    """Return ``value`` with everything but the last four characters starred.

    ``"0011011234"`` becomes ``"******1234"``; separators are dropped first.
    """

    if value is None:
        return None
    normalized = "".join(ch for ch in str(value) if ch.isalnum())
    if not normalized:
        return "***"
    if len(normalized) <= VISIBLE_TAIL:
        return f"***{normalized}"
    return "*" * (len(normalized) - VISIBLE_TAIL) + normalized[-VISIBLE_TAIL:]


__all__ = ["mask_account_number", "VISIBLE_TAIL"]
