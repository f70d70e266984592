# backend/app/money.py
"""Rupiah formatting helpers. Amounts are whole units (integers)."""

from __future__ import annotations


def format_idr(amount: int) -> str:
    """Format an amount the way id-ID locale does: ``Rp 1.250.000``."""
    sign = "-" if amount < 0 else ""
    grouped = f"{abs(int(amount)):,}".replace(",", ".")
    return f"{sign}Rp {grouped}"
