from __future__ import annotations

from typing import Any

_BLANKS = {"", "-", "--", "N/A"}


def safe_float(value: Any, default: float = 0.0) -> float:
    """Parse exchange-formatted numbers ("1,234.5", "--") without raising."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(",", "")
    if text in _BLANKS:
        return default
    try:
        return float(text)
    except ValueError:
        return default


def optional_float(value: Any) -> float | None:
    """Like safe_float, but a missing or unparseable value stays None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().replace(",", "")
    if text in _BLANKS:
        return None
    try:
        return float(text)
    except ValueError:
        return None


def shares_to_lots(value: Any) -> int:
    return int(round(safe_float(value) / 1000.0))


def pct_change(current: float, reference: float) -> float | None:
    if reference <= 0:
        return None
    return (current - reference) / reference * 100.0
