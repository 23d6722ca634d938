"""Display formatting for finding and explanation text."""

from twinscore.engine.stats import round_half_up


def money(value: float) -> str:
    """Absolute dollar amount with thousands separators, no cents."""
    return f"${round_half_up(abs(value)):,.0f}"


def whole(value: float) -> str:
    """Signed whole number with thousands separators."""
    return f"{round_half_up(value):,.0f}"


def cents(value: float) -> str:
    return f"${value:,.2f}"


def percent(ratio: float, digits: int = 0) -> str:
    """Ratio rendered as a percentage without the % sign."""
    return f"{round_half_up(ratio * 100, digits):.{digits}f}"


def plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'s' if count != 1 else ''}"
