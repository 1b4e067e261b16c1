"""
Formatting utilities.
"""


def format_currency(amount: float, currency: str = "USD") -> str:
    """
    Format an amount as currency, rounded to whole units.

    Args:
        amount: The amount in whole units (e.g., dollars, not cents).
        currency: Currency code (default USD).

    Returns:
        Formatted currency string.
    """
    symbols = {
        "USD": "$",
        "GBP": "£",
        "EUR": "€",
    }
    symbol = symbols.get(currency, currency + " ")
    return f"{symbol}{round(amount):,}"


def format_short_price(amount: float) -> str:
    """
    Compact price label for map markers.

    1340000 -> "$1.3M", 245000 -> "$245K", 950 -> "$950"
    """
    if amount >= 1_000_000:
        return f"${amount / 1_000_000:.1f}M"
    if amount >= 1_000:
        return f"${round(amount / 1_000)}K"
    return f"${round(amount)}"


def format_percent(value: float, decimals: int = 1) -> str:
    """
    Format a number as a percentage.

    Args:
        value: The percentage value.
        decimals: Number of decimal places.

    Returns:
        Formatted percentage string.
    """
    return f"{value:.{decimals}f}%"
