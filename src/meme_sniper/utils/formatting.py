"""Number and address formatting for chat messages."""

TOKEN_DECIMALS = 18

_SUFFIXES = (
    (1_000_000_000.0, "B"),
    (1_000_000.0, "M"),
    (1_000.0, "K"),
)


def format_large_number(raw: str, decimals: int = TOKEN_DECIMALS) -> str:
    """Render a raw token amount as a whole-token decimal string.

    ``"1500000000000000000"`` becomes ``"1.5"``.
    """
    if not raw.isdigit():
        raise ValueError(f"Amount must contain only digits: {raw!r}")

    padded = raw.rjust(decimals + 1, "0")
    integer = padded[:-decimals].lstrip("0") or "0"
    fraction = padded[-decimals:].rstrip("0")
    return f"{integer}.{fraction}" if fraction else integer


def format_number(value: str | float) -> str:
    """Compact a number with K/M/B suffixes and at most 2 decimals."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid number format: {value!r}") from None

    suffix = ""
    for threshold, letter in _SUFFIXES:
        if number >= threshold:
            number /= threshold
            suffix = letter
            break

    formatted = f"{number:.2f}".rstrip("0").rstrip(".")
    return f"{formatted}{suffix}"


def format_price(value: str | float) -> str:
    """Two decimals when numeric, the input unchanged otherwise."""
    try:
        return f"{float(value):.2f}"
    except (TypeError, ValueError):
        return str(value)


def format_percentage(value: str | float) -> str:
    try:
        return f"{float(value):.1f}"
    except (TypeError, ValueError):
        return str(value)


def format_short_address(address: str) -> str:
    if len(address) > 8:
        return f"{address[:6]}...{address[-4:]}"
    return address


def calculate_team_allocation(total_supply: str, team_allocation: str) -> str:
    """Team allocation as a percentage of total supply, two decimals."""
    supply = int(total_supply)
    if supply == 0:
        raise ValueError("Total supply is zero")
    return f"{int(team_allocation) * 100 / supply:.2f}"
