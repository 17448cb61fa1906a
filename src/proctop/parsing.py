"""Parse helpers that fall back to a default instead of raising."""


def parse_int(token: str | None, default: int = 0) -> int:
    """Parse an integer token, accepting float notation ("123.45" -> 123)."""
    if token is None:
        return default
    try:
        return int(token)
    except ValueError:
        pass
    try:
        return int(float(token))
    except (ValueError, OverflowError):
        return default


def parse_float(token: str | None, default: float = 0.0) -> float:
    """Parse a float token, returning default for None, garbage, nan or inf."""
    if token is None:
        return default
    try:
        value = float(token)
    except ValueError:
        return default
    if value != value or value in (float("inf"), float("-inf")):
        return default
    return value


def token_at(tokens: list[str], index: int) -> str | None:
    """Return tokens[index] or None when the record is too short."""
    if 0 <= index < len(tokens):
        return tokens[index]
    return None
