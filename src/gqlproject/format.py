SECOND_MS = 1000.0
MINUTE_MS = 60 * SECOND_MS
HOUR_MS = 60 * MINUTE_MS

DURATION_UNITS: list[tuple[float, str]] = [
    (HOUR_MS, "hr"),
    (MINUTE_MS, "min"),
    (SECOND_MS, "s"),
    (1.0, "ms"),
    (0.001, "μs"),
    (0.000001, "ns"),
]


def format_ms(ms: float | None, digits: int, allow_micros: bool = False, allow_nanos: bool = True) -> str:
    """Format a duration given in milliseconds using the largest unit it reaches.

    Args:
        ms: Duration in milliseconds
        digits: Number of decimals to print
        allow_micros: Whether sub-millisecond values may be printed in microseconds
        allow_nanos: Whether sub-microsecond values may be printed in nanoseconds, when micros are allowed

    Returns:
        str: e.g. "250ms", "1.5s", "0"
    """
    if not ms:
        return "0"

    for bound, unit in DURATION_UNITS:
        if unit == "μs" and not allow_micros:
            continue
        if unit == "ns" and not (allow_micros and allow_nanos):
            continue
        if abs(ms) >= bound:
            return f"{ms / bound:.{digits}f}{unit}"

    # Smaller than every allowed unit
    return f"{ms:.{digits}f}ms"
