"""
Reconnect backoff policy.
"""

BASE_DELAY_MS = 1000
MAX_DELAY_MS = 30000

# 2**15 * 1000ms already exceeds any sane ceiling; larger exponents only grow the int
_MAX_EXPONENT = 32


def backoff_delay_ms(attempt: int, base_ms: int = BASE_DELAY_MS, max_ms: int = MAX_DELAY_MS) -> int:
    """
    Delay before a reconnect: min(max_ms, base_ms * 2**attempt).

    Args:
        attempt: Reconnect attempt counter before this reconnect (0 for the first)
        base_ms: Delay for attempt 0
        max_ms: Ceiling applied to every delay

    Returns:
        Delay in milliseconds, non-decreasing in attempt
    """
    if attempt < 0:
        raise ValueError(f"attempt must be >= 0, got {attempt}")
    exponent = min(attempt, _MAX_EXPONENT)
    return min(max_ms, base_ms * (2 ** exponent))
