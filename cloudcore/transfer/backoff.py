"""
Operation polling delays.
"""

from ..config.constants import POLL_BACKOFF_FACTOR, POLL_BASE_DELAY_MS, POLL_MAX_DELAY_MS


def poll_delay_ms(
    attempt: int,
    base_delay_ms: float = POLL_BASE_DELAY_MS,
    backoff_factor: float = POLL_BACKOFF_FACTOR,
    max_delay_ms: float = POLL_MAX_DELAY_MS,
) -> float:
    """Delay before poll ``attempt`` (1-based): grows linearly, capped."""
    if attempt < 1:
        raise ValueError("attempt starts at 1")
    return min(base_delay_ms * attempt * backoff_factor, max_delay_ms)
