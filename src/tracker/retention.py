"""
Retention policy for the location store.

Kept separate from the store so the eviction arithmetic can be tested
without a database.
"""


def excess_count(total: int, cap: int) -> int:
    """
    Number of oldest records to evict so that at most `cap` remain.

    Args:
        total: Number of records currently stored
        cap: Maximum number of records to keep

    Returns:
        max(0, total - cap)

    Raises:
        ValueError: If total or cap is negative
    """
    if total < 0:
        raise ValueError(f"total must be >= 0, got {total}")
    if cap < 0:
        raise ValueError(f"cap must be >= 0, got {cap}")
    return max(0, total - cap)
