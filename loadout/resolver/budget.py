"""Per-session budget bookkeeping."""


class BudgetTracker:
    """Cumulative cost counter bounded by a ceiling.

    try_reserve() is the single decision point: callers never compare
    consumed against ceiling themselves. consumed <= ceiling holds after every
    call.
    """

    def __init__(self, ceiling: int):
        if ceiling < 0:
            raise ValueError(f"ceiling must be non-negative, got {ceiling}")
        self._ceiling = ceiling
        self._consumed = 0

    @property
    def ceiling(self) -> int:
        return self._ceiling

    @property
    def consumed(self) -> int:
        return self._consumed

    @property
    def remaining(self) -> int:
        return self._ceiling - self._consumed

    def try_reserve(self, cost: int) -> bool:
        """Reserve cost if it fits.

        Returns:
            True and consumed += cost if it fits; False with no change otherwise
        """
        if cost < 0:
            raise ValueError(f"cost must be non-negative, got {cost}")
        if self._consumed + cost > self._ceiling:
            return False
        self._consumed += cost
        return True

    def __repr__(self) -> str:
        return f"BudgetTracker(consumed={self._consumed}, ceiling={self._ceiling})"
