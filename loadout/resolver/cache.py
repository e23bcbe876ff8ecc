"""Per-session record of loaded tiers."""


class SessionCache:
    """Highest loaded tier per module for one session.

    Levels only grow, one step at a time, so the loaded tiers of a module are
    always 1..loaded_level(module_id).
    """

    def __init__(self) -> None:
        self._levels: dict[str, int] = {}

    def already_loaded_at_least(self, module_id: str, level: int) -> bool:
        return self._levels.get(module_id, 0) >= level

    def loaded_level(self, module_id: str) -> int:
        """Highest loaded level for module_id (0 if nothing is loaded)."""
        return self._levels.get(module_id, 0)

    def record_loaded(self, module_id: str, level: int) -> None:
        """Record that level of module_id is now loaded.

        Recording a level at or below the current one is a no-op.

        Raises:
            ValueError: If level would leave a gap above the current level
        """
        current = self._levels.get(module_id, 0)
        if level <= current:
            return
        if level != current + 1:
            raise ValueError(
                f"Cannot record {module_id}@{level}: highest loaded level is {current}"
            )
        self._levels[module_id] = level

    def snapshot(self) -> dict[str, int]:
        return dict(self._levels)

    def clear(self) -> None:
        self._levels.clear()

    def __len__(self) -> int:
        return len(self._levels)

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._levels
