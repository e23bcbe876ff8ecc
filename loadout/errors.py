"""Exception hierarchy for Loadout.

Configuration errors are fatal and raised at startup. Budget and lookup
outcomes during resolution are reported in the LoadPlan, not raised.
"""

from typing import Optional, Sequence


class LoadoutError(Exception):
    """Base exception for Loadout."""

    pass


class ConfigurationError(LoadoutError):
    """Module set or engine configuration is invalid. Aborts startup."""

    pass


class ManifestError(ConfigurationError):
    """A module manifest is malformed."""

    def __init__(self, module_id: Optional[str], message: str):
        self.module_id = module_id
        prefix = f"Module '{module_id}'" if module_id else "Module manifest"
        super().__init__(f"{prefix}: {message}")


class MissingTierError(ManifestError):
    """A manifest declares a tier whose content does not exist."""

    def __init__(self, module_id: str, level: int, location: str = ""):
        self.level = level
        where = f" ({location})" if location else ""
        super().__init__(module_id, f"content for tier {level} is missing{where}")


class CyclicDependencyError(ConfigurationError):
    """The dependency graph contains a cycle."""

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__(f"Cyclic dependency detected: {' -> '.join(self.cycle)}")


class NotFoundError(LoadoutError, LookupError):
    """Unknown module id or tier level."""

    pass


class SessionClosedError(LoadoutError):
    """Resolution was attempted on a session that has ended."""

    pass
