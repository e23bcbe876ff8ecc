"""Loadout: a tiered knowledge-resolution engine.

Public exports:
- Loadout: The engine facade; validates modules and resolves tasks
- EngineConfig: Configuration for the engine
- LoadPlan: Result type returned by Loadout.resolve()
- Candidate: A scored module proposal
"""

from loadout.config import EngineConfig
from loadout.engine import Loadout
from loadout.schemas import Candidate, LoadPlan

__all__ = ["Candidate", "EngineConfig", "LoadPlan", "Loadout"]
