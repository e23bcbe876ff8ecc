"""Engine configuration, enums and collaborator protocols."""

import os
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, Protocol, Sequence

from pydantic import BaseModel, Field, model_validator

if TYPE_CHECKING:
    from loadout.schemas import Candidate, Module

DEFAULT_CEILING = 8000


class ModuleKind(str, Enum):
    """Kind of knowledge module."""

    AGENT = "agent"
    SKILL = "skill"
    COMMAND = "command"


class RejectionReason(str, Enum):
    """Why a candidate was not (fully) loaded."""

    BUDGET = "budget"
    NOT_FOUND = "not_found"


class ModuleStore(Protocol):
    """Protocol for module storage backends.

    Implementations must:
    - Scan and validate every manifest eagerly in load()
    - Defer reading tier content until get_tier_content() is called
    - Read each (module_id, level) at most once, even under concurrent access
    """

    def load(self) -> list["Module"]:
        """Scan and validate all manifests.

        Raises:
            ConfigurationError: On malformed manifests or missing tier content
        """
        ...

    def get_manifest(self, module_id: str) -> "Module":
        """Return the manifest for module_id.

        Raises:
            NotFoundError: If module_id is unknown
        """
        ...

    def get_tier_content(self, module_id: str, level: int) -> bytes:
        """Return the content for one tier of a module.

        Raises:
            NotFoundError: If module_id or level is unknown
        """
        ...


class Classifier(Protocol):
    """Protocol for candidate classifiers.

    A classifier turns free task text into a scored candidate list. Scores are
    only compared within one call. The engine never inspects trigger terms
    itself; that is the classifier's job.
    """

    def propose(
        self,
        task_description: str,
        modules: Sequence["Module"],
    ) -> list["Candidate"]:
        """Propose candidates for a task.

        Args:
            task_description: Free-text task
            modules: All modules known to the engine

        Returns:
            Candidate list in the classifier's preferred order.

        Raises:
            Should not raise; the engine treats failures as no candidates.
        """
        ...


class EngineConfig(BaseModel):
    """Configuration for the Loadout engine."""

    model_config = {"arbitrary_types_allowed": True}

    module_root: Optional[Path] = Field(
        default=None,
        description="Root directory holding agents/, skills/ and commands/",
    )
    module_store: Optional[Any] = Field(
        default=None,
        description="Pre-built ModuleStore. Takes precedence over module_root.",
    )
    default_ceiling: int = Field(
        default=DEFAULT_CEILING,
        ge=0,
        description="Budget ceiling for sessions opened without an explicit one",
    )
    classifier: Optional[Any] = Field(
        default=None,
        description="Classifier used when resolve() receives no candidates",
    )

    @model_validator(mode="after")
    def resolve_module_root(self) -> "EngineConfig":
        """Resolve module root from explicit value or LOADOUT_ROOT environment variable."""
        if self.module_store is not None or self.module_root is not None:
            return self
        env_root = os.environ.get("LOADOUT_ROOT")
        if env_root and env_root.strip():
            object.__setattr__(self, "module_root", Path(env_root.strip()))
            return self
        raise ValueError(
            "module_root or module_store must be provided, "
            "or LOADOUT_ROOT environment variable must be set"
        )

    @model_validator(mode="after")
    def resolve_default_ceiling(self) -> "EngineConfig":
        """Let LOADOUT_CEILING override the default ceiling when it was not set explicitly."""
        if "default_ceiling" in self.model_fields_set:
            return self
        env_ceiling = os.environ.get("LOADOUT_CEILING")
        if env_ceiling is None or not env_ceiling.strip():
            return self
        try:
            value = int(env_ceiling)
        except ValueError:
            raise ValueError(f"LOADOUT_CEILING must be an integer, got {env_ceiling!r}") from None
        if value < 0:
            raise ValueError(f"LOADOUT_CEILING must be non-negative, got {value}")
        object.__setattr__(self, "default_ceiling", value)
        return self
