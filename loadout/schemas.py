"""Data structures for Loadout (frozen schema)."""

from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from loadout.config import ModuleKind, RejectionReason
from loadout.errors import NotFoundError


class Tier(BaseModel):
    """One disclosure level of a module's content.

    Level 1 is always-resident metadata, level 2 the summary body, levels 3..N
    on-demand detail. A tier is only meaningful when every lower tier of the
    same module is loaded too.
    """

    model_config = {"frozen": True}

    level: int = Field(ge=1)
    size_cost: int = Field(ge=0, description="Token or byte cost of loading this tier")
    content: Optional[bytes] = Field(
        default=None,
        repr=False,
        description="Inline payload; stores without a source read it from here",
    )
    source: Optional[str] = Field(
        default=None,
        description="Store-specific locator for the payload (e.g. a file path)",
    )
    section: Optional[str] = Field(
        default=None,
        description="Part of the source holding this tier ('frontmatter' or 'body')",
    )


class Module(BaseModel):
    """An addressable unit of knowledge: agent, skill or command."""

    model_config = {"frozen": True}

    id: str = Field(min_length=1)
    kind: ModuleKind
    dependencies: tuple[str, ...] = ()
    tiers: tuple[Tier, ...] = Field(min_length=1)
    trigger_terms: tuple[str, ...] = Field(
        default=(),
        description="Opaque vocabulary for classifiers; never read by the resolver",
    )
    description: str = ""

    @field_validator("id")
    @classmethod
    def strip_id(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("id must not be blank")
        return value

    @model_validator(mode="after")
    def check_structure(self) -> "Module":
        """Reject self-loops, duplicate dependencies and gaps between tier levels."""
        if self.id in self.dependencies:
            raise ValueError(f"module '{self.id}' must not depend on itself")

        seen: set[str] = set()
        for dep in self.dependencies:
            if dep in seen:
                raise ValueError(f"duplicate dependency '{dep}'")
            seen.add(dep)

        levels = [tier.level for tier in self.tiers]
        if levels != list(range(1, len(levels) + 1)):
            raise ValueError(
                f"tier levels must be contiguous starting at 1, got {levels}"
            )
        return self

    @property
    def max_level(self) -> int:
        return len(self.tiers)

    def tier(self, level: int) -> Tier:
        """Return the tier at level.

        Raises:
            NotFoundError: If the module has no such tier
        """
        if 1 <= level <= len(self.tiers):
            return self.tiers[level - 1]
        raise NotFoundError(
            f"Module '{self.id}' has no tier {level} (max {self.max_level})"
        )

    def clamp_level(self, level: int) -> int:
        """Clamp a requested level into 1..max_level."""
        return max(1, min(level, self.max_level))


class Candidate(BaseModel):
    """A module proposed for a task, with an opaque score and requested tier."""

    model_config = {"frozen": True}

    module_id: str = Field(min_length=1)
    score: float = Field(default=0.0, allow_inf_nan=False)
    requested_level: int = Field(default=1, ge=1)

    @classmethod
    def coerce(cls, value: Any) -> "Candidate":
        """Build a Candidate from a model, mapping, bare id or tuple.

        Tuples are (module_id, score) or (module_id, score, requested_level).
        """
        if isinstance(value, Candidate):
            return value
        if isinstance(value, Mapping):
            return cls.model_validate(value)
        if isinstance(value, str):
            return cls(module_id=value)
        if isinstance(value, (tuple, list)):
            if len(value) == 2:
                return cls(module_id=value[0], score=value[1])
            if len(value) == 3:
                return cls(module_id=value[0], score=value[1], requested_level=value[2])
        raise ValueError(f"Cannot interpret {value!r} as a candidate")


class LoadInstruction(BaseModel):
    """Load one tier of one module."""

    model_config = {"frozen": True}

    module_id: str
    level: int
    size_cost: int


class Rejection(BaseModel):
    """A candidate that could not be satisfied."""

    model_config = {"frozen": True}

    module_id: str
    reason: RejectionReason
    blocked_at: Optional[LoadInstruction] = Field(
        default=None,
        description="First tier that did not fit the budget",
    )
    detail: str = ""


class LoadPlan(BaseModel):
    """Ordered, budget-respecting set of tier loads for one resolution."""

    model_config = {"frozen": True}

    task: str = ""
    session_id: Optional[str] = None
    instructions: tuple[LoadInstruction, ...] = ()
    rejected: tuple[Rejection, ...] = ()
    total_cost: int = 0
    ceiling: int = 0
    remaining: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.instructions

    def module_ids(self) -> list[str]:
        """Modules touched by this plan, in first-load order."""
        return list(dict.fromkeys(item.module_id for item in self.instructions))

    def level_of(self, module_id: str) -> int:
        """Highest level this plan loads for module_id (0 if none)."""
        return max(
            (item.level for item in self.instructions if item.module_id == module_id),
            default=0,
        )

    def rejected_ids(self) -> list[str]:
        return [item.module_id for item in self.rejected]


class LoadedTier(BaseModel):
    """A load instruction paired with its content."""

    model_config = {"frozen": True}

    instruction: LoadInstruction
    content: bytes = Field(repr=False)
