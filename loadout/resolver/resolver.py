"""Tier selection under a budget."""

import logging
from typing import Any, Iterable, Optional

from loadout.config import ModuleStore, RejectionReason
from loadout.errors import NotFoundError
from loadout.graph import DependencyGraph
from loadout.resolver.budget import BudgetTracker
from loadout.resolver.cache import SessionCache
from loadout.schemas import Candidate, LoadInstruction, LoadPlan, Rejection

logger = logging.getLogger(__name__)


class Resolver:
    """Turn a scored candidate list into a LoadPlan.

    The resolver is purely mechanical: scores come from outside and are only
    used for ordering. Per candidate it walks the dependency chain
    (dependencies first), loading tier 1 of each dependency and tiers up to
    the requested level of the candidate itself. Budget exhaustion stops
    that candidate's chain only; lower-scored candidates are still tried.
    """

    def __init__(self, graph: DependencyGraph, store: ModuleStore):
        self._graph = graph
        self._store = store

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    def resolve(
        self,
        candidates: Iterable[Any],
        cache: SessionCache,
        budget: BudgetTracker,
        *,
        task: str = "",
        session_id: Optional[str] = None,
    ) -> LoadPlan:
        """Resolve candidates against a session's cache and budget.

        Args:
            candidates: Candidates (or tuples/mappings coercible to them)
            cache: Session cache; updated with every loaded tier
            budget: Session budget; reserved for every loaded tier
            task: Task description, carried into the plan
            session_id: Owning session id, carried into the plan

        Returns:
            LoadPlan with the new tier loads (cached tiers excluded) and the
            rejected candidates
        """
        # sorted() is stable with reverse=True: equal scores keep input order
        ordered = sorted(
            (Candidate.coerce(item) for item in candidates),
            key=lambda candidate: candidate.score,
            reverse=True,
        )

        instructions: list[LoadInstruction] = []
        rejected: list[Rejection] = []

        for candidate in ordered:
            try:
                chain = self._graph.expand(candidate.module_id)
            except NotFoundError:
                logger.warning(f"Dropping unknown candidate '{candidate.module_id}'")
                rejected.append(
                    Rejection(
                        module_id=candidate.module_id,
                        reason=RejectionReason.NOT_FOUND,
                        detail=f"unknown module '{candidate.module_id}'",
                    )
                )
                continue

            blocked = self._load_chain(candidate, chain, cache, budget, instructions)
            if blocked is not None:
                logger.warning(
                    f"Candidate '{candidate.module_id}' rejected for budget at "
                    f"{blocked.module_id}@{blocked.level} "
                    f"(cost {blocked.size_cost}, remaining {budget.remaining})"
                )
                rejected.append(
                    Rejection(
                        module_id=candidate.module_id,
                        reason=RejectionReason.BUDGET,
                        blocked_at=blocked,
                        detail=(
                            f"{blocked.module_id}@{blocked.level} needs {blocked.size_cost}, "
                            f"{budget.remaining} of {budget.ceiling} remaining"
                        ),
                    )
                )

        plan = LoadPlan(
            task=task,
            session_id=session_id,
            instructions=tuple(instructions),
            rejected=tuple(rejected),
            total_cost=sum(item.size_cost for item in instructions),
            ceiling=budget.ceiling,
            remaining=budget.remaining,
        )
        logger.info(
            f"Resolved {len(ordered)} candidates: {len(plan.instructions)} tier loads, "
            f"cost {plan.total_cost}, {len(plan.rejected)} rejected"
        )
        return plan

    def _load_chain(
        self,
        candidate: Candidate,
        chain: list[str],
        cache: SessionCache,
        budget: BudgetTracker,
        instructions: list[LoadInstruction],
    ) -> Optional[LoadInstruction]:
        """Load the chain in order, stopping at the first tier that does not fit.

        Tiers reserved before the stop stay loaded; they form a prefix of
        each module's tiers, so no module is left with a gap.

        Returns:
            The tier that did not fit, or None if the whole chain fits
        """
        for module_id in chain:
            module = self._store.get_manifest(module_id)
            if module_id == candidate.module_id:
                target = module.clamp_level(candidate.requested_level)
                if target != candidate.requested_level:
                    logger.debug(
                        f"Clamped {module_id} request from tier "
                        f"{candidate.requested_level} to {target}"
                    )
            else:
                target = 1

            for level in range(1, target + 1):
                if cache.already_loaded_at_least(module_id, level):
                    logger.debug(f"Skipping {module_id}@{level}: already loaded")
                    continue

                cost = module.tier(level).size_cost
                if not budget.try_reserve(cost):
                    return LoadInstruction(module_id=module_id, level=level, size_cost=cost)

                instructions.append(
                    LoadInstruction(module_id=module_id, level=level, size_cost=cost)
                )
                cache.record_loaded(module_id, level)
                logger.debug(f"Reserved {module_id}@{level} (cost {cost})")

        return None
