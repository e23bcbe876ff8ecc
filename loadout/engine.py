"""Loadout public adapter."""

import asyncio
import logging
from typing import Any, Iterable, Optional

from loadout.classifier.base import propose_candidates
from loadout.config import EngineConfig
from loadout.graph import DependencyGraph
from loadout.resolver.resolver import Resolver
from loadout.schemas import Candidate, LoadedTier, LoadPlan, Module
from loadout.session import ResolutionSession
from loadout.store.filesystem import FileSystemModuleStore

logger = logging.getLogger(__name__)


class Loadout:
    """Public interface to Loadout.

    Construction scans and validates every module manifest and builds the
    dependency graph; configuration errors (malformed manifests, missing tier
    content, cycles) are raised here and never during resolution.

    Usage:
        from loadout import Loadout, EngineConfig

        engine = Loadout(config=EngineConfig(module_root="~/.assistant"))

        with engine.open_session(ceiling=6000) as session:
            plan = engine.resolve(
                "rotate the staging database credentials",
                [("rds-access", 0.9, 2), ("kube-access", 0.4, 1)],
                session=session,
            )
            for item in engine.fetch(plan):
                ...
    """

    def __init__(self, config: EngineConfig):
        """Initialize the engine with configuration.

        Args:
            config: EngineConfig naming the module root or a ready store

        Raises:
            ConfigurationError: If the module set is invalid
        """
        self._config = config
        if config.module_store is not None:
            self._store = config.module_store
        else:
            self._store = FileSystemModuleStore(config.module_root.expanduser())

        self._modules: list[Module] = self._store.load()
        self._graph = DependencyGraph.from_modules(self._modules)
        self._resolver = Resolver(self._graph, self._store)
        logger.info(f"Loadout ready: {len(self._modules)} modules")

    @property
    def modules(self) -> list[Module]:
        return list(self._modules)

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    @property
    def store(self) -> Any:
        return self._store

    def open_session(
        self,
        ceiling: Optional[int] = None,
        session_id: Optional[str] = None,
    ) -> ResolutionSession:
        """Start a session with its own budget and loaded-tier cache.

        Args:
            ceiling: Budget ceiling (defaults to config.default_ceiling)
            session_id: Optional caller-chosen id
        """
        if ceiling is None:
            ceiling = self._config.default_ceiling
        return ResolutionSession(ceiling=ceiling, session_id=session_id)

    def resolve(
        self,
        task_description: str,
        candidates: Optional[Iterable[Any]] = None,
        *,
        session: Optional[ResolutionSession] = None,
    ) -> LoadPlan:
        """Decide which module tiers to load for a task.

        Args:
            task_description: Free-text task (passed to the classifier, and
                recorded in the plan)
            candidates: Scored candidates; if None, the configured classifier
                proposes them
            session: Session to resolve in; a fresh one-shot session with the
                default ceiling if None

        Returns:
            LoadPlan with only the tiers not already loaded in the session

        Raises:
            SessionClosedError: If session has been closed
        """
        if session is None:
            session = self.open_session()
        session.ensure_open()

        if candidates is None:
            resolved_candidates = propose_candidates(
                self._config.classifier, task_description, self._modules
            )
        else:
            resolved_candidates = [Candidate.coerce(item) for item in candidates]

        with session.lock:
            session.ensure_open()
            return self._resolver.resolve(
                resolved_candidates,
                session.cache,
                session.budget,
                task=task_description,
                session_id=session.session_id,
            )

    async def resolve_async(
        self,
        task_description: str,
        candidates: Optional[Iterable[Any]] = None,
        *,
        session: Optional[ResolutionSession] = None,
        timeout: Optional[float] = None,
    ) -> LoadPlan:
        """Async wrapper for resolve(), run in a worker thread.

        The timeout is advisory: on expiry the caller stops waiting, but a
        resolution already running completes and its loads stay recorded in
        the session.

        Raises:
            asyncio.TimeoutError: If timeout elapses first
        """
        call = asyncio.to_thread(
            self.resolve, task_description, candidates, session=session
        )
        if timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=timeout)

    def fetch(self, plan: LoadPlan) -> list[LoadedTier]:
        """Read the content for every instruction in a plan, in plan order."""
        return [
            LoadedTier(
                instruction=item,
                content=self._store.get_tier_content(item.module_id, item.level),
            )
            for item in plan.instructions
        ]
