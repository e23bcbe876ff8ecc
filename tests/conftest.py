"""Shared fixtures for Loadout tests."""

from pathlib import Path
from typing import Callable, Iterable, Sequence

import pytest

from loadout.config import EngineConfig, ModuleKind
from loadout.engine import Loadout
from loadout.graph import DependencyGraph
from loadout.resolver import BudgetTracker, Resolver, SessionCache
from loadout.schemas import Module, Tier
from loadout.store import InMemoryModuleStore


def _make_module(
    module_id: str,
    costs: Sequence[int],
    deps: Iterable[str] = (),
    kind: ModuleKind = ModuleKind.SKILL,
    triggers: Iterable[str] = (),
) -> Module:
    tiers = tuple(
        Tier(level=index, size_cost=cost, content=f"{module_id}@{index}".encode())
        for index, cost in enumerate(costs, start=1)
    )
    return Module(
        id=module_id,
        kind=kind,
        dependencies=tuple(deps),
        tiers=tiers,
        trigger_terms=tuple(triggers),
    )


@pytest.fixture
def make_module() -> Callable[..., Module]:
    """Factory: make_module(id, [tier costs], deps=..., kind=..., triggers=...)."""
    return _make_module


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep LOADOUT_* variables from the host environment out of tests."""
    monkeypatch.delenv("LOADOUT_ROOT", raising=False)
    monkeypatch.delenv("LOADOUT_CEILING", raising=False)


@pytest.fixture
def scenario_modules() -> list[Module]:
    """skillA -> skillC, plus an independent skillB.

    Costs: skillA [10, 20, 40], skillB [15, 30], skillC [5, 25].
    """
    return [
        _make_module("skillA", [10, 20, 40], deps=["skillC"]),
        _make_module("skillB", [15, 30]),
        _make_module("skillC", [5, 25]),
    ]


@pytest.fixture
def build_resolver() -> Callable[[list[Module]], Resolver]:
    """Factory building a Resolver over an in-memory store."""

    def build(modules: list[Module]) -> Resolver:
        store = InMemoryModuleStore(modules)
        graph = DependencyGraph.from_modules(store.load())
        return Resolver(graph, store)

    return build


@pytest.fixture
def resolve_fresh(build_resolver):
    """Resolve candidates once against a fresh cache and budget."""

    def run(modules: list[Module], candidates, ceiling: int):
        resolver = build_resolver(modules)
        return resolver.resolve(candidates, SessionCache(), BudgetTracker(ceiling))

    return run


@pytest.fixture
def build_engine() -> Callable[..., Loadout]:
    """Factory building a Loadout engine over in-memory modules."""

    def build(modules: list[Module], **config_fields) -> Loadout:
        config = EngineConfig(module_store=InMemoryModuleStore(modules), **config_fields)
        return Loadout(config=config)

    return build


@pytest.fixture
def module_tree(tmp_path: Path) -> Path:
    """A small on-disk module tree mixing both authoring formats.

    agents/reviewer (AGENT.md)    -> skills/aws-access
    skills/aws-access (SKILL.md)  -> skills/env-basics, 2 references
    skills/env-basics (module.yaml, explicit tiers)
    commands/refresh-token (module.yaml, inline content)
    """
    root = tmp_path / "modules"

    reviewer = root / "agents" / "reviewer"
    reviewer.mkdir(parents=True)
    (reviewer / "AGENT.md").write_text(
        "---\n"
        "name: reviewer\n"
        "description: Reviews infrastructure changes\n"
        "depends_on: [aws-access]\n"
        "triggers: [review, audit]\n"
        "---\n"
        "\n"
        "You review infrastructure changes.\n",
        encoding="utf-8",
    )

    aws = root / "skills" / "aws-access"
    (aws / "references").mkdir(parents=True)
    (aws / "SKILL.md").write_text(
        "---\n"
        "name: aws-access\n"
        "description: Connect to AWS accounts\n"
        "depends_on: env-basics\n"
        "triggers: [aws, sso, rds]\n"
        "---\n"
        "\n"
        "Use SSO profiles to connect.\n",
        encoding="utf-8",
    )
    (aws / "references" / "01-sso.md").write_text("SSO login details\n", encoding="utf-8")
    (aws / "references" / "02-rds.md").write_text("RDS tunnel details\n", encoding="utf-8")

    env = root / "skills" / "env-basics"
    env.mkdir(parents=True)
    (env / "meta.md").write_text("env basics metadata", encoding="utf-8")
    (env / "summary.md").write_text("How environments are laid out.", encoding="utf-8")
    (env / "module.yaml").write_text(
        "description: Environment layout\n"
        "triggers: [environment, staging]\n"
        "tiers:\n"
        "  - file: meta.md\n"
        "    size: 7\n"
        "  - summary.md\n",
        encoding="utf-8",
    )

    refresh = root / "commands" / "refresh-token"
    refresh.mkdir(parents=True)
    (refresh / "module.yaml").write_text(
        "id: refresh-token\n"
        "kind: command\n"
        "depends_on: [aws-access]\n"
        "tiers:\n"
        "  - content: Refresh the SSO token\n",
        encoding="utf-8",
    )

    return root
