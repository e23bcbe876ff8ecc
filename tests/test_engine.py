"""Tests for the Loadout facade and EngineConfig."""

import asyncio
import threading

import pytest

from loadout import EngineConfig, Loadout
from loadout.classifier import KeywordClassifier, PinnedClassifier
from loadout.config import DEFAULT_CEILING, ModuleKind
from loadout.errors import CyclicDependencyError, SessionClosedError
from loadout.store import InMemoryModuleStore


class TestEngineConfig:
    """Tests for EngineConfig validation."""

    def test_requires_root_or_store(self):
        """Test that a module source is required."""
        with pytest.raises(ValueError, match="module_root or module_store"):
            EngineConfig()

    def test_root_from_environment(self, monkeypatch, tmp_path):
        """Test LOADOUT_ROOT fallback."""
        monkeypatch.setenv("LOADOUT_ROOT", str(tmp_path))
        config = EngineConfig()

        assert config.module_root == tmp_path

    def test_ceiling_from_environment(self, monkeypatch, tmp_path):
        """Test LOADOUT_CEILING overrides only the default."""
        monkeypatch.setenv("LOADOUT_CEILING", "1234")

        assert EngineConfig(module_root=tmp_path).default_ceiling == 1234
        assert EngineConfig(module_root=tmp_path, default_ceiling=50).default_ceiling == 50

    def test_invalid_ceiling_environment(self, monkeypatch, tmp_path):
        """Test that a non-integer LOADOUT_CEILING is rejected."""
        monkeypatch.setenv("LOADOUT_CEILING", "lots")
        with pytest.raises(ValueError, match="LOADOUT_CEILING"):
            EngineConfig(module_root=tmp_path)

    def test_defaults(self, tmp_path):
        """Test default values."""
        config = EngineConfig(module_root=tmp_path)

        assert config.default_ceiling == DEFAULT_CEILING
        assert config.classifier is None

    def test_negative_ceiling(self, tmp_path):
        """Test that the default ceiling must be non-negative."""
        with pytest.raises(ValueError):
            EngineConfig(module_root=tmp_path, default_ceiling=-1)


class TestStartup:
    """Tests for engine construction."""

    def test_cycle_aborts_startup(self, make_module):
        """A cyclic module set never produces an engine."""
        modules = [
            make_module("agentX", [1], deps=["skillY"], kind=ModuleKind.AGENT),
            make_module("skillY", [1], deps=["skillX"]),
            make_module("skillX", [1], deps=["skillY"]),
        ]
        with pytest.raises(CyclicDependencyError, match="skillY"):
            Loadout(config=EngineConfig(module_store=InMemoryModuleStore(modules)))

    def test_exposes_modules_and_graph(self, scenario_modules, build_engine):
        """Test the read-only views."""
        engine = build_engine(scenario_modules)

        assert [module.id for module in engine.modules] == ["skillA", "skillB", "skillC"]
        assert engine.graph.expand("skillA") == ["skillC", "skillA"]
        assert isinstance(engine.store, InMemoryModuleStore)


class TestResolve:
    """Tests for Loadout.resolve."""

    def test_session_idempotence(self, scenario_modules, build_engine):
        """The second resolution in a session only holds the delta."""
        engine = build_engine(scenario_modules)
        candidates = [("skillA", 0.9, 2), ("skillB", 0.5, 1)]

        with engine.open_session(ceiling=1000) as session:
            first = engine.resolve("task", candidates, session=session)
            second = engine.resolve("task", candidates, session=session)

        assert len(first.instructions) == 4
        assert second.is_empty
        assert first.session_id == session.session_id

    def test_sessions_are_independent(self, scenario_modules, build_engine):
        """Each session has its own cache and budget."""
        engine = build_engine(scenario_modules)
        candidates = [("skillA", 0.9, 2)]

        first = engine.resolve("task", candidates, session=engine.open_session(1000))
        second = engine.resolve("task", candidates, session=engine.open_session(1000))

        assert first.instructions == second.instructions

    def test_one_shot_uses_default_ceiling(self, scenario_modules, build_engine):
        """Without a session, a fresh session with the default ceiling is used."""
        engine = build_engine(scenario_modules, default_ceiling=35)

        plan = engine.resolve("task", [("skillA", 0.9, 2), ("skillB", 0.5, 1)])

        assert plan.ceiling == 35
        assert plan.rejected_ids() == ["skillB"]

    def test_closed_session(self, scenario_modules, build_engine):
        """Test that a closed session cannot resolve."""
        engine = build_engine(scenario_modules)
        session = engine.open_session()
        session.close()

        assert session.closed
        with pytest.raises(SessionClosedError):
            engine.resolve("task", [("skillB", 1.0)], session=session)

    def test_close_waits_for_running_resolution(self, scenario_modules, build_engine):
        """Closing from another thread waits until the session lock is free."""
        engine = build_engine(scenario_modules)
        session = engine.open_session()
        closer = threading.Thread(target=session.close)

        engine.resolve("task", [("skillA", 1.0, 2)], session=session)

        with session.lock:
            closer.start()
            closer.join(timeout=0.1)
            assert closer.is_alive()
            assert not session.closed
            assert session.cache.loaded_level("skillA") == 2

        closer.join(timeout=5)
        assert not closer.is_alive()
        assert session.closed
        assert len(session.cache) == 0

    def test_classifier_used_without_candidates(self, make_module, build_engine):
        """Test that the configured classifier proposes candidates."""
        modules = [
            make_module("rds-access", [3, 4], triggers=["database", "rds"]),
            make_module("kube-access", [3, 4], triggers=["kubernetes", "pod"]),
        ]
        engine = build_engine(modules, classifier=KeywordClassifier())

        plan = engine.resolve("open a tunnel to the staging database", session=engine.open_session(100))

        assert plan.module_ids() == ["rds-access"]
        assert plan.task == "open a tunnel to the staging database"

    def test_failing_classifier_gives_empty_plan(self, scenario_modules, build_engine):
        """A broken classifier is logged and treated as no candidates."""

        class Broken:
            def propose(self, task_description, modules):
                raise RuntimeError("classifier offline")

        engine = build_engine(scenario_modules, classifier=Broken())

        plan = engine.resolve("anything")

        assert plan.is_empty
        assert plan.rejected == ()

    def test_invalid_classifier_items_skipped(self, scenario_modules, build_engine):
        """Malformed classifier output is skipped item by item."""

        class Sloppy:
            def propose(self, task_description, modules):
                return [("skillB", 0.5, 1), 42, ("skillC", float("nan"))]

        engine = build_engine(scenario_modules, classifier=Sloppy())

        plan = engine.resolve("anything")

        assert plan.module_ids() == ["skillB"]

    def test_no_classifier_no_candidates(self, scenario_modules, build_engine):
        """Test that no candidates and no classifier give an empty plan."""
        engine = build_engine(scenario_modules)
        assert engine.resolve("anything").is_empty

    def test_explicit_candidates_override_classifier(self, scenario_modules, build_engine):
        """Test that explicit candidates bypass the classifier."""
        engine = build_engine(scenario_modules, classifier=PinnedClassifier(["skillA"]))

        plan = engine.resolve("task", [("skillB", 1.0, 1)])

        assert plan.module_ids() == ["skillB"]


class TestAsyncAndFetch:
    """Tests for resolve_async and fetch."""

    def test_resolve_async(self, scenario_modules, build_engine):
        """Test the async wrapper returns the same plan."""
        engine = build_engine(scenario_modules)
        candidates = [("skillA", 0.9, 2), ("skillB", 0.5, 1)]

        plan = asyncio.run(
            engine.resolve_async("task", candidates, session=engine.open_session(1000), timeout=5)
        )

        assert plan == engine.resolve("task", candidates, session=engine.open_session(1000)).model_copy(
            update={"session_id": plan.session_id}
        )

    def test_fetch(self, scenario_modules, build_engine):
        """Test fetching content for a plan in order."""
        engine = build_engine(scenario_modules)
        plan = engine.resolve("task", [("skillA", 0.9, 2)], session=engine.open_session(1000))

        loaded = engine.fetch(plan)

        assert [item.content for item in loaded] == [b"skillC@1", b"skillA@1", b"skillA@2"]
        assert [item.instruction for item in loaded] == list(plan.instructions)


class TestFileSystemEngine:
    """End-to-end tests against an on-disk module tree."""

    def test_resolve_from_disk(self, module_tree):
        """Test resolving and fetching from a filesystem store."""
        engine = Loadout(config=EngineConfig(module_root=module_tree, default_ceiling=10_000))

        plan = engine.resolve("review", [("reviewer", 1.0, 2), ("refresh-token", 0.5, 1)])

        assert [(item.module_id, item.level) for item in plan.instructions] == [
            ("env-basics", 1),
            ("aws-access", 1),
            ("reviewer", 1),
            ("reviewer", 2),
            ("refresh-token", 1),
        ]
        contents = engine.fetch(plan)
        assert contents[0].content == b"env basics metadata"
        assert contents[-1].content == b"Refresh the SSO token"

    def test_root_from_environment(self, module_tree, monkeypatch):
        """Test LOADOUT_ROOT end to end."""
        monkeypatch.setenv("LOADOUT_ROOT", str(module_tree))
        engine = Loadout(config=EngineConfig())

        assert len(engine.modules) == 4
