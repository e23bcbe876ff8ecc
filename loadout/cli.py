"""Command-line interface for inspecting modules and trying resolutions.

Subcommands:
    validate              Scan and validate the module tree
    show MODULE           Print a module's tiers and dependency chain
    resolve [CANDIDATE]   Resolve one task and print the plan
    repl                  Resolve tasks interactively within one session
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from loadout import Candidate, EngineConfig, LoadPlan, Loadout
from loadout.classifier import KeywordClassifier, PinnedClassifier
from loadout.errors import ConfigurationError, NotFoundError

MAX_PREVIEW_LEN = 200


def _truncate(text: str, max_len: int = MAX_PREVIEW_LEN) -> str:
    """Truncate text with ellipsis if too long."""
    text = text.replace("\n", " ").strip()
    if len(text) <= max_len:
        return text
    return text[:max_len] + "..."


def _parse_candidate(value: str) -> Candidate:
    """Parse 'id[:score[:level]]' into a Candidate."""
    parts = value.split(":")
    if not parts[0] or len(parts) > 3:
        raise argparse.ArgumentTypeError(
            f"invalid candidate {value!r}; expected id[:score[:level]]"
        )
    try:
        score = float(parts[1]) if len(parts) > 1 and parts[1] else 0.0
        level = int(parts[2]) if len(parts) > 2 and parts[2] else 1
        return Candidate(module_id=parts[0], score=score, requested_level=level)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid candidate {value!r}: {e}") from e


def _print_plan(plan: LoadPlan) -> None:
    """Print a load plan."""
    print("=" * 60)
    print("LOAD PLAN")
    print("=" * 60)
    if plan.task:
        print(f"Task: {_truncate(plan.task)}")
    if plan.is_empty:
        print("Nothing new to load.")
    for index, item in enumerate(plan.instructions, start=1):
        print(f"  {index:>3}. {item.module_id}@{item.level}  (cost {item.size_cost})")
    print()

    if plan.rejected:
        print("Rejected:")
        for rejection in plan.rejected:
            print(f"  - {rejection.module_id} [{rejection.reason.value}] {rejection.detail}")
        print()

    print(f"Cost: {plan.total_cost}   Remaining: {plan.remaining}/{plan.ceiling}")
    print()


def _print_module(engine: Loadout, module_id: str) -> None:
    """Print a module's manifest summary and dependency chain."""
    module = engine.store.get_manifest(module_id)
    print("=" * 60)
    print(f"{module.kind.value.upper()}: {module.id}")
    print("=" * 60)
    if module.description:
        print(_truncate(module.description))
        print()
    print("Tiers:")
    for tier in module.tiers:
        source = f"  {tier.source}" if tier.source else ""
        print(f"  {tier.level}: cost {tier.size_cost}{source}")
    print()
    print(f"Depends on:  {', '.join(engine.graph.dependencies(module_id)) or '-'}")
    print(f"Used by:     {', '.join(engine.graph.dependents(module_id)) or '-'}")
    print(f"Load chain:  {' -> '.join(engine.graph.expand(module_id))}")
    if module.trigger_terms:
        print(f"Triggers:    {', '.join(module.trigger_terms)}")
    print()


def _build_engine(args: argparse.Namespace) -> Loadout:
    """Build the engine, with a keyword classifier (plus pins) for task-only resolution."""
    classifier = KeywordClassifier(detail_threshold=args.detail_threshold)
    pins = getattr(args, "pin", None)
    if pins:
        classifier = _CombinedClassifier(PinnedClassifier(pins), classifier)

    config_fields = {"classifier": classifier}
    if args.root:
        config_fields["module_root"] = args.root
    if args.ceiling is not None:
        config_fields["default_ceiling"] = args.ceiling
    return Loadout(config=EngineConfig(**config_fields))


class _CombinedClassifier:
    """Pinned candidates first, then keyword matches not already pinned."""

    def __init__(self, pinned: PinnedClassifier, keyword: KeywordClassifier):
        self._pinned = pinned
        self._keyword = keyword

    def propose(self, task_description, modules):
        pinned = self._pinned.propose(task_description, modules)
        pinned_ids = {candidate.module_id for candidate in pinned}
        matches = [
            candidate
            for candidate in self._keyword.propose(task_description, modules)
            if candidate.module_id not in pinned_ids
        ]
        # Pins outrank every keyword score (which is at most 1.0)
        boosted = [
            candidate.model_copy(update={"score": max(candidate.score, 1.0) + 1.0})
            for candidate in pinned
        ]
        return boosted + matches


def _cmd_validate(engine: Loadout, args: argparse.Namespace) -> None:
    kinds: dict[str, int] = {}
    for module in engine.modules:
        kinds[module.kind.value] = kinds.get(module.kind.value, 0) + 1
    summary = ", ".join(f"{count} {kind}s" for kind, count in sorted(kinds.items()))
    print(f"OK: {len(engine.modules)} modules ({summary or 'none'})")
    print(f"Load order: {' -> '.join(engine.graph.topological_order()) or '-'}")


def _cmd_show(engine: Loadout, args: argparse.Namespace) -> None:
    _print_module(engine, args.module)


def _cmd_resolve(engine: Loadout, args: argparse.Namespace) -> None:
    candidates = args.candidates or None
    plan = engine.resolve(args.task, candidates)
    if args.json:
        print(plan.model_dump_json(indent=2))
    else:
        _print_plan(plan)


def _cmd_repl(engine: Loadout, args: argparse.Namespace) -> None:
    """Resolve tasks line by line within one session."""
    session = engine.open_session()
    print("Loadout REPL")
    print(f"Modules: {len(engine.modules)}   Budget: {session.budget.ceiling}")
    print("Type a task, or 'budget', 'loaded', 'reset', 'exit'")
    print()

    while True:
        try:
            user_input = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not user_input:
            continue

        command = user_input.lower()
        if command == "exit":
            break

        if command == "budget":
            print(f"Consumed {session.budget.consumed} of {session.budget.ceiling}")
            continue

        if command == "loaded":
            loaded = session.cache.snapshot()
            if not loaded:
                print("Nothing loaded yet.")
            for module_id, level in loaded.items():
                print(f"  {module_id}@{level}")
            continue

        if command == "reset":
            session.close()
            session = engine.open_session()
            print("Session reset.")
            continue

        plan = engine.resolve(user_input, session=session)
        _print_plan(plan)

    session.close()


COMMANDS = {
    "validate": _cmd_validate,
    "show": _cmd_show,
    "resolve": _cmd_resolve,
    "repl": _cmd_repl,
}


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="loadout",
        description="Loadout CLI - tiered knowledge-resolution engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Module root directory (default: $LOADOUT_ROOT)",
    )
    parser.add_argument(
        "--ceiling",
        type=int,
        default=None,
        metavar="N",
        help="Session budget ceiling (default: $LOADOUT_CEILING or 8000)",
    )
    parser.add_argument(
        "--detail-threshold",
        type=float,
        default=0.5,
        metavar="X",
        help="Keyword score at which tier 2 is requested (default: 0.5)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("validate", help="Validate the module tree")

    show = subparsers.add_parser("show", help="Show a module")
    show.add_argument("module", help="Module id")

    resolve = subparsers.add_parser("resolve", help="Resolve one task")
    resolve.add_argument("candidates", nargs="*", type=_parse_candidate, metavar="CANDIDATE",
                         help="id[:score[:level]]; omit to classify --task by trigger terms")
    resolve.add_argument("--task", default="", help="Task description")
    resolve.add_argument("--json", action="store_true", help="Print the plan as JSON")

    repl = subparsers.add_parser("repl", help="Interactive session")
    repl.add_argument("--pin", action="append", default=[], metavar="ID",
                      help="Module to propose for every task (repeatable)")

    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    """Run the Loadout CLI."""
    args = _parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        engine = _build_engine(args)
    except (ConfigurationError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    try:
        COMMANDS[args.command](engine, args)
    except NotFoundError as e:
        print(f"Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
