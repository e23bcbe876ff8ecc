"""PinnedClassifier: always propose a fixed candidate list."""

from typing import Any, Iterable, Sequence

from loadout.schemas import Candidate, Module


class PinnedClassifier:
    """Propose the same candidates for every task.

    Ignores the task text. Useful for always-on modules such as a session's
    agent prompt, and as a baseline.
    """

    def __init__(self, pins: Iterable[Any]):
        """Initialize the pinned classifier.

        Args:
            pins: Candidates, ids or (id, score[, level]) tuples.
        """
        self.pins = [Candidate.coerce(pin) for pin in pins]
        if not self.pins:
            raise ValueError("pins cannot be empty")

    def propose(
        self,
        task_description: str,
        modules: Sequence[Module],
    ) -> list[Candidate]:
        """Return the pinned candidates."""
        return list(self.pins)
