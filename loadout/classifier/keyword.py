"""KeywordClassifier: score modules by trigger terms found in the task."""

from typing import Iterable, Optional, Sequence

from loadout.classifier.base import normalize_text, term_in_text
from loadout.config import ModuleKind
from loadout.schemas import Candidate, Module


class KeywordClassifier:
    """Propose modules whose trigger terms appear in the task text.

    Score is the fraction of a module's terms (its id counts as one) found in
    the task. Modules at or above detail_threshold are requested at tier 2,
    others at tier 1.
    """

    def __init__(
        self,
        detail_threshold: float = 0.5,
        kinds: Optional[Iterable[ModuleKind]] = None,
        max_candidates: Optional[int] = None,
    ):
        """Initialize the keyword classifier.

        Args:
            detail_threshold: Min score (0-1) for requesting the summary tier.
            kinds: Only propose modules of these kinds (default: all).
            max_candidates: Keep only the best N candidates.
        """
        if not 0.0 <= detail_threshold <= 1.0:
            raise ValueError("detail_threshold must be between 0 and 1")
        if max_candidates is not None and max_candidates < 1:
            raise ValueError("max_candidates must be at least 1")
        self.detail_threshold = detail_threshold
        self.kinds = set(kinds) if kinds is not None else None
        self.max_candidates = max_candidates

    def score(self, task_description: str, module: Module) -> float:
        text = normalize_text(task_description)
        terms = [module.id, *module.trigger_terms]
        matched = sum(1 for term in terms if term_in_text(term, text))
        return matched / len(terms)

    def propose(
        self,
        task_description: str,
        modules: Sequence[Module],
    ) -> list[Candidate]:
        """Score every module and return the matches, best first."""
        candidates = []
        for module in modules:
            if self.kinds is not None and module.kind not in self.kinds:
                continue
            score = self.score(task_description, module)
            if score <= 0.0:
                continue
            level = 2 if score >= self.detail_threshold else 1
            candidates.append(
                Candidate(module_id=module.id, score=round(score, 4), requested_level=level)
            )

        candidates.sort(key=lambda candidate: candidate.score, reverse=True)
        if self.max_candidates is not None:
            candidates = candidates[: self.max_candidates]
        return candidates
