"""Base utilities for classifier implementations."""

import logging
import re
from typing import Any, Optional, Sequence

from loadout.schemas import Candidate, Module

logger = logging.getLogger(__name__)


def normalize_text(text: str) -> str:
    """Lowercase and collapse punctuation so 'AWS_SSO-login?' matches 'aws sso login'."""
    text = re.sub(r"[\W_]+", " ", text.lower())
    return f" {text.strip()} "


def term_in_text(term: str, normalized_text: str) -> bool:
    """Whole-word (or whole-phrase) match of term in text from normalize_text()."""
    needle = normalize_text(term)
    return needle.strip() != "" and needle in normalized_text


def propose_candidates(
    classifier: Optional[Any],
    task_description: str,
    modules: Sequence[Module],
) -> list[Candidate]:
    """Ask the classifier for candidates, falling back to none on failure.

    A classifier is an external collaborator: exceptions and malformed
    results are logged and never abort resolution.
    """
    if classifier is None:
        logger.warning("No candidates given and no classifier configured")
        return []

    try:
        proposed = classifier.propose(task_description, modules)
    except Exception as e:
        logger.warning(f"Classifier.propose() failed: {e}. Using no candidates.")
        return []

    if proposed is None:
        return []

    candidates: list[Candidate] = []
    for item in proposed:
        try:
            candidates.append(Candidate.coerce(item))
        except ValueError as e:
            logger.warning(f"Classifier returned invalid candidate {item!r}: {e}. Skipping.")
    return candidates
