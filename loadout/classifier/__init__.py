"""Reference candidate classifiers for Loadout."""

from loadout.classifier.keyword import KeywordClassifier
from loadout.classifier.pinned import PinnedClassifier

__all__ = ["KeywordClassifier", "PinnedClassifier"]
