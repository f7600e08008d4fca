"""Behavior Comparator

Compares the captured outputs of the legacy and candidate programs.

Comparison is literal after whitespace normalization: every run of
whitespace (newlines included) collapses to one space and the ends are
trimmed. Line endings and padding never count as a mismatch; a changed
digit or decimal place always does.
"""

import difflib
from dataclasses import dataclass
from typing import Dict, Optional
import logging

logger = logging.getLogger(__name__)


def normalize(text: Optional[str]) -> str:
    """Collapse all whitespace runs to single spaces and trim. Idempotent."""
    if not text:
        return ""
    return " ".join(text.split())


def compare(a: Optional[str], b: Optional[str]) -> bool:
    """True iff both texts are equal after normalization"""
    return normalize(a) == normalize(b)


@dataclass
class OutputComparison:
    """Result of comparing one legacy/candidate output pair"""
    matched: bool
    legacy_normalized: str
    candidate_normalized: str
    similarity: float  # 0.0 to 1.0, diagnostic only

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization"""
        return {
            "matched": self.matched,
            "legacy_normalized": self.legacy_normalized,
            "candidate_normalized": self.candidate_normalized,
            "similarity": self.similarity,
        }


class BehaviorComparator:
    """Compare execution outputs between the legacy and candidate programs"""

    def compare_outputs(self, legacy_result, candidate_result) -> OutputComparison:
        """
        Compare two ExecutionResults on their captured output.

        Args:
            legacy_result: ExecutionResult from the legacy program
            candidate_result: ExecutionResult from the candidate program

        Returns:
            OutputComparison
        """
        legacy_norm = normalize(legacy_result.captured_output)
        candidate_norm = normalize(candidate_result.captured_output)
        matched = legacy_norm == candidate_norm

        if matched:
            similarity = 1.0
        else:
            similarity = difflib.SequenceMatcher(None, legacy_norm, candidate_norm).ratio()

        logger.info("Comparing outputs:")
        logger.info(f"   Legacy (normalized):    '{legacy_norm}'")
        logger.info(f"   Candidate (normalized): '{candidate_norm}'")
        logger.info(f"   Match: {matched} (similarity: {similarity:.2%})")

        return OutputComparison(
            matched=matched,
            legacy_normalized=legacy_norm,
            candidate_normalized=candidate_norm,
            similarity=similarity,
        )
