"""Outcome classification

Maps the (build, execution, comparison) results of one task to one of four
terminal states, checked in this order:

1. UNVALIDATED  - source kind has no fixture-execution contract
2. FAILED       - a build failed or either execution failed
3. VALIDATED    - everything ran and the outputs match
4. NEEDS_REVIEW - everything ran and the outputs differ

Each state has its own archive prefix so consumers can triage by listing a
category instead of parsing status text.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional
import logging

from legacyparity.config import STORAGE_CATEGORIES, TRANSLATION_CONFIG
from legacyparity.tasks import SourceKind

logger = logging.getLogger(__name__)


class StorageCategory(Enum):
    VALIDATED = "validated"
    NEEDS_REVIEW = "needs_review"
    FAILED = "failed"
    UNVALIDATED = "unvalidated"

    @property
    def prefix(self) -> str:
        """Archive key prefix for this category"""
        return STORAGE_CATEGORIES[self.value]


@dataclass
class ComparisonOutcome:
    """Terminal classification of a task"""
    matched: bool
    status_message: str
    storage_category: StorageCategory

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization"""
        return {
            "matched": self.matched,
            "status_message": self.status_message,
            "storage_category": self.storage_category.value,
        }


class OutcomeClassifier:
    """Decide the terminal state of a task"""

    def __init__(self, target_label: str = None):
        self.target_label = target_label or TRANSLATION_CONFIG["target_language"]

    def classify(self, source_kind: SourceKind, candidate_build,
                 legacy_build=None, legacy_run_error=None, candidate_run_error=None,
                 comparison=None) -> ComparisonOutcome:
        """
        Classify a task.

        Args:
            source_kind: Detected legacy dialect
            candidate_build: BuildResult for the candidate
            legacy_build: BuildResult for the legacy program (None if not built)
            legacy_run_error: ExecutionError from the legacy run, if any
            candidate_run_error: ExecutionError from the candidate run, if any
            comparison: OutputComparison (None if no comparison ran)

        Returns:
            ComparisonOutcome
        """
        if not source_kind.validates_behavior:
            outcome = self._unvalidated(source_kind, candidate_build)
        else:
            failures = self._collect_failures(
                source_kind, legacy_build, candidate_build,
                legacy_run_error, candidate_run_error,
            )
            if failures:
                outcome = ComparisonOutcome(
                    matched=False,
                    status_message="; ".join(failures),
                    storage_category=StorageCategory.FAILED,
                )
            elif comparison is None:
                outcome = ComparisonOutcome(
                    matched=False,
                    status_message="No output comparison was performed",
                    storage_category=StorageCategory.FAILED,
                )
            elif comparison.matched:
                outcome = ComparisonOutcome(
                    matched=True,
                    status_message="SUCCESS - Outputs match!",
                    storage_category=StorageCategory.VALIDATED,
                )
            else:
                outcome = ComparisonOutcome(
                    matched=False,
                    status_message=(
                        f"Output mismatch. {source_kind.label}: '{comparison.legacy_normalized}', "
                        f"{self.target_label}: '{comparison.candidate_normalized}'"
                    ),
                    storage_category=StorageCategory.NEEDS_REVIEW,
                )

        logger.info(f"Classified as {outcome.storage_category.name}: {outcome.status_message}")
        return outcome

    def _unvalidated(self, source_kind: SourceKind, candidate_build) -> ComparisonOutcome:
        if candidate_build is not None and candidate_build.success:
            message = (
                f"{self.target_label} compiles successfully. "
                f"{source_kind.label} validation requires mainframe access."
            )
        else:
            diagnostic = candidate_build.diagnostic if candidate_build is not None else "not built"
            message = (
                f"{self.target_label} compilation failed: {diagnostic}. "
                f"{source_kind.label} validation requires mainframe access."
            )
        return ComparisonOutcome(
            matched=False,
            status_message=message,
            storage_category=StorageCategory.UNVALIDATED,
        )

    def _collect_failures(self, source_kind, legacy_build, candidate_build,
                          legacy_run_error, candidate_run_error) -> List[str]:
        failures = []
        if candidate_build is None or not candidate_build.success:
            diagnostic = candidate_build.diagnostic if candidate_build is not None else "not built"
            failures.append(f"{self.target_label} compilation failed: {diagnostic}")
        if legacy_build is None or not legacy_build.success:
            diagnostic = legacy_build.diagnostic if legacy_build is not None else "not built"
            failures.append(f"{source_kind.label} compilation failed: {diagnostic}")
        if legacy_run_error is not None:
            failures.append(f"{source_kind.label} execution failed: {legacy_run_error}")
        if candidate_run_error is not None:
            failures.append(f"{self.target_label} execution failed: {candidate_run_error}")
        return failures
