"""Pipeline Orchestrator

Runs one modernization-validation task end to end:

    fetch -> translate -> build legacy -> run legacy -> build candidate
          -> run candidate -> compare -> classify -> archive -> report

Failure policy:
- fetch, fixture and translation errors abort the task; the report carries
  the error text and no artifacts are archived
- build and execution errors are recorded and folded into the FAILED
  classification; the other variant still builds and runs
- archival errors are recorded; the affected URL is None
"""

import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional
import logging

from legacyparity.ai_integration import TranslationClient, TranslationResult
from legacyparity.archiver import ArtifactArchiver
from legacyparity.classifier import ComparisonOutcome, OutcomeClassifier
from legacyparity.config import ARCHIVE_EXTENSIONS, TRANSCRIPT_CATEGORY
from legacyparity.errors import (
    ArchivalError, BuildError, ExecutionError, FixtureError, PipelineError,
    StorageAccessError, TranslationError,
)
from legacyparity.execution import (
    BehaviorComparator, BuildExecutor, ExecutionHarness, TaskWorkspace, Variant,
)
from legacyparity.fixtures import FixtureInput, FixtureLoader
from legacyparity.storage import ObjectStore
from legacyparity.tasks import EvaluationTask, SourceArtifact

logger = logging.getLogger(__name__)


@dataclass
class EvaluationReport:
    """Final, best-effort report for one task"""
    task_id: str
    status_message: str
    matched: bool
    candidate_url: Optional[str] = None
    transcript_url: Optional[str] = None
    category: Optional[str] = None
    failed_stage: Optional[str] = None
    diagnostics: List[str] = field(default_factory=list)
    details: Dict = field(default_factory=dict)

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization"""
        return {
            "task_id": self.task_id,
            "status_message": self.status_message,
            "matched": self.matched,
            "candidate_url": self.candidate_url,
            "transcript_url": self.transcript_url,
            "category": self.category,
            "failed_stage": self.failed_stage,
            "diagnostics": self.diagnostics,
            "details": self.details,
        }

    def to_response(self) -> Dict:
        """Shape returned by the HTTP endpoint"""
        return {
            "task_id": self.task_id,
            "status": self.status_message,
            "match_confirmed": self.matched,
            "candidate_code_url": self.candidate_url,
            "logs_url": self.transcript_url,
        }


class ModernizationPipeline:
    """
    Drive one task through translation, differential execution and archival.

    Every collaborator is injectable; the defaults talk to S3, Gemini and
    the local cobc/cargo toolchains.
    """

    def __init__(self,
                 store: Optional[ObjectStore] = None,
                 translator: Optional[TranslationClient] = None,
                 builder: Optional[BuildExecutor] = None,
                 harness: Optional[ExecutionHarness] = None,
                 comparator: Optional[BehaviorComparator] = None,
                 classifier: Optional[OutcomeClassifier] = None,
                 fixture_loader: Optional[FixtureLoader] = None,
                 workspace_factory: Callable[[str], TaskWorkspace] = TaskWorkspace,
                 clock: Callable[[], float] = time.time):
        self.store = store or ObjectStore()
        self.translator = translator or TranslationClient()
        self.builder = builder or BuildExecutor()
        self.harness = harness or ExecutionHarness()
        self.comparator = comparator or BehaviorComparator()
        self.classifier = classifier or OutcomeClassifier()
        self.fixture_loader = fixture_loader or FixtureLoader(self.store)
        self.workspace_factory = workspace_factory
        self.clock = clock

    def run(self, task: EvaluationTask) -> EvaluationReport:
        """Run the full pipeline for one task and return its report"""
        logger.info(f"[TASK: {task.task_id}] Starting Evaluation...")
        location = task.source_location

        try:
            logger.info(f"Fetching source from S3: {location.key}")
            source = SourceArtifact.from_bytes(self.store.get(location.bucket, location.key), location.key)

            fixture = None
            if source.kind.validates_behavior:
                fixture = self.fixture_loader.load(location.bucket)

            translation = self.translator.translate(source.text, source.kind)
        except (StorageAccessError, FixtureError, TranslationError) as e:
            logger.error(f"[TASK: {task.task_id}] Aborted at {e.stage}: {e}")
            return EvaluationReport(
                task_id=task.task_id,
                status_message=f"{type(e).__name__}: {e}",
                matched=False,
                failed_stage=e.stage,
                diagnostics=[f"[{e.stage}] {e}"],
            )

        timestamp = int(self.clock())
        errors: List[PipelineError] = []
        outcome, details = self._validate(task, source, fixture, translation, errors)

        report = EvaluationReport(
            task_id=task.task_id,
            status_message=outcome.status_message,
            matched=outcome.matched,
            category=outcome.storage_category.value,
            details=details,
        )
        self._archive(task, translation, outcome, timestamp, report, errors)
        report.diagnostics = [f"[{e.stage}] {e}" for e in errors] + report.diagnostics

        logger.info(f"[TASK: {task.task_id}] {report.status_message}")
        return report

    def _validate(self, task: EvaluationTask, source: SourceArtifact,
                  fixture: Optional[FixtureInput], translation: TranslationResult,
                  errors: List[PipelineError]):
        """Build and run both variants, compare and classify"""
        validating = source.kind.validates_behavior
        legacy_build = candidate_build = None
        legacy_run = candidate_run = None
        legacy_error = candidate_error = None
        comparison = None

        with self.workspace_factory(task.task_id) as workspace:
            if validating:
                legacy_dir = workspace.fresh(Variant.LEGACY.value)
                legacy_build = self.builder.build(Variant.LEGACY, source.text, legacy_dir)
                if legacy_build.success:
                    try:
                        legacy_run = self.harness.run(legacy_build, fixture, legacy_dir)
                    except ExecutionError as e:
                        legacy_error = e
                        errors.append(e)
                else:
                    errors.append(BuildError(
                        f"{source.kind.label} compilation failed: {legacy_build.diagnostic}", legacy_build
                    ))

            candidate_dir = workspace.fresh(Variant.CANDIDATE.value)
            candidate_build = self.builder.build(Variant.CANDIDATE, translation.candidate_source, candidate_dir)
            if not candidate_build.success:
                errors.append(BuildError(
                    f"{self.classifier.target_label} compilation failed: {candidate_build.diagnostic}",
                    candidate_build,
                ))
            elif validating:
                try:
                    candidate_run = self.harness.run(candidate_build, fixture, candidate_dir)
                except ExecutionError as e:
                    candidate_error = e
                    errors.append(e)

        if legacy_run is not None and candidate_run is not None:
            comparison = self.comparator.compare_outputs(legacy_run, candidate_run)

        outcome = self.classifier.classify(
            source.kind,
            candidate_build,
            legacy_build=legacy_build,
            legacy_run_error=legacy_error,
            candidate_run_error=candidate_error,
            comparison=comparison,
        )

        details = {
            "source_kind": source.kind.value,
            "fixture_input": fixture.value if fixture else None,
            "builds": {
                b.variant.value: b.to_dict() for b in (legacy_build, candidate_build) if b is not None
            },
            "executions": {
                name: run.to_dict()
                for name, run in (("legacy", legacy_run), ("candidate", candidate_run))
                if run is not None
            },
            "comparison": comparison.to_dict() if comparison else None,
            "outcome": outcome.to_dict(),
        }
        return outcome, details

    def _archive(self, task: EvaluationTask, translation: TranslationResult,
                 outcome: ComparisonOutcome, timestamp: int, report: EvaluationReport,
                 errors: List[PipelineError]):
        """Archive candidate source and transcript; failures are recorded, not raised"""
        archiver = ArtifactArchiver(self.store, task.source_location.bucket)
        artifacts = (
            ("candidate_url", translation.candidate_source,
             outcome.storage_category.prefix, ARCHIVE_EXTENSIONS["candidate"]),
            ("transcript_url", translation.raw_transcript,
             TRANSCRIPT_CATEGORY, ARCHIVE_EXTENSIONS["transcript"]),
        )

        archived = {}
        for attr, content, category, ext in artifacts:
            try:
                artifact = archiver.archive(content, category, task.task_id, timestamp, ext)
            except ArchivalError as e:
                logger.error(f"[TASK: {task.task_id}] {e}")
                errors.append(e)
                continue

            archived[attr] = artifact.to_dict()
            setattr(report, attr, artifact.retrieval_url)
            if artifact.retrieval_url is None:
                report.diagnostics.append(f"[archive] No retrieval URL issued for {artifact.key}")

        report.details["archived"] = archived
