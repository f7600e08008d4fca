"""
Execution-based validation of modernized programs

Builds and runs the legacy and candidate variants in isolated working
directories and compares what they print.

Components:
- TaskWorkspace: Per-task, per-variant working directories
- BuildExecutor: Compile a variant with its toolchain (cobc / cargo)
- ExecutionHarness: Run a built variant against the fixture input
- BehaviorComparator: Normalize and compare captured outputs
- LocalRunner / DockerRunner: Where builds and runs execute
"""

from legacyparity.execution.workspace import TaskWorkspace
from legacyparity.execution.sandbox import LocalRunner, DockerRunner, get_runner
from legacyparity.execution.build_executor import BuildExecutor, BuildResult, Variant
from legacyparity.execution.harness import ExecutionHarness, ExecutionResult
from legacyparity.execution.behavior_comparator import (
    BehaviorComparator, OutputComparison, normalize, compare,
)

__all__ = [
    "TaskWorkspace",
    "LocalRunner",
    "DockerRunner",
    "get_runner",
    "BuildExecutor",
    "BuildResult",
    "Variant",
    "ExecutionHarness",
    "ExecutionResult",
    "BehaviorComparator",
    "OutputComparison",
    "normalize",
    "compare",
]
