"""Build Executor for legacy and candidate program variants

Compiles each variant with its own toolchain inside a directory it owns:
- Legacy: GnuCOBOL (cobc -x -std=ibm)
- Candidate: Cargo project pinned to rust_decimal

Commands run through the configured sandbox runner (host or Docker).
Build failures are never retried. The compiler's diagnostic text is
returned verbatim so it can be surfaced in the task report.
"""

import shutil
import subprocess
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional
import logging

from legacyparity.config import TOOLCHAINS
from legacyparity.execution.sandbox import BUILD_PHASE, LocalRunner, get_runner

logger = logging.getLogger(__name__)


class Variant(Enum):
    LEGACY = "legacy"
    CANDIDATE = "candidate"

    @property
    def toolchain(self) -> Dict:
        return TOOLCHAINS[self.value]


@dataclass
class BuildResult:
    """Outcome of compiling one variant"""
    variant: Variant
    success: bool
    diagnostic: str
    artifact_path: Optional[Path] = None
    build_time_ms: float = 0.0
    timeout: bool = False

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization"""
        return {
            "variant": self.variant.value,
            "success": self.success,
            "diagnostic": self.diagnostic,
            "artifact_path": str(self.artifact_path) if self.artifact_path else None,
            "build_time_ms": self.build_time_ms,
            "timeout": self.timeout,
        }


class BuildExecutor:
    """
    Compile a program variant in an isolated working directory.

    The caller supplies a fresh, empty directory per build (see
    TaskWorkspace). The executor never shares paths between variants.
    """

    def __init__(self, toolchains: Optional[Dict] = None, runner: Optional[LocalRunner] = None):
        self.toolchains = toolchains or TOOLCHAINS
        self.runner = runner or get_runner()

    def build(self, variant: Variant, source_text: str, work_dir: Path) -> BuildResult:
        """
        Build one variant.

        Args:
            variant: Variant.LEGACY or Variant.CANDIDATE
            source_text: Program source
            work_dir: Empty directory owned by this build

        Returns:
            BuildResult (success=False carries the compiler diagnostic)
        """
        if variant is Variant.LEGACY:
            command, artifact = self._stage_legacy(source_text, work_dir)
        else:
            command, artifact = self._stage_candidate(source_text, work_dir)

        toolchain = self.toolchains[variant.value]
        timeout = toolchain["compile_timeout_seconds"]

        logger.info(f"Compiling {variant.value} ({toolchain['name']}): {' '.join(command)}")
        start_time = time.time()

        try:
            result = self.runner.run(command, work_dir, timeout, BUILD_PHASE, toolchain)
        except subprocess.TimeoutExpired:
            logger.error(f"{toolchain['name']} compilation timed out")
            return BuildResult(
                variant=variant,
                success=False,
                diagnostic=f"Compilation timed out after {timeout}s",
                build_time_ms=(time.time() - start_time) * 1000,
                timeout=True,
            )
        except FileNotFoundError:
            logger.error(f"{toolchain['name']} not found: {toolchain['command']}")
            return BuildResult(
                variant=variant,
                success=False,
                diagnostic=f"Toolchain command not found: {toolchain['command']}",
                build_time_ms=(time.time() - start_time) * 1000,
            )

        build_time = (time.time() - start_time) * 1000
        stdout = result.stdout.decode("utf-8", errors="replace") if result.stdout else ""
        stderr = result.stderr.decode("utf-8", errors="replace") if result.stderr else ""

        if result.returncode != 0:
            diagnostic = stderr or stdout
            logger.warning(f"[FAIL] {toolchain['name']} compilation failed: {diagnostic}")
            return BuildResult(
                variant=variant,
                success=False,
                diagnostic=diagnostic,
                build_time_ms=build_time,
            )

        if not artifact.exists():
            return BuildResult(
                variant=variant,
                success=False,
                diagnostic=f"Compiler exited 0 but produced no artifact at {artifact}",
                build_time_ms=build_time,
            )

        logger.info(f"[OK] {toolchain['name']} compiled successfully ({build_time:.0f}ms)")
        return BuildResult(
            variant=variant,
            success=True,
            diagnostic=stderr,
            artifact_path=artifact,
            build_time_ms=build_time,
        )

    def _stage_legacy(self, source_text: str, work_dir: Path):
        """Write the COBOL source and return (command, artifact path)"""
        toolchain = self.toolchains["legacy"]
        source_file = work_dir / toolchain["source_file"]
        source_file.write_text(source_text, encoding="utf-8")

        flags = list(toolchain["flags"])
        if self._is_free_format(source_text):
            flags.append(toolchain["free_format_flag"])
            logger.info("Detected free format, adding -free flag")

        command = [toolchain["command"]] + flags + [source_file.name, "-o", toolchain["artifact"]]
        return command, work_dir / toolchain["artifact"]

    def _stage_candidate(self, source_text: str, work_dir: Path):
        """Materialize a one-file Cargo project and return (command, artifact path)"""
        toolchain = self.toolchains["candidate"]
        manifest = work_dir / "Cargo.toml"
        manifest.write_text(toolchain["manifest"], encoding="utf-8")

        source_file = work_dir / toolchain["source_file"]
        source_file.parent.mkdir(parents=True, exist_ok=True)
        source_file.write_text(source_text, encoding="utf-8")

        command = [toolchain["command"]] + list(toolchain["flags"]) + ["--manifest-path", manifest.name]
        return command, work_dir / toolchain["artifact"]

    def _is_free_format(self, source_content: str) -> bool:
        """
        Detect free-format COBOL from a >>SOURCE FORMAT FREE or
        $SET SOURCEFORMAT"FREE" directive in the first 20 lines.
        """
        for line in source_content.split('\n')[:20]:
            line_upper = line.upper().strip()
            if '>>SOURCE FORMAT' in line_upper and 'FREE' in line_upper:
                return True
            if '$SET SOURCEFORMAT' in line_upper and 'FREE' in line_upper:
                return True
        return False

    def check_toolchains(self) -> Dict[str, Optional[str]]:
        """Resolve each command the runner needs on PATH (None if missing)"""
        return {
            name: shutil.which(command)
            for name, command in self.runner.required_commands(self.toolchains).items()
        }

    def missing_toolchains(self) -> List[str]:
        return [variant for variant, path in self.check_toolchains().items() if path is None]
