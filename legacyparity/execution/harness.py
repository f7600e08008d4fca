"""Execution Harness

Runs a compiled variant against the fixture input inside its own working
directory and captures its output.

Fixture contract (config.FIXTURE_CONTRACT):
- the fixture value is written to input.txt before the run
- the program takes no arguments
- output is read from the channel declared authoritative for the variant
  (output.txt for both variants by default), falling back to the declared
  fallback channel when the authoritative one is empty or missing
"""

import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional
import logging

from legacyparity.config import FIXTURE_CONTRACT, TOOLCHAINS
from legacyparity.errors import ExecutionError
from legacyparity.execution.build_executor import BuildResult
from legacyparity.execution.sandbox import RUN_PHASE, LocalRunner, get_runner

logger = logging.getLogger(__name__)

FILE_CHANNEL = "file"
STDOUT_CHANNEL = "stdout"


@dataclass
class ExecutionResult:
    """Captured output of one variant's run"""
    stdout: str
    output_artifact: Optional[str]  # content of output.txt, None if not written
    stderr: str = ""
    exit_code: int = 0
    channel: str = FILE_CHANNEL  # channel that supplied captured_output
    execution_time_ms: float = 0.0

    @property
    def captured_output(self) -> str:
        """Output used for comparison"""
        if self.channel == FILE_CHANNEL:
            return self.output_artifact or ""
        return self.stdout

    def to_dict(self) -> Dict:
        """Convert to dictionary for serialization"""
        return {
            "stdout": self.stdout,
            "output_artifact": self.output_artifact,
            "stderr": self.stderr,
            "exit_code": self.exit_code,
            "channel": self.channel,
            "captured_output": self.captured_output,
            "execution_time_ms": self.execution_time_ms,
        }


class ExecutionHarness:
    """Run a built variant against the fixture input"""

    def __init__(self, contract: Optional[Dict] = None, toolchains: Optional[Dict] = None,
                 runner: Optional[LocalRunner] = None):
        self.contract = contract or FIXTURE_CONTRACT
        self.toolchains = toolchains or TOOLCHAINS
        self.runner = runner or get_runner()

    def run(self, build: BuildResult, fixture_input, work_dir: Path) -> ExecutionResult:
        """
        Execute a compiled program.

        Args:
            build: Successful BuildResult for the variant
            fixture_input: FixtureInput (its .value is written to input.txt)
            work_dir: The variant's working directory

        Returns:
            ExecutionResult

        Raises:
            ExecutionError: missing artifact, non-zero exit or timeout
        """
        variant = build.variant.value
        if not build.success or build.artifact_path is None:
            raise ExecutionError("program was not built", variant=variant)

        input_file = work_dir / self.contract["input_file"]
        output_file = work_dir / self.contract["output_file"]
        input_file.write_text(f"{fixture_input.value}\n", encoding="utf-8")
        if output_file.exists():
            output_file.unlink()
        logger.info(f"Wrote {input_file.name}: '{fixture_input.value}'")

        toolchain = self.toolchains[variant]
        timeout = toolchain["run_timeout_seconds"]
        command = self.runner.program_command(build.artifact_path, work_dir)
        start_time = time.time()

        try:
            result = self.runner.run(command, work_dir, timeout, RUN_PHASE, toolchain)
        except subprocess.TimeoutExpired as e:
            logger.error(f"{variant} execution timed out")
            raise ExecutionError(
                f"timed out after {timeout}s",
                variant=variant,
                timeout=True,
            ) from e
        except OSError as e:
            raise ExecutionError(f"could not be started: {e}",
                                 variant=variant) from e

        execution_time = (time.time() - start_time) * 1000
        stdout = result.stdout.decode("utf-8", errors="replace") if result.stdout else ""
        stderr = result.stderr.decode("utf-8", errors="replace") if result.stderr else ""

        logger.info(f"{variant} stdout: '{stdout.strip()}'")
        if stderr:
            logger.info(f"{variant} stderr: '{stderr.strip()}'")

        if result.returncode != 0:
            raise ExecutionError(
                f"exit code {result.returncode}: {stderr}",
                variant=variant,
                exit_code=result.returncode,
                stderr=stderr,
            )

        output_artifact = self._read_output_file(output_file)
        channel = self._select_channel(variant, stdout, output_artifact)

        execution = ExecutionResult(
            stdout=stdout,
            output_artifact=output_artifact,
            stderr=stderr,
            exit_code=result.returncode,
            channel=channel,
            execution_time_ms=execution_time,
        )
        logger.info(f"{variant} output ({channel}): {execution.captured_output.strip()}")
        return execution

    def _read_output_file(self, output_file: Path) -> Optional[str]:
        try:
            return output_file.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return None

    def _select_channel(self, variant: str, stdout: str, output_artifact: Optional[str]) -> str:
        """Pick the declared authoritative channel, or its fallback if it is empty"""
        channels = self.contract["channels"][variant]
        available = {
            FILE_CHANNEL: output_artifact is not None and output_artifact.strip() != "",
            STDOUT_CHANNEL: stdout.strip() != "",
        }

        authoritative = channels["authoritative"]
        fallback = channels.get("fallback")
        if available[authoritative] or not fallback:
            return authoritative

        logger.info(f"{variant}: no output on {authoritative}, falling back to {fallback}")
        return fallback
