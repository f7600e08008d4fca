"""Process runners for builds and program executions

- LocalRunner: run commands directly on the host
- DockerRunner: run each command in a throwaway container with the working
  directory mounted at /workspace, a memory limit, and no network for
  program runs

Every command starts in its own process group. When its deadline expires
the whole group is killed, so compiler and program subprocesses never
outlive the task.
"""

import os
import signal
import subprocess
import uuid
from pathlib import Path
from typing import Dict, List, Optional
import logging

from legacyparity.config import SANDBOX_CONFIG

logger = logging.getLogger(__name__)

BUILD_PHASE = "build"
RUN_PHASE = "run"


def run_process(command: List[str], cwd: Path, timeout: float,
                kill_timeout: float = 10) -> subprocess.CompletedProcess:
    """
    Run a command in a new session and capture its output.

    Raises:
        subprocess.TimeoutExpired: after the command's process group is killed
        OSError: if the command cannot be started
    """
    process = subprocess.Popen(
        command,
        cwd=cwd,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        start_new_session=True,
    )
    try:
        stdout, stderr = process.communicate(timeout=timeout)
    except subprocess.TimeoutExpired as expired:
        kill_process_group(process.pid)
        try:
            process.communicate(timeout=kill_timeout)
        except subprocess.TimeoutExpired:
            # a descendant left the group and still holds the pipes
            process.kill()
            process.wait()
        raise expired

    return subprocess.CompletedProcess(command, process.returncode, stdout, stderr)


def kill_process_group(pgid: int):
    try:
        os.killpg(pgid, signal.SIGKILL)
    except ProcessLookupError:
        pass


class LocalRunner:
    """Run commands on the host"""

    name = "local"

    def __init__(self, config: Optional[Dict] = None):
        self.config = config or SANDBOX_CONFIG

    def run(self, command: List[str], work_dir: Path, timeout: float,
            phase: str, toolchain: Dict) -> subprocess.CompletedProcess:
        return run_process(command, cwd=work_dir, timeout=timeout,
                           kill_timeout=self.config["kill_timeout_seconds"])

    def program_command(self, artifact: Path, work_dir: Path) -> List[str]:
        """Command line that starts a built program"""
        return [str(artifact)]

    def required_commands(self, toolchains: Dict) -> Dict[str, str]:
        """Executables that must be on PATH, keyed by what needs them"""
        return {variant: cfg["command"] for variant, cfg in toolchains.items()}


class DockerRunner(LocalRunner):
    """
    Run commands inside Docker.

    The toolchain's docker_image must provide its compiler (cobc or cargo)
    and the runtime libraries of the programs it builds.
    """

    name = "docker"

    def run(self, command: List[str], work_dir: Path, timeout: float,
            phase: str, toolchain: Dict) -> subprocess.CompletedProcess:
        container = f"lp-{uuid.uuid4().hex[:12]}"
        docker_cmd = self.wrap(command, work_dir, phase, toolchain, container)
        logger.info(f"Sandbox: {' '.join(docker_cmd)}")

        try:
            return run_process(docker_cmd, cwd=work_dir, timeout=timeout,
                               kill_timeout=self.config["kill_timeout_seconds"])
        except subprocess.TimeoutExpired:
            # killing the docker client does not stop the container
            self._kill_container(container)
            raise

    def wrap(self, command: List[str], work_dir: Path, phase: str, toolchain: Dict,
             container: str) -> List[str]:
        docker_cmd = [
            self.config["docker_command"], "run", "--rm",
            "--name", container,
            "-v", f"{Path(work_dir).resolve()}:/workspace",
            "-w", "/workspace",
            "--memory", self.config["memory_limit"],
            "--network", self.config["network"][phase],
        ]
        if hasattr(os, "getuid"):
            # files written into the mount stay removable by the host user
            docker_cmd += ["--user", f"{os.getuid()}:{os.getgid()}"]
        return docker_cmd + [toolchain["docker_image"]] + list(command)

    def program_command(self, artifact: Path, work_dir: Path) -> List[str]:
        relative = Path(os.path.relpath(artifact, work_dir)).as_posix()
        return [f"./{relative}"]

    def required_commands(self, toolchains: Dict) -> Dict[str, str]:
        return {"docker": self.config["docker_command"]}

    def _kill_container(self, container: str):
        try:
            subprocess.run(
                [self.config["docker_command"], "kill", container],
                capture_output=True,
                timeout=self.config["kill_timeout_seconds"],
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"Could not kill container {container}: {e}")


RUNNERS = {
    LocalRunner.name: LocalRunner,
    DockerRunner.name: DockerRunner,
}


def get_runner(name: Optional[str] = None, config: Optional[Dict] = None) -> LocalRunner:
    """Runner selected by name (SANDBOX_CONFIG["runner"] if None)"""
    name = name or SANDBOX_CONFIG["runner"]
    if name not in RUNNERS:
        raise ValueError(f"Unknown runner: {name}")
    return RUNNERS[name](config)
