"""
Tests for BuildExecutor

Verifies source staging, compiler invocation and failure reporting for
both variants with subprocess mocked out.
"""

import shutil
import subprocess
from unittest.mock import Mock, patch

import pytest

from legacyparity.execution.build_executor import BuildExecutor, Variant
from legacyparity.execution.sandbox import DockerRunner, LocalRunner

FIXED_FORMAT_SOURCE = """       IDENTIFICATION DIVISION.
       PROGRAM-ID. INTEREST.
       PROCEDURE DIVISION.
           DISPLAY 'CALCULATED INTEREST: 550.00'.
           STOP RUN.
"""

FREE_FORMAT_SOURCE = """>>SOURCE FORMAT FREE
IDENTIFICATION DIVISION.
PROGRAM-ID. INTEREST.
PROCEDURE DIVISION.
DISPLAY 'CALCULATED INTEREST: 550.00'.
STOP RUN.
"""

RUST_SOURCE = 'fn main() { println!("CALCULATED INTEREST: 550.00"); }\n'


def completed(returncode=0, stdout=b"", stderr=b""):
    result = Mock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


def touch_artifact(path):
    def side_effect(command, *args, **kwargs):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"")
        return completed()
    return side_effect


@pytest.fixture
def executor():
    return BuildExecutor(runner=LocalRunner())


class TestLegacyBuild:

    def test_stages_source_and_invokes_cobc(self, executor, tmp_path):
        with patch("legacyparity.execution.sandbox.run_process",
                   side_effect=touch_artifact(tmp_path / "cobol_prog")) as mock_run:
            result = executor.build(Variant.LEGACY, FIXED_FORMAT_SOURCE, tmp_path)

        assert result.success
        assert result.artifact_path == tmp_path / "cobol_prog"
        assert (tmp_path / "program.cbl").read_text() == FIXED_FORMAT_SOURCE

        command = mock_run.call_args.args[0]
        assert command[1:] == ["-x", "-std=ibm", "program.cbl", "-o", "cobol_prog"]
        assert mock_run.call_args.kwargs["cwd"] == tmp_path
        assert mock_run.call_args.kwargs["timeout"] == 120

    def test_free_format_adds_flag(self, executor, tmp_path):
        with patch("legacyparity.execution.sandbox.run_process",
                   side_effect=touch_artifact(tmp_path / "cobol_prog")) as mock_run:
            executor.build(Variant.LEGACY, FREE_FORMAT_SOURCE, tmp_path)

        assert "-free" in mock_run.call_args.args[0]

    def test_compile_error_returns_diagnostic(self, executor, tmp_path):
        stderr = b"program.cbl:4: error: syntax error, unexpected Identifier\n"
        with patch("legacyparity.execution.sandbox.run_process",
                   return_value=completed(1, stderr=stderr)):
            result = executor.build(Variant.LEGACY, FIXED_FORMAT_SOURCE, tmp_path)

        assert not result.success
        assert "syntax error, unexpected Identifier" in result.diagnostic
        assert result.artifact_path is None

    def test_diagnostic_falls_back_to_stdout(self, executor, tmp_path):
        with patch("legacyparity.execution.sandbox.run_process",
                   return_value=completed(1, stdout=b"fatal: bad source")):
            result = executor.build(Variant.LEGACY, FIXED_FORMAT_SOURCE, tmp_path)

        assert result.diagnostic == "fatal: bad source"

    def test_timeout(self, executor, tmp_path):
        with patch("legacyparity.execution.sandbox.run_process",
                   side_effect=subprocess.TimeoutExpired(cmd="cobc", timeout=120)):
            result = executor.build(Variant.LEGACY, FIXED_FORMAT_SOURCE, tmp_path)

        assert not result.success
        assert result.timeout
        assert "timed out" in result.diagnostic

    def test_missing_compiler(self, executor, tmp_path):
        with patch("legacyparity.execution.sandbox.run_process",
                   side_effect=FileNotFoundError("cobc")):
            result = executor.build(Variant.LEGACY, FIXED_FORMAT_SOURCE, tmp_path)

        assert not result.success
        assert "Toolchain command not found" in result.diagnostic

    def test_exit_zero_without_artifact_is_failure(self, executor, tmp_path):
        with patch("legacyparity.execution.sandbox.run_process",
                   return_value=completed(0)):
            result = executor.build(Variant.LEGACY, FIXED_FORMAT_SOURCE, tmp_path)

        assert not result.success
        assert "no artifact" in result.diagnostic


class TestCandidateBuild:

    def test_materializes_cargo_project(self, executor, tmp_path):
        artifact = tmp_path / "target" / "release" / "modernized"
        with patch("legacyparity.execution.sandbox.run_process",
                   side_effect=touch_artifact(artifact)) as mock_run:
            result = executor.build(Variant.CANDIDATE, RUST_SOURCE, tmp_path)

        assert result.success
        assert result.artifact_path == artifact
        assert (tmp_path / "src" / "main.rs").read_text() == RUST_SOURCE

        manifest = (tmp_path / "Cargo.toml").read_text()
        assert 'rust_decimal = "1.36"' in manifest
        assert 'rust_decimal_macros = "1.36"' in manifest

        command = mock_run.call_args.args[0]
        assert command[1:3] == ["build", "--release"]
        assert command[-2:] == ["--manifest-path", "Cargo.toml"]
        assert mock_run.call_args.kwargs["timeout"] == 600

    def test_rustc_error(self, executor, tmp_path):
        stderr = b"error[E0425]: cannot find value `principal` in this scope\n"
        with patch("legacyparity.execution.sandbox.run_process",
                   return_value=completed(101, stderr=stderr)):
            result = executor.build(Variant.CANDIDATE, RUST_SOURCE, tmp_path)

        assert not result.success
        assert "E0425" in result.diagnostic

    def test_to_dict(self, executor, tmp_path):
        with patch("legacyparity.execution.sandbox.run_process",
                   return_value=completed(101, stderr=b"boom")):
            result = executor.build(Variant.CANDIDATE, RUST_SOURCE, tmp_path)

        data = result.to_dict()
        assert data["variant"] == "candidate"
        assert data["success"] is False
        assert data["artifact_path"] is None


class TestFreeFormatDetection:

    @pytest.mark.parametrize("first_line,expected", [
        (">>SOURCE FORMAT FREE", True),
        ("      $SET SOURCEFORMAT\"FREE\"", True),
        ("       IDENTIFICATION DIVISION.", False),
    ])
    def test_directives(self, executor, first_line, expected):
        assert executor._is_free_format(first_line + "\nSTOP RUN.\n") is expected


class TestToolchainCheck:

    def test_missing_toolchains(self):
        toolchains = {
            "legacy": {"command": "definitely-not-a-compiler-xyz"},
            "candidate": {"command": "sh"},
        }
        executor = BuildExecutor(toolchains=toolchains, runner=LocalRunner())
        assert executor.missing_toolchains() == ["legacy"]


@pytest.mark.skipif(shutil.which("cobc") is None, reason="GnuCOBOL not installed")
class TestRealCobc:

    def test_compiles_fixed_format_program(self, executor, tmp_path):
        result = executor.build(Variant.LEGACY, FIXED_FORMAT_SOURCE, tmp_path)
        assert result.success, result.diagnostic
        assert result.artifact_path.exists()


class TestDockerBuild:

    @pytest.fixture
    def docker_executor(self):
        return BuildExecutor(runner=DockerRunner())

    def test_cobc_runs_in_container(self, docker_executor, tmp_path):
        with patch("legacyparity.execution.sandbox.run_process",
                   side_effect=touch_artifact(tmp_path / "cobol_prog")) as mock_run:
            result = docker_executor.build(Variant.LEGACY, FIXED_FORMAT_SOURCE, tmp_path)

        assert result.success
        docker_cmd = mock_run.call_args.args[0]
        assert docker_cmd[:3] == ["docker", "run", "--rm"]
        assert f"{tmp_path.resolve()}:/workspace" in docker_cmd
        assert docker_cmd[docker_cmd.index("--memory") + 1] == "512m"
        assert docker_cmd[docker_cmd.index("--network") + 1] == "bridge"
        image_at = docker_cmd.index("legacyparity-cobol:latest")
        assert docker_cmd[image_at + 1:] == ["cobc", "-x", "-std=ibm", "program.cbl", "-o", "cobol_prog"]

    def test_timeout_kills_container(self, docker_executor, tmp_path):
        with patch("legacyparity.execution.sandbox.run_process",
                   side_effect=subprocess.TimeoutExpired(cmd="docker", timeout=600)) as mock_run, \
                patch("legacyparity.execution.sandbox.subprocess.run") as mock_kill:
            result = docker_executor.build(Variant.CANDIDATE, RUST_SOURCE, tmp_path)

        assert result.timeout
        docker_cmd = mock_run.call_args.args[0]
        container = docker_cmd[docker_cmd.index("--name") + 1]
        assert mock_kill.call_args.args[0] == ["docker", "kill", container]

    def test_only_docker_is_required(self, docker_executor):
        with patch("legacyparity.execution.build_executor.shutil.which", return_value=None):
            assert docker_executor.missing_toolchains() == ["docker"]
