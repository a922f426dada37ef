# tests/test_runner.py
"""Tests for spawning and waiting for pipelines."""

import gc
import pytest
import sys
import tempfile
import warnings
from pathlib import Path

from ug.errors import EmptyStage, SpawnFailure, UnknownCommand
from ug.pipeline import PipelineSpec, StageSpec
from ug.runner import PipelineRunner, RunResult, run_alias
from ug.store import ConfigStore


def py(code: str) -> StageSpec:
    """A stage running a Python snippet."""
    return StageSpec(sys.executable, ["-c", code])


ECHO_STDIN = "import sys; sys.stdout.write(sys.stdin.read())"
UPPER_STDIN = "import sys; sys.stdout.write(sys.stdin.read().upper())"


@pytest.fixture
def work_dir():
    """Create temporary directory for captured streams."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def run_captured(work_dir: Path, spec: PipelineSpec, stdin_text: str = ""):
    """Run a pipeline with its ends connected to files; return (result, out, err)."""
    stdin_path = work_dir / "stdin.txt"
    stdin_path.write_text(stdin_text)
    out_path = work_dir / "stdout.txt"
    err_path = work_dir / "stderr.txt"

    with open(stdin_path) as stdin, open(out_path, "w") as stdout, open(err_path, "w") as stderr:
        runner = PipelineRunner(stdin=stdin, stdout=stdout, stderr=stderr)
        result = runner.run(spec)

    return result, out_path.read_text(), err_path.read_text()


class TestSingleStage:
    """Test pipelines with one stage."""

    def test_success(self, work_dir):
        result, out, _ = run_captured(work_dir, PipelineSpec([py("print('hello')")]))
        assert result == RunResult(returncode=0)
        assert result.success
        assert out == "hello\n"

    def test_exit_code_propagates(self, work_dir):
        """Test a stage exiting 7 makes the run exit 7."""
        result, _, _ = run_captured(work_dir, PipelineSpec([py("raise SystemExit(7)")]))
        assert result.returncode == 7
        assert result.failed_stage == 0
        assert not result.success

    def test_stderr_reaches_caller(self, work_dir):
        spec = PipelineSpec([py("import sys; sys.stderr.write('warn')")])
        _, _, err = run_captured(work_dir, spec)
        assert err == "warn"

    def test_reads_stdin(self, work_dir):
        result, out, _ = run_captured(work_dir, PipelineSpec([py(ECHO_STDIN)]), "piped in")
        assert result.success
        assert out == "piped in"

    def test_killed_by_signal(self, work_dir):
        """Test death by signal N is reported as 128 + N."""
        spec = PipelineSpec([py("import os, signal; os.kill(os.getpid(), signal.SIGTERM)")])
        result, _, _ = run_captured(work_dir, spec)
        assert result.returncode == 128 + 15


class TestMultiStage:
    """Test pipelines with several stages."""

    def test_output_flows_through(self, work_dir):
        spec = PipelineSpec([py("print('hello')"), py(UPPER_STDIN), py(ECHO_STDIN)])
        result, out, _ = run_captured(work_dir, spec)
        assert result.success
        assert out == "HELLO\n"

    def test_first_stage_reads_stdin(self, work_dir):
        spec = PipelineSpec([py(ECHO_STDIN), py(UPPER_STDIN)])
        _, out, _ = run_captured(work_dir, spec, "abc")
        assert out == "ABC"

    def test_finished_later_stages_reaped(self, work_dir):
        """Test stages after a failure are reaped if they have already exited."""
        spec = PipelineSpec([py("import time; time.sleep(0.5); raise SystemExit(2)"), py("pass")])
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            result, _, _ = run_captured(work_dir, spec)
            gc.collect()

        assert result.returncode == 2
        assert not [w for w in caught if issubclass(w.category, ResourceWarning)]

    def test_middle_failure_wins(self, work_dir):
        """Test A | B | C with B exiting 2 exits 2."""
        spec = PipelineSpec([py("pass"), py("raise SystemExit(2)"), py(ECHO_STDIN)])
        result, _, _ = run_captured(work_dir, spec)
        assert result.returncode == 2
        assert result.failed_stage == 1

    def test_last_failure(self, work_dir):
        spec = PipelineSpec([py("print('x')"), py("import sys; sys.stdin.read(); sys.exit(5)")])
        result, _, _ = run_captured(work_dir, spec)
        assert result.returncode == 5
        assert result.failed_stage == 1

    def test_first_failure_reported_first(self, work_dir):
        """Test stages are waited for in spawn order."""
        spec = PipelineSpec([py("raise SystemExit(3)"), py("import sys; sys.stdin.read(); sys.exit(4)")])
        result, _, _ = run_captured(work_dir, spec)
        assert result.returncode == 3
        assert result.failed_stage == 0

    def test_intermediate_stderr_discarded(self, work_dir):
        """Test only the last stage's stderr is visible."""
        spec = PipelineSpec([
            py("import sys; sys.stderr.write('hidden'); print('data')"),
            py("import sys; sys.stderr.write('shown'); sys.stdout.write(sys.stdin.read())"),
        ])
        result, out, err = run_captured(work_dir, spec)
        assert result.success
        assert out == "data\n"
        assert err == "shown"


class TestSpawnFailure:
    """Test stages that cannot be started."""

    def test_missing_program(self, work_dir):
        spec = PipelineSpec([StageSpec("ug-test-no-such-program", ["x"])])
        with pytest.raises(SpawnFailure) as exc:
            run_captured(work_dir, spec)
        assert exc.value.index == 0
        assert "ug-test-no-such-program x" in str(exc.value)

    def test_missing_later_stage(self, work_dir):
        """Test a failed spawn names the offending stage."""
        spec = PipelineSpec([py(ECHO_STDIN), StageSpec("ug-test-no-such-program")])
        with pytest.raises(SpawnFailure) as exc:
            run_captured(work_dir, spec, "never read")
        assert exc.value.index == 1
        assert isinstance(exc.value.cause, FileNotFoundError)

    def test_not_executable(self, work_dir):
        script = work_dir / "script.sh"
        script.write_text("#!/bin/sh\necho hi\n")
        script.chmod(0o644)
        with pytest.raises(SpawnFailure):
            run_captured(work_dir, PipelineSpec([StageSpec(str(script))]))


class TestRunAlias:
    """Test running a registered alias."""

    @pytest.fixture
    def store(self, work_dir):
        return ConfigStore(work_dir / ".ug" / "cmd.json")

    def test_runs_stored_command(self, store, work_dir):
        store.set_entry("three", f"{sys.executable} -c __import__('sys').exit(3)")
        result = run_alias(store, "three")
        assert result.returncode == 3

    def test_unknown_alias(self, store):
        with pytest.raises(UnknownCommand):
            run_alias(store, "doesnotexist")

    def test_empty_stage(self, store):
        """Test a broken stored command fails before anything is spawned."""
        store.save({"broken": "echo hi || cat"})
        with pytest.raises(EmptyStage):
            run_alias(store, "broken")
