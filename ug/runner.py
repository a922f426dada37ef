# ug/runner.py
"""
Pipeline runner.

Runs a PipelineSpec by:
1. Spawning every stage, stage i's stdout piped into stage i+1's stdin
2. Sending the last stage's stdout/stderr to the runner's streams
3. Waiting for each stage in spawn order
4. Returning the first non-zero exit code, or 0

Stderr of every stage but the last is discarded; a failing intermediate
stage only shows up through its exit code.
"""

import logging
import subprocess
from dataclasses import dataclass
from typing import IO, List, Optional

from .errors import SpawnFailure
from .pipeline import PipelineSpec, parse
from .store import ConfigStore

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of running a pipeline."""
    returncode: int
    failed_stage: Optional[int] = None  # index of the stage that set returncode

    @property
    def success(self) -> bool:
        return self.returncode == 0


def _exit_status(returncode: int) -> int:
    """Map a Popen return code to a process exit status (signal N -> 128+N)."""
    if returncode < 0:
        return 128 - returncode
    return returncode


class PipelineRunner:
    """
    Spawns and waits for pipelines.

    stdin feeds the first stage; stdout and stderr receive the last stage's
    output. None inherits the invoking process's stream.
    """

    def __init__(
        self,
        stdin: Optional[IO] = None,
        stdout: Optional[IO] = None,
        stderr: Optional[IO] = None,
    ):
        self.stdin = stdin
        self.stdout = stdout
        self.stderr = stderr

    def run(self, spec: PipelineSpec) -> RunResult:
        """
        Run a pipeline to completion.

        Raises SpawnFailure if any stage cannot be started; no stage is
        waited for in that case.
        """
        processes = self._spawn(spec)
        return self._wait(processes)

    def _spawn(self, spec: PipelineSpec) -> List[subprocess.Popen]:
        processes: List[subprocess.Popen] = []
        last_index = len(spec) - 1
        upstream = self.stdin

        for index, stage in enumerate(spec):
            is_last = index == last_index
            try:
                process = subprocess.Popen(
                    stage.argv,
                    stdin=upstream,
                    stdout=self.stdout if is_last else subprocess.PIPE,
                    stderr=self.stderr if is_last else subprocess.DEVNULL,
                )
            except OSError as e:
                if index > 0:
                    upstream.close()
                self._abort(processes)
                raise SpawnFailure(index, stage, e) from e

            # The child holds its own copy of the read end; dropping ours
            # lets the upstream stage see SIGPIPE if this one exits early.
            if index > 0:
                upstream.close()
            upstream = process.stdout

            logger.debug(f"Spawned stage {index} (pid {process.pid}): {stage}")
            processes.append(process)

        return processes

    def _abort(self, processes: List[subprocess.Popen]):
        """Kill and reap stages already started for a pipeline that failed to spawn."""
        for process in processes:
            logger.warning(f"Killing pid {process.pid} after spawn failure")
            process.kill()
        for process in processes:
            process.wait()
            if process.stdout is not None:
                process.stdout.close()

    def _wait(self, processes: List[subprocess.Popen]) -> RunResult:
        try:
            for index, process in enumerate(processes):
                returncode = process.wait()
                logger.debug(f"Stage {index} (pid {process.pid}) exited with {returncode}")
                if returncode != 0:
                    return RunResult(returncode=_exit_status(returncode), failed_stage=index)
            return RunResult(returncode=0)
        finally:
            # Stages after a failure are not waited for; reap the ones already done
            for process in processes:
                if process.returncode is None and process.poll() is None:
                    logger.debug(f"Leaving pid {process.pid} running")


def run_alias(store: ConfigStore, name: str, runner: PipelineRunner = None) -> RunResult:
    """
    Look up an alias, parse its command and run it.

    Raises UnknownCommand, EmptyStage or SpawnFailure.
    """
    command = store.get(name)
    spec = parse(command)
    logger.debug(f"Running {name}: {spec}")
    return (runner or PipelineRunner()).run(spec)
