# ug/pipeline.py
"""
Stored command strings parsed into pipeline stages.

A command is split on "|" into stages and each stage on whitespace into
tokens. There is no quoting: an argument can contain neither a pipe nor a
space.
"""

from dataclasses import dataclass, field
from typing import List

from .errors import EmptyStage

STAGE_SEPARATOR = "|"


@dataclass(frozen=True)
class StageSpec:
    """
    One program invocation in a pipeline.

    Attributes:
        program: Executable name or path, resolved through PATH when spawned
        args: Arguments, in order
    """
    program: str
    args: List[str] = field(default_factory=list)

    @property
    def argv(self) -> List[str]:
        return [self.program, *self.args]

    def __str__(self) -> str:
        return " ".join(self.argv)


@dataclass(frozen=True)
class PipelineSpec:
    """An ordered, non-empty chain of stages."""
    stages: List[StageSpec]

    def __len__(self) -> int:
        return len(self.stages)

    def __iter__(self):
        return iter(self.stages)

    def __str__(self) -> str:
        return f" {STAGE_SEPARATOR} ".join(str(stage) for stage in self.stages)


def parse(command: str) -> PipelineSpec:
    """
    Parse a command string into a pipeline.

    "echo hi | grep h" -> [StageSpec("echo", ["hi"]), StageSpec("grep", ["h"])]

    Raises EmptyStage if any stage has no tokens, e.g. "a || b" or "".
    """
    stages = []
    for index, part in enumerate(command.split(STAGE_SEPARATOR)):
        tokens = part.strip().split()
        if not tokens:
            raise EmptyStage(index, command)
        stages.append(StageSpec(program=tokens[0], args=tokens[1:]))
    return PipelineSpec(stages=stages)
