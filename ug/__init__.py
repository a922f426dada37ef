# ug - Named shell pipelines, stored once and run by name
#
# A small command-alias manager. A user registers a pipeline of programs
# joined by "|" under a short name; the registry is a single JSON file in
# the home directory, and running the name spawns every stage with OS pipes
# between them.
#
# Core concepts:
# - ConfigStore: The name -> command registry persisted as JSON
# - PipelineSpec: A command string parsed into ordered stages
# - PipelineRunner: Spawns and wires the stages, returns the exit status
# - cli.main: Dispatches set / unset / list / <name>

from .errors import (
    UgError,
    ConfigUnavailable,
    MalformedConfig,
    UnknownCommand,
    EmptyStage,
    SpawnFailure,
    InvalidAlias,
)
from .store import ConfigStore, default_config_path
from .pipeline import StageSpec, PipelineSpec, parse
from .runner import PipelineRunner, RunResult, run_alias

__all__ = [
    # Errors
    "UgError",
    "ConfigUnavailable",
    "MalformedConfig",
    "UnknownCommand",
    "EmptyStage",
    "SpawnFailure",
    "InvalidAlias",
    # Registry
    "ConfigStore",
    "default_config_path",
    # Pipelines
    "StageSpec",
    "PipelineSpec",
    "parse",
    "PipelineRunner",
    "RunResult",
    "run_alias",
]

__version__ = "1.0.0"
