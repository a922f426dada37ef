#!/usr/bin/env python3
"""
ug CLI

Register shell pipelines under short names and run them by name:
  ug set - Register or overwrite an alias
  ug unset - Remove an alias
  ug list - Show all aliases
  ug <name> - Run the pipeline registered as <name>

Usage:
  ug set --name <name> --command "<prog args | prog args>"
  ug unset --name <name>
  ug list
  ug <name>

Aliases live in $HOME/.ug/cmd.json unless --config is given.
"""

import argparse
import logging
import signal
import sys
from typing import List, Optional, Tuple

from rich.console import Console
from rich.text import Text

from . import __version__
from .errors import MalformedConfig, UgError
from .pipeline import parse
from .runner import run_alias
from .store import RESERVED_NAMES, ConfigStore

logger = logging.getLogger(__name__)

# Global options that consume the following argument
_OPTIONS_WITH_VALUE = ("--config",)

# Control whitespace in commands is shown escaped so each alias stays on one row
_VISIBLE_WHITESPACE = str.maketrans({"\t": "\\t", "\n": "\\n", "\r": "\\r"})


def report(message: str):
    """Print an error for the user on stderr."""
    print(f"Error: {message}", file=sys.stderr)


def cmd_set(args, store: ConfigStore) -> int:
    """Register an alias."""
    try:
        parse(args.command_line)
        store.set_entry(args.name, args.command_line)
    except (UgError, OSError) as e:
        report(str(e))
        return 1
    logger.debug(f"Set {args.name} = {args.command_line}")
    return 0


def cmd_unset(args, store: ConfigStore) -> int:
    """Remove an alias. Succeeds whether or not it was registered."""
    try:
        removed = store.unset_entry(args.name)
    except MalformedConfig as e:
        # Reported, but unset still exits 0 on an unreadable registry
        report(str(e))
        return 0
    except (UgError, OSError) as e:
        report(str(e))
        return 1
    if not removed:
        logger.debug(f"{args.name} was not registered")
    return 0


def render_entries(entries: List[Tuple[str, str]], console: Console):
    """Print name = command rows, names padded to the longest one."""
    width = max((len(name) for name, _ in entries), default=0)
    for name, command in entries:
        line = Text(f"{name.ljust(width)} = ")
        line.append(command.translate(_VISIBLE_WHITESPACE), style="green")
        console.print(line, soft_wrap=True)


def cmd_list(args, store: ConfigStore) -> int:
    """Show all aliases."""
    try:
        entries = store.list_entries()
    except (UgError, OSError) as e:
        report(str(e))
        return 1
    render_entries(entries, Console(highlight=False))
    return 0


def cmd_run(name: str, store: ConfigStore) -> int:
    """Run an alias and return its pipeline's exit status."""
    try:
        result = run_alias(store, name)
    except (UgError, OSError) as e:
        report(str(e))
        return 1
    except KeyboardInterrupt:
        return 128 + signal.SIGINT
    if not result.success:
        # The failing program has already written its own diagnostics
        logger.debug(f"{name}: stage {result.failed_stage} exited with {result.returncode}")
    return result.returncode


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ug",
        description="ug - Named shell pipelines",
        epilog="Any other word runs the alias of that name: ug <name>",
        allow_abbrev=False,
    )
    parser.add_argument("--config", help="Alias file (default: $HOME/.ug/cmd.json)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="subcommand", help="Commands")

    # set command
    set_parser = subparsers.add_parser("set", help="Register or overwrite an alias")
    set_parser.add_argument("-n", "--name", required=True, help="Alias name")
    set_parser.add_argument("-c", "--command", dest="command_line", required=True,
                            help="Pipeline to run, stages separated by |")

    # unset command
    unset_parser = subparsers.add_parser("unset", help="Remove an alias")
    unset_parser.add_argument("-n", "--name", required=True, help="Alias name")

    # list command
    subparsers.add_parser("list", help="Show all aliases")

    return parser


def split_alias(argv: List[str]) -> Tuple[List[str], Optional[str], List[str]]:
    """
    Find an alias name among the arguments.

    Returns (global options, alias name, arguments after it). The alias is
    None when the first positional argument is a sub-command or absent.
    """
    skip = False
    for index, arg in enumerate(argv):
        if skip:
            skip = False
            continue
        if arg in _OPTIONS_WITH_VALUE:
            skip = True
            continue
        if arg.startswith("-"):
            continue
        if arg in RESERVED_NAMES:
            break
        return argv[:index], arg, argv[index + 1:]
    return argv, None, []


def main(argv: List[str] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = build_parser()

    options, alias, extra = split_alias(argv)
    args = parser.parse_args(options)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    if alias is None and args.subcommand is None:
        parser.print_usage(sys.stderr)
        report("sub command is not set, available commands are `set`, `unset`, `list` or an alias name")
        return 1

    if extra:
        report(f"unexpected arguments after {alias}: {' '.join(extra)}")
        return 1

    try:
        store = ConfigStore(args.config)
    except UgError as e:
        report(str(e))
        return 1

    if alias is not None:
        return cmd_run(alias, store)
    if args.subcommand == "set":
        return cmd_set(args, store)
    if args.subcommand == "unset":
        return cmd_unset(args, store)
    return cmd_list(args, store)


if __name__ == "__main__":
    sys.exit(main())
