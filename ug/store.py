# ug/store.py
"""
Alias registry persisted as a single JSON file.

The registry maps alias names to raw command strings:

    ~/.ug/cmd.json
        {"upgrade": "brew update | tee /tmp/brew.log"}

Every mutating call reads the whole file, changes one key and writes the
whole file back. There is no locking: two processes changing the registry
at the same time race, and the last writer wins.
"""

import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from .errors import ConfigUnavailable, InvalidAlias, MalformedConfig, UnknownCommand

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".ug"
CONFIG_FILE_NAME = "cmd.json"

# Sub-commands of the CLI; an alias with one of these names could never run.
RESERVED_NAMES = ("set", "unset", "list")


def default_config_path(environ: Optional[Mapping[str, str]] = None) -> Path:
    """
    Resolve the config file location: $HOME/.ug/cmd.json

    Raises ConfigUnavailable if HOME is not set.
    """
    environ = os.environ if environ is None else environ
    home = environ.get("HOME")
    if not home:
        raise ConfigUnavailable("HOME environment variable is not set")
    return Path(home) / CONFIG_DIR_NAME / CONFIG_FILE_NAME


class ConfigStore:
    """
    The alias registry.

    Nothing is cached between calls; each operation loads the file fresh so
    that separate invocations always see the latest saved state.
    """

    def __init__(self, path: Path | str = None):
        self.path = Path(path) if path is not None else default_config_path()

    def load(self) -> Dict[str, str]:
        """
        Load the registry from disk.

        A missing or empty file is an empty registry.
        """
        if not self.path.exists():
            logger.debug(f"No config at {self.path}")
            return {}

        try:
            content = self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise MalformedConfig(f"{self.path} is not valid UTF-8: {e}") from e
        if not content.strip():
            return {}

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise MalformedConfig(f"{self.path} is not valid JSON: {e}") from e

        if not isinstance(data, dict):
            raise MalformedConfig(
                f"{self.path} must contain a JSON object, got {type(data).__name__}"
            )
        for name, command in data.items():
            if not isinstance(command, str):
                raise MalformedConfig(
                    f"{self.path}: command for {name!r} must be a string, "
                    f"got {type(command).__name__}"
                )

        logger.debug(f"Loaded {len(data)} aliases from {self.path}")
        return data

    def save(self, registry: Dict[str, str]):
        """
        Write the whole registry to disk, creating the directory if needed.

        The file is overwritten in place, so its mode and any symlink
        pointing at it are kept.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(registry, f, indent=2, ensure_ascii=False)
            f.write("\n")
        logger.debug(f"Saved {len(registry)} aliases to {self.path}")

    def set_entry(self, name: str, command: str):
        """Register or overwrite an alias."""
        if not name:
            raise InvalidAlias("Alias name must not be empty")
        if name in RESERVED_NAMES:
            raise InvalidAlias(f"{name!r} is a ug sub-command and cannot be an alias")
        if not command or not command.strip():
            raise InvalidAlias(f"Command for {name!r} must not be empty")

        registry = self.load()
        registry[name] = command
        self.save(registry)

    def unset_entry(self, name: str) -> bool:
        """
        Remove an alias.

        Returns True if it was registered. Removing an unknown alias is not
        an error, and leaves the file untouched.
        """
        registry = self.load()
        if name not in registry:
            return False
        del registry[name]
        self.save(registry)
        return True

    def list_entries(self) -> List[Tuple[str, str]]:
        """List (name, command) pairs in storage order."""
        return list(self.load().items())

    def get(self, name: str) -> str:
        """Get the command for an alias."""
        registry = self.load()
        if name not in registry:
            raise UnknownCommand(name)
        return registry[name]

    def __contains__(self, name: str) -> bool:
        return name in self.load()
