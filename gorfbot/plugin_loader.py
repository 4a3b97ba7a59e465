"""
Plugin loader for command modules.
"""

import importlib
import logging
from pathlib import Path
from typing import Optional

from .registry import CommandRegistry

logger = logging.getLogger(__name__)

COMMANDS_DIR = Path(__file__).parent / "commands"
COMMANDS_PACKAGE = "gorfbot.commands"


class PluginLoader:
    """
    Discovers command modules and registers their handlers.

    Each module in the commands package must define a
    register(registry) function that adds its commands, patterns
    and reaction handlers to the given registry.
    """

    def __init__(
        self,
        root_dir: Optional[Path] = None,
        package: str = COMMANDS_PACKAGE,
        allowed_commands: Optional[list[str]] = None
    ):
        self.root_dir = root_dir if root_dir is not None else COMMANDS_DIR
        self.package = package
        self.allowed_commands = allowed_commands

    def discover_modules(self) -> list[str]:
        """
        Find all command modules.

        Returns:
            Sorted list of module names (without the package prefix)
        """
        modules = []

        for item in sorted(self.root_dir.glob("*.py")):
            name = item.stem
            if name.startswith("_"):
                continue
            if self.allowed_commands is not None and name not in self.allowed_commands:
                logger.debug(f"Skipping module not in allow list: {name}")
                continue

            modules.append(name)
            logger.debug(f"Discovered command module: {name}")

        return modules

    def load_module(self, name: str, registry: CommandRegistry) -> bool:
        """
        Import a command module and register its handlers.

        Args:
            name: Module name within the commands package
            registry: Registry the module's handlers are added to

        Returns:
            True if the module was registered, False if it couldn't be loaded

        Raises:
            RegistrationError: If the module's handlers can't be registered
        """
        try:
            module = importlib.import_module(f"{self.package}.{name}")
        except Exception as e:
            logger.exception(f"Failed to load command module '{name}': {e}")
            return False

        register = getattr(module, "register", None)
        if register is None:
            logger.error(f"No register() in {self.package}.{name}")
            return False

        register(registry)
        return True

    def load_all(self, registry: CommandRegistry) -> list[str]:
        """
        Load and register every discovered module.

        Returns:
            Names of the modules that were registered
        """
        loaded = []

        for name in self.discover_modules():
            if self.load_module(name, registry):
                loaded.append(name)
                logger.info(f"Loaded command module: {name}")

        return loaded
