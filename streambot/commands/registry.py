"""
Module registry for streambot.

A module is a named group of commands. The registry keeps every module by
name plus a flat alias/name -> command map so commands can be invoked
without the module prefix.
"""

import importlib.util
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, Iterable, TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from streambot.commands.context import DispatchContext


CommandHandler = Callable[["DispatchContext"], Awaitable[None]]


@dataclass
class CommandDefinition:
    """A single command inside a module."""
    name: str
    handler: CommandHandler
    description: str = ""
    usage: str = ""
    aliases: list[str] = field(default_factory=list)
    middleware: list[Any] = field(default_factory=list)
    hidden: bool = False  # Left out of help listings


@dataclass
class ModuleManifest:
    """A named group of commands with optional module-wide middleware."""
    name: str
    commands: dict[str, CommandDefinition]
    description: str = ""
    middleware: list[Any] = field(default_factory=list)


@dataclass
class RegistryEntry:
    """Flat registry value: where a name/alias points."""
    module: ModuleManifest
    definition: CommandDefinition


@dataclass
class Registry:
    """All loaded modules plus the flat alias map."""
    modules: dict[str, ModuleManifest] = field(default_factory=dict)
    flat: dict[str, RegistryEntry] = field(default_factory=dict)

    def add(self, manifest: ModuleManifest) -> None:
        """
        Register a module and index its command names and aliases.

        Names are lowercased. On a flat-name collision the module added last
        wins.
        """
        manifest.name = manifest.name.lower()
        manifest.commands = {key.lower(): d for key, d in manifest.commands.items()}
        self.modules[manifest.name] = manifest

        for command_name, definition in manifest.commands.items():
            for key in [command_name, *(a.lower() for a in definition.aliases)]:
                previous = self.flat.get(key)
                if previous and previous.module is not manifest:
                    logger.warning(
                        f"Command alias '{key}' from {previous.module.name} "
                        f"overridden by {manifest.name}"
                    )
                self.flat[key] = RegistryEntry(manifest, definition)

    def get_command(self, module_name: str, command_name: str) -> RegistryEntry | None:
        module = self.modules.get(module_name.lower())
        if not module:
            return None
        definition = module.commands.get(command_name.lower())
        return RegistryEntry(module, definition) if definition else None

    def lookup(self, name: str) -> RegistryEntry | None:
        """Flat lookup by command name or alias."""
        return self.flat.get(name.lower())

    def list_modules(self) -> list[str]:
        return sorted(self.modules)


def _is_manifest(obj: Any) -> bool:
    return bool(getattr(obj, "name", None)) and isinstance(getattr(obj, "commands", None), dict)


def build_registry(
    manifests: Iterable[ModuleManifest],
    disabled: Iterable[str] = (),
) -> Registry:
    """
    Build a registry from an explicit list of modules.

    Args:
        manifests: Modules to register, in load order.
        disabled: Module names to leave out entirely.
    """
    skip = {name.lower() for name in disabled}
    registry = Registry()
    for manifest in manifests:
        if not _is_manifest(manifest):
            logger.debug(f"Skipping invalid module descriptor: {manifest!r}")
            continue
        if manifest.name.lower() in skip:
            logger.info(f"Module disabled by configuration: {manifest.name}")
            continue
        registry.add(manifest)
    return registry


def _load_descriptor(path: Path) -> Any:
    module_name = f"streambot_ext_{path.stem}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        return None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return getattr(module, "MODULE", None)


def load_registry(
    directory: Path,
    disabled: Iterable[str] = (),
    base: Iterable[ModuleManifest] = (),
) -> Registry:
    """
    Scan a directory for module descriptors and build a registry.

    Each ``*.py`` file, or package directory with an ``__init__.py``, must
    expose a ``MODULE`` manifest with a name and a commands mapping; anything
    else is skipped. Files are loaded in sorted order after ``base``.

    Args:
        directory: Directory to scan.
        disabled: Module names to leave out.
        base: Modules registered before the scanned ones (e.g. built-ins).
    """
    manifests = list(base)
    if directory.is_dir():
        for path in sorted(directory.iterdir()):
            if path.name.startswith("_") and path.is_file():
                continue
            target = path / "__init__.py" if path.is_dir() else path
            if target.suffix != ".py" or not target.exists():
                continue
            descriptor = _load_descriptor(target)
            if not _is_manifest(descriptor):
                logger.debug(f"Skipping {path.name}: no MODULE manifest")
                continue
            manifests.append(descriptor)
    else:
        logger.warning(f"Modules directory not found: {directory}")

    return build_registry(manifests, disabled=disabled)
