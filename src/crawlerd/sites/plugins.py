"""
Configuration-driven plugin loading.

A plugin entry is ``package.module:function``. The function is called once
at startup as ``function(registry, context)`` and registers its handlers:

    def register(registry, context):
        registry.register("mysite", partial(scrape_mysite, context))

Entries come from ``CRAWL_PLUGINS`` (comma separated) and from the
``plugins:`` list of the YAML file named by ``CRAWL_PLUGINS_FILE``.
"""

import importlib
import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import yaml

from crawlerd.sites.registry import HandlerRegistry

logger = logging.getLogger(__name__)

PluginFn = Callable[[HandlerRegistry, object], None]


def read_plugins_file(path: str) -> List[str]:
    """Plugin entries listed in a YAML file.

    The file is either a list of entries or a mapping with a ``plugins`` key.
    A missing file yields no entries.
    """
    file_path = Path(path)
    if not file_path.exists():
        logger.warning(f"Plugin file not found: {path}")
        return []

    with open(file_path, 'r') as f:
        data = yaml.safe_load(f) or []

    entries = data.get("plugins", []) if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ValueError(f"'plugins' in {path} must be a list of 'module:function' entries")
    return [str(entry).strip() for entry in entries if str(entry).strip()]


def resolve_entry(entry: str) -> PluginFn:
    """Import ``module:function`` and return the function.

    Raises:
        ValueError: If the entry is malformed or the target is not callable
        ImportError: If the module cannot be imported
    """
    module_name, sep, attr = entry.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"Plugin entry must look like 'package.module:function', got {entry!r}")

    module = importlib.import_module(module_name)
    target = getattr(module, attr, None)
    if not callable(target):
        raise ValueError(f"Plugin entry {entry!r} does not name a callable")
    return target


def load_plugins(
    registry: HandlerRegistry,
    context: object,
    entries: Sequence[str] = (),
    plugins_file: Optional[str] = None,
) -> List[str]:
    """Run each plugin's registration function.

    A plugin that fails to import or register is logged and skipped.

    Returns:
        Entries that loaded successfully
    """
    all_entries = list(entries)
    if plugins_file:
        all_entries.extend(read_plugins_file(plugins_file))

    loaded: List[str] = []
    for entry in all_entries:
        try:
            register = resolve_entry(entry)
            register(registry, context)
        except Exception as e:
            logger.error(f"Failed to load plugin {entry!r}: {e}")
            continue
        loaded.append(entry)
        logger.info(f"Loaded plugin {entry}")

    return loaded
