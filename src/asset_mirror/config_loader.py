"""Raw configuration sources for the mirror listener.

The listener's settings are a handful of top-level sections (``repository``,
``container``, ``link``, ``display_names``, ``logging``).  They can come
from up to three YAML files; a more specific file replaces whole sections
of a more general one::

    ~/.config/asset_mirror/config.yml        global defaults
    ./.asset_mirror/config.yml (or .yaml)    project layout
    $ASSET_MIRROR_CONFIG                     explicit file, wins

Section values may reference the environment as ``${VAR}`` or
``${VAR:-fallback}``, and a section may be kept in its own file with
``!include``::

    container: !include gallery-container.yml
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "ASSET_MIRROR_CONFIG"
CONFIG_DIR = ".asset_mirror"

# ${VAR} or ${VAR:-fallback}
_ENV_REF = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def expand_env(value: str) -> str:
    """Substitute environment references in one string.

    An unset or empty variable yields its fallback, or ``""`` without one.
    Text that only looks like the start of a reference is kept.
    """
    return _ENV_REF.sub(
        lambda m: os.environ.get(m.group(1)) or (m.group(2) or ""), value
    )


def expand_env_in(data: Any) -> Any:
    """Apply ``expand_env`` to every string inside a loaded YAML document."""
    if isinstance(data, dict):
        return {key: expand_env_in(item) for key, item in data.items()}
    if isinstance(data, list):
        return [expand_env_in(item) for item in data]
    return expand_env(data) if isinstance(data, str) else data


class _IncludeLoader(yaml.SafeLoader):
    """SafeLoader that understands ``!include``; ``yaml.safe_load`` does not."""

    chain: tuple[Path, ...] = ()


def _construct_include(loader: _IncludeLoader, node: yaml.ScalarNode) -> Any:
    including = Path(loader.name).resolve()
    target = Path(loader.construct_scalar(node))
    target = (target if target.is_absolute() else including.parent / target).resolve()

    if target in loader.chain:
        cycle = " -> ".join(str(p) for p in (*loader.chain, target))
        raise ValueError(f"Circular include detected: {cycle}")
    if not target.is_file():
        raise FileNotFoundError(
            f"Include file not found: {target} (referenced from {including})"
        )
    return read_yaml(target, _chain=loader.chain)


_IncludeLoader.add_constructor("!include", _construct_include)


def read_yaml(path: Path, *, _chain: tuple[Path, ...] = ()) -> Any:
    """Parse one config file, following its ``!include`` directives.

    Raises:
        yaml.YAMLError: If a file is not valid YAML.
        FileNotFoundError: If an included file is missing.
        ValueError: If files include each other in a cycle.
    """
    path = Path(path).resolve()
    with open(path, encoding="utf-8") as fh:
        loader = _IncludeLoader(fh)
        loader.chain = (*_chain, path)
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


def find_config_files() -> list[Path]:
    """Existing config files, most specific first."""
    candidates = []
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())
    project = Path.cwd() / CONFIG_DIR
    candidates += [
        project / "config.yml",
        project / "config.yaml",
        Path.home() / ".config" / "asset_mirror" / "config.yml",
    ]
    return [path for path in candidates if path.exists()]


def load_raw_config() -> dict[str, Any]:
    """Merge every config file into one section-keyed dict.

    Returns ``{}`` when no file exists; the schema defaults then describe
    the stock layout.  Parse errors propagate after being logged.
    """
    sections: dict[str, Any] = {}
    for path in reversed(find_config_files()):
        logger.debug("Reading config %s", path)
        try:
            document = read_yaml(path)
        except Exception:
            logger.exception("Failed to load config file %s", path)
            raise

        if document is None:
            continue
        if not isinstance(document, dict):
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(document).__name__,
            )
            continue
        sections.update(expand_env_in(document))

    if not sections:
        logger.debug("No config sections found, using the stock layout")
    return sections
