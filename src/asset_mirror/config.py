"""Configuration loading for the embedded mirror sync listener.

Reads layout settings from explicit overrides, environment variables,
.env files, and YAML config files.

Precedence (highest to lowest):
    Overrides > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    ASSET_MIRROR_PRIMARY_ROOT: Root path of the content tree
    ASSET_MIRROR_MIRROR_ROOT: Root path of the asset container tree
    ASSET_MIRROR_DEFAULT_LOCALE: Fallback language for blank display names
    ASSET_MIRROR_DISPLAY_NAME_POLICY: ``additive`` (default) or ``strict``
"""

import locale
import logging
import os
from typing import Any

from dotenv import load_dotenv

from .config_loader import load_raw_config
from .config_schema import MirrorConfig, build_config

logger = logging.getLogger(__name__)

_ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "ASSET_MIRROR_PRIMARY_ROOT": ("repository", "primary_root"),
    "ASSET_MIRROR_MIRROR_ROOT": ("repository", "mirror_root"),
    "ASSET_MIRROR_DEFAULT_LOCALE": ("display_names", "default_locale"),
    "ASSET_MIRROR_DISPLAY_NAME_POLICY": ("display_names", "policy"),
}


def _apply(raw: dict[str, Any], section: str, key: str, value: Any) -> None:
    current = raw.get(section)
    merged = dict(current) if isinstance(current, dict) else {}
    merged[key] = value
    raw[section] = merged


def load_config(
    overrides: dict[str, dict[str, Any]] | None = None,
    use_dotenv: bool = True,
) -> MirrorConfig:
    """Load configuration with unified precedence.

    Args:
        overrides: Section-keyed values that win over every other source,
            e.g. ``{"repository": {"mirror_root": "/content/assets"}}``.
        use_dotenv: Load a ``.env`` file before reading env vars.

    Returns:
        Validated ``MirrorConfig``.

    Raises:
        pydantic.ValidationError: If the merged values are invalid.
    """
    if use_dotenv:
        load_dotenv()

    raw: dict[str, Any] = dict(load_raw_config())

    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.getenv(env_name)
        if value:
            logger.debug("Config %s.%s from %s", section, key, env_name)
            _apply(raw, section, key, value)

    for section, values in (overrides or {}).items():
        for key, value in values.items():
            _apply(raw, section, key, value)

    return build_config(raw)


def default_language(config: MirrorConfig) -> str:
    """Return the language used when a display name has a blank language.

    The configured ``default_locale`` wins; otherwise the process locale's
    language part is used (``"en"`` when the process has no locale).
    """
    configured = config.display_names.default_locale
    if configured:
        return configured.replace("-", "_").split("_")[0].lower()

    name = locale.getlocale()[0]
    if not name or name in ("C", "POSIX"):
        return "en"
    return name.split("_")[0].lower()
