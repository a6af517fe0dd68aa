"""Unified configuration schema for asset_mirror.

Defines Pydantic models for the repository layout consumed by the sync
engine: where the primary and mirror trees live, which node types and
marker tags identify containers, links and display names, and how display
names are synchronised.

Usage:
    from asset_mirror.config_schema import MirrorConfig, build_config

    raw = load_raw_config()
    config = build_config(raw)
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger(__name__)

DEFAULT_NULL_REFERENCE = "cafebabe-cafe-babe-cafe-babecafebabe"


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class RepositoryConfig(BaseModel):
    """Tree roots and node types of the shared repository.

    Roots are absolute paths without a trailing slash.
    """

    primary_root: str = Field(
        default="/content/documents",
        description="Root of the authoritative content tree",
    )
    mirror_root: str = Field(
        default="/content/gallery",
        description="Root of the mirrored asset container tree",
    )
    handle_type: str = Field(
        default="hippo:handle",
        description="Node type of stable-identity handles",
    )
    folder_type: str = Field(
        default="hippostd:folder",
        description="Node type of primary-tree folders",
    )
    document_type: str = Field(
        default="hippostdpubwf:document",
        description="Node type (or mixin) of document variants below a handle",
    )

    model_config = {"frozen": True}

    @field_validator("primary_root", "mirror_root")
    @classmethod
    def _normalise_root(cls, value: str) -> str:
        value = value.strip()
        if not value.startswith("/"):
            raise ValueError(f"Root path '{value}' must be absolute")
        value = value.rstrip("/")
        if not value:
            raise ValueError("Root path cannot be the repository root")
        return value

    @model_validator(mode="after")
    def _check_roots_disjoint(self) -> RepositoryConfig:
        primary = self.primary_root + "/"
        mirror = self.mirror_root + "/"
        if primary.startswith(mirror) or mirror.startswith(primary):
            raise ValueError(
                f"Primary root '{self.primary_root}' and mirror root "
                f"'{self.mirror_root}' must not contain each other"
            )
        return self


class ContainerConfig(BaseModel):
    """How mirror container folders are typed and tagged.

    Attributes:
        node_type: Primary type given to newly provisioned containers.
        mixins: The two marker tags every container must carry.
        properties: The two multi-valued marker properties.
    """

    node_type: str = Field(
        default="hippogallery:stdImageGallery",
        description="Primary type of mirror container folders",
    )
    mixins: tuple[str, str] = Field(
        default=("mix:referenceable", "hippo:translated"),
        description="Marker tags attached to every container",
    )
    properties: dict[str, list[str]] = Field(
        default_factory=lambda: {
            "hippostd:foldertype": ["new-image-folder"],
            "hippostd:gallerytype": ["hippogallery:imageset"],
        },
        description="Marker properties set on every container",
    )

    model_config = {"frozen": True}

    @field_validator("properties")
    @classmethod
    def _two_markers(cls, value: dict[str, list[str]]) -> dict[str, list[str]]:
        if len(value) != 2:
            raise ValueError(
                f"Exactly two marker properties are required, got {len(value)}"
            )
        return value


class LinkConfig(BaseModel):
    """Link nodes inside content that point at mirror assets."""

    node_type: str = Field(
        default="hippo:facetselect", description="Node type of link nodes"
    )
    reference_property: str = Field(
        default="hippo:docbase",
        description="Property holding the target identifier",
    )
    null_reference: str = Field(
        default=DEFAULT_NULL_REFERENCE,
        description="Reserved identifier meaning 'no target'",
    )

    model_config = {"frozen": True}


class DisplayNameConfig(BaseModel):
    """Per-language display names attached to folders.

    ``policy`` decides what happens to target languages the source lacks:
    ``additive`` keeps them, ``strict`` removes them.
    """

    node_name: str = Field(default="hippo:translation")
    node_type: str = Field(default="hippo:translation")
    language_property: str = Field(default="hippo:language")
    message_property: str = Field(default="hippo:message")
    policy: Literal["additive", "strict"] = Field(default="additive")
    default_locale: str | None = Field(
        default=None,
        description="Fallback language for blank entries; process locale when unset",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``text`` or ``json``.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: Literal["text", "json"] = Field(default="text")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


class MirrorConfig(BaseModel):
    """Top-level configuration.

    Every section has defaults matching a stock repository layout, so
    ``MirrorConfig()`` (zero-config) is always valid.
    """

    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    container: ContainerConfig = Field(default_factory=ContainerConfig)
    link: LinkConfig = Field(default_factory=LinkConfig)
    display_names: DisplayNameConfig = Field(
        default_factory=DisplayNameConfig
    )
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict | None) -> MirrorConfig:
    """Construct a ``MirrorConfig`` from the raw dict returned by
    ``load_raw_config()``.

    Unknown top-level sections are ignored with a warning; anything absent
    gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``MirrorConfig`` instance.
    """
    if not raw_data:
        return MirrorConfig()

    known = set(MirrorConfig.model_fields)
    unknown = sorted(k for k in raw_data if k not in known)
    if unknown:
        logger.warning(
            "Ignoring unknown config sections: %s", ", ".join(unknown)
        )

    return MirrorConfig(**{k: v for k, v in raw_data.items() if k in known})
