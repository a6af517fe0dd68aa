"""Keep an asset container tree structurally mirrored to a content tree."""

__version__ = "0.3.0"
