"""Configuration primitives for the paintboard client."""

from .settings import PaintboardSettings, get_settings

__all__ = ["PaintboardSettings", "get_settings"]
