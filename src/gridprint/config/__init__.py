"""Configuration loading utilities for gridprint."""

from .loader import ConfigLoader, ExportConfig, load_config

__all__ = ["ConfigLoader", "ExportConfig", "load_config"]
