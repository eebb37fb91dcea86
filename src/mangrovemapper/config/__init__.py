"""Configuration loading utilities for mangrovemapper."""

from .loader import ConfigLoader, PipelineConfig, load_config

__all__ = ["ConfigLoader", "PipelineConfig", "load_config"]
