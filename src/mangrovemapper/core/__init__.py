"""Core data models for mangrovemapper."""

from .models import (
    AnomalyConfig,
    AssetConfig,
    CcdcConfig,
    ClipCollectionConfig,
    CompositeConfig,
    CompositePeriod,
    EarthEngineConfig,
    ExportConfig,
    ExportRecord,
    ExportRequest,
    LandsatConfig,
    RegionConfig,
    SubmissionManifest,
)

__all__ = [
    "AnomalyConfig",
    "AssetConfig",
    "CcdcConfig",
    "ClipCollectionConfig",
    "CompositeConfig",
    "CompositePeriod",
    "EarthEngineConfig",
    "ExportConfig",
    "ExportRecord",
    "ExportRequest",
    "LandsatConfig",
    "RegionConfig",
    "SubmissionManifest",
]
