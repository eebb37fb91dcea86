"""Landsat mangrove change detection on Google Earth Engine."""

from __future__ import annotations

import importlib
from typing import Any

__all__ = [
    "AnomalyWorkflow",
    "CcdcWorkflow",
    "ChangeWorkflow",
    "CompositesWorkflow",
    "EarthEngineSession",
    "ExportManager",
    "ExportRequest",
    "PipelineConfig",
    "StudyArea",
    "load_config",
    "prepare_collection",
]

_MODULE_MAP = {
    "AnomalyWorkflow": ("mangrovemapper.analysis", "AnomalyWorkflow"),
    "CcdcWorkflow": ("mangrovemapper.analysis", "CcdcWorkflow"),
    "ChangeWorkflow": ("mangrovemapper.analysis", "ChangeWorkflow"),
    "CompositesWorkflow": ("mangrovemapper.analysis", "CompositesWorkflow"),
    "EarthEngineSession": ("mangrovemapper.earthengine", "EarthEngineSession"),
    "ExportManager": ("mangrovemapper.export", "ExportManager"),
    "ExportRequest": ("mangrovemapper.core", "ExportRequest"),
    "PipelineConfig": ("mangrovemapper.config", "PipelineConfig"),
    "StudyArea": ("mangrovemapper.earthengine", "StudyArea"),
    "load_config": ("mangrovemapper.config", "load_config"),
    "prepare_collection": ("mangrovemapper.preprocessing", "prepare_collection"),
}


def __getattr__(name: str) -> Any:
    if name not in _MODULE_MAP:
        raise AttributeError(f"module 'mangrovemapper' has no attribute '{name}'")
    module_name, attr = _MODULE_MAP[name]
    module = importlib.import_module(module_name)
    return getattr(module, attr)
