"""Earth Engine session and geometry helpers."""

from mangrovemapper.earthengine.geometry import (
    StudyArea,
    load_geojson,
    resolve_clip_collection,
    resolve_region,
    resolve_study_area,
)
from mangrovemapper.earthengine.session import EarthEngineAuthError, EarthEngineSession

__all__ = [
    "EarthEngineAuthError",
    "EarthEngineSession",
    "StudyArea",
    "load_geojson",
    "resolve_clip_collection",
    "resolve_region",
    "resolve_study_area",
]
