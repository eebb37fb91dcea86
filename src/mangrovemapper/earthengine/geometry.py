"""Study-area geometries built from configuration."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

import ee

from mangrovemapper.core.models import ClipCollectionConfig, RegionConfig
from mangrovemapper.logging import get_logger

__all__ = ["StudyArea", "load_geojson", "resolve_clip_collection", "resolve_region", "resolve_study_area"]

LOGGER = get_logger(__name__)

_GEOMETRY_TYPES = {
    "Point",
    "MultiPoint",
    "LineString",
    "MultiLineString",
    "Polygon",
    "MultiPolygon",
    "GeometryCollection",
}


@dataclass(frozen=True)
class StudyArea:
    """Region used for filtering and export plus the features used for clipping."""

    region: Any
    clip_collection: Any


def load_geojson(path: Path | str) -> Any:
    """Return an ``ee.Geometry`` for a GeoJSON Geometry, Feature or FeatureCollection file."""

    document: Dict[str, Any] = json.loads(Path(path).read_text(encoding="utf-8"))
    geo_type = document.get("type", "")
    if geo_type == "FeatureCollection":
        return ee.FeatureCollection(document).geometry()
    if geo_type == "Feature":
        return ee.Feature(document).geometry()
    if geo_type not in _GEOMETRY_TYPES:
        raise ValueError(f"Unsupported GeoJSON document in {path}: type={geo_type!r}")
    return ee.Geometry(document)


def resolve_region(config: RegionConfig) -> Any:
    if config.bbox is not None:
        return ee.Geometry.Rectangle(list(config.bbox))
    if config.asset:
        return ee.FeatureCollection(config.asset).geometry()
    if config.geojson:
        return load_geojson(config.geojson)
    raise ValueError("region must define one of bbox, asset or geojson")


def resolve_clip_collection(config: ClipCollectionConfig, region: Any) -> Any:
    """Return the clipping features, falling back to the region itself."""

    if not config.asset:
        return ee.FeatureCollection([ee.Feature(region)])
    collection = ee.FeatureCollection(config.asset)
    if config.property:
        collection = collection.filter(ee.Filter.eq(config.property, config.value))
    return collection


def resolve_study_area(region_config: RegionConfig, clip_config: ClipCollectionConfig) -> StudyArea:
    region = resolve_region(region_config)
    clip_collection = resolve_clip_collection(clip_config, region)
    LOGGER.debug(
        "study area resolved",
        extra={
            "bbox": region_config.bbox,
            "region_asset": region_config.asset,
            "geojson": region_config.geojson,
            "clip_asset": clip_config.asset,
        },
    )
    return StudyArea(region=region, clip_collection=clip_collection)
