"""Landsat 8 surface reflectance preprocessing expressed as Earth Engine graphs.

Each function only describes per-pixel operations; nothing is evaluated
locally. The chain applied to every scene is::

    apply_scale_factors -> mask_clouds -> add_indices
"""

from __future__ import annotations

from typing import Any, Optional

import ee

from mangrovemapper.core.models import LandsatConfig

__all__ = [
    "INDEX_BANDS",
    "add_indices",
    "apply_scale_factors",
    "cloud_mask",
    "mask_clouds",
    "prepare_collection",
]

REFLECTANCE_BANDS = "SR_B[0-9]*"
INDEX_BANDS = ("NDVI", "NDMI", "MNDWI", "SR", "R54", "R35", "GCVI")


def apply_scale_factors(image: Any, config: LandsatConfig) -> Any:
    """Rescale optical DN values to surface reflectance, overwriting the originals."""

    optical = image.select(config.optical_bands).multiply(config.scale_factor).add(config.offset)
    return image.addBands(optical, None, True)


def cloud_mask(qa: Any, config: LandsatConfig) -> Any:
    """Return 1 where neither the cloud-shadow nor the cloud flag is set."""

    shadow_bit = 1 << config.cloud_shadow_bit
    cloud_bit = 1 << config.cloud_bit
    return qa.bitwiseAnd(shadow_bit).eq(0).And(qa.bitwiseAnd(cloud_bit).eq(0))


def mask_clouds(image: Any, config: LandsatConfig) -> Any:
    mask = cloud_mask(image.select(config.qa_band), config)
    # copyProperties returns an ee.Element; re-wrap so later steps see an image.
    return ee.Image(
        image.updateMask(mask)
        .select(REFLECTANCE_BANDS)
        .copyProperties(image, ["system:time_start"])
    )


def add_indices(image: Any) -> Any:
    """Append the vegetation and water indices used for mangrove mapping.

    Band mapping for Landsat 8 OLI: B3 green, B4 red, B5 NIR, B6 SWIR1,
    B7 SWIR2.
    """

    ndvi = image.normalizedDifference(["SR_B5", "SR_B4"]).rename("NDVI")
    ndmi = image.normalizedDifference(["SR_B7", "SR_B3"]).rename("NDMI")
    mndwi = image.normalizedDifference(["SR_B3", "SR_B6"]).rename("MNDWI")
    simple_ratio = image.select("SR_B5").divide(image.select("SR_B4")).rename("SR")
    ratio54 = image.select("SR_B6").divide(image.select("SR_B5")).rename("R54")
    ratio35 = image.select("SR_B4").divide(image.select("SR_B6")).rename("R35")
    gcvi = image.expression(
        "(NIR/GREEN)-1",
        {
            "NIR": image.select("SR_B5"),
            "GREEN": image.select("SR_B3"),
        },
    ).rename("GCVI")
    return image.addBands([ndvi, ndmi, mndwi, simple_ratio, ratio54, ratio35, gcvi])


def prepare_collection(
    config: LandsatConfig,
    region: Any,
    *,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> Any:
    """Return the scaled, cloud-masked, index-augmented collection over ``region``."""

    if (start is None) != (end is None):
        raise ValueError("start and end dates must be given together")

    collection = ee.ImageCollection(config.collection).filterBounds(region)
    if start is not None:
        collection = collection.filterDate(start, end)
    return (
        collection.map(lambda image: apply_scale_factors(image, config))
        .map(lambda image: mask_clouds(image, config))
        .map(add_indices)
    )
