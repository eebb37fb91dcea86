"""Per-period median composites and quality mosaics over low-lying terrain."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import ee

from mangrovemapper.config import PipelineConfig
from mangrovemapper.core.models import CompositePeriod, ExportRequest
from mangrovemapper.earthengine.geometry import StudyArea
from mangrovemapper.logging import get_logger
from mangrovemapper.preprocessing.landsat import prepare_collection

__all__ = ["CompositesWorkflow", "elevation_mask", "median_composite", "quality_mosaic"]

LOGGER = get_logger(__name__)


def elevation_mask(dem: Any, region: Any, max_elevation: float) -> Any:
    """1 where the terrain is strictly below ``max_elevation`` metres."""

    return dem.clip(region).lt(max_elevation)


def median_composite(collection: Any, region: Any, mask: Any) -> Any:
    return collection.median().clip(region).updateMask(mask)


def quality_mosaic(collection: Any, band: str, region: Any, mask: Any) -> Any:
    """Per pixel, keep the masked observation with the highest ``band`` value."""

    return collection.map(lambda image: image.updateMask(mask)).qualityMosaic(band).clip(region)


class CompositesWorkflow:
    """Median composite and greenest-pixel mosaic for each configured period."""

    name = "composites"

    def __init__(self, config: PipelineConfig, study_area: StudyArea) -> None:
        self._config = config
        self._composites = config.composites
        self._study_area = study_area

    def build_products(self) -> Dict[str, Any]:
        if not self._composites.periods:
            raise ValueError("composites.periods must list at least one period")

        region = self._study_area.region
        dem = ee.Image(self._config.assets.elevation)
        low_terrain = elevation_mask(dem, region, self._composites.max_elevation)

        products: Dict[str, Any] = {"elevation_mask": low_terrain}
        for period in self._composites.periods:
            collection = prepare_collection(self._config.landsat, region, start=period.start, end=period.end)
            products[f"composite_{period.label}"] = median_composite(collection, region, low_terrain)
            products[f"mosaic_{period.label}"] = quality_mosaic(
                collection,
                self._composites.mosaic_band,
                region,
                low_terrain,
            )
            LOGGER.info(
                "composite graph built for %s",
                period.label,
                extra={"start": period.start, "end": period.end},
            )
        return products

    def export_requests(self, products: Dict[str, Any]) -> List[ExportRequest]:
        requests: List[ExportRequest] = []
        for period in self._composites.periods:
            requests.extend(self._period_requests(period, products))
        return requests

    def _period_requests(self, period: CompositePeriod, products: Dict[str, Any]) -> List[ExportRequest]:
        label = period.label
        return [
            ExportRequest(
                products[f"composite_{label}"],
                f"Landsat_Composite_{label}",
                "asset",
                asset_id=f"Composite_{label}",
            ),
            ExportRequest(
                products[f"mosaic_{label}"],
                f"Landsat_QualityMosaic_{label}",
                "asset",
                asset_id=f"QMosaic_{label}",
            ),
        ]

    def generation_params(self) -> Dict[str, Any]:
        return {
            "composites": asdict(self._composites),
            "collection": self._config.landsat.collection,
            "elevation": self._config.assets.elevation,
        }
