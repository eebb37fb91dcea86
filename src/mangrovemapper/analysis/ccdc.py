"""CCDC break detection and strongest-loss extraction."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List

import ee

from mangrovemapper.config import PipelineConfig
from mangrovemapper.core.models import CcdcConfig, ExportRequest
from mangrovemapper.earthengine.geometry import StudyArea
from mangrovemapper.logging import get_logger
from mangrovemapper.preprocessing.landsat import prepare_collection

__all__ = ["BREAK_BAND", "CcdcWorkflow", "extract_max_loss", "magnitude_band", "run_segmentation"]

LOGGER = get_logger(__name__)

BREAK_BAND = "tBreak"

# Integer break-year export for desktop GIS, written to the Drive root.
INT_EXPORT_MAX_PIXELS = 1e8


def magnitude_band(index: str) -> str:
    return f"{index}_magnitude"


def run_segmentation(collection: Any, config: CcdcConfig) -> Any:
    """Run the remote CCDC algorithm on the configured index band."""

    return ee.Algorithms.TemporalSegmentation.Ccdc(
        collection=collection.select(config.index),
        minObservations=config.min_observations,
        chiSquareProbability=config.chi_square_probability,
        minNumOfYearsScaler=config.min_num_of_years_scaler,
        dateFormat=config.date_format,
    )


def extract_max_loss(segmentation: Any, config: CcdcConfig) -> Any:
    """Return ``tBreak`` and positive loss magnitude of the strongest break.

    Break arrays have a per-pixel length, so both are padded with zeros to
    ``pad_length`` before the first ``max_breaks`` entries are unpacked into
    candidate images. Magnitudes are negated so that a drop in the index
    ranks highest in the quality mosaic.
    """

    if config.max_breaks < 1:
        raise ValueError("ccdc.max_breaks must be at least 1")
    if config.max_breaks > config.pad_length:
        raise ValueError(
            f"ccdc.max_breaks ({config.max_breaks}) cannot exceed ccdc.pad_length ({config.pad_length})"
        )

    mag_band = magnitude_band(config.index)
    breaks = segmentation.select(BREAK_BAND).arrayPad([config.pad_length])
    magnitudes = segmentation.select(mag_band).arrayPad([config.pad_length])

    candidates = [
        breaks.arrayGet([position])
        .addBands(magnitudes.arrayGet([position]).multiply(-1))
        .set("break", position + 1)
        for position in range(config.max_breaks)
    ]
    return ee.ImageCollection(candidates).qualityMosaic(mag_band)


class CcdcWorkflow:
    """Strongest vegetation-loss break within the mapped mangrove extent."""

    name = "ccdc"

    def __init__(self, config: PipelineConfig, study_area: StudyArea) -> None:
        self._config = config
        self._ccdc = config.ccdc
        self._study_area = study_area

    def build_products(self) -> Dict[str, Any]:
        if not self._config.assets.all_mangrove:
            raise ValueError("assets.all_mangrove must be set for the ccdc workflow")

        collection = prepare_collection(
            self._config.landsat,
            self._study_area.region,
            start=self._ccdc.start_date,
            end=self._ccdc.end_date,
        )
        segmentation = run_segmentation(collection, self._ccdc)
        mangrove_extent = ee.Image(self._config.assets.all_mangrove)
        max_loss = (
            extract_max_loss(segmentation, self._ccdc)
            .clipToCollection(self._study_area.clip_collection)
            .updateMask(mangrove_extent)
        )
        LOGGER.info(
            "ccdc graph built",
            extra={
                "index": self._ccdc.index,
                "max_breaks": self._ccdc.max_breaks,
                "start": self._ccdc.start_date,
                "end": self._ccdc.end_date,
            },
        )
        break_year = max_loss.select(BREAK_BAND)
        return {
            "segmentation": segmentation,
            "max_loss": max_loss,
            "break_year": break_year,
            "break_year_int": max_loss.select([BREAK_BAND]).toInt(),
            "magnitude": max_loss.select(magnitude_band(self._ccdc.index)),
        }

    def export_requests(self, products: Dict[str, Any]) -> List[ExportRequest]:
        magnitude_name = f"{self._ccdc.index}Magnitude"
        return [
            ExportRequest(products["max_loss"], "maxImageLoss", "asset", asset_id="maxImageLoss"),
            ExportRequest(products["break_year"], "Time Break", "asset", asset_id="TimeBreak"),
            ExportRequest(products["break_year"], "TimeBreak", "drive", file_name_prefix="TimeBreak"),
            ExportRequest(
                products["break_year_int"],
                "MaxImageLoss_Int_Export",
                "drive",
                file_name_prefix="MaxImageLoss_Int_Export",
                folder="",
                max_pixels=INT_EXPORT_MAX_PIXELS,
            ),
            ExportRequest(products["magnitude"], magnitude_name, "asset", asset_id=magnitude_name),
        ]

    def generation_params(self) -> Dict[str, Any]:
        return {
            "ccdc": asdict(self._ccdc),
            "collection": self._config.landsat.collection,
            "mangrove_extent": self._config.assets.all_mangrove,
        }
