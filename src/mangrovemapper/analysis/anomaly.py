"""Bitemporal mangrove change, change area and index anomaly layers."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional

import ee

from mangrovemapper.config import PipelineConfig
from mangrovemapper.core.models import AnomalyConfig, ExportRequest
from mangrovemapper.earthengine.geometry import StudyArea
from mangrovemapper.logging import get_logger
from mangrovemapper.preprocessing.landsat import prepare_collection

__all__ = [
    "AREA_BAND",
    "AnomalyWorkflow",
    "anomaly_from_reference",
    "area_km2",
    "bitemporal_change",
    "mangrove_mask",
    "mean_anomaly",
    "presence_code",
    "reduce_region",
    "reference_mean",
    "stable_mangrove",
    "threshold_change",
]

LOGGER = get_logger(__name__)

AREA_BAND = "area_km2"


def mangrove_mask(landcover: Any, mangrove_class: int) -> Any:
    return landcover.eq(mangrove_class)


def bitemporal_change(before: Any, after: Any) -> Any:
    """-1 where mangrove was lost, 0 where unchanged, 1 where gained."""

    return after.subtract(before)


def presence_code(before: Any, after: Any) -> Any:
    """0 absent, 1 present before only, 2 present after only, 3 present in both."""

    return after.where(after.eq(1), 2).add(before)


def area_km2(mask: Any) -> Any:
    return mask.multiply(ee.Image.pixelArea().divide(1e6)).rename(AREA_BAND)


def reduce_region(image: Any, reducer: Any, region: Any, *, scale: float, max_pixels: float) -> Any:
    return image.reduceRegion(
        reducer=reducer,
        geometry=region,
        scale=scale,
        maxPixels=max_pixels,
    )


def reference_mean(collection: Any, index: str, start: str, end: str) -> Any:
    """Per-pixel mean of ``index`` over the reference window."""

    return collection.filterDate(start, end).select(index).mean()


def anomaly_from_reference(image: Any, mean: Any) -> Any:
    return image.subtract(mean).set("system:time_start", image.get("system:time_start"))


def mean_anomaly(collection: Any, mean: Any, index: str, start: str, end: str) -> Any:
    """Average deviation from ``mean`` over the analysis window.

    Computed as the sum of per-scene anomalies divided by the number of
    unmasked observations, so cloud-masked scenes do not dilute the result.
    """

    series = collection.filterDate(start, end).select(index).map(lambda image: anomaly_from_reference(image, mean))
    return series.sum().divide(series.count())


def threshold_change(
    anomaly: Any,
    baseline_mangrove: Any,
    *,
    loss_threshold: float,
    gain_threshold: float,
    buffer_meters: float,
) -> Dict[str, Any]:
    """Anomaly-based loss inside baseline mangroves and gain near them."""

    extent_buffer = baseline_mangrove.focal_max(radius=buffer_meters, kernelType="circle", units="meters")
    loss = anomaly.lte(loss_threshold).selfMask().updateMask(baseline_mangrove)
    gain = anomaly.gte(gain_threshold).selfMask().updateMask(extent_buffer)
    return {"ndvi_loss": loss, "ndvi_gain": gain, "extent_buffer": extent_buffer}


def stable_mangrove(
    anomaly: Any,
    before: Any,
    after: Any,
    *,
    loss_threshold: float,
    gain_threshold: float,
    stable_value: int,
) -> Dict[str, Any]:
    within = anomaly.lte(gain_threshold).And(anomaly.gte(loss_threshold))
    stable_mask = before.And(within).And(after)
    return {
        "stable_zones": within,
        "stable_mangrove": ee.Image(0).where(stable_mask.eq(1), stable_value),
        "stable_mangrove_classes": before.add(within).add(after),
    }


class AnomalyWorkflow:
    """Land-cover differencing plus NDVI anomaly relative to a reference period."""

    name = "anomaly"

    def __init__(self, config: PipelineConfig, study_area: StudyArea) -> None:
        self._config = config
        self._anomaly: AnomalyConfig = config.anomaly
        self._study_area = study_area
        self._products: Optional[Dict[str, Any]] = None

    def build_products(self) -> Dict[str, Any]:
        if self._products is not None:
            return self._products

        assets = self._config.assets
        if not assets.landcover_before or not assets.landcover_after:
            raise ValueError("assets.landcover_before and assets.landcover_after must be set for the anomaly workflow")

        cfg = self._anomaly
        clip = self._study_area.clip_collection
        before = mangrove_mask(ee.Image(assets.landcover_before), cfg.mangrove_class)
        after = mangrove_mask(ee.Image(assets.landcover_after), cfg.mangrove_class)

        change = bitemporal_change(before, after).clipToCollection(clip)
        presence = presence_code(before, after)

        collection = prepare_collection(self._config.landsat, self._study_area.region)
        mean = reference_mean(collection, cfg.index, cfg.reference_start, cfg.reference_end)
        anomaly = mean_anomaly(collection, mean, cfg.index, cfg.period_start, cfg.period_end)
        mangrove_anomaly = anomaly.updateMask(presence)

        products: Dict[str, Any] = {
            "mangrove_before": before,
            "mangrove_after": after,
            "mangrove_change": change,
            "mangrove_gain": change.eq(1),
            "mangrove_loss": change.eq(-1),
            "mangrove_presence": presence,
            "reference_mean": mean,
            "anomaly": anomaly,
            "mangrove_anomaly": mangrove_anomaly,
            "mangrove_anomaly_after": mangrove_anomaly.updateMask(presence.gte(2)),
        }
        products.update(
            threshold_change(
                anomaly,
                before,
                loss_threshold=cfg.loss_threshold,
                gain_threshold=cfg.gain_threshold,
                buffer_meters=cfg.buffer_meters,
            )
        )
        stable = stable_mangrove(
            anomaly,
            before,
            after,
            loss_threshold=cfg.loss_threshold,
            gain_threshold=cfg.gain_threshold,
            stable_value=cfg.stable_class_value,
        )
        products["stable_zones"] = stable["stable_zones"]
        products["stable_mangrove"] = stable["stable_mangrove"].clipToCollection(clip)
        products["stable_mangrove_classes"] = stable["stable_mangrove_classes"].clipToCollection(clip)

        LOGGER.info(
            "anomaly graph built",
            extra={
                "index": cfg.index,
                "reference": f"{cfg.reference_start}/{cfg.reference_end}",
                "period": f"{cfg.period_start}/{cfg.period_end}",
            },
        )
        self._products = products
        return products

    def area_statistics(self) -> Dict[str, float]:
        """Return mangrove gain and loss area in km2 (blocks on the service)."""

        products = self.build_products()
        export = self._config.export
        stats: Dict[str, float] = {}
        for key, product in (("gain_km2", "mangrove_gain"), ("loss_km2", "mangrove_loss")):
            result = reduce_region(
                area_km2(products[product]),
                ee.Reducer.sum(),
                self._study_area.region,
                scale=export.scale,
                max_pixels=export.stats_max_pixels,
            ).getInfo()
            stats[key] = float((result or {}).get(AREA_BAND) or 0.0)
        LOGGER.info(
            "mangrove change area (%s to %s)",
            self._anomaly.before_label,
            self._anomaly.after_label,
            extra=stats,
        )
        return stats

    def anomaly_summary(self) -> Dict[str, Any]:
        """Mean index anomaly and observation count over mangrove pixels."""

        products = self.build_products()
        reducer = ee.Reducer.mean().combine(reducer2=ee.Reducer.count(), sharedInputs=True)
        result = reduce_region(
            products["mangrove_anomaly"],
            reducer,
            self._study_area.region,
            scale=self._config.export.scale,
            max_pixels=self._config.export.stats_max_pixels,
        ).getInfo() or {}
        index = self._anomaly.index
        summary = {
            "mean": result.get(f"{index}_mean"),
            "count": result.get(f"{index}_count"),
        }
        LOGGER.info("mangrove %s anomaly summary", index, extra=summary)
        return summary

    def export_requests(self, products: Dict[str, Any]) -> List[ExportRequest]:
        return [ExportRequest(products["anomaly"], "Anomaly", "asset", asset_id="Anomaly")]

    def generation_params(self) -> Dict[str, Any]:
        return {
            "anomaly": asdict(self._anomaly),
            "collection": self._config.landsat.collection,
            "landcover_before": self._config.assets.landcover_before,
            "landcover_after": self._config.assets.landcover_after,
        }
