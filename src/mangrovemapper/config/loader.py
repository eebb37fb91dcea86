"""Pipeline configuration: YAML or JSON files mapped onto dataclasses."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any, Callable, Dict, Iterable, Optional

import yaml

from mangrovemapper.core.models import (
    AnomalyConfig,
    AssetConfig,
    CcdcConfig,
    ClipCollectionConfig,
    CompositeConfig,
    CompositePeriod,
    EarthEngineConfig,
    ExportConfig,
    LandsatConfig,
    RegionConfig,
)


@dataclass
class PipelineConfig:
    """Top-level configuration object for the mangrove workflows."""

    output_dir: Path = Path("output")
    earthengine: EarthEngineConfig = field(default_factory=EarthEngineConfig)
    region: RegionConfig = field(default_factory=RegionConfig)
    clip_collection: ClipCollectionConfig = field(default_factory=ClipCollectionConfig)
    landsat: LandsatConfig = field(default_factory=LandsatConfig)
    assets: AssetConfig = field(default_factory=AssetConfig)
    ccdc: CcdcConfig = field(default_factory=CcdcConfig)
    anomaly: AnomalyConfig = field(default_factory=AnomalyConfig)
    composites: CompositeConfig = field(default_factory=CompositeConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    def resolve_relative_paths(self, base_dir: Path) -> None:
        """Resolve relative local paths against the provided base directory."""

        if not self.output_dir.is_absolute():
            self.output_dir = base_dir / self.output_dir
        if self.region.geojson and not Path(self.region.geojson).is_absolute():
            self.region.geojson = str(base_dir / self.region.geojson)
        if self.earthengine.private_key_file and not Path(self.earthengine.private_key_file).is_absolute():
            self.earthengine.private_key_file = str(base_dir / self.earthengine.private_key_file)


class ConfigLoader:
    """Read a configuration file and validate it into a :class:`PipelineConfig`."""

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base_dir = base_dir or Path.cwd()

    def load(self, path: Path | str) -> PipelineConfig:
        """Parse ``path`` and resolve local paths against its directory."""

        config_path = self._resolve_path(Path(path))
        payload = self._load_payload(config_path)
        config = self.build(payload)
        config.resolve_relative_paths(config_path.parent)
        return config

    def _resolve_path(self, path: Path) -> Path:
        if path.is_absolute():
            return path
        return (self._base_dir / path).resolve()

    def _load_payload(self, path: Path) -> Dict[str, Any]:
        parser = _PARSERS.get(path.suffix.lower())
        if parser is None:
            raise ValueError(f"Unsupported configuration format: {path.suffix or path.name}")
        with path.open("r", encoding="utf-8") as handle:
            payload = parser(handle) or {}
        if not isinstance(payload, dict):
            raise ValueError(f"{path.name} must contain a mapping at the top level")
        return payload

    def build(self, payload: Dict[str, Any]) -> PipelineConfig:
        """Build a :class:`PipelineConfig` from an already parsed mapping."""

        output_dir = Path(payload.get("output_dir", "output"))

        earthengine = EarthEngineConfig(**_section(payload, "earthengine"))

        region_data = _section(payload, "region")
        bbox = region_data.get("bbox")
        if bbox is not None:
            if not isinstance(bbox, (list, tuple)) or len(bbox) != 4:
                raise ValueError("region.bbox must be a list of four numbers")
            region_data["bbox"] = tuple(float(value) for value in bbox)
        sources = [key for key in ("bbox", "asset", "geojson") if region_data.get(key)]
        if len(sources) > 1:
            raise ValueError(f"region must define only one of bbox, asset or geojson (got {', '.join(sources)})")
        region = RegionConfig(**region_data)

        clip_data = _section(payload, "clip_collection")
        if clip_data.get("value") is not None:
            clip_data["value"] = str(clip_data["value"])
        clip_collection = ClipCollectionConfig(**clip_data)

        landsat_data = _section(payload, "landsat")
        _cast(landsat_data, float, ("scale_factor", "offset"))
        _cast(landsat_data, int, ("cloud_shadow_bit", "cloud_bit"))
        landsat = LandsatConfig(**landsat_data)

        assets = AssetConfig(**_section(payload, "assets"))

        ccdc_data = _section(payload, "ccdc")
        _cast(ccdc_data, int, ("min_observations", "date_format", "pad_length", "max_breaks"))
        _cast(ccdc_data, float, ("chi_square_probability", "min_num_of_years_scaler"))
        _cast(ccdc_data, str, ("start_date", "end_date"))
        ccdc = CcdcConfig(**ccdc_data)

        anomaly_data = _section(payload, "anomaly")
        _cast(anomaly_data, str, ("reference_start", "reference_end", "period_start", "period_end", "before_label", "after_label"))
        _cast(anomaly_data, int, ("mangrove_class", "stable_class_value"))
        _cast(anomaly_data, float, ("loss_threshold", "gain_threshold", "buffer_meters"))
        anomaly = AnomalyConfig(**anomaly_data)
        if anomaly.loss_threshold > anomaly.gain_threshold:
            raise ValueError("anomaly.loss_threshold must not exceed anomaly.gain_threshold")

        composite_data = _section(payload, "composites")
        if "periods" in composite_data:
            periods = []
            for period in composite_data.get("periods") or []:
                if not isinstance(period, dict):
                    raise ValueError("composites.periods entries must be mappings")
                periods.append(
                    CompositePeriod(
                        label=str(period["label"]),
                        start=str(period["start"]),
                        end=str(period["end"]),
                    )
                )
            composite_data["periods"] = tuple(periods)
        _cast(composite_data, float, ("max_elevation",))
        composites = CompositeConfig(**composite_data)

        export_data = _section(payload, "export")
        _cast(export_data, float, ("scale", "max_pixels", "stats_max_pixels"))
        export = ExportConfig(**export_data)

        return PipelineConfig(
            output_dir=output_dir,
            earthengine=earthengine,
            region=region,
            clip_collection=clip_collection,
            landsat=landsat,
            assets=assets,
            ccdc=ccdc,
            anomaly=anomaly,
            composites=composites,
            export=export,
        )


_PARSERS: Dict[str, Callable[[IO[str]], Any]] = {
    ".yaml": yaml.safe_load,
    ".yml": yaml.safe_load,
    ".json": json.load,
}


def _section(payload: Dict[str, Any], name: str) -> Dict[str, Any]:
    data = payload.get(name) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{name} section must be a mapping")
    return dict(data)


def _cast(data: Dict[str, Any], kind: type, keys: Iterable[str]) -> None:
    # YAML 1.1 reads "1e13" as a string and bare dates as datetime.date.
    for key in keys:
        if key in data and data[key] is not None:
            data[key] = kind(data[key])


def load_config(path: Path | str, *, base_dir: Optional[Path] = None) -> PipelineConfig:
    """Convenience wrapper around :class:`ConfigLoader`."""

    loader = ConfigLoader(base_dir=base_dir)
    return loader.load(path)
