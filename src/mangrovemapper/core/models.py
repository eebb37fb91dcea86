"""Dataclasses describing mangrovemapper configuration and export entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple


@dataclass
class EarthEngineConfig:
    """Credentials and project used to initialize the Earth Engine client."""

    project: Optional[str] = None
    service_account: Optional[str] = None
    private_key_file: Optional[str] = None


@dataclass
class RegionConfig:
    """Study region; exactly one of the three sources must be set."""

    bbox: Optional[Tuple[float, float, float, float]] = None
    asset: Optional[str] = None
    geojson: Optional[str] = None


@dataclass
class ClipCollectionConfig:
    """Features used to clip reported products (municipal boundaries)."""

    asset: Optional[str] = "TIGER/2018/Counties"
    property: Optional[str] = "STATEFP"
    value: Optional[str] = "72"


@dataclass
class LandsatConfig:
    """Landsat 8 Collection 2 Level 2 surface reflectance settings."""

    collection: str = "LANDSAT/LC08/C02/T1_L2"
    scale_factor: float = 0.0000275
    offset: float = -0.2
    optical_bands: str = "SR_B."
    qa_band: str = "QA_PIXEL"
    cloud_shadow_bit: int = 3
    cloud_bit: int = 5


@dataclass
class AssetConfig:
    """Remote asset paths for pre-computed classification products."""

    all_mangrove: Optional[str] = None
    landcover_before: Optional[str] = None
    landcover_after: Optional[str] = None
    elevation: str = "USGS/SRTMGL1_003"


@dataclass
class CcdcConfig:
    """Parameters forwarded to the remote CCDC temporal segmentation."""

    index: str = "NDVI"
    min_observations: int = 3
    chi_square_probability: float = 0.95
    min_num_of_years_scaler: float = 1.33
    date_format: int = 1
    pad_length: int = 5
    max_breaks: int = 4
    start_date: Optional[str] = None
    end_date: Optional[str] = None


@dataclass
class AnomalyConfig:
    """Bitemporal change and index anomaly settings."""

    index: str = "NDVI"
    reference_start: str = "2014-01-01"
    reference_end: str = "2016-12-31"
    period_start: str = "2021-01-01"
    period_end: str = "2023-12-31"
    mangrove_class: int = 1
    loss_threshold: float = -0.2
    gain_threshold: float = 0.2
    buffer_meters: float = 1000.0
    stable_class_value: int = 7
    before_label: str = "2015"
    after_label: str = "2023"


@dataclass
class CompositePeriod:
    """Date window reduced into one composite."""

    label: str
    start: str
    end: str


def _default_periods() -> Tuple[CompositePeriod, ...]:
    return (
        CompositePeriod(label="2015", start="2014-01-01", end="2016-12-31"),
        CompositePeriod(label="2023", start="2021-01-01", end="2023-12-31"),
    )


@dataclass
class CompositeConfig:
    """Median composite and quality mosaic settings."""

    periods: Tuple[CompositePeriod, ...] = field(default_factory=_default_periods)
    max_elevation: float = 65.0
    mosaic_band: str = "NDVI"


@dataclass
class ExportConfig:
    """Defaults applied to every export submission."""

    asset_root: Optional[str] = None
    drive_folder: str = "EarthEngine_Exports"
    scale: float = 30.0
    max_pixels: float = 1e13
    stats_max_pixels: float = 1e14
    file_format: str = "GeoTIFF"


@dataclass
class ExportRequest:
    """Intent to materialize one computed image."""

    image: Any
    description: str
    destination: str = "asset"
    asset_id: Optional[str] = None
    file_name_prefix: Optional[str] = None
    # None uses export.drive_folder; an empty string exports to the Drive root.
    folder: Optional[str] = None
    scale: Optional[float] = None
    max_pixels: Optional[float] = None


@dataclass
class ExportRecord:
    """What was handed to the export service."""

    description: str
    destination: str
    target: str
    task_id: Optional[str] = None
    state: str = "SUBMITTED"
    submitted_at: datetime = field(default_factory=datetime.utcnow)


@dataclass
class SubmissionManifest:
    """Exports registered by one workflow run and the parameters behind them."""

    workflow: str
    records: List[ExportRecord] = field(default_factory=list)
    generation_params: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.utcnow)
    version: str = "1.0"
