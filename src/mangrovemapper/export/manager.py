"""Submission of image export tasks to Earth Engine."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import ee

from mangrovemapper.core.models import ExportConfig, ExportRecord, ExportRequest, SubmissionManifest
from mangrovemapper.logging import get_logger

from .manifest import write_manifest

__all__ = ["ExportManager", "ExportSubmissionError", "sanitize_description"]

LOGGER = get_logger(__name__)

MAX_DESCRIPTION_LENGTH = 100
_ABSOLUTE_ASSET_PREFIXES = ("projects/", "users/")


class ExportSubmissionError(RuntimeError):
    """Raised when the export service rejects a task."""


def sanitize_description(value: str) -> str:
    """Restrict a task description to the characters the export service accepts."""

    cleaned = re.sub(r"[^A-Za-z0-9.,:;_\-]+", "_", value.strip()).strip("_")
    return (cleaned or "export")[:MAX_DESCRIPTION_LENGTH]


class ExportManager:
    """Register fire-and-forget export tasks; completion is never awaited."""

    def __init__(
        self,
        config: ExportConfig,
        region: Any,
        *,
        dry_run: bool = False,
    ) -> None:
        self._config = config
        self._region = region
        self._dry_run = dry_run
        self._records: List[ExportRecord] = []

    @property
    def records(self) -> List[ExportRecord]:
        return list(self._records)

    def submit(self, request: ExportRequest) -> ExportRecord:
        description = sanitize_description(request.description)
        if request.destination == "asset":
            target = self.resolve_asset_id(request.asset_id or description)
            factory = ee.batch.Export.image.toAsset
            kwargs = self._asset_kwargs(request, description, target)
        elif request.destination == "drive":
            folder = self._config.drive_folder if request.folder is None else request.folder
            prefix = request.file_name_prefix or description
            target = f"{folder}/{prefix}" if folder else prefix
            factory = ee.batch.Export.image.toDrive
            kwargs = self._drive_kwargs(request, description, folder, prefix)
        else:
            raise ValueError(f"Unsupported export destination: {request.destination}")

        LOGGER.info(
            "export %s -> %s",
            description,
            target,
            extra={
                "destination": request.destination,
                "scale": kwargs["scale"],
                "max_pixels": kwargs["maxPixels"],
                "dry_run": self._dry_run,
            },
        )
        if self._dry_run:
            record = ExportRecord(description=description, destination=request.destination, target=target, state="DRY_RUN")
            self._records.append(record)
            return record

        try:
            task = factory(**kwargs)
            task.start()
        except ee.EEException as exc:
            raise ExportSubmissionError(f"Export {description} was rejected: {exc}") from exc

        task_id = getattr(task, "id", None)
        record = ExportRecord(
            description=description,
            destination=request.destination,
            target=target,
            task_id=str(task_id) if task_id is not None else None,
        )
        self._records.append(record)
        return record

    def submit_many(self, requests: Iterable[ExportRequest]) -> List[ExportRecord]:
        return [self.submit(request) for request in requests]

    def resolve_asset_id(self, asset_id: str) -> str:
        if asset_id.startswith(_ABSOLUTE_ASSET_PREFIXES):
            return asset_id
        root = (self._config.asset_root or "").rstrip("/")
        if not root:
            raise ValueError(f"export.asset_root must be set to export relative asset id {asset_id!r}")
        return f"{root}/{asset_id}"

    def write_manifest(
        self,
        path: Path,
        *,
        workflow: str,
        generation_params: Optional[Dict[str, Any]] = None,
    ) -> SubmissionManifest:
        manifest = SubmissionManifest(
            workflow=workflow,
            records=self.records,
            generation_params=generation_params or {},
        )
        write_manifest(manifest, path)
        LOGGER.info("export manifest written", extra={"path": str(path), "exports": len(manifest.records)})
        return manifest

    def _asset_kwargs(self, request: ExportRequest, description: str, asset_id: str) -> Dict[str, Any]:
        return {
            "image": request.image,
            "description": description,
            "assetId": asset_id,
            "region": self._region,
            "scale": request.scale or self._config.scale,
            "maxPixels": request.max_pixels or self._config.max_pixels,
        }

    def _drive_kwargs(
        self,
        request: ExportRequest,
        description: str,
        folder: Optional[str],
        prefix: str,
    ) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "image": request.image,
            "description": description,
            "fileNamePrefix": prefix,
            "region": self._region,
            "scale": request.scale or self._config.scale,
            "fileFormat": self._config.file_format,
            "maxPixels": request.max_pixels or self._config.max_pixels,
        }
        if folder:
            kwargs["folder"] = folder
        return kwargs
